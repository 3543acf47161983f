"""Configuration objects for marketplace-operator."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import aiofiles
from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode

from .exceptions import InputException

__all__ = ["ControllerConfig", "OperatorConfig", "read_config"]

DEFAULT_NAMESPACE = "openshift-marketplace"

# Resources are re-listed and requeued once an hour.
DEFAULT_RESYNC_INTERVAL = 60 * 60


@dataclass
class ControllerConfig(DataClassDictMixin):
    """Configuration for the controller of a single kind."""

    workers: int = 2
    """Number of concurrent reconcile workers."""

    resync_interval: float | None = DEFAULT_RESYNC_INTERVAL
    """Seconds between full resyncs, None disables the resync."""

    reconcile_timeout: float | None = None
    """Deadline in seconds for a single reconcile, None for no deadline."""

    base_delay: float = 0.005
    """Requeue delay after the first failure, doubled on each failure."""

    max_delay: float = 1000.0
    """Upper bound on the requeue delay."""


@dataclass
class OperatorConfig(DataClassDictMixin):
    """Configuration for the operator."""

    namespace: str = DEFAULT_NAMESPACE
    """The namespace the operator watches for managed resources."""

    proxy_api_available: bool = True
    """Whether the cluster serves the proxy configuration API."""

    project_proxy_env: bool = False
    """Mirror the cluster proxy values into the process environment."""

    operator_source: ControllerConfig = field(default_factory=ControllerConfig)
    """Controller configuration for OperatorSource resources."""

    catalog_source_config: ControllerConfig = field(default_factory=ControllerConfig)
    """Controller configuration for CatalogSourceConfig resources."""

    @classmethod
    def parse_yaml(cls, content: str) -> "OperatorConfig":
        """Parse a serialized configuration."""
        return yaml_decode(content, cls)


async def read_config(config_path: Path) -> OperatorConfig:
    """Return the contents of a serialized configuration file."""
    async with aiofiles.open(str(config_path)) as config_file:
        content = await config_file.read()
    if not content:
        raise InputException(f"Empty configuration file {config_path}")
    return cast(OperatorConfig, OperatorConfig.parse_yaml(content))
