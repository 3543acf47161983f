"""Tests for the operator configuration."""

from pathlib import Path

import pytest

from marketplace_operator.config import ControllerConfig, OperatorConfig, read_config
from marketplace_operator.exceptions import InputException

CONFIG = """\
namespace: marketplace
proxy_api_available: false
catalog_source_config:
  workers: 4
  reconcile_timeout: 30
  resync_interval: null
"""


def test_defaults() -> None:
    """Test the default configuration."""
    config = OperatorConfig()
    assert config.namespace == "openshift-marketplace"
    assert config.proxy_api_available
    assert not config.project_proxy_env
    assert config.operator_source == ControllerConfig()
    assert config.operator_source.workers == 2
    assert config.operator_source.resync_interval == 3600


def test_parse_yaml() -> None:
    """Test parsing a serialized configuration."""
    config = OperatorConfig.parse_yaml(CONFIG)
    assert config.namespace == "marketplace"
    assert not config.proxy_api_available
    assert config.catalog_source_config.workers == 4
    assert config.catalog_source_config.reconcile_timeout == 30
    assert config.catalog_source_config.resync_interval is None
    assert config.operator_source == ControllerConfig()


async def test_read_config(tmp_path: Path) -> None:
    """Test reading the configuration from a file."""
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    config = await read_config(path)
    assert config.namespace == "marketplace"


async def test_read_empty_config(tmp_path: Path) -> None:
    """Test an empty configuration file is rejected."""
    path = tmp_path / "config.yaml"
    path.write_text("")
    with pytest.raises(InputException, match="Empty configuration"):
        await read_config(path)
