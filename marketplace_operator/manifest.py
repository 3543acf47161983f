"""Representation of the objects the operator reconciles and watches.

Managed resources (`OperatorSource`, `CatalogSourceConfig`) carry a spec with
the desired intent and a status holding the current phase. Child objects
(`Deployment`, `ChildObject`) and cluster singletons (`ClusterProxy`,
`OperatorHub`) are only read by the operator and are used to route watch
events and detect drift.
"""

from abc import ABC, abstractmethod
import copy
from dataclasses import dataclass, field
from datetime import datetime
import logging
from pathlib import Path
from typing import Any, ClassVar, Self

import aiofiles
import yaml
from mashumaro.codecs.yaml import yaml_decode, yaml_encode
from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig

from .exceptions import InputException
from .phase import Phase

__all__ = [
    "parse_raw_obj",
    "read_objects",
    "NamedResource",
    "EnvVar",
    "ObjectPhase",
    "ManagedResource",
    "OperatorSource",
    "CatalogSourceConfig",
    "Deployment",
    "ChildObject",
    "ClusterProxy",
    "ProxyConfig",
    "OperatorHub",
]

_LOGGER = logging.getLogger(__name__)


# Match a prefix of apiVersion to ensure we have the right type of object.
# We don't check specific versions for forward compatibility on upgrade.
MARKETPLACE_DOMAIN = "operators.coreos.com"
CONFIG_DOMAIN = "config.openshift.io"
APPS_DOMAIN = "apps/"

OPERATOR_SOURCE_KIND = "OperatorSource"
CATALOG_SOURCE_CONFIG_KIND = "CatalogSourceConfig"
CATALOG_SOURCE_KIND = "CatalogSource"
DEPLOYMENT_KIND = "Deployment"
SERVICE_KIND = "Service"
SERVICE_ACCOUNT_KIND = "ServiceAccount"
ROLE_KIND = "Role"
ROLE_BINDING_KIND = "RoleBinding"
PROXY_KIND = "Proxy"
OPERATOR_HUB_KIND = "OperatorHub"

# Kinds of the children created for a CatalogSourceConfig.
CHILD_RESOURCE_KINDS = (
    CATALOG_SOURCE_KIND,
    DEPLOYMENT_KIND,
    SERVICE_KIND,
    SERVICE_ACCOUNT_KIND,
    ROLE_KIND,
    ROLE_BINDING_KIND,
)

# Name of the cluster scoped singletons.
CLUSTER_SINGLETON_NAME = "cluster"

# Ownership labels carried by the children of a CatalogSourceConfig.
CSC_OWNER_NAME_LABEL = "csc-owner-name"
CSC_OWNER_NAMESPACE_LABEL = "csc-owner-namespace"

# Ownership labels carried by a CatalogSourceConfig derived from an OperatorSource.
OPSRC_OWNER_NAME_LABEL = "opsrc-owner-name"
OPSRC_OWNER_NAMESPACE_LABEL = "opsrc-owner-namespace"

APP_REGISTRY_TYPE = "appregistry"


def _check_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if not api_version.startswith(version):
        raise InputException(f"Invalid object expected '{version}': {doc}")


def _parse_metadata(
    cls: type, doc: dict[str, Any], namespaced: bool = True
) -> tuple[str, str | None, dict[str, str]]:
    """Return the name, namespace and labels of a kubernetes resource object."""
    if not (metadata := doc.get("metadata")):
        raise InputException(f"Invalid {cls} missing metadata: {doc}")
    if not (name := metadata.get("name")):
        raise InputException(f"Invalid {cls} missing metadata.name: {doc}")
    namespace = metadata.get("namespace")
    if namespaced and not namespace:
        raise InputException(f"Invalid {cls} missing metadata.namespace: {doc}")
    return name, namespace, dict(metadata.get("labels") or {})


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    def compact_dict(self) -> dict[str, Any]:
        """Return a compact dictionary representation of the object."""
        return self.to_dict()

    @classmethod
    def parse_yaml(cls, content: str) -> "BaseManifest":
        """Parse a serialized manifest."""
        return yaml_decode(content, cls)

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    class Config(BaseConfig):
        omit_none = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass(frozen=True)
class EnvVar(DataClassDictMixin):
    """An environment variable set on a container."""

    name: str
    """The name of the variable."""

    value: str = ""
    """The value of the variable, empty when unset."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "EnvVar":
        """Parse an EnvVar from a container env entry."""
        if not (name := doc.get("name")):
            raise InputException(f"Invalid {cls} missing name: {doc}")
        return cls(name=name, value=doc.get("value") or "")


@dataclass
class ObjectPhase(BaseManifest):
    """The current phase of a managed resource."""

    name: str = Phase.INITIAL.value
    """The name of the phase."""

    message: str = ""
    """Human readable message, set on failed or retried transitions."""

    last_transition_time: datetime | None = None
    """When the phase name last changed."""

    last_update_time: datetime | None = None
    """When the phase name or message last changed."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any] | None) -> "ObjectPhase":
        """Parse the currentPhase block of a status."""
        if not doc:
            return cls()
        phase = doc.get("phase") or {}
        return cls(
            name=phase.get("name") or Phase.INITIAL.value,
            message=phase.get("message") or "",
        )


@dataclass(kw_only=True)
class ManagedResource(BaseManifest, ABC):
    """Base class for resources driven through phases by a reconciler."""

    kind: ClassVar[str]

    name: str
    """The name of the resource."""

    namespace: str
    """The namespace of the resource."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels on the resource."""

    @property
    def current_phase(self) -> ObjectPhase:
        """The current phase stored in the status."""
        return self.status.current_phase  # type: ignore[attr-defined,no-any-return]

    @property
    def current_phase_name(self) -> str:
        """The name of the current phase."""
        return self.current_phase.name

    @property
    def namespaced_name(self) -> str:
        """Return the namespace and name concatenated as an id."""
        return f"{self.namespace}/{self.name}"

    @property
    def resource_id(self) -> NamedResource:
        """The store key for this resource."""
        return NamedResource(self.kind, self.namespace, self.name)

    def deep_copy(self) -> Self:
        """Return a clone that shares no mutable state with this object."""
        return copy.deepcopy(self)

    @abstractmethod
    def reset_status(self) -> None:
        """Drop the status so that reconciliation starts anew."""


@dataclass
class OperatorSourceSpec(BaseManifest):
    """Desired intent of an OperatorSource."""

    type: str = APP_REGISTRY_TYPE
    """The type of the registry, only appregistry is supported."""

    endpoint: str = ""
    """The registry endpoint to pull package metadata from."""

    registry_namespace: str = ""
    """The namespace of the packages in the registry."""

    display_name: str = ""
    """Name shown to users for the catalog."""

    publisher: str = ""
    """Publisher of the catalog."""


@dataclass
class OperatorSourceStatus(BaseManifest):
    """Observed state of an OperatorSource."""

    current_phase: ObjectPhase = field(default_factory=ObjectPhase)
    """The current phase."""

    packages: str = ""
    """Comma separated package ids discovered in the registry."""


@dataclass(kw_only=True)
class OperatorSource(ManagedResource):
    """A registry of operator packages exposed through a derived catalog."""

    kind: ClassVar[str] = OPERATOR_SOURCE_KIND

    spec: OperatorSourceSpec = field(default_factory=OperatorSourceSpec)
    """The desired intent."""

    status: OperatorSourceStatus = field(default_factory=OperatorSourceStatus)
    """The observed state."""

    def reset_status(self) -> None:
        self.status = OperatorSourceStatus()

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "OperatorSource":
        """Parse an OperatorSource from a kubernetes resource object."""
        _check_version(doc, MARKETPLACE_DOMAIN)
        name, namespace, labels = _parse_metadata(cls, doc)
        spec = doc.get("spec") or {}
        status = doc.get("status") or {}
        return cls(
            name=name,
            namespace=namespace,  # type: ignore[arg-type]
            labels=labels,
            spec=OperatorSourceSpec(
                type=spec.get("type", APP_REGISTRY_TYPE),
                endpoint=spec.get("endpoint", ""),
                registry_namespace=spec.get("registryNamespace", ""),
                display_name=spec.get("displayName", ""),
                publisher=spec.get("publisher", ""),
            ),
            status=OperatorSourceStatus(
                current_phase=ObjectPhase.parse_doc(status.get("currentPhase")),
                packages=status.get("packages", ""),
            ),
        )


@dataclass(frozen=True)
class PackageSummary(DataClassDictMixin):
    """A package served by the catalog of a CatalogSourceConfig."""

    package_id: str
    """The id of the package."""

    source: str = ""
    """The OperatorSource the package was pulled from."""


@dataclass
class CatalogSourceConfigSpec(BaseManifest):
    """Desired intent of a CatalogSourceConfig."""

    target_namespace: str = ""
    """The namespace the CatalogSource is created in."""

    packages: str = ""
    """Comma separated list of package ids, optionally prefixed by a source."""

    display_name: str = ""
    """Name shown to users for the catalog."""

    publisher: str = ""
    """Publisher of the catalog."""

    source: str = ""
    """The OperatorSource the packages are pulled from."""


@dataclass
class CatalogSourceConfigStatus(BaseManifest):
    """Observed state of a CatalogSourceConfig."""

    current_phase: ObjectPhase = field(default_factory=ObjectPhase)
    """The current phase."""

    packages: list[PackageSummary] = field(default_factory=list)
    """Summaries of the packages installed in the catalog."""


@dataclass(kw_only=True)
class CatalogSourceConfig(ManagedResource):
    """A set of packages served from a registry deployment as a catalog."""

    kind: ClassVar[str] = CATALOG_SOURCE_CONFIG_KIND

    spec: CatalogSourceConfigSpec = field(default_factory=CatalogSourceConfigSpec)
    """The desired intent."""

    status: CatalogSourceConfigStatus = field(
        default_factory=CatalogSourceConfigStatus
    )
    """The observed state."""

    def reset_status(self) -> None:
        self.status = CatalogSourceConfigStatus()

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "CatalogSourceConfig":
        """Parse a CatalogSourceConfig from a kubernetes resource object."""
        _check_version(doc, MARKETPLACE_DOMAIN)
        name, namespace, labels = _parse_metadata(cls, doc)
        spec = doc.get("spec") or {}
        status = doc.get("status") or {}
        return cls(
            name=name,
            namespace=namespace,  # type: ignore[arg-type]
            labels=labels,
            spec=CatalogSourceConfigSpec(
                target_namespace=spec.get("targetNamespace", ""),
                packages=spec.get("packages", ""),
                display_name=spec.get("csDisplayName", ""),
                publisher=spec.get("csPublisher", ""),
                source=spec.get("source", ""),
            ),
            status=CatalogSourceConfigStatus(
                current_phase=ObjectPhase.parse_doc(status.get("currentPhase")),
            ),
        )


@dataclass
class Container(BaseManifest):
    """A container in the pod template of a Deployment."""

    name: str
    """The name of the container."""

    image: str = ""
    """The image run by the container."""

    env: list[EnvVar] = field(default_factory=list)
    """Environment variables set on the container."""


@dataclass(kw_only=True)
class Deployment(BaseManifest):
    """A workload created for a managed resource."""

    kind: ClassVar[str] = DEPLOYMENT_KIND

    name: str
    """The name of the Deployment."""

    namespace: str
    """The namespace of the Deployment."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels on the Deployment."""

    containers: list[Container] = field(default_factory=list)
    """Containers of the pod template."""

    @property
    def env(self) -> list[EnvVar]:
        """Environment of the first container, the proxy projection surface."""
        if not self.containers:
            return []
        return self.containers[0].env

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Deployment":
        """Parse a Deployment from a kubernetes resource object."""
        _check_version(doc, APPS_DOMAIN)
        name, namespace, labels = _parse_metadata(cls, doc)
        pod_spec = (
            ((doc.get("spec") or {}).get("template") or {}).get("spec") or {}
        )
        containers = [
            Container(
                name=container.get("name", ""),
                image=container.get("image", ""),
                env=[EnvVar.parse_doc(env) for env in container.get("env") or ()],
            )
            for container in pod_spec.get("containers") or ()
        ]
        return cls(
            name=name,
            namespace=namespace,  # type: ignore[arg-type]
            labels=labels,
            containers=containers,
        )


@dataclass(kw_only=True)
class ChildObject(BaseManifest):
    """A child resource only tracked by kind, identity and labels."""

    kind: str
    """The kind of the object."""

    name: str
    """The name of the object."""

    namespace: str | None = None
    """The namespace of the object."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels on the object."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ChildObject":
        """Parse a ChildObject from a kubernetes resource object."""
        if not (kind := doc.get("kind")):
            raise InputException(f"Invalid object missing kind: {doc}")
        name, namespace, labels = _parse_metadata(cls, doc, namespaced=False)
        return cls(kind=kind, name=name, namespace=namespace, labels=labels)


@dataclass(frozen=True)
class ProxyConfig(DataClassDictMixin):
    """The cluster wide proxy values."""

    http_proxy: str = ""
    https_proxy: str = ""
    no_proxy: str = ""


@dataclass(kw_only=True)
class ClusterProxy(BaseManifest):
    """The cluster scoped proxy configuration object."""

    kind: ClassVar[str] = PROXY_KIND

    name: str = CLUSTER_SINGLETON_NAME
    """The name of the object, the singleton is named `cluster`."""

    namespace: str | None = None
    """Cluster scoped objects have no namespace."""

    status: ProxyConfig = field(default_factory=ProxyConfig)
    """The proxy values observed by the cluster."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ClusterProxy":
        """Parse a Proxy from a kubernetes resource object."""
        _check_version(doc, CONFIG_DOMAIN)
        name, _, _ = _parse_metadata(cls, doc, namespaced=False)
        status = doc.get("status") or {}
        return cls(
            name=name,
            status=ProxyConfig(
                http_proxy=status.get("httpProxy", ""),
                https_proxy=status.get("httpsProxy", ""),
                no_proxy=status.get("noProxy", ""),
            ),
        )


@dataclass(frozen=True)
class HubSource(DataClassDictMixin):
    """A default source listed in the OperatorHub configuration."""

    name: str
    disabled: bool = False


@dataclass(kw_only=True)
class OperatorHub(BaseManifest):
    """The cluster scoped configuration of the default sources."""

    kind: ClassVar[str] = OPERATOR_HUB_KIND

    name: str = CLUSTER_SINGLETON_NAME
    namespace: str | None = None

    sources: list[HubSource] = field(default_factory=list)
    """Default sources and whether they are disabled."""

    def is_present_and_enabled(self, name: str) -> bool:
        """Return True if the source is listed and not disabled."""
        return any(
            source.name == name and not source.disabled for source in self.sources
        )

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "OperatorHub":
        """Parse an OperatorHub from a kubernetes resource object."""
        _check_version(doc, CONFIG_DOMAIN)
        name, _, _ = _parse_metadata(cls, doc, namespaced=False)
        spec = doc.get("spec") or {}
        return cls(
            name=name,
            sources=[
                HubSource(name=source["name"], disabled=bool(source.get("disabled")))
                for source in spec.get("sources") or ()
            ],
        )


def parse_raw_obj(obj: dict[str, Any]) -> BaseManifest:
    """Parse a raw kubernetes object into a BaseManifest."""
    if not (kind := obj.get("kind")):
        raise InputException(f"Invalid object missing kind: {obj}")
    if not obj.get("apiVersion"):
        raise InputException(f"Invalid object missing apiVersion: {obj}")
    if kind == OPERATOR_SOURCE_KIND:
        return OperatorSource.parse_doc(obj)
    if kind == CATALOG_SOURCE_CONFIG_KIND:
        return CatalogSourceConfig.parse_doc(obj)
    if kind == DEPLOYMENT_KIND:
        return Deployment.parse_doc(obj)
    if kind == PROXY_KIND:
        return ClusterProxy.parse_doc(obj)
    if kind == OPERATOR_HUB_KIND:
        return OperatorHub.parse_doc(obj)
    return ChildObject.parse_doc(obj)


async def read_objects(manifest_path: Path) -> list[BaseManifest]:
    """Return the objects of a multi document kubernetes YAML file."""
    async with aiofiles.open(str(manifest_path)) as manifest_file:
        content = await manifest_file.read()
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse {manifest_path}: {err}") from err
    objects = [parse_raw_obj(doc) for doc in docs if doc]
    _LOGGER.debug("Read %d objects from %s", len(objects), manifest_path)
    return objects
