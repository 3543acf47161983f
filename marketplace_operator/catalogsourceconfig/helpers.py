"""Helpers for CatalogSourceConfig resources."""

import logging

from marketplace_operator.manifest import (
    CATALOG_SOURCE_KIND,
    DEPLOYMENT_KIND,
    SERVICE_KIND,
    BaseManifest,
    CatalogSourceConfig,
    NamedResource,
)
from marketplace_operator.store import Store

__all__ = [
    "remove_namespaces",
    "package_ids",
    "child_resource_ids",
    "missing_child_resources",
]

_LOGGER = logging.getLogger(__name__)


def remove_namespaces(packages: str) -> str:
    """Strip the source prefix from each entry of a comma separated package list.

    `community-operators/jaeger,orca` becomes `jaeger,orca`.
    """
    return ",".join(
        package.split("/")[1] if "/" in package else package
        for package in packages.split(",")
    )


def package_ids(packages: str) -> list[str]:
    """Return the non empty package ids of a comma separated package list."""
    return [
        package.strip()
        for package in remove_namespaces(packages).split(",")
        if package.strip()
    ]


def child_resource_ids(resource: CatalogSourceConfig) -> list[NamedResource]:
    """Return the children that must exist for a reconciled CatalogSourceConfig.

    The CatalogSource lives in the target namespace, the registry Deployment and
    Service live in the namespace of the CatalogSourceConfig.
    """
    return [
        NamedResource(
            CATALOG_SOURCE_KIND, resource.spec.target_namespace, resource.name
        ),
        NamedResource(DEPLOYMENT_KIND, resource.namespace, resource.name),
        NamedResource(SERVICE_KIND, resource.namespace, resource.name),
    ]


async def missing_child_resources(store: Store, resource: CatalogSourceConfig) -> bool:
    """Return True if any of the child resources is missing from the store."""
    for child_id in child_resource_ids(resource):
        if await store.get_object(child_id, BaseManifest) is None:
            _LOGGER.debug(
                "Child resource %s of %s is missing", child_id, resource.resource_id
            )
            return True
    return False
