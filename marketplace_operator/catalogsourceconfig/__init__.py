"""Reconciliation of CatalogSourceConfig resources."""

from .helpers import (
    child_resource_ids,
    missing_child_resources,
    package_ids,
    remove_namespaces,
)
from .reconcilers import (
    ConfiguringReconciler,
    SucceededReconciler,
    new_dispatcher,
    validate,
)

__all__ = [
    "child_resource_ids",
    "missing_child_resources",
    "package_ids",
    "remove_namespaces",
    "ConfiguringReconciler",
    "SucceededReconciler",
    "new_dispatcher",
    "validate",
]
