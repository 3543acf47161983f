"""Reconciliation of OperatorSource resources."""

from .packages import PackageIndex
from .reconcilers import (
    ConfiguringReconciler,
    SucceededReconciler,
    derived_catalog_source_config,
    new_dispatcher,
    validate,
)

__all__ = [
    "ConfiguringReconciler",
    "PackageIndex",
    "SucceededReconciler",
    "derived_catalog_source_config",
    "new_dispatcher",
    "validate",
]
