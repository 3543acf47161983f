"""
Phase driven reconciliation of marketplace OperatorSource and
CatalogSourceConfig resources.
"""

__all__ = [
    "manifest",
    "exceptions",
    "config",
    "controller",
    "manager",
]
