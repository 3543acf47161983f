"""Projection of the cluster proxy configuration into managed workloads.

The cluster proxy values are held by a `ProxyStore` shared by every reconcile
worker. `ProxySync` uses a snapshot of those values to compute the desired
environment of a workload and to detect drift.
"""

from .store import ProxyStore, HTTP_PROXY, HTTPS_PROXY, NO_PROXY, PROXY_VAR_NAMES
from .sync import ProxySync, CLUSTER_PROXY_ID

__all__ = [
    "ProxyStore",
    "ProxySync",
    "CLUSTER_PROXY_ID",
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "NO_PROXY",
    "PROXY_VAR_NAMES",
]
