"""Process wide view of the cluster proxy values.

The `ProxyStore` is shared by every reconcile worker. Reads and writes of the
three values go through a single lock so that no reader can observe a mix of
old and new values while an update, or its rollback, is in progress.
"""

from collections.abc import MutableMapping
import logging
import threading

from marketplace_operator.manifest import EnvVar, ProxyConfig

__all__ = [
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "NO_PROXY",
    "PROXY_VAR_NAMES",
    "ProxyStore",
]

_LOGGER = logging.getLogger(__name__)

HTTP_PROXY = "HTTP_PROXY"
"""Proxy for HTTP requests."""

HTTPS_PROXY = "HTTPS_PROXY"
"""Proxy for HTTPS requests."""

NO_PROXY = "NO_PROXY"
"""Comma separated list of domains the proxy is not used for."""

PROXY_VAR_NAMES = (NO_PROXY, HTTP_PROXY, HTTPS_PROXY)


def _values(config: ProxyConfig) -> dict[str, str]:
    return {
        NO_PROXY: config.no_proxy,
        HTTP_PROXY: config.http_proxy,
        HTTPS_PROXY: config.https_proxy,
    }


class ProxyStore:
    """Lock guarded snapshot of the cluster proxy values.

    An optional mutable mapping (typically `os.environ`) receives a projection
    of the values for consumers outside the operator. It is only ever written,
    the snapshot held here is the source of truth.
    """

    def __init__(
        self,
        environ: MutableMapping[str, str] | None = None,
        api_available: bool = True,
    ) -> None:
        """Initialize the ProxyStore.

        Args:
            environ: Optional mapping the values are projected into.
            api_available: Whether the cluster serves the proxy API.
        """
        self._lock = threading.Lock()
        self._config = ProxyConfig()
        self._environ = environ
        self._api_available = api_available

    @property
    def api_available(self) -> bool:
        """Return True if the cluster serves the proxy API."""
        return self._api_available

    def set_api_available(self, available: bool) -> None:
        """Record whether the cluster serves the proxy API."""
        self._api_available = available

    def snapshot(self) -> ProxyConfig:
        """Return a consistent copy of all three values."""
        with self._lock:
            return self._config

    def env_vars(self) -> list[EnvVar]:
        """Return the proxy values as environment variables.

        The order is NO_PROXY, HTTP_PROXY, HTTPS_PROXY and unset values are
        returned with an empty value.
        """
        values = _values(self.snapshot())
        return [EnvVar(name=name, value=values[name]) for name in PROXY_VAR_NAMES]

    def set(self, config: ProxyConfig) -> bool:
        """Replace the proxy values.

        The old values are restored if writing any of the new values to the
        projection fails, and the error is raised. Returns True if the values
        changed.
        """
        with self._lock:
            old = self._config
            if old == config:
                return False
            try:
                self._project(config)
            except Exception:
                _LOGGER.warning("Failed to update proxy values, restoring %s", old)
                self._project(old)
                raise
            self._config = config

        old_values = _values(old)
        for name, value in _values(config).items():
            if old_values[name] != value:
                _LOGGER.info("[proxy] %s environment variable updated to %s", name, value)
        return True

    def _project(self, config: ProxyConfig) -> None:
        """Write the values to the projection, caller must hold the lock."""
        if self._environ is None:
            return
        for name, value in _values(config).items():
            self._environ[name] = value
