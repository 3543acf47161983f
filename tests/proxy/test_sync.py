"""Tests for proxy environment variable synchronization."""

import pytest

from marketplace_operator.manifest import (
    ClusterProxy,
    Container,
    Deployment,
    EnvVar,
    NamedResource,
    ProxyConfig,
)
from marketplace_operator.proxy import ProxyStore, ProxySync
from marketplace_operator.store import InMemoryStore

UNSET_ENV = [
    EnvVar("NO_PROXY", ""),
    EnvVar("HTTP_PROXY", ""),
    EnvVar("HTTPS_PROXY", ""),
    EnvVar("Foo", "Bar"),
]


@pytest.fixture(name="proxy_store")
def mock_proxy_store() -> ProxyStore:
    return ProxyStore()


@pytest.fixture(name="proxy_sync")
def mock_proxy_sync(proxy_store: ProxyStore) -> ProxySync:
    return ProxySync(proxy_store)


def deployment(env: list[EnvVar]) -> Deployment:
    return Deployment(
        name="registry",
        namespace="openshift-marketplace",
        containers=[Container(name="registry", env=env)],
    )


def test_manage_no_proxy_set(proxy_sync: ProxySync) -> None:
    """Test unset proxy values are removed from the list."""
    assert proxy_sync.manage(UNSET_ENV) == [EnvVar("Foo", "Bar")]


def test_manage_one_value_set(
    proxy_store: ProxyStore, proxy_sync: ProxySync
) -> None:
    """Test a set proxy value moves after the unrelated entries."""
    proxy_store.set(ProxyConfig(no_proxy="test1"))
    assert proxy_sync.manage(UNSET_ENV) == [
        EnvVar("Foo", "Bar"),
        EnvVar("NO_PROXY", "test1"),
    ]


def test_manage_appends_missing(
    proxy_store: ProxyStore, proxy_sync: ProxySync
) -> None:
    """Test missing values are appended after the existing entries."""
    proxy_store.set(ProxyConfig(http_proxy="http://proxy", https_proxy="https://proxy"))
    result = proxy_sync.manage([EnvVar("Foo", "Bar")])
    assert result == [
        EnvVar("Foo", "Bar"),
        EnvVar("HTTP_PROXY", "http://proxy"),
        EnvVar("HTTPS_PROXY", "https://proxy"),
    ]


def test_manage_replaces_existing(
    proxy_store: ProxyStore, proxy_sync: ProxySync
) -> None:
    """Test existing values are replaced at the end in the fixed order."""
    proxy_store.set(ProxyConfig(http_proxy="http://new", no_proxy=".local"))
    env = [EnvVar("HTTP_PROXY", "http://old"), EnvVar("Foo", "Bar")]
    assert proxy_sync.manage(env) == [
        EnvVar("Foo", "Bar"),
        EnvVar("NO_PROXY", ".local"),
        EnvVar("HTTP_PROXY", "http://new"),
    ]
    assert env[0] == EnvVar("HTTP_PROXY", "http://old")


def test_needs_update_ignores_order(
    proxy_store: ProxyStore, proxy_sync: ProxySync
) -> None:
    """Test current values in another position are not reported as drift."""
    proxy_store.set(ProxyConfig(http_proxy="http://proxy"))
    assert not proxy_sync.needs_update(
        [EnvVar("HTTP_PROXY", "http://proxy"), EnvVar("Foo", "Bar")]
    )


@pytest.mark.parametrize(
    "config",
    [
        ProxyConfig(),
        ProxyConfig(no_proxy="test1"),
        ProxyConfig(http_proxy="a", https_proxy="b", no_proxy="c"),
    ],
)
def test_manage_idempotent(
    proxy_store: ProxyStore, proxy_sync: ProxySync, config: ProxyConfig
) -> None:
    """Test applying manage twice gives the same list."""
    proxy_store.set(config)
    once = proxy_sync.manage(UNSET_ENV)
    assert proxy_sync.manage(once) == once
    assert not proxy_sync.needs_update(once)


def test_needs_update(proxy_store: ProxyStore, proxy_sync: ProxySync) -> None:
    """Test drift detection against the current values."""
    assert proxy_sync.needs_update(UNSET_ENV)
    assert not proxy_sync.needs_update([EnvVar("Foo", "Bar")])

    proxy_store.set(ProxyConfig(no_proxy="test1"))
    assert proxy_sync.needs_update([EnvVar("Foo", "Bar")])
    assert proxy_sync.needs_update([EnvVar("NO_PROXY", "test0")])
    assert not proxy_sync.needs_update([EnvVar("NO_PROXY", "test1")])


def test_deployment_needs_update(
    proxy_store: ProxyStore, proxy_sync: ProxySync
) -> None:
    """Test drift of a Deployment depends on the availability of the API."""
    proxy_store.set(ProxyConfig(no_proxy="test1"))
    stale = deployment([EnvVar("Foo", "Bar")])
    assert proxy_sync.deployment_needs_update(stale)
    assert not proxy_sync.deployment_needs_update(None)
    assert not proxy_sync.deployment_needs_update(
        deployment([EnvVar("NO_PROXY", "test1")])
    )

    proxy_store.set_api_available(False)
    assert not proxy_sync.deployment_needs_update(stale)


async def test_workload_needs_update(
    proxy_store: ProxyStore, proxy_sync: ProxySync
) -> None:
    """Test looking up the Deployment of a workload in the store."""
    store = InMemoryStore()
    proxy_store.set(ProxyConfig(http_proxy="http://proxy"))
    assert not await proxy_sync.workload_needs_update(
        store, "openshift-marketplace", "registry"
    )
    await store.create_object(deployment([]))
    assert await proxy_sync.workload_needs_update(
        store, "openshift-marketplace", "registry"
    )


async def test_refresh(proxy_store: ProxyStore, proxy_sync: ProxySync) -> None:
    """Test loading the values from the cluster proxy object."""
    store = InMemoryStore()
    config = ProxyConfig(http_proxy="http://proxy", no_proxy=".local")
    await store.create_object(ClusterProxy(status=config))
    assert await proxy_sync.refresh(store)
    assert proxy_store.snapshot() == config
    assert not await proxy_sync.refresh(store)

    await store.delete_object(NamedResource("Proxy", None, "cluster"))
    assert await proxy_sync.refresh(store)
    assert proxy_store.snapshot() == ProxyConfig()
