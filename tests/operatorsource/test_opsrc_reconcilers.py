"""Tests for the OperatorSource phase reconcilers."""

from unittest.mock import AsyncMock, Mock

import pytest

from marketplace_operator.manifest import (
    CatalogSourceConfig,
    Container,
    Deployment,
    EnvVar,
    ObjectPhase,
    OperatorSource,
    OperatorSourceSpec,
    OperatorSourceStatus,
    ProxyConfig,
)
from marketplace_operator.operatorsource import (
    PackageIndex,
    derived_catalog_source_config,
    new_dispatcher,
    validate,
)
from marketplace_operator.proxy import ProxyStore, ProxySync
from marketplace_operator.reconciler import (
    PhaseDispatcher,
    ResourceDeployer,
    apply_transition,
)
from marketplace_operator.status import ErrorTracker, StatusError, StatusErrorReason
from marketplace_operator.store import InMemoryStore

NAME = "community-operators"
NAMESPACE = "openshift-marketplace"


def make_source(phase: str = "Initial", **spec: str) -> OperatorSource:
    return OperatorSource(
        name=NAME,
        namespace=NAMESPACE,
        labels={"opsrc-provider": "community"},
        spec=OperatorSourceSpec(
            **{"endpoint": "https://quay.io/cnr", "display_name": "Community", **spec}
        ),
        status=OperatorSourceStatus(
            current_phase=ObjectPhase(name=phase), packages="etcd,jaeger"
        ),
    )


@pytest.fixture(name="store")
def mock_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture(name="proxy_store")
def mock_proxy_store() -> ProxyStore:
    return ProxyStore()


@pytest.fixture(name="tracker")
def mock_tracker() -> ErrorTracker:
    return ErrorTracker()


@pytest.fixture(name="index")
def mock_index() -> PackageIndex:
    return PackageIndex()


@pytest.fixture(name="deployer")
def mock_deployer() -> Mock:
    deployer = Mock(spec=ResourceDeployer)
    deployer.create_or_ensure = AsyncMock()
    return deployer


@pytest.fixture(name="dispatcher")
def mock_dispatcher(
    store: InMemoryStore,
    proxy_store: ProxyStore,
    deployer: Mock,
    tracker: ErrorTracker,
    index: PackageIndex,
) -> PhaseDispatcher[OperatorSource]:
    return new_dispatcher(store, deployer, ProxySync(proxy_store), tracker, index)


def test_validate() -> None:
    """Test validation of the resource spec fields."""
    assert validate(make_source()) is None
    assert validate(make_source(endpoint="")) == "spec.endpoint must be set"
    assert "Unsupported registry type" in (validate(make_source(type="helm")) or "")


def test_derived_catalog_source_config() -> None:
    """Test the CatalogSourceConfig serving the packages of a source."""
    csc = derived_catalog_source_config(make_source(), "etcd,jaeger")
    assert isinstance(csc, CatalogSourceConfig)
    assert csc.name == NAME
    assert csc.namespace == NAMESPACE
    assert csc.labels == {
        "opsrc-provider": "community",
        "opsrc-owner-name": NAME,
        "opsrc-owner-namespace": NAMESPACE,
    }
    assert csc.spec.target_namespace == NAMESPACE
    assert csc.spec.packages == "etcd,jaeger"
    assert csc.spec.source == NAME
    assert csc.spec.display_name == "Community"


async def test_initial_invalid(dispatcher: PhaseDispatcher[OperatorSource]) -> None:
    """Test an unsupported registry type fails."""
    source = apply_transition(await dispatcher.dispatch(make_source(type="helm")))
    assert source.current_phase_name == "Failed"
    assert "helm" in source.current_phase.message


async def test_configuring(
    dispatcher: PhaseDispatcher[OperatorSource],
    deployer: Mock,
    tracker: ErrorTracker,
) -> None:
    """Test a configured source clears its tracked error."""
    tracker.add(NAME, ValueError("previous failure"))
    result = await dispatcher.dispatch(make_source(phase="Configuring"))
    assert result.success
    deployer.create_or_ensure.assert_awaited_once()
    (derived,) = deployer.create_or_ensure.await_args.args
    assert derived.spec.source == NAME
    deployer.populate_status.assert_called_once_with(derived)
    assert apply_transition(result).current_phase_name == "Succeeded"
    assert tracker.get_keys_and_map() == ([], {})


async def test_configuring_fails(
    dispatcher: PhaseDispatcher[OperatorSource],
    deployer: Mock,
    tracker: ErrorTracker,
) -> None:
    """Test a failed ensure is tracked and retried."""
    deployer.create_or_ensure.side_effect = ValueError("namespace not found")
    result = await dispatcher.dispatch(make_source(phase="Configuring"))
    assert not result.success
    source = apply_transition(result)
    assert source.current_phase_name == "Configuring"
    assert source.current_phase.message == "namespace not found"

    keys, errors = tracker.get_keys_and_map()
    assert keys == [NAME]
    err = errors[NAME]
    assert isinstance(err, StatusError)
    assert err.reason == StatusErrorReason.ENSURE_RESOURCES
    assert str(err) == "namespace not found"


async def test_succeeded_stale_proxy(
    store: InMemoryStore,
    proxy_store: ProxyStore,
    dispatcher: PhaseDispatcher[OperatorSource],
) -> None:
    """Test stale proxy variables on the registry reset the source."""
    proxy_store.set(ProxyConfig(http_proxy="http://old"))
    await store.create_object(
        Deployment(
            name=NAME,
            namespace=NAMESPACE,
            containers=[
                Container(name="registry", env=[EnvVar("HTTP_PROXY", "http://old")])
            ],
        )
    )
    source = make_source(phase="Succeeded")
    result = await dispatcher.dispatch(source)
    assert result.success
    assert result.next_phase is None

    proxy_store.set(ProxyConfig(http_proxy="http://new"))
    updated = apply_transition(await dispatcher.dispatch(source))
    assert updated.current_phase_name == "Configuring"
    assert updated.status.packages == ""
    assert source.status.packages == "etcd,jaeger"


async def test_succeeded_no_proxy_api(
    store: InMemoryStore,
    proxy_store: ProxyStore,
    dispatcher: PhaseDispatcher[OperatorSource],
) -> None:
    """Test drift is ignored when the cluster has no proxy API."""
    await store.create_object(Deployment(name=NAME, namespace=NAMESPACE))
    proxy_store.set(ProxyConfig(http_proxy="http://new"))
    proxy_store.set_api_available(False)
    result = await dispatcher.dispatch(make_source(phase="Succeeded"))
    assert result.next_phase is None


async def test_drift_keeps_packages(
    store: InMemoryStore,
    proxy_store: ProxyStore,
    deployer: Mock,
    dispatcher: PhaseDispatcher[OperatorSource],
) -> None:
    """Test a source reset by proxy drift redeploys its full package list."""
    await store.create_object(
        Deployment(
            name=NAME,
            namespace=NAMESPACE,
            containers=[Container(name="registry", env=[])],
        )
    )
    proxy_store.set(ProxyConfig(http_proxy="http://proxy"))

    source = apply_transition(await dispatcher.dispatch(make_source(phase="Succeeded")))
    assert source.current_phase_name == "Configuring"
    assert source.status.packages == ""

    source = apply_transition(await dispatcher.dispatch(source))
    assert source.current_phase_name == "Succeeded"
    (derived,) = deployer.create_or_ensure.await_args.args
    assert derived.spec.packages == "etcd,jaeger"
    assert source.status.packages == "etcd,jaeger"


def test_package_index() -> None:
    """Test package ids are kept after the status is cleared."""
    index = PackageIndex()
    source = make_source()
    index.record(source)

    source.reset_status()
    index.record(source)
    assert index.packages_for(source) == "etcd,jaeger"

    index.remove(source.resource_id)
    assert index.packages_for(source) == ""
    index.remove(source.resource_id)
