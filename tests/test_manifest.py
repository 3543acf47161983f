"""Tests for manifest library."""

from pathlib import Path
from typing import Any

import pytest
import yaml

from marketplace_operator.exceptions import InputException
from marketplace_operator.manifest import (
    CatalogSourceConfig,
    ChildObject,
    ClusterProxy,
    Deployment,
    EnvVar,
    ManagedResource,
    NamedResource,
    OperatorHub,
    OperatorSource,
    ProxyConfig,
    parse_raw_obj,
    read_objects,
)

TESTDATA = Path("tests/testdata/cluster.yaml")


def load_docs() -> list[dict[str, Any]]:
    return list(yaml.safe_load_all(TESTDATA.read_text()))


def test_parse_operator_source() -> None:
    """Test parsing an OperatorSource doc."""
    source = OperatorSource.parse_doc(load_docs()[0])
    assert source.name == "community-operators"
    assert source.namespace == "openshift-marketplace"
    assert source.labels == {"opsrc-provider": "community"}
    assert source.spec.endpoint == "https://quay.io/cnr"
    assert source.spec.registry_namespace == "community-operators"
    assert source.current_phase_name == "Succeeded"
    assert source.status.packages == "etcd,jaeger"
    assert source.resource_id == NamedResource(
        "OperatorSource", "openshift-marketplace", "community-operators"
    )


def test_parse_catalog_source_config() -> None:
    """Test parsing a CatalogSourceConfig doc without a status."""
    csc = CatalogSourceConfig.parse_doc(load_docs()[1])
    assert csc.name == "installed-community"
    assert csc.spec.target_namespace == "openshift-operators"
    assert csc.spec.packages == "community-operators/etcd,jaeger"
    assert csc.spec.display_name == "Community"
    assert csc.current_phase_name == "Initial"
    assert csc.current_phase.message == ""


def test_parse_deployment() -> None:
    """Test parsing the env of a Deployment."""
    deployment = Deployment.parse_doc(load_docs()[2])
    assert deployment.env == [
        EnvVar("HTTP_PROXY", "http://proxy.example.com:3128"),
        EnvVar("Foo", "Bar"),
    ]
    assert Deployment(name="d", namespace="ns").env == []


def test_parse_cluster_singletons() -> None:
    """Test parsing the Proxy and OperatorHub singletons."""
    docs = load_docs()
    proxy = ClusterProxy.parse_doc(docs[4])
    assert proxy.name == "cluster"
    assert proxy.namespace is None
    assert proxy.status == ProxyConfig(
        http_proxy="http://proxy.example.com:3128",
        https_proxy="https://proxy.example.com:3129",
        no_proxy=".cluster.local",
    )
    hub = OperatorHub.parse_doc(docs[5])
    assert not hub.is_present_and_enabled("community-operators")
    assert hub.is_present_and_enabled("redhat-operators")
    assert not hub.is_present_and_enabled("certified-operators")


def test_parse_raw_obj() -> None:
    """Test dispatching raw objects to their manifest type."""
    objects = [parse_raw_obj(doc) for doc in load_docs()]
    assert [type(obj) for obj in objects] == [
        OperatorSource,
        CatalogSourceConfig,
        Deployment,
        ChildObject,
        ClusterProxy,
        OperatorHub,
    ]
    service = objects[3]
    assert isinstance(service, ChildObject)
    assert service.kind == "Service"
    assert service.labels["csc-owner-name"] == "installed-community"


@pytest.mark.parametrize(
    "doc",
    [
        {"apiVersion": "v1"},
        {"kind": "Service"},
        {"apiVersion": "v1", "kind": "Service"},
        {"apiVersion": "v1", "kind": "Service", "metadata": {"namespace": "ns"}},
        {
            "apiVersion": "example.com/v1",
            "kind": "OperatorSource",
            "metadata": {"name": "a", "namespace": "b"},
        },
        {
            "apiVersion": "operators.coreos.com/v1",
            "kind": "OperatorSource",
            "metadata": {"name": "a"},
        },
    ],
)
def test_parse_invalid(doc: dict[str, Any]) -> None:
    """Test invalid documents are rejected."""
    with pytest.raises(InputException):
        parse_raw_obj(doc)


def test_deep_copy() -> None:
    """Test a clone shares no mutable state with the original."""
    source = OperatorSource.parse_doc(load_docs()[0])
    clone = source.deep_copy()
    assert clone == source
    clone.labels["new"] = "label"
    clone.current_phase.message = "changed"
    assert "new" not in source.labels
    assert source.current_phase.message == ""


def test_reset_status() -> None:
    """Test resetting the status returns to the Initial phase."""
    source = OperatorSource.parse_doc(load_docs()[0])
    source.reset_status()
    assert source.current_phase_name == "Initial"
    assert source.status.packages == ""


def test_managed_resource_abstract() -> None:
    """Test the base class requires a status reset."""
    with pytest.raises(TypeError):
        ManagedResource(name="example", namespace="default")  # type: ignore[abstract]


def test_named_resource() -> None:
    """Test string forms of a resource key."""
    assert str(NamedResource("Proxy", None, "cluster")) == "Proxy/cluster"
    assert NamedResource("Deployment", "ns", "d").namespaced_name == "ns/d"


async def test_read_objects() -> None:
    """Test reading a multi document YAML file."""
    objects = await read_objects(TESTDATA)
    assert len(objects) == 6


async def test_read_objects_invalid_yaml(tmp_path: Path) -> None:
    """Test reading a file that is not valid YAML."""
    path = tmp_path / "bad.yaml"
    path.write_text("kind: [unterminated\n")
    with pytest.raises(InputException, match="Unable to parse"):
        await read_objects(path)
