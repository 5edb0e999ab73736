import pytest

from kindcluster.config import (
    Cluster,
    ClusterIPFamily,
    Node,
    NodeRole,
    PatchJSON6902,
)
from kindcluster.create.kubeadm_config import (
    all_patches_from_config,
    labels_to_comma_separated,
    match_config_node,
    node_address,
    remove_metadata,
)


def test_labels_single():
    assert labels_to_comma_separated({"key1": "value1"}) == "key1=value1"


def test_labels_multiple_have_no_trailing_comma():
    labels = {"key1": "value1", "key2": "value2", "key3": "value3"}
    result = labels_to_comma_separated(labels)
    assert not result.endswith(",")
    assert sorted(result.split(",")) == ["key1=value1", "key2=value2", "key3=value3"]


def test_labels_empty():
    assert labels_to_comma_separated({}) == ""


def test_remove_metadata_strips_block():
    text = "kind: ClusterConfiguration\nmetadata:\n  name: config\nfoo: bar\n"
    assert remove_metadata(text) == "kind: ClusterConfiguration\nfoo: bar\n"


def test_remove_metadata_strips_every_occurrence():
    block = "metadata:\n  name: config\n"
    text = f"a: 1\n{block}---\nb: 2\n{block}"
    result = remove_metadata(text)
    assert "metadata" not in result
    assert result == "a: 1\n---\nb: 2\n"


def test_remove_metadata_leaves_other_text():
    text = "metadata:\n  name: other\n"
    assert remove_metadata(text) == text


def test_all_patches_from_config():
    patch = PatchJSON6902(group="g", version="v1", kind="K", patch="[]")
    cluster = Cluster(
        kubeadm_config_patches=["a: b"], kubeadm_config_patches_json6902=[patch]
    )
    patches, json_patches = all_patches_from_config(cluster)
    assert patches == ["a: b"]
    assert json_patches == [patch]


def test_node_address_ipv4():
    result = node_address(ClusterIPFamily.IPV4, "10.0.0.2", "fd00::2", "10.96.0.0/16")
    assert result == "10.0.0.2"


def test_node_address_ipv6():
    result = node_address(ClusterIPFamily.IPV6, "10.0.0.2", "fd00::2", "fd00:10:96::/112")
    assert result == "fd00::2"


def test_node_address_ipv6_plain_string_family():
    assert node_address("ipv6", "10.0.0.2", "fd00::2", "") == "fd00::2"


def test_node_address_ipv6_missing():
    with pytest.raises(ValueError):
        node_address(ClusterIPFamily.IPV6, "10.0.0.2", "", "fd00:10:96::/112")


def test_node_address_dual_ipv4_primary():
    result = node_address(
        ClusterIPFamily.DUAL_STACK,
        "10.0.0.2",
        "fd00::2",
        "10.96.0.0/16,fd00:10:96::/112",
    )
    assert result.split(",") == ["10.0.0.2", "fd00::2"]


def test_node_address_dual_ipv6_primary():
    result = node_address(
        ClusterIPFamily.DUAL_STACK,
        "10.0.0.2",
        "fd00::2",
        "fd00:10:96::/112,10.96.0.0/16",
    )
    assert result.split(",") == ["fd00::2", "10.0.0.2"]


def test_node_address_dual_bad_service_subnet():
    with pytest.raises(ValueError, match="primary Service Subnet"):
        node_address(ClusterIPFamily.DUAL_STACK, "10.0.0.2", "fd00::2", "bogus")


def _cluster():
    return Cluster(
        name="kind",
        nodes=[
            Node(role=NodeRole.CONTROL_PLANE, labels={"n": "cp1"}),
            Node(role=NodeRole.CONTROL_PLANE, labels={"n": "cp2"}),
            Node(role=NodeRole.WORKER, labels={"n": "w1"}),
            Node(role=NodeRole.WORKER, labels={"n": "w2"}),
        ],
    )


@pytest.mark.parametrize(
    "name, expected",
    [
        ("kind-control-plane", "cp1"),
        ("kind-control-plane2", "cp2"),
        ("kind-worker", "w1"),
        ("kind-worker2", "w2"),
    ],
)
def test_match_config_node(name, expected):
    assert match_config_node(_cluster(), name).labels["n"] == expected


def test_match_config_node_missing():
    with pytest.raises(LookupError, match="kind-external-load-balancer"):
        match_config_node(_cluster(), "kind-external-load-balancer")