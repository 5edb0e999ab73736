import pytest

from kindcluster.config import Cluster, ConfigError, Node
from kindcluster.create.options import (
    ClusterOptions,
    apply_options,
    create_with_config,
    create_with_display_salutation,
    create_with_display_usage,
    create_with_kubeconfig_path,
    create_with_node_image,
    create_with_raw_config,
    create_with_retain,
    create_with_stop_before_setting_up_kubernetes,
    create_with_wait_for_ready,
)


def test_defaults_are_unset():
    opts = apply_options([])
    assert opts == ClusterOptions()


def test_simple_options_set_fields():
    opts = apply_options(
        [
            create_with_node_image("img:1"),
            create_with_retain(True),
            create_with_wait_for_ready(30.0),
            create_with_kubeconfig_path("/tmp/kc"),
            create_with_stop_before_setting_up_kubernetes(True),
            create_with_display_usage(True),
            create_with_display_salutation(True),
        ]
    )
    assert opts.node_image == "img:1"
    assert opts.retain is True
    assert opts.wait_for_ready == 30.0
    assert opts.kubeconfig_path == "/tmp/kc"
    assert opts.stop_before_setting_up_kubernetes is True
    assert opts.display_usage is True
    assert opts.display_salutation is True


def test_later_options_win():
    opts = apply_options([create_with_retain(True), create_with_retain(False)])
    assert opts.retain is False


def test_apply_to_existing_options():
    existing = ClusterOptions(name_override="mine")
    result = apply_options([create_with_node_image("img")], existing)
    assert result is existing
    assert result.name_override == "mine"
    assert result.node_image == "img"


def test_config_is_copied():
    cluster = Cluster(name="c1", nodes=[Node(image="a")])
    opts = apply_options([create_with_config(cluster)])
    cluster.nodes[0].image = "b"
    assert opts.config == Cluster(name="c1", nodes=[Node(image="a")])


def test_raw_config_is_parsed():
    raw = b"kind: Cluster\nname: from-yaml\nnodes:\n- role: worker\n"
    opts = apply_options([create_with_raw_config(raw)])
    assert opts.config.name == "from-yaml"
    assert [n.role for n in opts.config.nodes] == ["worker"]


def test_raw_config_errors_propagate():
    with pytest.raises(ConfigError):
        apply_options([create_with_raw_config("nodes: 3\n")])