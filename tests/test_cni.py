import json

import pytest

from kindcluster.kindnetd.cni import (
    CNI_CONFIG_PATH,
    CNIConfigInputs,
    CNIConfigWriter,
    compute_bridge_mtu,
    compute_cni_config_inputs,
    render_cni_config,
)
from kindcluster.kindnetd.netutil import KubeNode


def test_inputs_dual_stack_uses_all_cidrs():
    cidrs = ["10.244.1.0/24", "fd00:10:244:1::/64"]
    inputs = compute_cni_config_inputs(KubeNode(name="n", pod_cidr=cidrs[0], pod_cidrs=cidrs))
    assert list(inputs.pod_cidrs) == cidrs
    assert list(inputs.default_routes) == ["0.0.0.0/0", "::/0"]
    assert inputs.mtu == 0


def test_inputs_single_stack_ipv4():
    node = KubeNode(name="n", pod_cidr="10.244.1.0/24", pod_cidrs=["10.244.1.0/24"])
    inputs = compute_cni_config_inputs(node)
    assert list(inputs.pod_cidrs) == ["10.244.1.0/24"]
    assert list(inputs.default_routes) == ["0.0.0.0/0"]


def test_inputs_single_stack_ipv6():
    node = KubeNode(name="n", pod_cidr="fd00:10:244:1::/64")
    inputs = compute_cni_config_inputs(node)
    assert list(inputs.pod_cidrs) == ["fd00:10:244:1::/64"]
    assert list(inputs.default_routes) == ["::/0"]


def test_inputs_single_stack_uses_legacy_field():
    node = KubeNode(name="n", pod_cidr="10.244.2.0/24", pod_cidrs=["10.244.9.0/24"])
    assert list(compute_cni_config_inputs(node).pod_cidrs) == ["10.244.2.0/24"]


def test_bridge_mtu_from_sysfs(tmp_path):
    (tmp_path / "eth0").mkdir()
    (tmp_path / "eth0" / "mtu").write_text("1500\n")
    assert compute_bridge_mtu(tmp_path) == 1500


def test_bridge_mtu_missing_device(tmp_path):
    with pytest.raises(LookupError, match="eth0"):
        compute_bridge_mtu(tmp_path)


def test_render_is_valid_json_with_routes_and_ranges():
    inputs = CNIConfigInputs(
        pod_cidrs=["10.244.1.0/24", "fd00:10:244:1::/64"],
        default_routes=["0.0.0.0/0", "::/0"],
    )
    doc = json.loads(render_cni_config(inputs))
    assert doc["cniVersion"] == "0.3.1"
    assert doc["name"] == "kindnet"
    ptp, portmap = doc["plugins"]
    assert ptp["type"] == "ptp"
    assert ptp["ipam"]["dataDir"] == "/run/cni-ipam-state"
    assert ptp["ipam"]["routes"] == [{"dst": r} for r in inputs.default_routes]
    assert ptp["ipam"]["ranges"] == [[{"subnet": c}] for c in inputs.pod_cidrs]
    assert "mtu" not in ptp
    assert portmap == {"type": "portmap", "capabilities": {"portMappings": True}}


def test_render_includes_mtu_when_set():
    inputs = CNIConfigInputs(pod_cidrs=["10.244.1.0/24"], default_routes=["0.0.0.0/0"], mtu=1400)
    doc = json.loads(render_cni_config(inputs))
    assert doc["plugins"][0]["mtu"] == 1400


def test_writer_default_path():
    assert CNIConfigWriter().path == CNI_CONFIG_PATH


def test_writer_writes_and_applies_mtu(tmp_path):
    path = tmp_path / "10-kindnet.conflist"
    writer = CNIConfigWriter(path=path, mtu=1450)
    inputs = CNIConfigInputs(pod_cidrs=["10.244.1.0/24"], default_routes=["0.0.0.0/0"])
    assert writer.write(inputs) is True
    doc = json.loads(path.read_text())
    assert doc["plugins"][0]["mtu"] == 1450
    assert not (tmp_path / "10-kindnet.conflist.temp").exists()
    assert writer.last_inputs.mtu == 1450


def test_writer_skips_unchanged_inputs(tmp_path):
    path = tmp_path / "cni.conflist"
    writer = CNIConfigWriter(path=path)
    inputs = CNIConfigInputs(pod_cidrs=["10.244.1.0/24"], default_routes=["0.0.0.0/0"])
    assert writer.write(inputs) is True
    path.unlink()
    assert writer.write(inputs) is False
    assert not path.exists()


def test_writer_rewrites_changed_inputs(tmp_path):
    path = tmp_path / "cni.conflist"
    writer = CNIConfigWriter(path=path)
    writer.write(CNIConfigInputs(pod_cidrs=["10.244.1.0/24"], default_routes=["0.0.0.0/0"]))
    changed = CNIConfigInputs(pod_cidrs=["10.244.3.0/24"], default_routes=["0.0.0.0/0"])
    assert writer.write(changed) is True
    doc = json.loads(path.read_text())
    assert doc["plugins"][0]["ipam"]["ranges"] == [[{"subnet": "10.244.3.0/24"}]]


def test_writer_failure_leaves_state(tmp_path):
    writer = CNIConfigWriter(path=tmp_path / "missing-dir" / "cni.conflist")
    inputs = CNIConfigInputs(pod_cidrs=["10.244.1.0/24"], default_routes=["0.0.0.0/0"])
    with pytest.raises(OSError):
        writer.write(inputs)
    assert writer.last_inputs is None