import socket

import pytest

from kindcluster.kindnetd.netutil import (
    IPFamily,
    KubeNode,
    NodeAddress,
    detect_ip_family,
    internal_ips,
    is_ipv6_cidr_string,
    is_ipv6_string,
    probe_tcp,
    split_cidrs,
)


@pytest.mark.parametrize(
    "ip, expected",
    [
        ("::1", True),
        ("fd00:10:244::1", True),
        ("127.0.0.1", False),
        ("::ffff:10.0.0.1", False),
        ("not-an-ip", False),
        ("", False),
        ("fe80::1%eth0", False),
    ],
)
def test_is_ipv6_string(ip, expected):
    assert is_ipv6_string(ip) is expected


@pytest.mark.parametrize(
    "cidr, expected",
    [
        ("fd00:10:244::/56", True),
        ("::/0", True),
        ("10.244.0.0/16", False),
        ("0.0.0.0/0", False),
        ("fd00:10:244::", False),
        ("fd00::/129", False),
        ("10.0.0.0/33", False),
        ("garbage/8", False),
        ("fd00::/abc", False),
    ],
)
def test_is_ipv6_cidr_string(cidr, expected):
    assert is_ipv6_cidr_string(cidr) is expected


def test_split_cidrs_orders_v4_then_v6_and_keeps_order():
    cidrs = ["fd00:10:244::/56", "10.244.0.0/16", "fd00:10:96::/112", "10.96.0.0/16"]
    v4, v6 = split_cidrs(cidrs)
    assert v4 == ["10.244.0.0/16", "10.96.0.0/16"]
    assert v6 == ["fd00:10:244::/56", "fd00:10:96::/112"]


def test_split_cidrs_empty():
    assert split_cidrs([]) == ([], [])


def test_split_cidrs_invalid_goes_to_v4():
    v4, v6 = split_cidrs(["bogus"])
    assert v4 == ["bogus"]
    assert v6 == []


def test_internal_ips_only_internal():
    node = KubeNode(
        name="n1",
        addresses=[
            NodeAddress("InternalIP", "172.18.0.2"),
            NodeAddress("Hostname", "n1"),
            NodeAddress("InternalIP", "fc00:f853:ccd:e793::2"),
        ],
    )
    assert internal_ips(node) == {"172.18.0.2", "fc00:f853:ccd:e793::2"}


def test_internal_ips_none():
    assert internal_ips(KubeNode(name="n")) == set()


@pytest.mark.parametrize(
    "env, family",
    [
        ("10.244.0.0/16", IPFamily.IPV4),
        ("fd00:10:244::/56", IPFamily.IPV6),
        ("10.244.0.0/16,fd00:10:244::/56", IPFamily.DUAL_STACK),
        ("  10.244.0.0/16,fd00:10:244::/56\n", IPFamily.DUAL_STACK),
    ],
)
def test_detect_ip_family(env, family):
    assert detect_ip_family(env) is family


def test_detect_ip_family_values():
    assert IPFamily.DUAL_STACK.value == "dualstack"
    assert detect_ip_family("fd00::/64").value == "ipv6"


def test_detect_ip_family_missing():
    with pytest.raises(ValueError, match="POD_SUBNET"):
        detect_ip_family("")


def test_probe_tcp_reachable():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    try:
        port = server.getsockname()[1]
        assert probe_tcp(f"127.0.0.1:{port}", 1.0) is True
    finally:
        server.close()


def test_probe_tcp_refused():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    assert probe_tcp(f"127.0.0.1:{port}", 1.0) is False


@pytest.mark.parametrize("address", ["no-port-here", "::1:80", "[::1"])
def test_probe_tcp_bad_address(address):
    assert probe_tcp(address, 0.5) is False