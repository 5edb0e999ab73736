"""Node and address helpers for the kindnetd networking daemon."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"[0-9]+")


class IPFamily(str, Enum):
    """Networking model kindnetd operates in."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DUAL_STACK = "dualstack"


@dataclass
class NodeAddress:
    """One address reported in a node's status."""

    type: str
    address: str


@dataclass
class KubeNode:
    """The parts of a Kubernetes node object that kindnetd uses."""

    name: str = ""
    pod_cidr: str = ""
    pod_cidrs: list[str] = field(default_factory=list)
    addresses: list[NodeAddress] = field(default_factory=list)


def _parse_ip(text: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if "%" in text:
        return None
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _is_ipv6_only(addr: ipaddress.IPv4Address | ipaddress.IPv6Address | None) -> bool:
    return isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is None


def is_ipv6_string(ip: str) -> bool:
    """Return True if ip is a valid IPv6 address that is not an IPv4 one."""
    return _is_ipv6_only(_parse_ip(ip))


def is_ipv6_cidr_string(cidr: str) -> bool:
    """Return True if cidr is a valid CIDR whose address is IPv6."""
    addr_text, sep, prefix = cidr.partition("/")
    if not sep or not _PREFIX_RE.fullmatch(prefix):
        return False
    addr = _parse_ip(addr_text)
    if addr is None or int(prefix) > addr.max_prefixlen:
        return False
    return _is_ipv6_only(addr)


def split_cidrs(cidrs: list[str]) -> tuple[list[str], list[str]]:
    """Split CIDRs by family, always returning the IPv4 list first."""
    v4: list[str] = []
    v6: list[str] = []
    for subnet in cidrs:
        (v6 if is_ipv6_cidr_string(subnet) else v4).append(subnet)
    return v4, v6


def internal_ips(node: KubeNode) -> set[str]:
    """Return the node's InternalIP addresses."""
    return {a.address for a in node.addresses if a.type == "InternalIP"}


def detect_ip_family(pod_subnet_env: str) -> IPFamily:
    """Work out the cluster IP family from the comma separated pod subnets."""
    if not pod_subnet_env:
        raise ValueError("missing environment variable POD_SUBNET")
    subnets = pod_subnet_env.strip().split(",")
    v4, v6 = split_cidrs(subnets)
    if v4 and v6:
        return IPFamily.DUAL_STACK
    if v6:
        return IPFamily.IPV6
    if v4:
        return IPFamily.IPV4
    raise ValueError(f"podSubnets ClusterCIDR/Pod_Subnet: {pod_subnet_env}")


def _split_host_port(address: str) -> tuple[str, str]:
    if address.startswith("["):
        end = address.find("]")
        if end < 0 or address[end + 1 : end + 2] != ":":
            raise ValueError(f"invalid address {address!r}")
        return address[1:end], address[end + 2 :]
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    if ":" in host:
        raise ValueError(f"too many colons in address {address!r}")
    return host, port


def probe_tcp(address: str, timeout: float) -> bool:
    """Return True if a TCP connection to host:port succeeds within timeout seconds."""
    logger.info("probe TCP address %s", address)
    try:
        host, port = _split_host_port(address)
        socket.getaddrinfo(host or None, port, type=socket.SOCK_STREAM)
    except (ValueError, OSError) as exc:
        logger.warning("DNS problem %s: %s", address, exc)
        return False

    try:
        with socket.create_connection((host or None, port), timeout=timeout):
            return True
    except socket.timeout:
        logger.warning("TIMEOUT %s", address)
    except ConnectionRefusedError:
        logger.warning("REFUSED %s", address)
    except OSError as exc:
        logger.warning("OTHER %s: %s", address, exc)
    return False