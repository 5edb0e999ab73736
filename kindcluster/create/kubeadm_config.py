"""Helpers for generating each node's kubeadm configuration."""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from enum import Enum

from kindcluster.config import Cluster, ClusterIPFamily, Node, PatchJSON6902

# the name we put in the config for patch matching; kubeadm rejects it
_CONFIG_METADATA = "metadata:\n  name: config\n"


def labels_to_comma_separated(labels: Mapping[str, str]) -> str:
    """Render labels as "key1=value1,key2=value2"."""
    return ",".join(f"{key}={value}" for key, value in labels.items())


def remove_metadata(text: str) -> str:
    """Strip the "metadata: name: config" block used for patch matching."""
    return text.replace(_CONFIG_METADATA, "")


def all_patches_from_config(
    cluster: Cluster,
) -> tuple[list[str], list[PatchJSON6902]]:
    """Return the cluster-level merge patches and JSON 6902 patches."""
    return cluster.kubeadm_config_patches, cluster.kubeadm_config_patches_json6902


def _valid_ip(text: str) -> bool:
    if not text or "%" in text:
        return False
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def _cidr_is_ipv4(cidr: str) -> bool:
    addr_text, sep, prefix = cidr.partition("/")
    if not sep or not prefix.isdigit() or "%" in addr_text:
        raise ValueError(f"invalid CIDR address: {cidr}")
    network = ipaddress.ip_network(cidr, strict=False)
    if network.version == 4:
        return True
    return ipaddress.ip_address(addr_text).ipv4_mapped is not None


def node_address(
    ip_family: ClusterIPFamily | str,
    ipv4_address: str,
    ipv6_address: str,
    service_subnet: str,
) -> str:
    """Pick the address (or comma separated addresses) a node advertises.

    In dual stack clusters the family of the primary service subnet comes
    first, since kubeadm uses the first address as the advertise address.
    """
    if ip_family not in (ClusterIPFamily.IPV6, ClusterIPFamily.DUAL_STACK):
        return ipv4_address

    if not _valid_ip(ipv6_address):
        raise ValueError(
            "failed to get IPv6 address for node; "
            "is the provider configured to use IPv6 correctly?"
        )
    if ip_family == ClusterIPFamily.IPV6:
        return ipv6_address

    primary = service_subnet.split(",")[0]
    try:
        primary_is_ipv4 = _cidr_is_ipv4(primary)
    except ValueError as exc:
        raise ValueError(
            f"failed to parse primary Service Subnet {primary} "
            f"({service_subnet}): {exc}"
        ) from exc
    if primary_is_ipv4:
        return f"{ipv4_address},{ipv6_address}"
    return f"{ipv6_address},{ipv4_address}"


def _role_name(role: object) -> str:
    return str(role.value) if isinstance(role, Enum) else str(role)


def _node_suffixes(cluster: Cluster) -> list[tuple[str, Node]]:
    """Name suffixes nodes get, in config order: "-role", "-role2", ..."""
    counts: dict[str, int] = {}
    named = []
    for node in cluster.nodes:
        role = _role_name(node.role)
        seen = counts.get(role)
        counts[role] = 1 if seen is None else seen + 1
        suffix = "" if seen is None else str(counts[role])
        named.append((f"-{role}{suffix}", node))
    return named


def match_config_node(cluster: Cluster, node_name: str) -> Node:
    """Find the config node a provisioned node was named after.

    Nodes are named in config order, so the last config node whose name
    suffix matches wins.
    """
    match: Node | None = None
    for suffix, node in _node_suffixes(cluster):
        if node_name.endswith(suffix):
            match = node
    if match is None:
        raise LookupError(f'failed to match node "{node_name}" to config')
    return match