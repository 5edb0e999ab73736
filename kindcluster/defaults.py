"""Defaulting of unset cluster configuration fields."""

from __future__ import annotations

from kindcluster.config import (
    DEFAULT_NODE_IMAGE,
    Cluster,
    ClusterIPFamily,
    Node,
    NodeRole,
    ProxyMode,
)


def set_defaults_cluster(cluster: Cluster) -> None:
    """Fill in unset fields of a cluster configuration in place."""
    if not cluster.nodes:
        cluster.nodes = [Node(image=DEFAULT_NODE_IMAGE, role=NodeRole.CONTROL_PLANE)]
    for node in cluster.nodes:
        set_defaults_node(node)

    net = cluster.networking
    if not net.ip_family:
        net.ip_family = ClusterIPFamily.IPV4

    if not net.api_server_address:
        net.api_server_address = (
            "::1" if net.ip_family == ClusterIPFamily.IPV6 else "127.0.0.1"
        )

    if not net.pod_subnet:
        if net.ip_family == ClusterIPFamily.IPV6:
            net.pod_subnet = "fd00:10:244::/56"
        elif net.ip_family == ClusterIPFamily.DUAL_STACK:
            net.pod_subnet = "10.244.0.0/16,fd00:10:244::/56"
        else:
            net.pod_subnet = "10.244.0.0/16"

    if not net.service_subnet:
        if net.ip_family == ClusterIPFamily.IPV6:
            net.service_subnet = "fd00:10:96::/112"
        elif net.ip_family == ClusterIPFamily.DUAL_STACK:
            net.service_subnet = "10.96.0.0/16,fd00:10:96::/112"
        else:
            net.service_subnet = "10.96.0.0/16"

    if not net.kube_proxy_mode:
        net.kube_proxy_mode = ProxyMode.IPTABLES


def set_defaults_node(node: Node) -> None:
    """Fill in unset fields of a node configuration in place."""
    if not node.image:
        node.image = DEFAULT_NODE_IMAGE
    if not node.role:
        node.role = NodeRole.CONTROL_PLANE