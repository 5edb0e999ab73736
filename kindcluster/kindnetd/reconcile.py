"""Reconciliation of routes and CNI config from the cluster's node list."""

from __future__ import annotations

import ipaddress
import logging
import time
from collections.abc import Callable, Iterable
from typing import Protocol, TypeVar

from kindcluster.kindnetd.cni import CNIConfigWriter, compute_cni_config_inputs
from kindcluster.kindnetd.netutil import (
    IPFamily,
    KubeNode,
    internal_ips,
    is_ipv6_string,
    split_cidrs,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


class RouteTable(Protocol):
    """The routing table operations kindnetd needs."""

    def list_routes(self, dst: IPNetwork, gateway: IPAddress) -> list: ...

    def add_route(self, dst: IPNetwork, gateway: IPAddress) -> None: ...


def sync_route(route_table: RouteTable, node_ip: str, pod_cidrs: Iterable[str]) -> None:
    """Ensure a route to each pod CIDR via node_ip exists."""
    gateway = ipaddress.ip_address(node_ip)
    for pod_cidr in pod_cidrs:
        dst = ipaddress.ip_network(pod_cidr, strict=False)
        if not route_table.list_routes(dst, gateway):
            logger.info("Adding route %s via %s", dst, gateway)
            route_table.add_route(dst, gateway)


def with_retries(
    attempt: Callable[[], _T],
    attempts: int = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> _T:
    """Call attempt until it succeeds, sleeping i seconds after failure i.

    The last error is raised if every attempt fails.
    """
    last_error: Exception | None = None
    for i in range(attempts):
        try:
            return attempt()
        except Exception as exc:
            last_error = exc
            logger.info("attempt %d failed, retrying after error: %s", i, exc)
            sleep(i)
    if last_error is None:
        raise ValueError("attempts must be at least 1")
    raise last_error


class NodesReconciler:
    """Writes this node's CNI config and routes to the other nodes' pod CIDRs."""

    def __init__(
        self,
        cni_writer: CNIConfigWriter,
        host_ip: str,
        ip_family: IPFamily,
        route_table: RouteTable,
    ) -> None:
        self.cni_writer = cni_writer
        self.host_ip = host_ip
        self.ip_family = ip_family
        self.route_table = route_table

    def reconcile_node(self, node: KubeNode) -> None:
        """Reconcile a single node."""
        node_ips = internal_ips(node)
        logger.info("Handling node with IPs: %s", sorted(node_ips))

        if self.host_ip in node_ips:
            logger.info("handling current node")
            self.cni_writer.write(compute_cni_config_inputs(node))
            return

        if self.ip_family == IPFamily.DUAL_STACK:
            pod_cidrs = list(node.pod_cidrs)
        else:
            pod_cidrs = [node.pod_cidr]
        if not pod_cidrs:
            logger.info("Node %s has no CIDR, ignoring", node.name)
            return
        logger.info("Node %s has CIDR %s", node.name, pod_cidrs)
        cidrs_v4, cidrs_v6 = split_cidrs(pod_cidrs)

        node_ipv4 = node_ipv6 = ""
        for ip in sorted(node_ips):
            if is_ipv6_string(ip):
                node_ipv6 = ip
            else:
                node_ipv4 = ip

        if node_ipv4 and cidrs_v4:
            sync_route(self.route_table, node_ipv4, cidrs_v4)
        if node_ipv6 and cidrs_v6:
            sync_route(self.route_table, node_ipv6, cidrs_v6)

    def reconcile(self, nodes: Iterable[KubeNode]) -> None:
        """Reconcile every node, stopping at the first error."""
        for node in nodes:
            self.reconcile_node(node)