"""Options for creating a cluster."""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from kindcluster.config import Cluster, parse_cluster_yaml


@dataclass
class ClusterOptions:
    """Everything that controls how a cluster is created."""

    config: Cluster | None = None
    name_override: str = ""
    node_image: str = ""
    retain: bool = False
    wait_for_ready: float = 0.0
    kubeconfig_path: str = ""
    stop_before_setting_up_kubernetes: bool = False
    display_usage: bool = False
    display_salutation: bool = False


CreateOption = Callable[[ClusterOptions], None]


def create_with_config(config: Cluster) -> CreateOption:
    """Use a copy of config as the cluster configuration."""

    def apply(opts: ClusterOptions) -> None:
        opts.config = copy.deepcopy(config)

    return apply


def create_with_raw_config(raw: str | bytes) -> CreateOption:
    """Use the configuration decoded from raw YAML."""

    def apply(opts: ClusterOptions) -> None:
        opts.config = parse_cluster_yaml(raw)

    return apply


def create_with_node_image(node_image: str) -> CreateOption:
    """Override the image of every node."""

    def apply(opts: ClusterOptions) -> None:
        opts.node_image = node_image

    return apply


def create_with_retain(retain: bool) -> CreateOption:
    """Keep nodes around instead of cleaning up after a failure."""

    def apply(opts: ClusterOptions) -> None:
        opts.retain = retain

    return apply


def create_with_wait_for_ready(wait_time: float) -> CreateOption:
    """Wait at most wait_time seconds for the control plane to be ready."""

    def apply(opts: ClusterOptions) -> None:
        opts.wait_for_ready = wait_time

    return apply


def create_with_kubeconfig_path(explicit_path: str) -> CreateOption:
    """Set the explicit kubeconfig path."""

    def apply(opts: ClusterOptions) -> None:
        opts.kubeconfig_path = explicit_path

    return apply


def create_with_stop_before_setting_up_kubernetes(stop: bool) -> CreateOption:
    """Stop after the node containers exist, before setting up Kubernetes."""

    def apply(opts: ClusterOptions) -> None:
        opts.stop_before_setting_up_kubernetes = stop

    return apply


def create_with_display_usage(display_usage: bool) -> CreateOption:
    """Show usage hints after creation."""

    def apply(opts: ClusterOptions) -> None:
        opts.display_usage = display_usage

    return apply


def create_with_display_salutation(display_salutation: bool) -> CreateOption:
    """Show a salutation at the end of creation."""

    def apply(opts: ClusterOptions) -> None:
        opts.display_salutation = display_salutation

    return apply


def apply_options(
    options: Iterable[CreateOption], opts: ClusterOptions | None = None
) -> ClusterOptions:
    """Apply options in order to opts (a fresh ClusterOptions if None)."""
    if opts is None:
        opts = ClusterOptions()
    for option in options:
        option(opts)
    return opts