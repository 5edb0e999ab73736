"""Checks and preparation done before creating a cluster."""

from __future__ import annotations

import random
from typing import Any, Protocol

from kindcluster.config import Cluster
from kindcluster.create.options import ClusterOptions
from kindcluster.defaults import set_defaults_cluster

# host names are typically limited to 64 characters and the control plane
# container appends "-control-plane" (14 characters) to the cluster name
CLUSTER_NAME_MAX = 50

SALUTATIONS = (
    "Have a nice day! 👋",
    "Thanks for using kind! 😊",
    "Not sure what to do next? 😅  Check out the quick-start guide",
    "Have a question, bug, or feature request? Let us know! 🙂",
)


class ClusterCreateError(RuntimeError):
    """Raised when a cluster cannot be created."""


class _ProviderInfo(Protocol):
    rootless: bool
    cgroup2: bool
    supports_memory_limit: bool
    supports_pids_limit: bool
    supports_cpu_shares: bool


class _Provider(Protocol):
    def info(self) -> _ProviderInfo: ...

    def list_nodes(self, name: str) -> list[Any]: ...


class _Chooser(Protocol):
    def choice(self, seq: Any) -> Any: ...


def validate_provider(provider: _Provider) -> _ProviderInfo:
    """Check that the provider can run a cluster; return its info."""
    info = provider.info()
    if info.rootless:
        if not info.cgroup2:
            raise ClusterCreateError(
                "running kind with rootless provider requires cgroup v2"
            )
        if not (
            info.supports_memory_limit
            and info.supports_pids_limit
            and info.supports_cpu_shares
        ):
            raise ClusterCreateError(
                "running kind with rootless provider requires setting systemd "
                'property "Delegate=yes"'
            )
    return info


def already_exists(provider: _Provider, name: str) -> None:
    """Raise ClusterCreateError if nodes for a cluster called name exist."""
    if provider.list_nodes(name):
        raise ClusterCreateError(
            f'node(s) already exist for a cluster with the name "{name}"'
        )


def fixup_options(opts: ClusterOptions) -> ClusterOptions:
    """Fill in the config and apply the name and image overrides in place."""
    if opts.config is None:
        opts.config = Cluster()
    if opts.name_override:
        opts.config.name = opts.name_override
    if opts.node_image:
        for node in opts.config.nodes:
            node.image = opts.node_image
    set_defaults_cluster(opts.config)
    return opts


def name_too_long(name: str) -> bool:
    """Return True if name is probably too long to work on some systems."""
    return len(name) > CLUSTER_NAME_MAX


def pick_salutation(rng: _Chooser | None = None) -> str:
    """Pick a friendly closing message."""
    return (rng or random.Random()).choice(SALUTATIONS)