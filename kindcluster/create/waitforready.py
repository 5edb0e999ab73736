"""Waiting for control-plane nodes to report Ready."""

from __future__ import annotations

import time
from collections.abc import Callable

CONTROL_PLANE_SELECTOR = "node-role.kubernetes.io/control-plane"
LEGACY_CONTROL_PLANE_SELECTOR = "node-role.kubernetes.io/master"

_NS_PER_SECOND = 1_000_000_000


def format_duration(seconds: float) -> str:
    """Format a duration rounded to whole seconds, e.g. "1m30s"."""
    nanoseconds = round(seconds * _NS_PER_SECOND)
    sign = "-" if nanoseconds < 0 else ""
    whole, rest = divmod(abs(nanoseconds), _NS_PER_SECOND)
    if rest * 2 >= _NS_PER_SECOND:
        whole += 1
    if whole == 0:
        return "0s"
    hours, remainder = divmod(whole, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def try_until(
    until: float,
    attempt: Callable[[], bool],
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Call attempt until it returns True or clock passes until."""
    while until > clock():
        if attempt():
            return True
    return False


def all_nodes_ready(output: str) -> bool:
    """Return True if every status in the first line of output is True."""
    lines = output.splitlines()
    if not lines:
        return False
    return all("True" in status for status in lines[0].split())


def ready_command(selector_label: str) -> list[str]:
    """The kubectl command that lists the Ready status of selected nodes."""
    return [
        "kubectl",
        "--kubeconfig=/etc/kubernetes/admin.conf",
        "get",
        "nodes",
        f"--selector={selector_label}",
        "-o=jsonpath='{.items..status.conditions[-1:].status}'",
    ]