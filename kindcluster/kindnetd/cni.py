"""CNI configuration computation and writing for kindnetd."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path

from kindcluster.kindnetd.netutil import KubeNode, is_ipv6_cidr_string

CNI_CONFIG_PATH = "/etc/cni/net.d/10-kindnet.conflist"

_DEFAULT_ROUTES = ("0.0.0.0/0", "::/0")


@dataclass(frozen=True)
class CNIConfigInputs:
    """Values that the CNI config is rendered from."""

    pod_cidrs: tuple[str, ...] | list[str] = field(default_factory=list)
    default_routes: tuple[str, ...] | list[str] = field(default_factory=list)
    mtu: int = 0


def compute_cni_config_inputs(node: KubeNode) -> CNIConfigInputs:
    """Compute the CNI config inputs for this node."""
    if len(node.pod_cidrs) > 1:
        return CNIConfigInputs(
            pod_cidrs=list(node.pod_cidrs), default_routes=list(_DEFAULT_ROUTES)
        )
    # single stack clusters use the legacy single PodCIDR field
    pod_cidrs = [node.pod_cidr]
    route = _DEFAULT_ROUTES[1] if is_ipv6_cidr_string(node.pod_cidr) else _DEFAULT_ROUTES[0]
    return CNIConfigInputs(pod_cidrs=pod_cidrs, default_routes=[route])


def compute_bridge_mtu(sys_class_net: str | os.PathLike[str] = "/sys/class/net") -> int:
    """Return the MTU of the eth0 interface."""
    mtu_file = Path(sys_class_net) / "eth0" / "mtu"
    try:
        text = mtu_file.read_text()
    except FileNotFoundError:
        raise LookupError("Found no eth0 device") from None
    return int(text.strip())


def _list_block(values: list[str] | tuple[str, ...], item: str) -> str:
    indent = "\n\t\t\t\t"
    parts = []
    for position, value in enumerate(values):
        separator = "," if position else ""
        parts.append(f"{indent}{separator}{indent}{item.format(value)}")
    return "".join(parts)


def render_cni_config(inputs: CNIConfigInputs) -> str:
    """Render the kindnet CNI .conflist JSON document."""
    routes = _list_block(inputs.default_routes, '{{ "dst": "{}" }}')
    ranges = _list_block(inputs.pod_cidrs, '[ {{ "subnet": "{}" }} ]')
    mtu = f',\n\t\t"mtu": {inputs.mtu}\n\t\t' if inputs.mtu else ""
    return (
        "\n{\n"
        '\t"cniVersion": "0.3.1",\n'
        '\t"name": "kindnet",\n'
        '\t"plugins": [\n'
        "\t{\n"
        '\t\t"type": "ptp",\n'
        '\t\t"ipMasq": false,\n'
        '\t\t"ipam": {\n'
        '\t\t\t"type": "host-local",\n'
        '\t\t\t"dataDir": "/run/cni-ipam-state",\n'
        '\t\t\t"routes": [\n\t\t\t\t'
        f"{routes}\n"
        "\t\t\t],\n"
        '\t\t\t"ranges": [\n\t\t\t\t'
        f"{ranges}\n"
        "\t\t\t]\n"
        "\t\t}\n\t\t"
        f"{mtu}\n"
        "\t},\n"
        "\t{\n"
        '\t\t"type": "portmap",\n'
        '\t\t"capabilities": {\n'
        '\t\t\t"portMappings": true\n'
        "\t\t}\n"
        "\t}\n"
        "\t]\n"
        "}\n"
    )


class CNIConfigWriter:
    """Writes the CNI config, skipping writes whose inputs did not change.

    Not safe for concurrent use.
    """

    def __init__(self, path: str | os.PathLike[str] = CNI_CONFIG_PATH, mtu: int = 0):
        self.path = os.fspath(path)
        self.mtu = mtu
        self.last_inputs: CNIConfigInputs | None = None

    def write(self, inputs: CNIConfigInputs) -> bool:
        """Write the config for inputs; return False if nothing changed."""
        inputs = dataclasses.replace(
            inputs,
            pod_cidrs=list(inputs.pod_cidrs),
            default_routes=list(inputs.default_routes),
            mtu=self.mtu,
        )
        if inputs == self.last_inputs:
            return False

        # write under an extension CNI ignores, then rename into place atomically
        temp_path = f"{self.path}.temp"
        content = render_cni_config(inputs)
        try:
            with open(temp_path, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                try:
                    os.fsync(handle.fileno())
                except OSError:
                    pass
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
        os.replace(temp_path, self.path)

        self.last_inputs = inputs
        return True