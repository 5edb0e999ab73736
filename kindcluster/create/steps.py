"""Commands, manifests and patches used by the cluster bring-up steps."""

from __future__ import annotations

import re
from collections.abc import Iterable

from kindcluster.config import PatchJSON6902

ADMIN_KUBECONFIG_FLAG = "--kubeconfig=/etc/kubernetes/admin.conf"
KUBEADM_CONFIG_PATH = "/kind/kubeadm.conf"

CNI_MANIFEST_PATH = "/kind/manifests/default-cni.yaml"
STORAGE_MANIFEST_PATH = "/kind/manifests/default-storage.yaml"

# files copied from the bootstrap control plane to the other control planes
CONTROL_PLANE_SHARED_FILES = (
    "/etc/kubernetes/admin.conf",
    "/etc/kubernetes/pki/ca.crt",
    "/etc/kubernetes/pki/ca.key",
    "/etc/kubernetes/pki/front-proxy-ca.crt",
    "/etc/kubernetes/pki/front-proxy-ca.key",
    "/etc/kubernetes/pki/sa.pub",
    "/etc/kubernetes/pki/sa.key",
    "/etc/kubernetes/pki/etcd/ca.crt",
    "/etc/kubernetes/pki/etcd/ca.key",
)

CONTROL_PLANE_TAINT = "node-role.kubernetes.io/control-plane-"
MASTER_TAINT = "node-role.kubernetes.io/master-"

# legacy host-path based default storage class, used when the node image
# ships no storage manifest of its own
DEFAULT_STORAGE_MANIFEST = """# host-path based default storage class
apiVersion: storage.k8s.io/v1
kind: StorageClass
metadata:
  namespace: kube-system
  name: standard
  annotations:
    storageclass.kubernetes.io/is-default-class: "true"
provisioner: kubernetes.io/host-path"""

_TEMPLATE_MARKER = "would you kindly template this file"
_PATCH_MARKER = "would you kindly patch this file"

_ACTION_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)


def kubeadm_init_args(skip_kube_proxy: bool) -> list[str]:
    """The kubeadm command that initialises the bootstrap control plane."""
    skip_phases = "preflight"
    if skip_kube_proxy:
        skip_phases += ",addon/kube-proxy"
    return [
        "kubeadm",
        "init",
        f"--skip-phases={skip_phases}",
        f"--config={KUBEADM_CONFIG_PATH}",
        "--skip-token-print",
        "--v=6",
    ]


def taint_args(before_v124: bool) -> list[str]:
    """The kubectl command that removes control plane taints from all nodes.

    Kubernetes older than v1.24 only carries the "master" taint.
    """
    taints = [MASTER_TAINT] if before_v124 else [CONTROL_PLANE_TAINT, MASTER_TAINT]
    return ["kubectl", ADMIN_KUBECONFIG_FLAG, "taint", "nodes", "--all", *taints]


def kubeadm_join_args() -> list[str]:
    """The kubeadm command that joins a node to the cluster."""
    return [
        "kubeadm",
        "join",
        "--config",
        KUBEADM_CONFIG_PATH,
        "--skip-phases=preflight",
        "--v=6",
    ]


def storage_manifest(node_manifest: str | None) -> str:
    """The storage manifest to apply: the node's own, else the legacy default."""
    return DEFAULT_STORAGE_MANIFEST if node_manifest is None else node_manifest


def needs_template(manifest: str) -> bool:
    """Return True if the CNI manifest asks to be run through the template."""
    return _TEMPLATE_MARKER in manifest


def _trim_flags(body: str) -> tuple[bool, bool, str]:
    left = len(body) >= 2 and body[0] == "-" and body[1].isspace()
    right = len(body) >= 2 and body[-1] == "-" and body[-2].isspace()
    if left:
        body = body[1:]
    if right:
        body = body[:-1]
    return left, right, body.strip()


def render_cni_manifest(manifest: str, pod_subnet: str) -> str:
    """Execute the CNI manifest template with the cluster's pod subnet.

    The template may use {{ .PodSubnet }} and comments, with the usual
    whitespace trim markers. Any other action raises ValueError.
    """
    pieces = _ACTION_RE.split(manifest)
    texts = pieces[0::2]
    actions = pieces[1::2]
    for text in texts:
        if "{{" in text:
            raise ValueError("failed to parse CNI manifest template: unclosed action")

    values: list[str] = []
    for position, body in enumerate(actions):
        left, right, action = _trim_flags(body)
        if left:
            texts[position] = texts[position].rstrip()
        if right:
            texts[position + 1] = texts[position + 1].lstrip()
        if action.startswith("/*") and action.endswith("*/"):
            values.append("")
        elif action == ".PodSubnet":
            values.append(pod_subnet)
        else:
            raise ValueError(
                f"failed to execute CNI manifest template: "
                f"unsupported action {{{{{body}}}}}"
            )

    out = [texts[0]]
    for value, text in zip(values, texts[1:]):
        out.append(value)
        out.append(text)
    return "".join(out)


def needs_patch(manifest: str) -> bool:
    """Return True if the CNI manifest asks for the control plane endpoint patch."""
    return _PATCH_MARKER in manifest


def control_plane_endpoint_patch(endpoint: str) -> PatchJSON6902:
    """A DaemonSet patch adding CONTROL_PLANE_ENDPOINT to the first container."""
    patch = (
        "\n- op: add\n"
        "  path: /spec/template/spec/containers/0/env/-\n"
        "  value:\n"
        "    name: CONTROL_PLANE_ENDPOINT\n"
        "    value: " + endpoint
    )
    return PatchJSON6902(group="apps", version="v1", kind="DaemonSet", patch=patch)


def backend_servers(node_names: Iterable[str], port: int) -> dict[str, str]:
    """Map each control plane node name to its host:port load balancer backend."""
    return {name: f"{name}:{port}" for name in node_names}