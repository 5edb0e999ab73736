"""Cluster configuration types and their YAML encoding."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

import yaml

DEFAULT_CLUSTER_NAME = "kind"

CONTROL_PLANE_NODE_ROLE_VALUE = "control-plane"
WORKER_NODE_ROLE_VALUE = "worker"
EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE = "external-load-balancer"
EXTERNAL_ETCD_NODE_ROLE_VALUE = "external-etcd"

DEFAULT_NODE_IMAGE = (
    "kindest/node:v1.23.5@sha256:"
    "1a72748086bc24ed6163de1d1e33cc0e2eb5a1eb5ebffdb15b53c3bcd5376a6f"
)

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class ConfigError(ValueError):
    """Raised when a cluster configuration cannot be decoded."""


class NodeRole(str, Enum):
    """Role of a node in the cluster."""

    CONTROL_PLANE = CONTROL_PLANE_NODE_ROLE_VALUE
    WORKER = WORKER_NODE_ROLE_VALUE


class ClusterIPFamily(str, Enum):
    """IP family of the cluster network."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DUAL_STACK = "dual"


class ProxyMode(str, Enum):
    """Operating mode of kube-proxy."""

    IPTABLES = "iptables"
    IPVS = "ipvs"


class MountPropagation(str, Enum):
    """Mount propagation mode of an extra mount."""

    NONE = "None"
    HOST_TO_CONTAINER = "HostToContainer"
    BIDIRECTIONAL = "Bidirectional"


class PortMappingProtocol(str, Enum):
    """Protocol of a port mapping."""

    TCP = "TCP"
    UDP = "UDP"
    SCTP = "SCTP"


_E = TypeVar("_E", bound=Enum)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _omit_empty(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    return {key: _plain(value) for key, value in pairs if value}


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _get_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _get_int32(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {type(value).__name__}")
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ConfigError(f"{key} is out of range: {value}")
    return value


def _get_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be a boolean, got {type(value).__name__}")
    return value


def _get_list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list, got {type(value).__name__}")
    return value


def _get_str_list(data: Mapping[str, Any], key: str) -> list[str]:
    items = _get_list(data, key)
    for item in items:
        if not isinstance(item, str):
            raise ConfigError(f"{key} entries must be strings")
    return list(items)


def _get_map(data: Mapping[str, Any], key: str, value_type: type) -> dict[str, Any]:
    value = _mapping(data.get(key), key)
    result: dict[str, Any] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not isinstance(v, value_type):
            raise ConfigError(
                f"{key} must map strings to {value_type.__name__} values"
            )
        result[k] = v
    return result


def _enum_or_str(enum_cls: type[_E], value: str) -> _E | str:
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass
class Mount:
    """A host path mounted into a node container."""

    container_path: str = ""
    host_path: str = ""
    readonly: bool = False
    selinux_relabel: bool = False
    propagation: MountPropagation | str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Mount:
        data = _mapping(data, "mount")
        propagation: MountPropagation | str = _get_str(data, "propagation")
        if propagation:
            try:
                propagation = MountPropagation(propagation)
            except ValueError:
                raise ConfigError(
                    f'Unknown MountPropagation: "{propagation}"'
                ) from None
        return cls(
            container_path=_get_str(data, "containerPath"),
            host_path=_get_str(data, "hostPath"),
            readonly=_get_bool(data, "readOnly"),
            selinux_relabel=_get_bool(data, "selinuxRelabel"),
            propagation=propagation,
        )

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            [
                ("containerPath", self.container_path),
                ("hostPath", self.host_path),
                ("readOnly", self.readonly),
                ("selinuxRelabel", self.selinux_relabel),
                ("propagation", self.propagation),
            ]
        )


@dataclass
class PortMapping:
    """A host port mapped into a node container port."""

    container_port: int = 0
    host_port: int = 0
    listen_address: str = ""
    protocol: PortMappingProtocol | str = ""

    @classmethod
    def from_dict(cls, data: Any) -> PortMapping:
        data = _mapping(data, "port mapping")
        protocol: PortMappingProtocol | str = _get_str(data, "protocol").upper()
        if protocol:
            try:
                protocol = PortMappingProtocol(protocol)
            except ValueError:
                raise ConfigError(
                    f'Unknown PortMappingProtocol: "{protocol}"'
                ) from None
        return cls(
            container_port=_get_int32(data, "containerPort"),
            host_port=_get_int32(data, "hostPort"),
            listen_address=_get_str(data, "listenAddress"),
            protocol=protocol,
        )

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            [
                ("containerPort", self.container_port),
                ("hostPort", self.host_port),
                ("listenAddress", self.listen_address),
                ("protocol", self.protocol),
            ]
        )


@dataclass
class PatchJSON6902:
    """An inline RFC 6902 JSON patch and the resource kind it targets."""

    group: str = ""
    version: str = ""
    kind: str = ""
    patch: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> PatchJSON6902:
        data = _mapping(data, "json 6902 patch")
        return cls(
            group=_get_str(data, "group"),
            version=_get_str(data, "version"),
            kind=_get_str(data, "kind"),
            patch=_get_str(data, "patch"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "version": self.version,
            "kind": self.kind,
            "patch": self.patch,
        }


@dataclass
class Node:
    """Settings for one node container of the cluster."""

    role: NodeRole | str = ""
    image: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    extra_mounts: list[Mount] = field(default_factory=list)
    extra_port_mappings: list[PortMapping] = field(default_factory=list)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(
        default_factory=list
    )

    @classmethod
    def from_dict(cls, data: Any) -> Node:
        data = _mapping(data, "node")
        role = _get_str(data, "role")
        return cls(
            role=_enum_or_str(NodeRole, role) if role else "",
            image=_get_str(data, "image"),
            labels=_get_map(data, "labels", str),
            extra_mounts=[Mount.from_dict(m) for m in _get_list(data, "extraMounts")],
            extra_port_mappings=[
                PortMapping.from_dict(p) for p in _get_list(data, "extraPortMappings")
            ],
            kubeadm_config_patches=_get_str_list(data, "kubeadmConfigPatches"),
            kubeadm_config_patches_json6902=[
                PatchJSON6902.from_dict(p)
                for p in _get_list(data, "kubeadmConfigPatchesJSON6902")
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            [
                ("role", self.role),
                ("image", self.image),
                ("labels", dict(self.labels)),
                ("extraMounts", [m.to_dict() for m in self.extra_mounts]),
                (
                    "extraPortMappings",
                    [p.to_dict() for p in self.extra_port_mappings],
                ),
                ("kubeadmConfigPatches", list(self.kubeadm_config_patches)),
                (
                    "kubeadmConfigPatchesJSON6902",
                    [p.to_dict() for p in self.kubeadm_config_patches_json6902],
                ),
            ]
        )


@dataclass
class Networking:
    """Cluster-wide network settings."""

    ip_family: ClusterIPFamily | str = ""
    api_server_port: int = 0
    api_server_address: str = ""
    pod_subnet: str = ""
    service_subnet: str = ""
    disable_default_cni: bool = False
    kube_proxy_mode: ProxyMode | str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Networking:
        data = _mapping(data, "networking")
        ip_family = _get_str(data, "ipFamily")
        proxy_mode = _get_str(data, "kubeProxyMode")
        return cls(
            ip_family=_enum_or_str(ClusterIPFamily, ip_family) if ip_family else "",
            api_server_port=_get_int32(data, "apiServerPort"),
            api_server_address=_get_str(data, "apiServerAddress"),
            pod_subnet=_get_str(data, "podSubnet"),
            service_subnet=_get_str(data, "serviceSubnet"),
            disable_default_cni=_get_bool(data, "disableDefaultCNI"),
            kube_proxy_mode=_enum_or_str(ProxyMode, proxy_mode) if proxy_mode else "",
        )

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            [
                ("ipFamily", self.ip_family),
                ("apiServerPort", self.api_server_port),
                ("apiServerAddress", self.api_server_address),
                ("podSubnet", self.pod_subnet),
                ("serviceSubnet", self.service_subnet),
                ("disableDefaultCNI", self.disable_default_cni),
                ("kubeProxyMode", self.kube_proxy_mode),
            ]
        )


@dataclass
class Cluster:
    """A complete cluster configuration."""

    kind: str = ""
    api_version: str = ""
    name: str = ""
    nodes: list[Node] = field(default_factory=list)
    networking: Networking = field(default_factory=Networking)
    feature_gates: dict[str, bool] = field(default_factory=dict)
    runtime_config: dict[str, str] = field(default_factory=dict)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(
        default_factory=list
    )
    containerd_config_patches: list[str] = field(default_factory=list)
    containerd_config_patches_json6902: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Cluster:
        data = _mapping(data, "cluster")
        return cls(
            kind=_get_str(data, "kind"),
            api_version=_get_str(data, "apiVersion"),
            name=_get_str(data, "name"),
            nodes=[Node.from_dict(n) for n in _get_list(data, "nodes")],
            networking=Networking.from_dict(data.get("networking")),
            feature_gates=_get_map(data, "featureGates", bool),
            runtime_config=_get_map(data, "runtimeConfig", str),
            kubeadm_config_patches=_get_str_list(data, "kubeadmConfigPatches"),
            kubeadm_config_patches_json6902=[
                PatchJSON6902.from_dict(p)
                for p in _get_list(data, "kubeadmConfigPatchesJSON6902")
            ],
            containerd_config_patches=_get_str_list(data, "containerdConfigPatches"),
            containerd_config_patches_json6902=_get_str_list(
                data, "containerdConfigPatchesJSON6902"
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            [
                ("kind", self.kind),
                ("apiVersion", self.api_version),
                ("name", self.name),
                ("nodes", [n.to_dict() for n in self.nodes]),
                ("networking", self.networking.to_dict()),
                ("featureGates", dict(self.feature_gates)),
                ("runtimeConfig", dict(self.runtime_config)),
                ("kubeadmConfigPatches", list(self.kubeadm_config_patches)),
                (
                    "kubeadmConfigPatchesJSON6902",
                    [p.to_dict() for p in self.kubeadm_config_patches_json6902],
                ),
                ("containerdConfigPatches", list(self.containerd_config_patches)),
                (
                    "containerdConfigPatchesJSON6902",
                    list(self.containerd_config_patches_json6902),
                ),
            ]
        )


def parse_cluster_yaml(text: str | bytes) -> Cluster:
    """Decode a cluster configuration from YAML text."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}") from exc
    return Cluster.from_dict(data)


def dump_cluster_yaml(cluster: Cluster) -> str:
    """Encode a cluster configuration as YAML text."""
    return yaml.safe_dump(cluster.to_dict(), sort_keys=False, allow_unicode=True)