# kindcluster

A library for describing local Kubernetes clusters whose nodes run as
containers, for the checks and commands used while bringing such a cluster
up, and for the logic a node-side networking daemon needs to keep pod routes,
masquerade rules and the CNI configuration in shape.

## Layout

- `kindcluster.config` — the `v1alpha4` cluster configuration: the data
  classes `Cluster`, `Node`, `Networking`, `Mount`, `PortMapping` and
  `PatchJSON6902`, the enums `NodeRole`, `ClusterIPFamily`, `ProxyMode`,
  `MountPropagation` and `PortMappingProtocol`, and `parse_cluster_yaml` /
  `dump_cluster_yaml`. Decoding errors raise `ConfigError`.
- `kindcluster.defaults` — `set_defaults_cluster` and `set_defaults_node`,
  which fill in unset fields in place.
- `kindcluster.cli` — `check_quiet`, which finds `-q` / `--quiet` in a
  command line while ignoring unknown flags, and `format_error`, which builds
  the lines used to report an error (optionally coloured, with command output
  and, when verbose, the traceback).
- `kindcluster.create` — pieces of cluster creation:
  - `options`: `ClusterOptions`, the `create_with_*` option functions and
    `apply_options`;
  - `cluster`: `validate_provider`, `already_exists`, `fixup_options`,
    `name_too_long`, `pick_salutation` and `ClusterCreateError`;
  - `actions`: the abstract `Action` and the `ActionContext`, whose `nodes()`
    asks the provider for the node list once and caches it;
  - `kubeadm_config`: `labels_to_comma_separated`, `remove_metadata`,
    `all_patches_from_config`, `node_address` and `match_config_node`;
  - `waitforready`: `format_duration`, `try_until`, `all_nodes_ready` and
    `ready_command`;
  - `steps`: the kubeadm init/join and taint command lines, the default
    storage manifest, CNI manifest templating (`render_cni_manifest`), the
    control plane endpoint patch and `backend_servers` for the load balancer.
- `kindcluster.kindnetd` — the node networking daemon's logic:
  - `netutil`: `IPFamily`, `KubeNode`, `NodeAddress`, `is_ipv6_string`,
    `is_ipv6_cidr_string`, `split_cidrs`, `internal_ips`, `detect_ip_family`
    and `probe_tcp`;
  - `cni`: `CNIConfigInputs`, `compute_cni_config_inputs`,
    `compute_bridge_mtu`, `render_cni_config` and `CNIConfigWriter`;
  - `masq`: `IPMasqAgent` and `MasqSyncError`;
  - `reconcile`: `NodesReconciler`, `sync_route` and `with_retries`.

## Cluster configuration

```python
from kindcluster.config import parse_cluster_yaml, dump_cluster_yaml
from kindcluster.defaults import set_defaults_cluster

cluster = parse_cluster_yaml("""
kind: Cluster
apiVersion: kind.x-k8s.io/v1alpha4
nodes:
- role: control-plane
- role: worker
  extraPortMappings:
  - containerPort: 80
    hostPort: 8080
    protocol: tcp
networking:
  ipFamily: dual
""")

set_defaults_cluster(cluster)
print(dump_cluster_yaml(cluster))
```

Unknown mount propagation values and port mapping protocols are rejected with
`ConfigError`; protocols are accepted in any letter case and stored upper
case. After defaulting, every node has an image and a role (control-plane by
default), and the networking section carries the API server address, pod
subnet, service subnet and kube-proxy mode (`iptables`) that match the IP
family, which itself defaults to IPv4.

## Creation options

```python
from kindcluster.create.options import (
    apply_options,
    create_with_display_usage,
    create_with_node_image,
    create_with_retain,
)
from kindcluster.create.cluster import fixup_options

opts = apply_options(
    [
        create_with_node_image("kindest/node:v1.23.5"),
        create_with_retain(True),
        create_with_display_usage(True),
    ]
)
fixup_options(opts)  # default config, name/image overrides, field defaults
```

`create_with_wait_for_ready` takes a number of seconds;
`waitforready.format_duration(90)` gives `"1m30s"`.

## Node networking helpers

```python
from kindcluster.kindnetd.netutil import detect_ip_family, split_cidrs
from kindcluster.kindnetd.cni import CNIConfigWriter, CNIConfigInputs

v4, v6 = split_cidrs(["10.244.0.0/16", "fd00:10:244::/56"])
family = detect_ip_family("10.244.0.0/16,fd00:10:244::/56")  # IPFamily.DUAL_STACK

writer = CNIConfigWriter("/tmp/10-kindnet.conflist", mtu=1500)
writer.write(CNIConfigInputs(pod_cidrs=["10.244.1.0/24"], default_routes=["0.0.0.0/0"]))
```

`detect_ip_family` raises `ValueError` when no subnet is given.
`CNIConfigWriter.write` renders the config to a `.temp` file and renames it
into place; it returns `False` without writing when the inputs (with the
writer's MTU) are the same as last time. `compute_bridge_mtu` reads eth0's
MTU from `/sys/class/net` (or a directory you pass) and raises `LookupError`
if there is no eth0.

`IPMasqAgent` works through any object with `list_chains(table)`,
`new_chain(table, chain)` and `append_unique(table, chain, *rulespec)`.
`sync_rules_forever` raises `MasqSyncError` once more than three syncs in a
row have failed. `NodesReconciler` takes a route table object with
`list_routes(dst, gateway)` and `add_route(dst, gateway)`; for the local node
it writes the CNI config, for other nodes it adds routes to their pod CIDRs.
`with_retries` calls a function up to five times, sleeping `i` seconds after
failure `i`, and re-raises the last error.

## What this package does not do

- It has no command-line program; `kindcluster.cli` only provides the quiet
  flag check and error formatting.
- It does not create or delete clusters by itself: there is no container
  provider, no provisioning of node containers, no running of kubeadm or
  kubectl and no kubeconfig export. The `create` modules give the checks,
  command lines, manifests and patches those steps use.
- It does not apply merge or JSON 6902 patches to kubeadm or containerd
  configuration, and does not generate the kubeadm or load balancer
  configuration files.
- It does not talk to iptables, netlink or the Kubernetes API. Masquerade
  rules and routes go through objects you supply, and nodes are described
  with `KubeNode`.

## Running the tests

The test suite uses pytest and lives in `tests/`; install the `test` extra
and run `pytest`.