# nativestor

Building blocks for a local-storage operator that manages LVM volume groups
(TopoLVM) and whole raw block devices on cluster nodes. The package has no
third-party dependencies.

## Modules

- `nativestor.logsetup`: `LogLevel` (CRITICAL, ERROR, WARNING, NOTICE, INFO,
  DEBUG, TRACE), `parse_level`, which accepts a full level name or its first
  letter and raises `ValueError` for anything else, and `set_log_level`, which
  sets the level of the `nativestor` logger. An unknown name is logged as a
  warning, and the level then falls back to CRITICAL.
- `nativestor.api_types`: dataclasses for the `TopolvmCluster` and `RawDevice`
  resources and their parts (`ObjectMeta`, `OwnerReference`, `TypeMeta`,
  `Storage`, `DeviceClass`, `Disk`, `NodeStorageState`, `ClassState`,
  `DeviceState`, `LoopState`, ...). It also defines the state enums
  `ConditionType`, `ClassStateType` and `DeviceStateType`, and the lvmd
  configuration `LvmdConf` / `LvmdDeviceClass`. `NodeStorageState` and
  `RawDevice` convert to and from their JSON dictionaries (`to_dict`,
  `from_dict`), and `LvmdConf.to_dict` gives the mapping used for lvmd's YAML.
  `GroupVersion`, `GroupResource`, `topolvm_resource` and `rawdevice_resource`
  qualify resource names with their API group.
- `nativestor.scc`: `new_security_context_constraints(name, namespace)` builds
  the `SecurityContextConstraints` that lets the topolvm service accounts run
  privileged on OpenShift.
- `nativestor.owner`: `Scheme` maps Python types to a group version and kind.
  `OwnerMatcher.match` tells whether an object's controller reference points to
  a given owner; kind and group must agree, and so must the UID when the owner
  has one. The module also provides `parse_group_version`, `get_controller_of`
  and `get_controller_object_owner_reference`. Failures raise `OwnerError`.
- `nativestor.csi_util`: `get_port_from_config`, which reads a port from a
  settings mapping, falls back to the default on a blank value and raises
  `PortConfigError` on a bad value. `apply_to_pod_spec` and
  `get_pod_anti_affinity` work on pod spec dictionaries.
- `nativestor.csi_controller`: `ControllerService`, a CSI controller that hands
  out whole free raw devices as volumes. Capacity is counted in GiB, using
  `convert_request_capacity`. The service gets its devices from a store that
  has `list()` and `update_status(device)`. Rejected calls raise `CsiError`,
  which carries a `StatusCode`.
- `nativestor.csi_identity`: `IdentityService`, which reports plugin info,
  plugin capabilities and readiness.

## Example

```python
from nativestor.api_types import ObjectMeta, RawDevice, RawDeviceSpec, topolvm_resource
from nativestor.csi_controller import (
    ControllerService,
    CreateVolumeRequest,
    VolumeCapability,
    convert_request_capacity,
)

str(topolvm_resource("topolvmclusters"))  # "topolvmclusters.topolvm.cybozu.com"
convert_request_capacity(0, 0)            # 1 (GiB)


class MemoryStore:
    def __init__(self, devices):
        self.devices = {d.metadata.name: d for d in devices}

    def list(self):
        return list(self.devices.values())

    def update_status(self, device):
        self.devices[device.metadata.name] = device


store = MemoryStore([
    RawDevice(
        metadata=ObjectMeta(name="dev-a", labels={"node": "node1"}),
        spec=RawDeviceSpec(node_name="node1", size=10 << 30, available=True),
    )
])
service = ControllerService(store, topology_key="topology.example.com/node")
response = service.create_volume(
    CreateVolumeRequest(name="pvc-1", volume_capabilities=[VolumeCapability(block=True)])
)
response.volume.volume_id       # "dev-a"
store.devices["dev-a"].status.name  # "dev-a"
```

## What this package does not do

- It has no command-line program and no long-running operator or reconcile
  loop.
- It does not talk to a Kubernetes API server or serve gRPC. The CSI services
  are plain Python objects, and the raw-device store has to be supplied by the
  caller.
- It has no CSI node service, so it does not create or remove device nodes on
  a host. It also does not discover devices, monitor udev, or prepare volume
  groups.

## Tests

The tests live in `tests/` and use pytest, which the `test` extra installs.