"""Custom resource types of the topolvm and rawdevice API groups."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class GroupResource:
    """A resource qualified by its API group."""

    group: str
    resource: str

    def __str__(self) -> str:
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str
    version: str

    def with_resource(self, resource: str) -> GroupResource:
        """Return *resource* qualified by this group."""
        return GroupResource(group=self.group, resource=resource)

    def __str__(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


TOPOLVM_GROUP_VERSION = GroupVersion(group="topolvm.cybozu.com", version="v2")
RAWDEVICE_GROUP_VERSION = GroupVersion(group="nativestor.alauda.io", version="v1")

# Access rules the operator needs on its own resources.
TOPOLVM_RBAC_RULES = (
    {
        "groups": ("topolvm.cybozu.com",),
        "resources": ("topolvmclusters",),
        "verbs": ("get", "list", "watch", "create", "update", "patch", "delete"),
    },
    {
        "groups": ("topolvm.cybozu.com",),
        "resources": ("topolvmclusters/status",),
        "verbs": ("get", "update", "patch"),
    },
)
RAWDEVICE_RBAC_RULES = (
    {
        "groups": ("nativestor.alauda.io",),
        "resources": ("rawdevices",),
        "verbs": ("get", "list", "watch", "create", "update", "patch", "delete"),
    },
    {
        "groups": ("nativestor.alauda.io",),
        "resources": ("rawdevices/status",),
        "verbs": ("get", "update", "patch"),
    },
)


def topolvm_resource(resource: str) -> GroupResource:
    """Qualify *resource* with the topolvm API group."""
    return TOPOLVM_GROUP_VERSION.with_resource(resource)


def rawdevice_resource(resource: str) -> GroupResource:
    """Qualify *resource* with the rawdevice API group."""
    return RAWDEVICE_GROUP_VERSION.with_resource(resource)


@dataclass
class TypeMeta:
    """Kind and API version of an object."""

    api_version: str = ""
    kind: str = ""


@dataclass
class OwnerReference:
    """Reference from a dependent object to its owner."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None


@dataclass
class ObjectMeta:
    """Identifying metadata of an object."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    owner_references: list[OwnerReference] = field(default_factory=list)


class ConditionType(str, enum.Enum):
    """Phase of a cluster or of one node's storage."""

    READY = "Ready"
    FAILURE = "Failure"
    UNKNOWN = "Unknown"
    PENDING = "Pending"


class ClassStateType(str, enum.Enum):
    """Readiness of a device class."""

    READY = "Ready"
    UNREADY = "UnReady"


class DeviceStateType(str, enum.Enum):
    """Whether a device is present in its volume group."""

    ONLINE = "Online"
    OFFLINE = "Offline"


def _enum_or_raw(enum_type: type[enum.Enum], value: Any) -> Union[enum.Enum, str]:
    value = value or ""
    try:
        return enum_type(value)
    except ValueError:
        return value


def _text(value: Union[enum.Enum, str]) -> str:
    return value.value if isinstance(value, enum.Enum) else value


@dataclass
class Disk:
    """A disk named in a cluster specification."""

    name: str = ""
    type: str = ""
    auto: bool = False
    path: str = ""
    size: int = 0


@dataclass
class DeviceClass:
    """A device class: a volume group built from a set of disks."""

    class_name: str = ""
    vg_name: str = ""
    device: list[Disk] = field(default_factory=list)
    default: bool = False
    spare_gb: int = 0
    stripe: int = 0
    stripe_size: str = ""


@dataclass
class NodeDevices:
    """Device classes configured on one node."""

    node_name: str = ""
    device_classes: list[DeviceClass] = field(default_factory=list)


@dataclass
class Storage:
    """Storage section of a cluster specification."""

    device_classes: list[NodeDevices] = field(default_factory=list)
    use_all_nodes: bool = False
    use_all_devices: bool = False
    devices: list[Disk] = field(default_factory=list)
    volume_group_name: str = ""
    class_name: str = ""
    use_loop: bool = False


@dataclass
class TopolvmClusterSpec:
    """Desired state of a topolvm cluster."""

    certs_secret: str = ""
    storage: Storage = field(default_factory=Storage)
    clean_up: bool = False


@dataclass
class LoopState:
    """State of one loop device created for a node."""

    name: str = ""
    file: str = ""
    device_name: str = ""
    status: str = ""
    message: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "file": self.file,
            "deviceName": self.device_name,
            "status": self.status,
            "message": self.message,
        }

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> LoopState:
        return cls(
            name=data.get("name") or "",
            file=data.get("file") or "",
            device_name=data.get("deviceName") or "",
            status=data.get("status") or "",
            message=data.get("message") or "",
        )


@dataclass
class DeviceState:
    """State of one device in a device class."""

    name: str = ""
    state: Union[DeviceStateType, str] = ""
    message: str = ""

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.name:
            out["name"] = self.name
        if _text(self.state):
            out["state"] = _text(self.state)
        if self.message:
            out["message"] = self.message
        return out

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> DeviceState:
        return cls(
            name=data.get("name") or "",
            state=_enum_or_raw(DeviceStateType, data.get("state")),
            message=data.get("message") or "",
        )


@dataclass
class ClassState:
    """State of one device class on a node."""

    name: str = ""
    vg_name: str = ""
    state: Union[ClassStateType, str] = ""
    message: str = ""
    device_states: list[DeviceState] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.name:
            out["className"] = self.name
        if self.vg_name:
            out["vgName"] = self.vg_name
        if _text(self.state):
            out["state"] = _text(self.state)
        if self.message:
            out["message"] = self.message
        if self.device_states:
            out["deviceStates"] = [d._to_dict() for d in self.device_states]
        return out

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> ClassState:
        return cls(
            name=data.get("className") or "",
            vg_name=data.get("vgName") or "",
            state=_enum_or_raw(ClassStateType, data.get("state")),
            message=data.get("message") or "",
            device_states=[
                DeviceState._from_dict(d) for d in data.get("deviceStates") or []
            ],
        )


@dataclass
class NodeStorageState:
    """Storage state reported for one node."""

    node: str = ""
    phase: Union[ConditionType, str] = ""
    fail_classes: list[ClassState] = field(default_factory=list)
    success_classes: list[ClassState] = field(default_factory=list)
    loops: list[LoopState] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """The JSON form stored in the node's status config map."""
        return {
            "node": self.node,
            "phase": _text(self.phase),
            "failClasses": [c._to_dict() for c in self.fail_classes],
            "successClasses": [c._to_dict() for c in self.success_classes],
            "loops": [loop._to_dict() for loop in self.loops],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeStorageState:
        """Build a state from its JSON form; missing keys take zero values."""
        return cls(
            node=data.get("node") or "",
            phase=_enum_or_raw(ConditionType, data.get("phase")),
            fail_classes=[ClassState._from_dict(c) for c in data.get("failClasses") or []],
            success_classes=[
                ClassState._from_dict(c) for c in data.get("successClasses") or []
            ],
            loops=[LoopState._from_dict(loop) for loop in data.get("loops") or []],
        )


@dataclass
class TopolvmClusterStatus:
    """Observed state of a topolvm cluster."""

    phase: Union[ConditionType, str] = ""
    node_storage_status: list[NodeStorageState] = field(default_factory=list)


@dataclass
class TopolvmCluster:
    """A topolvm cluster resource."""

    type_meta: TypeMeta = field(default_factory=TypeMeta)
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: TopolvmClusterSpec = field(default_factory=TopolvmClusterSpec)
    status: TopolvmClusterStatus = field(default_factory=TopolvmClusterStatus)


@dataclass
class RawDeviceSpec:
    """Description of a block device found on a node."""

    node_name: str = ""
    size: int = 0
    type: str = ""
    real_path: str = ""
    major: int = 0
    minor: int = 0
    uuid: str = ""
    available: bool = False


@dataclass
class RawDeviceStatus:
    """Volume currently bound to a raw device; empty when free."""

    name: str = ""


def _meta_to_dict(meta: ObjectMeta) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if meta.name:
        out["name"] = meta.name
    if meta.namespace:
        out["namespace"] = meta.namespace
    if meta.uid:
        out["uid"] = meta.uid
    if meta.labels:
        out["labels"] = dict(meta.labels)
    if meta.annotations:
        out["annotations"] = dict(meta.annotations)
    if meta.finalizers:
        out["finalizers"] = list(meta.finalizers)
    if meta.owner_references:
        refs = []
        for ref in meta.owner_references:
            item: dict[str, Any] = {
                "apiVersion": ref.api_version,
                "kind": ref.kind,
                "name": ref.name,
                "uid": ref.uid,
            }
            if ref.controller is not None:
                item["controller"] = ref.controller
            if ref.block_owner_deletion is not None:
                item["blockOwnerDeletion"] = ref.block_owner_deletion
            refs.append(item)
        out["ownerReferences"] = refs
    return out


def _meta_from_dict(data: dict[str, Any]) -> ObjectMeta:
    return ObjectMeta(
        name=data.get("name") or "",
        namespace=data.get("namespace") or "",
        uid=data.get("uid") or "",
        labels=dict(data.get("labels") or {}),
        annotations=dict(data.get("annotations") or {}),
        finalizers=list(data.get("finalizers") or []),
        owner_references=[
            OwnerReference(
                api_version=ref.get("apiVersion") or "",
                kind=ref.get("kind") or "",
                name=ref.get("name") or "",
                uid=ref.get("uid") or "",
                controller=ref.get("controller"),
                block_owner_deletion=ref.get("blockOwnerDeletion"),
            )
            for ref in data.get("ownerReferences") or []
        ],
    )


@dataclass
class RawDevice:
    """A cluster-scoped raw block device resource."""

    type_meta: TypeMeta = field(default_factory=TypeMeta)
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: RawDeviceSpec = field(default_factory=RawDeviceSpec)
    status: RawDeviceStatus = field(default_factory=RawDeviceStatus)

    def to_dict(self) -> dict[str, Any]:
        """The JSON form of the resource."""
        out: dict[str, Any] = {}
        if self.type_meta.api_version:
            out["apiVersion"] = self.type_meta.api_version
        if self.type_meta.kind:
            out["kind"] = self.type_meta.kind
        out["metadata"] = _meta_to_dict(self.metadata)
        out["spec"] = {
            "nodeName": self.spec.node_name,
            "size": self.spec.size,
            "type": self.spec.type,
            "realPath": self.spec.real_path,
            "major": self.spec.major,
            "minor": self.spec.minor,
            "uuid": self.spec.uuid,
            "available": self.spec.available,
        }
        out["status"] = {"name": self.status.name}
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawDevice:
        """Build a resource from its JSON form."""
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            type_meta=TypeMeta(
                api_version=data.get("apiVersion") or "", kind=data.get("kind") or ""
            ),
            metadata=_meta_from_dict(data.get("metadata") or {}),
            spec=RawDeviceSpec(
                node_name=spec.get("nodeName") or "",
                size=int(spec.get("size") or 0),
                type=spec.get("type") or "",
                real_path=spec.get("realPath") or "",
                major=int(spec.get("major") or 0),
                minor=int(spec.get("minor") or 0),
                uuid=spec.get("uuid") or "",
                available=bool(spec.get("available", False)),
            ),
            status=RawDeviceStatus(name=status.get("name") or ""),
        )

    def deep_copy(self) -> RawDevice:
        """An independent copy of the resource."""
        return copy.deepcopy(self)


@dataclass
class LvmdDeviceClass:
    """A device class entry of the lvmd configuration."""

    name: str = ""
    volume_group: str = ""
    spare_gb: int = 0
    default: bool = False
    stripe: int = 0
    stripe_size: str = ""

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "volume-group": self.volume_group}
        if self.spare_gb:
            out["spare-gb"] = self.spare_gb
        out["default"] = self.default
        if self.stripe:
            out["stripe"] = self.stripe
        if self.stripe_size:
            out["stripe-size"] = self.stripe_size
        return out


@dataclass
class LvmdConf:
    """The lvmd daemon configuration."""

    socket_name: str = ""
    device_classes: list[LvmdDeviceClass] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """The mapping written as lvmd's YAML configuration."""
        return {
            "socket-name": self.socket_name,
            "device-classes": [dc._to_dict() for dc in self.device_classes],
        }


@dataclass
class NodeStatusMetrics:
    """Status metric of one node."""

    node: str = ""
    status: int = 0


@dataclass
class Metrics:
    """Status metrics of a cluster and its nodes."""

    cluster: str = ""
    cluster_status: int = 0
    node_status: list[NodeStatusMetrics] = field(default_factory=list)