"""CSI controller service that hands out whole raw block devices as volumes.

A volume is a free, available raw device whose status is set to the volume's
id. Devices are read from a store and written back through it.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from nativestor.api_types import RawDevice

_log = logging.getLogger("nativestor.csi.controller")

_GIB_SHIFT = 30
_NODE_LABEL = "node"


class StatusCode(enum.IntEnum):
    """Status codes of CSI calls."""

    OK = 0
    INVALID_ARGUMENT = 3
    NOT_FOUND = 5
    RESOURCE_EXHAUSTED = 8
    UNIMPLEMENTED = 12
    INTERNAL = 13


class CsiError(Exception):
    """A CSI call failed with a status code."""

    def __init__(self, code: StatusCode, message: str = "") -> None:
        super().__init__(f"{code.name}: {message}")
        self.code = code
        self.message = message


class AccessMode(enum.IntEnum):
    """Volume access modes."""

    UNKNOWN = 0
    SINGLE_NODE_WRITER = 1
    SINGLE_NODE_READER_ONLY = 2
    MULTI_NODE_READER_ONLY = 3
    MULTI_NODE_SINGLE_WRITER = 4
    MULTI_NODE_MULTI_WRITER = 5
    SINGLE_NODE_SINGLE_WRITER = 6
    SINGLE_NODE_MULTI_WRITER = 7


@dataclass
class VolumeCapability:
    """How a volume is to be accessed: as a block device or as a mount."""

    block: bool = False
    mount: bool = False
    fs_type: str = ""
    mount_flags: list[str] = field(default_factory=list)
    access_mode: Optional[AccessMode] = None


@dataclass
class CapacityRange:
    """Requested and maximum size of a volume in bytes; zero means unset."""

    required_bytes: int = 0
    limit_bytes: int = 0


@dataclass
class Topology:
    """Topology segments of a volume or node."""

    segments: dict[str, str] = field(default_factory=dict)


@dataclass
class TopologyRequirement:
    """Where a volume must or should be accessible."""

    requisite: list[Topology] = field(default_factory=list)
    preferred: list[Topology] = field(default_factory=list)


@dataclass
class CreateVolumeRequest:
    """Arguments of a volume creation."""

    name: str = ""
    capacity_range: Optional[CapacityRange] = None
    volume_capabilities: list[VolumeCapability] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)
    secrets: dict[str, str] = field(default_factory=dict)
    volume_content_source: Optional[Any] = None
    accessibility_requirements: Optional[TopologyRequirement] = None


@dataclass
class Volume:
    """A provisioned volume."""

    capacity_bytes: int = 0
    volume_id: str = ""
    accessible_topology: list[Topology] = field(default_factory=list)


@dataclass
class CreateVolumeResponse:
    """Result of a volume creation."""

    volume: Volume = field(default_factory=Volume)


@dataclass
class DeleteVolumeRequest:
    """Arguments of a volume deletion."""

    volume_id: str = ""
    secrets: dict[str, str] = field(default_factory=dict)


@dataclass
class ValidateVolumeCapabilitiesRequest:
    """Arguments of a capability validation."""

    volume_id: str = ""
    volume_context: dict[str, str] = field(default_factory=dict)
    volume_capabilities: list[VolumeCapability] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)
    secrets: dict[str, str] = field(default_factory=dict)


@dataclass
class ValidateVolumeCapabilitiesResponse:
    """The confirmed context, capabilities and parameters of a volume."""

    volume_context: dict[str, str] = field(default_factory=dict)
    volume_capabilities: list[VolumeCapability] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass
class GetCapacityRequest:
    """Arguments of a capacity query."""

    volume_capabilities: list[VolumeCapability] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)
    accessible_topology: Optional[Topology] = None


@dataclass
class GetCapacityResponse:
    """Free capacity and volume size bounds; bounds are None when unknown."""

    available_capacity: int = 0
    maximum_volume_size: Optional[int] = None
    minimum_volume_size: Optional[int] = None


@dataclass
class ControllerExpandVolumeRequest:
    """Arguments of a volume expansion."""

    volume_id: str = ""
    capacity_range: Optional[CapacityRange] = None
    secrets: dict[str, str] = field(default_factory=dict)


class RawDeviceStore(Protocol):
    """Source of raw devices and sink for their status updates."""

    def list(self) -> Iterable[RawDevice]: ...

    def update_status(self, device: RawDevice) -> Any: ...


def convert_request_capacity(request_bytes: int, limit_bytes: int) -> int:
    """The requested size rounded up to whole GiB, at least one.

    Raises ValueError for negative values or a request above the limit.
    """
    if request_bytes < 0:
        raise ValueError("required capacity must not be negative")
    if limit_bytes < 0:
        raise ValueError("capacity limit must not be negative")
    if limit_bytes != 0 and request_bytes > limit_bytes:
        raise ValueError(
            f"requested capacity exceeds limit capacity: "
            f"request={request_bytes} limit={limit_bytes}"
        )
    if request_bytes == 0:
        return 1
    return ((request_bytes - 1) >> _GIB_SHIFT) + 1


def _is_free(device: RawDevice) -> bool:
    return not device.status.name and device.spec.available


def _as_csi_error(err: Exception) -> CsiError:
    if isinstance(err, CsiError):
        return err
    return CsiError(StatusCode.INTERNAL, str(err))


class ControllerService:
    """The controller side of the raw device CSI driver."""

    def __init__(self, store: RawDeviceStore, topology_key: str) -> None:
        self.store = store
        self.topology_key = topology_key

    def _devices(self, node: Optional[str] = None) -> list[RawDevice]:
        devices = list(self.store.list())
        if node is None:
            return devices
        return [d for d in devices if d.metadata.labels.get(_NODE_LABEL) == node]

    def _max_capacity(self) -> tuple[str, int]:
        node, capacity = "", 0
        for device in self._devices():
            if not _is_free(device):
                continue
            if device.spec.size > capacity:
                capacity = device.spec.size
                node = device.spec.node_name
        return node, capacity

    def _allocate(self, node: str, request_gb: int) -> str:
        match: Optional[RawDevice] = None
        for device in self._devices(node):
            if not _is_free(device):
                continue
            if (device.spec.size >> _GIB_SHIFT) < request_gb:
                continue
            if match is None or device.spec.size < match.spec.size:
                match = device
        if match is None:
            raise CsiError(StatusCode.INTERNAL, "not found match device")
        device = match.deep_copy()
        volume_id = device.metadata.name
        device.status.name = volume_id
        self.store.update_status(device)
        return volume_id

    def _find_volume(self, volume_id: str) -> RawDevice:
        found: Optional[RawDevice] = None
        for device in self._devices():
            if device.status.name == volume_id:
                found = device
        if found is None:
            raise CsiError(StatusCode.NOT_FOUND, "")
        return found.deep_copy()

    def _node_from_requirements(self, requirements: TopologyRequirement) -> str:
        for group in (requirements.preferred, requirements.requisite):
            for topo in group:
                if self.topology_key in topo.segments:
                    return topo.segments[self.topology_key]
        raise CsiError(
            StatusCode.INVALID_ARGUMENT,
            f"cannot find key '{self.topology_key}' in accessibility_requirements",
        )

    @staticmethod
    def _check_capabilities(capabilities: list[VolumeCapability]) -> None:
        for capability in capabilities:
            if capability.block:
                _log.info("CreateVolume specifies volume capability access_type=block")
            elif capability.mount:
                _log.info(
                    "CreateVolume specifies volume capability access_type=mount "
                    "fs_type=%s flags=%s",
                    capability.fs_type,
                    capability.mount_flags,
                )
            else:
                raise CsiError(StatusCode.INVALID_ARGUMENT, "unknown or empty access_type")
            mode = capability.access_mode
            if mode is not None:
                _log.info("CreateVolume specifies volume capability access_mode=%s", mode.name)
                if mode is not AccessMode.SINGLE_NODE_WRITER:
                    raise CsiError(
                        StatusCode.INVALID_ARGUMENT, f"unsupported access mode: {mode.name}"
                    )

    def create_volume(self, request: CreateVolumeRequest) -> CreateVolumeResponse:
        """Bind the smallest fitting free device on the chosen node to a new volume."""
        capacity_range = request.capacity_range or CapacityRange()
        _log.info(
            "CreateVolume called name=%s required=%d limit=%d num_secrets=%d",
            request.name,
            capacity_range.required_bytes,
            capacity_range.limit_bytes,
            len(request.secrets),
        )
        if request.volume_content_source is not None:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "volume_content_source not supported")
        if not request.volume_capabilities:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "no volume capabilities are provided")
        self._check_capabilities(request.volume_capabilities)

        try:
            request_gb = convert_request_capacity(
                capacity_range.required_bytes, capacity_range.limit_bytes
            )
        except ValueError as err:
            raise CsiError(StatusCode.INVALID_ARGUMENT, str(err)) from err

        requirements = request.accessibility_requirements
        if requirements is None:
            _log.info("decide node because accessibility_requirements not found")
            try:
                node, capacity = self._max_capacity()
            except Exception as err:
                raise CsiError(
                    StatusCode.INTERNAL, f"failed to get max capacity node {err}"
                ) from err
            if not node:
                raise CsiError(StatusCode.INTERNAL, "can not find any node")
            if capacity < (request_gb << _GIB_SHIFT):
                raise CsiError(
                    StatusCode.RESOURCE_EXHAUSTED,
                    f"can not find enough volume space {capacity}",
                )
        else:
            node = self._node_from_requirements(requirements)

        if not request.name:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "invalid name")

        try:
            volume_id = self._allocate(node, request_gb)
        except Exception as err:
            raise _as_csi_error(err) from err

        return CreateVolumeResponse(
            volume=Volume(
                capacity_bytes=request_gb << _GIB_SHIFT,
                volume_id=volume_id,
                accessible_topology=[Topology(segments={self.topology_key: node})],
            )
        )

    def delete_volume(self, request: DeleteVolumeRequest) -> None:
        """Release the device bound to the volume."""
        _log.info(
            "DeleteVolume called volume_id=%s num_secrets=%d",
            request.volume_id,
            len(request.secrets),
        )
        if not request.volume_id:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "volume_id is not provided")
        try:
            device = self._find_volume(request.volume_id)
            device.status.name = ""
            self.store.update_status(device)
        except Exception as err:
            _log.error("DeleteVolume failed volume_id=%s: %s", request.volume_id, err)
            raise _as_csi_error(err) from err

    def validate_volume_capabilities(
        self, request: ValidateVolumeCapabilitiesRequest
    ) -> ValidateVolumeCapabilitiesResponse:
        """Confirm the request for any existing volume."""
        _log.info(
            "ValidateVolumeCapabilities called volume_id=%s num_secrets=%d",
            request.volume_id,
            len(request.secrets),
        )
        if not request.volume_id:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "volume id is nil")
        if not request.volume_capabilities:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "volume capabilities are empty")
        try:
            self._find_volume(request.volume_id)
        except LookupError as err:
            raise CsiError(
                StatusCode.NOT_FOUND,
                f"LogicalVolume for volume id {request.volume_id} is not found",
            ) from err
        except Exception as err:
            raise CsiError(StatusCode.INTERNAL, str(err)) from err
        return ValidateVolumeCapabilitiesResponse(
            volume_context=request.volume_context,
            volume_capabilities=request.volume_capabilities,
            parameters=request.parameters,
        )

    def get_capacity(self, request: GetCapacityRequest) -> GetCapacityResponse:
        """Free capacity and volume size bounds on the node of the topology."""
        topology = request.accessible_topology
        _log.info("GetCapacity called parameters=%s", request.parameters)
        if request.volume_capabilities:
            _log.info("capability argument is not nil, but it is ignored")
        if topology is None:
            raise CsiError(StatusCode.INVALID_ARGUMENT, "must provide topology info")
        node = topology.segments.get(self.topology_key)
        if node is None:
            _log.error("%s is not found in req.AccessibleTopology", self.topology_key)
            return GetCapacityResponse(available_capacity=0)
        try:
            available, maximum, minimum = self._capacity_of(node)
        except Exception as err:
            raise CsiError(StatusCode.INTERNAL, str(err)) from err
        return GetCapacityResponse(
            available_capacity=available,
            maximum_volume_size=maximum,
            minimum_volume_size=minimum,
        )

    def _capacity_of(self, node: str) -> tuple[int, int, int]:
        available = maximum = minimum = 0
        for index, device in enumerate(self._devices(node)):
            if not _is_free(device):
                continue
            size = device.spec.size
            available += size
            if index == 0:
                minimum = size
            maximum = max(maximum, size)
            minimum = min(minimum, size)
        _log.info(
            "get capacity by topology label availableCapacity=%d "
            "maximumVolumeSize=%d minimumVolumeSize=%d",
            available,
            maximum,
            minimum,
        )
        return available, maximum, minimum

    def controller_get_capabilities(self) -> list[str]:
        """The controller capabilities this service offers."""
        return ["CREATE_DELETE_VOLUME", "GET_CAPACITY"]

    def controller_expand_volume(self, request: ControllerExpandVolumeRequest) -> None:
        """Volumes cannot be expanded; always raises UNIMPLEMENTED."""
        capacity_range = request.capacity_range or CapacityRange()
        _log.info(
            "ControllerExpandVolume called volumeID=%s required=%d limit=%d",
            request.volume_id,
            capacity_range.required_bytes,
            capacity_range.limit_bytes,
        )
        raise CsiError(StatusCode.UNIMPLEMENTED, "")