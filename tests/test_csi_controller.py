import pytest

from nativestor.api_types import ObjectMeta, RawDevice, RawDeviceSpec, RawDeviceStatus
from nativestor.csi_controller import (
    AccessMode,
    CapacityRange,
    ControllerExpandVolumeRequest,
    ControllerService,
    CreateVolumeRequest,
    CsiError,
    DeleteVolumeRequest,
    GetCapacityRequest,
    StatusCode,
    Topology,
    TopologyRequirement,
    ValidateVolumeCapabilitiesRequest,
    VolumeCapability,
    convert_request_capacity,
)

GIB = 1 << 30
KEY = "topology/node"


def make_device(name, node, size, available=True, used=""):
    return RawDevice(
        metadata=ObjectMeta(name=name, labels={"node": node}),
        spec=RawDeviceSpec(node_name=node, size=size, available=available),
        status=RawDeviceStatus(name=used),
    )


class FakeStore:
    def __init__(self, devices, fail_update=False):
        self.devices = devices
        self.updates = []
        self.fail_update = fail_update

    def list(self):
        return list(self.devices)

    def update_status(self, device):
        if self.fail_update:
            raise RuntimeError("update failed")
        self.updates.append(device)
        return device


def block_request(name="pvc-a", required=GIB, topology=None, **kwargs):
    return CreateVolumeRequest(
        name=name,
        capacity_range=CapacityRange(required_bytes=required),
        volume_capabilities=[VolumeCapability(block=True)],
        accessibility_requirements=topology,
        **kwargs,
    )


def on_node(node):
    return TopologyRequirement(preferred=[Topology(segments={KEY: node})])


def test_convert_request_capacity_rounds_up():
    assert convert_request_capacity(0, 0) == 1
    assert convert_request_capacity(1, 0) == 1
    assert convert_request_capacity(GIB, 0) == 1
    assert convert_request_capacity(GIB + 1, 0) == 2


@pytest.mark.parametrize("req,limit", [(-1, 0), (0, -1), (GIB + 1, GIB)])
def test_convert_request_capacity_errors(req, limit):
    with pytest.raises(ValueError):
        convert_request_capacity(req, limit)


def test_create_volume_picks_smallest_fitting_device():
    store = FakeStore([
        make_device("big", "n1", 10 * GIB),
        make_device("small", "n1", 3 * GIB),
        make_device("tiny", "n1", GIB // 2),
        make_device("other", "n2", 2 * GIB),
        make_device("taken", "n1", 2 * GIB, used="taken"),
    ])
    service = ControllerService(store, KEY)
    resp = service.create_volume(block_request(topology=on_node("n1")))
    assert resp.volume.volume_id == "small"
    assert resp.volume.capacity_bytes == GIB
    assert resp.volume.accessible_topology[0].segments == {KEY: "n1"}
    assert [d.status.name for d in store.updates] == ["small"]
    assert store.devices[1].status.name == ""


def test_create_volume_without_topology_uses_largest_node():
    store = FakeStore([make_device("a", "n1", 2 * GIB), make_device("b", "n2", 5 * GIB)])
    service = ControllerService(store, KEY)
    resp = service.create_volume(block_request(required=4 * GIB))
    assert resp.volume.volume_id == "b"
    assert resp.volume.accessible_topology[0].segments[KEY] == "n2"


def test_create_volume_uses_requisite_when_no_preferred():
    store = FakeStore([make_device("a", "n1", 2 * GIB)])
    service = ControllerService(store, KEY)
    req = TopologyRequirement(requisite=[Topology(segments={KEY: "n1"})])
    assert service.create_volume(block_request(topology=req)).volume.volume_id == "a"


def test_create_volume_not_enough_space():
    store = FakeStore([make_device("a", "n1", GIB)])
    with pytest.raises(CsiError) as info:
        ControllerService(store, KEY).create_volume(block_request(required=2 * GIB))
    assert info.value.code is StatusCode.RESOURCE_EXHAUSTED


def test_create_volume_no_node():
    with pytest.raises(CsiError) as info:
        ControllerService(FakeStore([]), KEY).create_volume(block_request())
    assert info.value.code is StatusCode.INTERNAL
    assert info.value.message == "can not find any node"


@pytest.mark.parametrize(
    "request_obj",
    [
        block_request(volume_content_source=object()),
        CreateVolumeRequest(name="x", volume_capabilities=[]),
        CreateVolumeRequest(name="x", volume_capabilities=[VolumeCapability()]),
        CreateVolumeRequest(
            name="x",
            volume_capabilities=[
                VolumeCapability(block=True, access_mode=AccessMode.MULTI_NODE_MULTI_WRITER)
            ],
        ),
        block_request(topology=TopologyRequirement(preferred=[Topology(segments={"x": "n1"})])),
        block_request(name="", topology=on_node("n1")),
        CreateVolumeRequest(
            name="x",
            capacity_range=CapacityRange(required_bytes=-1),
            volume_capabilities=[VolumeCapability(mount=True)],
        ),
    ],
)
def test_create_volume_invalid_arguments(request_obj):
    store = FakeStore([make_device("a", "n1", 2 * GIB)])
    with pytest.raises(CsiError) as info:
        ControllerService(store, KEY).create_volume(request_obj)
    assert info.value.code is StatusCode.INVALID_ARGUMENT
    assert store.updates == []


def test_create_volume_no_match_and_update_failure():
    store = FakeStore([make_device("a", "n1", GIB // 2)])
    with pytest.raises(CsiError) as info:
        ControllerService(store, KEY).create_volume(block_request(topology=on_node("n1")))
    assert info.value.message == "not found match device"

    failing = FakeStore([make_device("a", "n1", GIB)], fail_update=True)
    with pytest.raises(CsiError) as info:
        ControllerService(failing, KEY).create_volume(block_request(topology=on_node("n1")))
    assert info.value.code is StatusCode.INTERNAL
    assert info.value.message == "update failed"


def test_delete_volume_releases_device():
    store = FakeStore([make_device("a", "n1", GIB, used="a")])
    ControllerService(store, KEY).delete_volume(DeleteVolumeRequest(volume_id="a"))
    assert len(store.updates) == 1
    assert store.updates[0].status.name == ""
    assert store.updates[0].metadata.name == "a"


def test_delete_volume_errors():
    service = ControllerService(FakeStore([]), KEY)
    with pytest.raises(CsiError) as info:
        service.delete_volume(DeleteVolumeRequest(volume_id=""))
    assert info.value.code is StatusCode.INVALID_ARGUMENT
    with pytest.raises(CsiError) as info:
        service.delete_volume(DeleteVolumeRequest(volume_id="missing"))
    assert info.value.code is StatusCode.NOT_FOUND


def test_validate_volume_capabilities():
    store = FakeStore([make_device("a", "n1", GIB, used="a")])
    service = ControllerService(store, KEY)
    caps = [VolumeCapability(block=True)]
    resp = service.validate_volume_capabilities(
        ValidateVolumeCapabilitiesRequest(
            volume_id="a", volume_context={"k": "v"}, volume_capabilities=caps
        )
    )
    assert resp.volume_context == {"k": "v"}
    assert resp.volume_capabilities == caps

    with pytest.raises(CsiError) as info:
        service.validate_volume_capabilities(
            ValidateVolumeCapabilitiesRequest(volume_id="zz", volume_capabilities=caps)
        )
    assert info.value.code is StatusCode.INTERNAL
    with pytest.raises(CsiError) as info:
        service.validate_volume_capabilities(ValidateVolumeCapabilitiesRequest(volume_id="a"))
    assert info.value.code is StatusCode.INVALID_ARGUMENT


def test_get_capacity_on_node():
    store = FakeStore([
        make_device("a", "n1", 2 * GIB),
        make_device("b", "n1", 5 * GIB),
        make_device("c", "n1", 9 * GIB, used="c"),
        make_device("d", "n2", 7 * GIB),
    ])
    resp = ControllerService(store, KEY).get_capacity(
        GetCapacityRequest(accessible_topology=Topology(segments={KEY: "n1"}))
    )
    assert resp.available_capacity == 2 * GIB + 5 * GIB
    assert resp.maximum_volume_size == 5 * GIB
    assert resp.minimum_volume_size == 2 * GIB


def test_get_capacity_without_key_or_topology():
    service = ControllerService(FakeStore([make_device("a", "n1", GIB)]), KEY)
    resp = service.get_capacity(GetCapacityRequest(accessible_topology=Topology()))
    assert resp.available_capacity == 0
    assert resp.maximum_volume_size is None
    with pytest.raises(CsiError) as info:
        service.get_capacity(GetCapacityRequest())
    assert info.value.code is StatusCode.INVALID_ARGUMENT


def test_capabilities_and_expand():
    service = ControllerService(FakeStore([]), KEY)
    assert service.controller_get_capabilities() == ["CREATE_DELETE_VOLUME", "GET_CAPACITY"]
    with pytest.raises(CsiError) as info:
        service.controller_expand_volume(ControllerExpandVolumeRequest(volume_id="a"))
    assert info.value.code is StatusCode.UNIMPLEMENTED