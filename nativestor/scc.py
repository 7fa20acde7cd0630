"""Security context constraints that let topolvm run on OpenShift."""

from __future__ import annotations

from dataclasses import dataclass, field

from nativestor.api_types import ObjectMeta, TypeMeta

RUN_AS_ANY = "RunAsAny"
MUST_RUN_AS = "MustRunAs"

FS_TYPE_CONFIG_MAP = "configMap"
FS_TYPE_EMPTY_DIR = "emptyDir"
FS_TYPE_HOST_PATH = "hostPath"
FS_TYPE_SECRET = "secret"


@dataclass
class SecurityContextConstraints:
    """An OpenShift SecurityContextConstraints object."""

    type_meta: TypeMeta = field(default_factory=TypeMeta)
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    allow_privileged_container: bool = False
    allow_host_dir_volume_plugin: bool = False
    read_only_root_filesystem: bool = False
    allow_host_pid: bool = False
    allow_host_ipc: bool = False
    allow_host_network: bool = False
    allow_host_ports: bool = False
    required_drop_capabilities: list[str] = field(default_factory=list)
    default_add_capabilities: list[str] = field(default_factory=list)
    run_as_user: str = ""
    se_linux_context: str = ""
    fs_group: str = ""
    supplemental_groups: str = ""
    volumes: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)


def new_security_context_constraints(name: str, namespace: str) -> SecurityContextConstraints:
    """Constraints for the topolvm service accounts in *namespace*."""
    return SecurityContextConstraints(
        type_meta=TypeMeta(
            api_version="security.openshift.io/v1", kind="SecurityContextConstraints"
        ),
        metadata=ObjectMeta(name=name, namespace=namespace),
        allow_privileged_container=True,
        allow_host_dir_volume_plugin=True,
        read_only_root_filesystem=False,
        allow_host_pid=True,
        allow_host_ipc=True,
        allow_host_network=False,
        allow_host_ports=False,
        required_drop_capabilities=[],
        default_add_capabilities=[],
        run_as_user=RUN_AS_ANY,
        se_linux_context=MUST_RUN_AS,
        fs_group=MUST_RUN_AS,
        supplemental_groups=RUN_AS_ANY,
        volumes=[FS_TYPE_CONFIG_MAP, FS_TYPE_EMPTY_DIR, FS_TYPE_HOST_PATH, FS_TYPE_SECRET],
        users=[
            f"system:serviceaccount:{namespace}:topolvm-node",
            f"system:serviceaccount:{namespace}:topolvm-discover",
            f"system:serviceaccount:{namespace}:topolvm-preparevg",
        ],
    )