"""Helpers for building CSI pod specifications from operator settings."""

from __future__ import annotations

import re
from typing import Any, Optional

_DIGITS = re.compile(r"[0-9]+")
_MAX_PORT = 65535
_LABEL_HOSTNAME = "kubernetes.io/hostname"


class PortConfigError(ValueError):
    """A configured port is not a valid port number."""


def get_port_from_config(data: dict[str, str], env: str, default_port: int) -> int:
    """The port configured under *env* in *data*, or *default_port*.

    A blank value yields the default; anything that is not a port number raises.
    """
    port = data.get(env, str(default_port))
    if not port.strip():
        return default_port
    if not _DIGITS.fullmatch(port):
        raise PortConfigError(f"failed to parse port value for {env!r}: {port!r}")
    value = int(port)
    if value > _MAX_PORT:
        raise PortConfigError(f"{port} port value is greater than 65535 for {env}.")
    return value


def apply_to_pod_spec(
    pod: dict[str, Any],
    node_affinity: Optional[dict[str, Any]],
    tolerations: list[dict[str, Any]],
) -> None:
    """Set the tolerations and node affinity of a pod spec in place."""
    pod["tolerations"] = tolerations
    pod["affinity"] = {"nodeAffinity": node_affinity}


def get_pod_anti_affinity(key: str, value: str) -> dict[str, Any]:
    """Anti-affinity keeping pods labelled *key*=*value* on different hosts."""
    return {
        "requiredDuringSchedulingIgnoredDuringExecution": [
            {
                "labelSelector": {
                    "matchExpressions": [
                        {"key": key, "operator": "In", "values": [value]}
                    ]
                },
                "topologyKey": _LABEL_HOSTNAME,
            }
        ]
    }