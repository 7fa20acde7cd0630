"""CSI identity service of the raw device driver."""

from __future__ import annotations

import logging
from dataclasses import dataclass

_log = logging.getLogger("nativestor.csi.identity")

CONTROLLER_SERVICE = "CONTROLLER_SERVICE"
VOLUME_ACCESSIBILITY_CONSTRAINTS = "VOLUME_ACCESSIBILITY_CONSTRAINTS"


@dataclass(frozen=True)
class PluginInfo:
    """Name and vendor version of the plugin."""

    name: str
    vendor_version: str


class IdentityService:
    """Answers identity calls: plugin info, capabilities and readiness."""

    def __init__(self, plugin_name: str, version: str) -> None:
        self.plugin_name = plugin_name
        self.version = version

    def get_plugin_info(self) -> PluginInfo:
        """The plugin's name and version."""
        _log.info("GetPluginInfo")
        return PluginInfo(name=self.plugin_name, vendor_version=self.version)

    def get_plugin_capabilities(self) -> list[str]:
        """The services the plugin provides."""
        _log.info("GetPluginCapabilities")
        return [CONTROLLER_SERVICE, VOLUME_ACCESSIBILITY_CONSTRAINTS]

    def probe(self) -> bool:
        """Whether the plugin is ready; it always is."""
        _log.info("Probe")
        return True