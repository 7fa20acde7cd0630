"""Resource types, owner matching, CSI pod-spec helpers and raw-device CSI services."""

__version__ = "0.1.0"