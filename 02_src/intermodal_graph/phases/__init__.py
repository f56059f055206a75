"""Pipeline phases of the intermodal OSM reader."""

from .cleanup import DanglingCleanupPhase
from .network import NetworkPhase
from .reconciliation import SettingsReconciliationPhase
from .transit import TransitPhase
from .validation import ValidationAndQAPhase

__all__ = [
    "SettingsReconciliationPhase",
    "NetworkPhase",
    "TransitPhase",
    "DanglingCleanupPhase",
    "ValidationAndQAPhase",
]
