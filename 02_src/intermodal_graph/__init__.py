"""Intermodal network and zoning reader for OpenStreetMap sources."""

from .cleanup import CleanupReport, DanglingCleanup
from .coordinator import IntermodalPipeline
from .errors import BuildError, ConfigurationError, IntermodalError, UnsupportedOperationError
from .graph_model import NetworkGraph, ZoneGraph
from .graph_orchestrator import GraphOrchestrator
from .handoff import HandoffRecord, HandoffRecorder
from .modes import Mode, ModeCategory, ModeMatcher, ModeRegistry, default_mode_registry
from .pipeline import PipelinePhase, PipelineRunner
from .reconciler import ReconciliationResult, ensure_reconciled, reconcile_settings
from .settings import IntermodalSettings, NetworkSettings, TransitSettings, settings_from_env

__all__ = [
    "BuildError",
    "CleanupReport",
    "ConfigurationError",
    "DanglingCleanup",
    "GraphOrchestrator",
    "HandoffRecord",
    "HandoffRecorder",
    "IntermodalError",
    "IntermodalPipeline",
    "IntermodalSettings",
    "Mode",
    "ModeCategory",
    "ModeMatcher",
    "ModeRegistry",
    "NetworkGraph",
    "NetworkSettings",
    "PipelinePhase",
    "PipelineRunner",
    "ReconciliationResult",
    "TransitSettings",
    "UnsupportedOperationError",
    "ZoneGraph",
    "default_mode_registry",
    "ensure_reconciled",
    "reconcile_settings",
    "settings_from_env",
]
