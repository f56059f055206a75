"""Pipeline coordinator sequencing the intermodal phases."""

from typing import Any, Callable, Dict, List, Tuple

import structlog

from .builders import NetworkBuilder, OsmNetworkBuilder, OsmZoneBuilder, ZoneBuilder
from .decoder import decode_osm_source
from .errors import UnsupportedOperationError
from .graph_model import NetworkGraph, ZoneGraph
from .phases import (
    DanglingCleanupPhase,
    NetworkPhase,
    SettingsReconciliationPhase,
    TransitPhase,
    ValidationAndQAPhase,
)
from .pipeline import PipelinePhase, PipelineRunner
from .reconciler import ensure_reconciled
from .settings import NetworkSettings, TransitSettings

logger = structlog.get_logger(__name__)


class IntermodalPipeline:
    """Reads network and zoning from one source in a fixed order.

    reconcile -> network -> transit -> dangling cleanup -> validation. Every
    phase works on copies of the caller's settings; the caller's objects are
    left untouched.
    """

    def __init__(
        self,
        decoder_factory: Callable[[str], Any] = decode_osm_source,
        network_builder_factory: Callable[[NetworkSettings], NetworkBuilder] = OsmNetworkBuilder,
        zone_builder_factory: Callable[[TransitSettings], ZoneBuilder] = OsmZoneBuilder,
    ) -> None:
        self.decoder_factory = decoder_factory
        self.network_builder_factory = network_builder_factory
        self.zone_builder_factory = zone_builder_factory

    def build_phases(self) -> List[PipelinePhase]:
        return [
            SettingsReconciliationPhase(),
            NetworkPhase(self.network_builder_factory, self.decoder_factory),
            TransitPhase(self.zone_builder_factory, self.decoder_factory),
            DanglingCleanupPhase(),
            ValidationAndQAPhase(),
        ]

    def run_context(self, network_settings: NetworkSettings, transit_settings: TransitSettings) -> Dict[str, Any]:
        initial_context: Dict[str, Any] = {
            "network_settings": network_settings,
            "transit_settings": transit_settings,
        }
        runner = PipelineRunner(phases=self.build_phases())
        final_context = runner.run(initial_context)
        logger.info("intermodal_pipeline_done", **final_context["validation_report"])
        return final_context

    def run(self, network_settings: NetworkSettings, transit_settings: TransitSettings) -> Tuple[NetworkGraph, ZoneGraph]:
        final_context = self.run_context(network_settings, transit_settings)
        return final_context["network"], final_context["zoning"]

    def run_with_services(
        self, network_settings: NetworkSettings, transit_settings: TransitSettings
    ) -> Tuple[NetworkGraph, ZoneGraph]:
        """Network, zoning and routed services; services are not available yet."""
        ensure_reconciled(network_settings, transit_settings)
        logger.warning("services_not_supported")
        raise UnsupportedOperationError("run_with_services")
