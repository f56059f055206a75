"""Network phase: builds the network graph and the handoff record."""

from dataclasses import replace
from typing import Any, Callable, Dict

import structlog

from ..builders import NetworkBuilder, OsmNetworkBuilder
from ..decoder import decode_osm_source
from ..graph_orchestrator import GraphOrchestrator
from ..handoff import HandoffRecorder
from ..pipeline import PipelinePhase
from ..settings import NetworkSettings

logger = structlog.get_logger(__name__)


class NetworkPhase(PipelinePhase):
    """Runs the network builder with subnetwork removal deferred to cleanup."""

    phase_name = "network"
    requires = ("reconciled_network_settings",)

    def __init__(
        self,
        builder_factory: Callable[[NetworkSettings], NetworkBuilder] = OsmNetworkBuilder,
        decoder_factory: Callable[[str], Any] = decode_osm_source,
    ) -> None:
        self._builder_factory = builder_factory
        self._decoder_factory = decoder_factory

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        settings: NetworkSettings = context["reconciled_network_settings"]
        orchestrator: GraphOrchestrator = context.get("orchestrator") or GraphOrchestrator()

        build_settings = replace(settings, remove_dangling_subnetworks=False)
        recorder = HandoffRecorder(network_settings=build_settings)
        builder = self._builder_factory(build_settings)
        network = builder.build(self._decoder_factory(build_settings.input_source), orchestrator, recorder)
        handoff = recorder.freeze()

        logger.info(
            "handoff_recorded",
            layers=sorted(category.value for category in handoff.layers),
            bounding_box=handoff.bounding_box,
        )
        return {"orchestrator": orchestrator, "network": network, "handoff": handoff}
