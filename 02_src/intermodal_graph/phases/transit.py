"""Transit phase: builds the zone graph on top of the finished network."""

from dataclasses import replace
from typing import Any, Callable, Dict

from ..builders import OsmZoneBuilder, ZoneBuilder
from ..decoder import decode_osm_source
from ..graph_orchestrator import GraphOrchestrator
from ..handoff import HandoffRecord
from ..modes import ModeMatcher
from ..pipeline import PipelinePhase
from ..settings import TransitSettings


class TransitPhase(PipelinePhase):
    phase_name = "transit"
    requires = ("reconciled_transit_settings", "orchestrator", "handoff")

    def __init__(
        self,
        builder_factory: Callable[[TransitSettings], ZoneBuilder] = OsmZoneBuilder,
        decoder_factory: Callable[[str], Any] = decode_osm_source,
    ) -> None:
        self._builder_factory = builder_factory
        self._decoder_factory = decoder_factory

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        settings: TransitSettings = context["reconciled_transit_settings"]
        orchestrator: GraphOrchestrator = context["orchestrator"]
        handoff: HandoffRecord = context["handoff"]

        # zone and group removal waits for the cleanup pass
        build_settings = replace(
            settings,
            parser_active=True,
            remove_dangling_zones=False,
            remove_dangling_zone_groups=False,
        )
        matcher = ModeMatcher(handoff.activated_registry())
        builder = self._builder_factory(build_settings)
        zoning = builder.build(self._decoder_factory(build_settings.input_source), orchestrator, handoff, matcher)
        return {"zoning": zoning, "handoff": None}
