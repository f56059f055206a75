from typing import Iterable

from typing_extensions import Protocol

from ..decoder import DecodedEntity
from ..graph_model import NetworkGraph, ZoneGraph
from ..graph_orchestrator import GraphOrchestrator
from ..handoff import HandoffRecord, HandoffRecorder
from ..modes import ModeMatcher
from .network import OsmNetworkBuilder
from .zoning import OsmZoneBuilder


class NetworkBuilder(Protocol):
    def build(
        self,
        entities: Iterable[DecodedEntity],
        orchestrator: GraphOrchestrator,
        recorder: HandoffRecorder,
    ) -> NetworkGraph:
        ...


class ZoneBuilder(Protocol):
    def build(
        self,
        entities: Iterable[DecodedEntity],
        orchestrator: GraphOrchestrator,
        handoff: HandoffRecord,
        matcher: ModeMatcher,
    ) -> ZoneGraph:
        ...


__all__ = [
    "NetworkBuilder",
    "ZoneBuilder",
    "OsmNetworkBuilder",
    "OsmZoneBuilder",
]
