"""Deferred removal of dangling subnetworks, transfer zones and zone groups."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import networkx as nx
import structlog
from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from .graph_model import TransferZone
from .graph_orchestrator import GraphOrchestrator
from .settings import NetworkSettings, TransitSettings

logger = structlog.get_logger(__name__)


@dataclass
class CleanupReport:
    removed_subnetworks: int = 0
    removed_nodes: int = 0
    removed_links: int = 0
    removed_zones: int = 0
    removed_zone_groups: int = 0
    steps: List[str] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)


class CleanupState(TypedDict):
    removed_subnetworks: int
    removed_nodes: int
    removed_links: int
    removed_zones: int
    removed_zone_groups: int
    steps: List[str]


def remove_dangling_subnetworks(orchestrator: GraphOrchestrator, settings: NetworkSettings) -> Dict[str, int]:
    """Drop connected components outside the configured size window, per layer.

    Component size is the number of nodes. Links are treated as undirected
    and zone associations never keep a component alive.
    """
    below = settings.discard_subnetworks_below
    above = settings.discard_subnetworks_above
    stats = {"subnetworks": 0, "nodes": 0, "links": 0}

    for category, layer in list(orchestrator.network.layers.items()):
        graph = nx.Graph()
        graph.add_nodes_from(layer.nodes)
        graph.add_edges_from((link.node_a, link.node_b) for link in layer.links.values())
        components = sorted(nx.connected_components(graph), key=lambda nodes: (-len(nodes), min(nodes)))
        if not components:
            continue
        largest = components[0]

        for component in components:
            size = len(component)
            too_small = size < below
            too_large = above is not None and size > above
            if not (too_small or too_large):
                continue
            if settings.always_keep_largest_subnetwork and component is largest:
                continue
            removed_links = orchestrator.remove_nodes(category, component)
            stats["subnetworks"] += 1
            stats["nodes"] += size
            stats["links"] += len(removed_links)

        logger.info(
            "dangling_subnetworks_removed",
            category=category.value,
            components=len(components),
            remaining_nodes=len(layer.nodes),
            **stats,
        )
    return stats


def _has_valid_association(orchestrator: GraphOrchestrator, zone: TransferZone) -> bool:
    association = zone.association
    if association is None:
        return False
    layer = orchestrator.network.layers.get(association.category)
    if layer is None:
        return False
    if association.node_id is not None and association.node_id not in layer.nodes:
        return False
    if association.link_id is not None and association.link_id not in layer.links:
        return False
    return association.node_id is not None or association.link_id is not None


def remove_dangling_zones(orchestrator: GraphOrchestrator) -> int:
    """Remove transfer zones that no longer reference an existing node or link."""
    dangling = [
        zone.id for zone in orchestrator.zoning.zones.values() if not _has_valid_association(orchestrator, zone)
    ]
    for zone_id in dangling:
        orchestrator.remove_transfer_zone(zone_id)
    logger.info("dangling_zones_removed", removed=len(dangling), remaining=len(orchestrator.zoning.zones))
    return len(dangling)


def remove_dangling_zone_groups(orchestrator: GraphOrchestrator) -> int:
    """Remove zone groups without any member zone."""
    zones = orchestrator.zoning.zones
    dangling = [
        group.id
        for group in orchestrator.zoning.groups.values()
        if not any(zone_id in zones for zone_id in group.zone_ids)
    ]
    for group_id in dangling:
        orchestrator.remove_zone_group(group_id)
    logger.info("dangling_zone_groups_removed", removed=len(dangling), remaining=len(orchestrator.zoning.groups))
    return len(dangling)


class DanglingCleanup:
    """Runs the three cleanup steps in order: subnetworks, zones, zone groups.

    Each step only runs when its flag is set on the caller's settings, so the
    pass is a no-op with all flags off. Running it twice changes nothing the
    second time.
    """

    def __init__(self, network_settings: NetworkSettings, transit_settings: TransitSettings) -> None:
        self.network_settings = network_settings
        self.transit_settings = transit_settings
        self._orchestrator: Optional[GraphOrchestrator] = None

    def run(self, orchestrator: GraphOrchestrator) -> CleanupReport:
        self._orchestrator = orchestrator
        try:
            workflow = self._build_workflow()
            state = workflow.invoke(
                {
                    "removed_subnetworks": 0,
                    "removed_nodes": 0,
                    "removed_links": 0,
                    "removed_zones": 0,
                    "removed_zone_groups": 0,
                    "steps": [],
                }
            )
        finally:
            self._orchestrator = None
        report = CleanupReport(**state)
        logger.info("dangling_cleanup_done", **report.to_json())
        return report

    def _build_workflow(self):
        graph = StateGraph(CleanupState)
        graph.add_node("prune_subnetworks", self._prune_subnetworks)
        graph.add_node("prune_zones", self._prune_zones)
        graph.add_node("prune_zone_groups", self._prune_zone_groups)
        graph.add_edge(START, "prune_subnetworks")
        graph.add_edge("prune_subnetworks", "prune_zones")
        graph.add_edge("prune_zones", "prune_zone_groups")
        graph.add_edge("prune_zone_groups", END)
        return graph.compile()

    def _prune_subnetworks(self, state: CleanupState) -> Dict[str, Any]:
        if not self.network_settings.remove_dangling_subnetworks:
            return {}
        stats = remove_dangling_subnetworks(self._orchestrator, self.network_settings)
        return {
            "removed_subnetworks": stats["subnetworks"],
            "removed_nodes": stats["nodes"],
            "removed_links": stats["links"],
            "steps": state["steps"] + ["subnetworks"],
        }

    def _prune_zones(self, state: CleanupState) -> Dict[str, Any]:
        if not self.transit_settings.remove_dangling_zones:
            return {}
        return {
            "removed_zones": remove_dangling_zones(self._orchestrator),
            "steps": state["steps"] + ["zones"],
        }

    def _prune_zone_groups(self, state: CleanupState) -> Dict[str, Any]:
        if not self.transit_settings.remove_dangling_zone_groups:
            return {}
        return {
            "removed_zone_groups": remove_dangling_zone_groups(self._orchestrator),
            "steps": state["steps"] + ["zone_groups"],
        }
