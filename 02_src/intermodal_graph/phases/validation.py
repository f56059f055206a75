"""Validation and QA phase."""

from typing import Any, Dict, List

import structlog

from ..graph_orchestrator import GraphOrchestrator
from ..pipeline import PipelinePhase

logger = structlog.get_logger(__name__)


class ValidationAndQAPhase(PipelinePhase):
    phase_name = "validation"
    requires = ("orchestrator",)

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        orchestrator: GraphOrchestrator = context["orchestrator"]
        network = orchestrator.network
        zoning = orchestrator.zoning
        warnings: List[str] = []

        for category, layer in network.layers.items():
            for link in layer.links.values():
                for node_id in (link.node_a, link.node_b):
                    if node_id not in layer.nodes:
                        warnings.append(f"link {link.id} uses node {node_id} outside the {category.value} layer")

        unassociated = 0
        for zone in zoning.zones.values():
            association = zone.association
            if association is None:
                unassociated += 1
                continue
            layer = network.layers.get(association.category)
            target = association.node_id or association.link_id
            if layer is None or (target not in layer.nodes and target not in layer.links):
                warnings.append(f"zone {zone.id} references missing {association.category.value} element {target}")

        for group in zoning.groups.values():
            missing = sorted(zone_id for zone_id in group.zone_ids if zone_id not in zoning.zones)
            if missing:
                warnings.append(f"group {group.id} references missing zones {', '.join(missing)}")

        for warning in warnings:
            logger.warning("validation_warning", detail=warning)

        qa_report = {
            "layer_count": len(network.layers),
            "node_count": network.node_count,
            "link_count": network.link_count,
            "segment_count": network.segment_count,
            "zone_count": len(zoning.zones),
            "zone_group_count": len(zoning.groups),
            "unassociated_zone_count": unassociated,
            "warnings": warnings,
        }
        return {"validation_report": qa_report}
