from typing import Any, Dict

from ..cleanup import DanglingCleanup
from ..pipeline import PipelinePhase


class DanglingCleanupPhase(PipelinePhase):
    phase_name = "cleanup"
    requires = ("reconciled_network_settings", "reconciled_transit_settings", "orchestrator")

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        cleanup = DanglingCleanup(
            context["reconciled_network_settings"],
            context["reconciled_transit_settings"],
        )
        return {"cleanup_report": cleanup.run(context["orchestrator"])}
