"""Settings reconciliation gate, first phase of every run."""

from typing import Any, Dict

from ..errors import ConfigurationError
from ..pipeline import PipelinePhase
from ..reconciler import reconcile_settings


class SettingsReconciliationPhase(PipelinePhase):
    phase_name = "reconciliation"
    requires = ("network_settings", "transit_settings")

    def run(self, context: Dict[str, Any]) -> Dict[str, Any]:
        result = reconcile_settings(context["network_settings"], context["transit_settings"])
        if not result.ok:
            raise ConfigurationError(result.messages)
        return {
            "reconciled_network_settings": result.network,
            "reconciled_transit_settings": result.transit,
            "reconciliation_messages": result.messages,
        }
