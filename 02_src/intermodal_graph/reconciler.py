"""Reconciliation of network and transit settings before parsing."""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import structlog

from .errors import ConfigurationError
from .settings import NetworkSettings, TransitSettings

logger = structlog.get_logger(__name__)


@dataclass
class ReconciliationResult:
    ok: bool
    network: Optional[NetworkSettings] = None
    transit: Optional[TransitSettings] = None
    messages: List[str] = field(default_factory=list)


def reconcile_settings(network: NetworkSettings, transit: TransitSettings) -> ReconciliationResult:
    """Check that both phases agree on country, input and categories.

    The arguments are never mutated. On success the result carries copies,
    corrected where a one-sided input source could be salvaged.
    """
    messages: List[str] = []

    if network.country != transit.country:
        message = (
            "network and transit settings must use the same country, "
            f"found '{network.country}' and '{transit.country}'"
        )
        logger.error("country_mismatch", network=network.country, transit=transit.country)
        return ReconciliationResult(ok=False, messages=[message])

    if network.input_source != transit.input_source:
        logger.warning(
            "input_source_mismatch",
            network=network.input_source,
            transit=transit.input_source,
        )
        if network.input_source and not transit.input_source:
            transit = replace(transit, input_source=network.input_source)
            messages.append(f"salvaged: transit input source set to '{network.input_source}'")
            logger.warning("input_source_salvaged", target="transit", source=network.input_source)
        elif transit.input_source and not network.input_source:
            network = replace(network, input_source=transit.input_source)
            messages.append(f"salvaged: network input source set to '{transit.input_source}'")
            logger.warning("input_source_salvaged", target="network", source=transit.input_source)
        else:
            message = (
                "network and transit settings must use the same input source, "
                f"found '{network.input_source}' and '{transit.input_source}'"
            )
            logger.error("input_source_unsalvageable")
            return ReconciliationResult(ok=False, messages=messages + [message])
    elif not network.input_source:
        logger.error("input_source_missing")
        return ReconciliationResult(ok=False, messages=["no input source set on either settings"])

    if not network.active_categories():
        message = "at least one of road, rail or water must be active in the network settings"
        logger.error("no_active_category")
        return ReconciliationResult(ok=False, messages=messages + [message])

    return ReconciliationResult(
        ok=True, network=replace(network), transit=replace(transit), messages=messages
    )


def ensure_reconciled(
    network: NetworkSettings, transit: TransitSettings
) -> Tuple[NetworkSettings, TransitSettings]:
    result = reconcile_settings(network, transit)
    if not result.ok or result.network is None or result.transit is None:
        raise ConfigurationError(result.messages)
    return result.network, result.transit
