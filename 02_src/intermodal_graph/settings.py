"""Network and transit settings for the intermodal pipeline."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Set, Tuple

from dotenv import load_dotenv

from .modes import ModeCategory, ModeRegistry, default_mode_registry

# (min_lon, min_lat, max_lon, max_lat)
BoundingBox = Tuple[float, float, float, float]
# ("node" | "way" | "relation", osm id); OSM numbers each entity type separately
EntityKey = Tuple[str, int]

DEFAULT_DISCARD_SUBNETWORKS_BELOW = 20
DEFAULT_STOP_TO_NETWORK_SEARCH_RADIUS_M = 25.0
DEFAULT_STATION_TO_ZONE_SEARCH_RADIUS_M = 35.0


@dataclass
class NetworkSettings:
    country: str
    input_source: Optional[str] = None
    road_active: bool = True
    rail_active: bool = False
    water_active: bool = False
    mode_registry: ModeRegistry = field(default_factory=default_mode_registry)
    remove_dangling_subnetworks: bool = True
    discard_subnetworks_below: int = DEFAULT_DISCARD_SUBNETWORKS_BELOW
    discard_subnetworks_above: Optional[int] = None
    always_keep_largest_subnetwork: bool = True
    bounding_box: Optional[BoundingBox] = None
    excluded_way_ids: FrozenSet[int] = frozenset()
    way_mode_overrides: Dict[int, FrozenSet[str]] = field(default_factory=dict)

    def active_categories(self) -> Set[ModeCategory]:
        active = set()
        if self.road_active:
            active.add(ModeCategory.ROAD)
        if self.rail_active:
            active.add(ModeCategory.RAIL)
        if self.water_active:
            active.add(ModeCategory.WATER)
        return active

    def is_category_active(self, category: ModeCategory) -> bool:
        return category in self.active_categories()

    def activated_registry(self) -> ModeRegistry:
        """Registry limited to the modes of the active categories."""
        return self.mode_registry.restrict(self.active_categories())

    def summary(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "input_source": self.input_source,
            "active_categories": sorted(category.value for category in self.active_categories()),
            "remove_dangling_subnetworks": self.remove_dangling_subnetworks,
            "discard_subnetworks_below": self.discard_subnetworks_below,
            "discard_subnetworks_above": self.discard_subnetworks_above,
            "always_keep_largest_subnetwork": self.always_keep_largest_subnetwork,
        }


@dataclass
class TransitSettings:
    country: str
    input_source: Optional[str] = None
    parser_active: bool = True
    remove_dangling_zones: bool = True
    remove_dangling_zone_groups: bool = True
    stop_to_network_search_radius_m: float = DEFAULT_STOP_TO_NETWORK_SEARCH_RADIUS_M
    station_to_zone_search_radius_m: float = DEFAULT_STATION_TO_ZONE_SEARCH_RADIUS_M
    excluded_entity_ids: FrozenSet[EntityKey] = frozenset()
    zone_mode_overrides: Dict[EntityKey, FrozenSet[str]] = field(default_factory=dict)

    def summary(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "input_source": self.input_source,
            "parser_active": self.parser_active,
            "remove_dangling_zones": self.remove_dangling_zones,
            "remove_dangling_zone_groups": self.remove_dangling_zone_groups,
            "stop_to_network_search_radius_m": self.stop_to_network_search_radius_m,
            "station_to_zone_search_radius_m": self.station_to_zone_search_radius_m,
        }


@dataclass
class IntermodalSettings:
    network: NetworkSettings
    transit: TransitSettings

    @classmethod
    def for_source(cls, input_source: Optional[str], country: str) -> "IntermodalSettings":
        """Settings pair sharing one source, with rail and water parsing on."""
        network = NetworkSettings(
            country=country,
            input_source=input_source,
            rail_active=True,
            water_active=True,
        )
        transit = TransitSettings(country=country, input_source=input_source)
        return cls(network=network, transit=transit)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def settings_from_env() -> IntermodalSettings:
    """Build settings from ``INTERMODAL_*`` variables (``.env`` is honoured)."""
    load_dotenv()
    country = os.getenv("INTERMODAL_COUNTRY", "")
    input_source = os.getenv("INTERMODAL_INPUT_SOURCE") or None
    settings = IntermodalSettings.for_source(input_source, country)

    network = settings.network
    network.road_active = _env_flag("INTERMODAL_ROAD", network.road_active)
    network.rail_active = _env_flag("INTERMODAL_RAIL", network.rail_active)
    network.water_active = _env_flag("INTERMODAL_WATER", network.water_active)
    keep_dangling = _env_flag("INTERMODAL_KEEP_DANGLING", False)
    network.remove_dangling_subnetworks = not keep_dangling
    settings.transit.remove_dangling_zones = not keep_dangling
    settings.transit.remove_dangling_zone_groups = not keep_dangling

    discard_below = os.getenv("INTERMODAL_DISCARD_SUBNETWORKS_BELOW")
    if discard_below:
        network.discard_subnetworks_below = int(discard_below)
    return settings
