"""Zone graph builder for OSM platforms, stop positions, stations and stop areas."""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import structlog
from shapely.geometry import LineString, MultiPoint, Point
from shapely.strtree import STRtree

from ..decoder import DecodedEntity, DecodedNode, DecodedRelation, DecodedWay
from ..graph_model import Link, TransferZone, ZoneAssociation, ZoneGraph
from ..graph_orchestrator import GraphOrchestrator
from ..handoff import HandoffRecord
from ..modes import ModeCategory, ModeMatcher
from ..settings import TransitSettings

logger = structlog.get_logger(__name__)

METERS_PER_DEGREE_LAT = 110540.0
METERS_PER_DEGREE_LON = 111320.0

PT_MODE_TAGS = (
    "bus",
    "trolleybus",
    "coach",
    "share_taxi",
    "tram",
    "train",
    "light_rail",
    "subway",
    "monorail",
    "funicular",
    "ferry",
)
ZONE_PROPERTY_TAGS = ("ref", "local_ref", "network", "operator")


def zone_source_kind(tags: Dict[str, str]) -> Optional[Tuple[str, Tuple[str, ...]]]:
    """Zone kind and default mode tags of a transfer zone source, None otherwise."""
    public_transport = tags.get("public_transport")
    railway = tags.get("railway")
    if tags.get("highway") == "bus_stop":
        return "platform", ("bus",)
    if railway == "platform":
        return "platform", ("train",)
    if tags.get("amenity") == "ferry_terminal":
        return "platform", ("ferry",)
    if public_transport == "platform":
        return "platform", ()
    if railway == "tram_stop":
        return "stop_position", ("tram",)
    if railway in {"halt", "stop"}:
        return "stop_position", ("train",)
    if public_transport == "stop_position":
        return "stop_position", ()
    return None


def is_station(tags: Dict[str, str]) -> bool:
    return tags.get("public_transport") == "station" or tags.get("railway") == "station"


def is_stop_area(tags: Dict[str, str]) -> bool:
    return tags.get("type") == "public_transport" and tags.get("public_transport") == "stop_area"


def explicit_modes(tags: Dict[str, str], defaults: Iterable[str]) -> Set[str]:
    """``<mode>=yes`` tags, or the defaults when there are none, minus ``<mode>=no``."""
    modes = {tag for tag in PT_MODE_TAGS if tags.get(tag) == "yes"}
    if not modes:
        modes = set(defaults)
    return modes - {tag for tag in PT_MODE_TAGS if tags.get(tag) == "no"}


class LocalProjection:
    """Equirectangular projection to metres around a reference latitude."""

    def __init__(self, reference_lat: float) -> None:
        self.kx = METERS_PER_DEGREE_LON * math.cos(math.radians(reference_lat))
        self.ky = METERS_PER_DEGREE_LAT

    def project(self, lon: float, lat: float) -> Tuple[float, float]:
        return lon * self.kx, lat * self.ky

    def degrees(self, meters: float) -> float:
        """Upper bound in degrees of a distance in metres."""
        return meters / max(min(self.kx, self.ky), 1.0)


@dataclass
class _ZoneSource:
    source_kind: str
    entity_id: int
    zone_kind: str
    lon: float
    lat: float
    modes: FrozenSet[str]
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class _StationSource:
    source_kind: str
    entity_id: int
    lon: float
    lat: float
    modes: FrozenSet[str]
    name: str = ""


class _LinkIndex:
    """Spatial and topological lookups over the links of the network graph."""

    def __init__(self, orchestrator: GraphOrchestrator, projection: LocalProjection) -> None:
        self.projection = projection
        self.incident: Dict[Tuple[ModeCategory, str], List[Link]] = defaultdict(list)
        self.internal: Dict[Tuple[ModeCategory, int], List[Link]] = defaultdict(list)
        self.links: List[Tuple[ModeCategory, Link]] = []
        geometries = []
        for category, link in orchestrator.network.iter_links():
            self.incident[(category, link.node_a)].append(link)
            if link.node_b != link.node_a:
                self.incident[(category, link.node_b)].append(link)
            for source_id in link.internal_source_ids():
                self.internal[(category, source_id)].append(link)
            if len(link.geometry) < 2:
                continue
            self.links.append((category, link))
            geometries.append(LineString([projection.project(lon, lat) for lon, lat in link.geometry]))
        self.geometries = geometries
        self.tree = STRtree(geometries) if geometries else None

    def nearest(self, lon: float, lat: float, radius_m: float) -> List[Tuple[float, ModeCategory, Link]]:
        """Links within ``radius_m``, closest first."""
        if self.tree is None:
            return []
        point = Point(self.projection.project(lon, lat))
        hits = self.tree.query(point.buffer(radius_m), predicate="intersects")
        found = []
        for index in hits:
            distance = self.geometries[index].distance(point)
            if distance <= radius_m:
                category, link = self.links[index]
                found.append((distance, category, link))
        found.sort(key=lambda item: (item[0], item[2].id))
        return found


class OsmZoneBuilder:
    """Creates transfer zones and zone groups and ties zones to the network.

    Zones are associated with network nodes or links through the
    ``ModeMatcher``; the network itself is only read, through the
    orchestrator and the handoff record.
    """

    def __init__(self, settings: TransitSettings) -> None:
        self.settings = settings

    def build(
        self,
        entities: Iterable[DecodedEntity],
        orchestrator: GraphOrchestrator,
        handoff: HandoffRecord,
        matcher: ModeMatcher,
    ) -> ZoneGraph:
        zone_sources: List[_ZoneSource] = []
        stations: List[_StationSource] = []
        stop_areas: List[DecodedRelation] = []
        locations: Dict[int, Tuple[float, float]] = {}
        skipped = 0
        excluded = self.settings.excluded_entity_ids

        for entity in entities:
            if isinstance(entity, DecodedNode):
                locations[entity.id] = (entity.lon, entity.lat)
                position = (entity.lon, entity.lat)
                source_kind = "node"
            elif isinstance(entity, DecodedWay):
                position = self._way_centroid(entity, locations)
                source_kind = "way"
            elif isinstance(entity, DecodedRelation):
                if is_stop_area(entity.tags) and ("relation", entity.id) not in excluded:
                    stop_areas.append(entity)
                continue
            else:
                continue

            if (source_kind, entity.id) in excluded or position is None:
                continue
            tags = entity.tags
            if is_station(tags):
                stations.append(
                    _StationSource(
                        source_kind,
                        entity.id,
                        position[0],
                        position[1],
                        frozenset(explicit_modes(tags, ("train",) if tags.get("railway") == "station" else ())),
                        tags.get("name", ""),
                    )
                )
            kind = zone_source_kind(tags)
            if kind is None:
                continue
            zone_kind, defaults = kind
            override = self.settings.zone_mode_overrides.get((source_kind, entity.id))
            modes = set(override) if override is not None else explicit_modes(tags, defaults)
            if not matcher.registry.resolve_all(modes):
                logger.debug("zone_source_without_modes", entity=entity.id, source_kind=source_kind)
                skipped += 1
                continue
            zone_sources.append(
                _ZoneSource(source_kind, entity.id, zone_kind, position[0], position[1], frozenset(modes), tags)
            )

        projection = LocalProjection(self._reference_lat(handoff, zone_sources))
        margin = projection.degrees(self.settings.stop_to_network_search_radius_m)
        index = _LinkIndex(orchestrator, projection)

        associated = 0
        for source in zone_sources:
            if not handoff.covers(source.lon, source.lat, margin=margin):
                logger.debug("zone_source_outside_network", entity=source.entity_id)
                skipped += 1
                continue
            zone = orchestrator.add_or_update_transfer_zone(
                source.source_kind,
                source.entity_id,
                source.zone_kind,
                source.lon,
                source.lat,
                source.modes,
                name=source.tags.get("name", ""),
                properties={tag: source.tags[tag] for tag in ZONE_PROPERTY_TAGS if tag in source.tags},
            )
            association = self.find_association(source, zone, handoff, matcher, index)
            if association is not None:
                orchestrator.associate_zone(zone.id, association)
                associated += 1

        grouped_stations = self._add_stop_areas(stop_areas, stations, orchestrator)
        self._add_station_groups(stations, grouped_stations, orchestrator, matcher, projection)

        zoning = orchestrator.zoning
        logger.info(
            "zoning_built",
            zones=len(zoning.zones),
            associated=associated,
            groups=len(zoning.groups),
            skipped=skipped,
        )

        if self.settings.remove_dangling_zones or self.settings.remove_dangling_zone_groups:
            from ..cleanup import remove_dangling_zone_groups, remove_dangling_zones

            if self.settings.remove_dangling_zones:
                remove_dangling_zones(orchestrator)
            if self.settings.remove_dangling_zone_groups:
                remove_dangling_zone_groups(orchestrator)
        return zoning

    def find_association(
        self,
        source: _ZoneSource,
        zone: TransferZone,
        handoff: HandoffRecord,
        matcher: ModeMatcher,
        index: _LinkIndex,
    ) -> Optional[ZoneAssociation]:
        if source.source_kind == "node":
            for category, node in sorted(handoff.nodes_for_source_id(source.entity_id), key=lambda item: item[0].value):
                incident = index.incident.get((category, node.id), [])
                if matcher.filter_compatible_links(zone.modes, incident, False):
                    return ZoneAssociation(category=category, node_id=node.id)

            for category in sorted(handoff.internal_categories(source.entity_id), key=lambda item: item.value):
                links = index.internal.get((category, source.entity_id), [])
                compatible = matcher.filter_compatible_links(zone.modes, links, False)
                if compatible:
                    link = min(compatible, key=lambda item: item.id)
                    return ZoneAssociation(category=category, link_id=link.id)

        nearby = index.nearest(source.lon, source.lat, self.settings.stop_to_network_search_radius_m)
        for allow_pseudo_match in (False, True):
            for _, category, link in nearby:
                if matcher.link_compatible(link, zone.modes, allow_pseudo_match):
                    if allow_pseudo_match:
                        logger.debug("zone_pseudo_matched", zone=zone.id, link=link.id)
                    return ZoneAssociation(category=category, link_id=link.id)
        return None

    def _add_stop_areas(
        self,
        stop_areas: List[DecodedRelation],
        stations: List[_StationSource],
        orchestrator: GraphOrchestrator,
    ) -> Set[Tuple[str, int]]:
        station_names = {(station.source_kind, station.entity_id): station.name for station in stations}
        grouped_stations: Set[Tuple[str, int]] = set()
        for relation in stop_areas:
            name = relation.tags.get("name", "")
            group = orchestrator.add_or_update_zone_group(relation.id, name=name)
            for member in relation.members:
                key = (member.kind, member.ref)
                if key in station_names:
                    grouped_stations.add(key)
                    if not group.name and station_names[key]:
                        group.name = station_names[key]
                zone = orchestrator.zone_by_source_id(member.kind, member.ref)
                if zone is not None:
                    orchestrator.add_zone_to_group(group.id, zone.id)
        return grouped_stations

    def _add_station_groups(
        self,
        stations: List[_StationSource],
        grouped_stations: Set[Tuple[str, int]],
        orchestrator: GraphOrchestrator,
        matcher: ModeMatcher,
        projection: LocalProjection,
    ) -> None:
        radius = self.settings.station_to_zone_search_radius_m
        zones = list(orchestrator.zoning.zones.values())
        for station in stations:
            if (station.source_kind, station.entity_id) in grouped_stations:
                continue
            origin = Point(projection.project(station.lon, station.lat))
            members = [
                zone
                for zone in zones
                if Point(projection.project(zone.x, zone.y)).distance(origin) <= radius
                and matcher.compatible(zone.modes, station.modes, True)
            ]
            if not members:
                logger.debug("station_without_zones", station=station.entity_id)
                continue
            group = orchestrator.add_or_update_zone_group(
                station.entity_id, name=station.name, source_kind=station.source_kind
            )
            for zone in members:
                orchestrator.add_zone_to_group(group.id, zone.id)

    @staticmethod
    def _way_centroid(way: DecodedWay, locations: Dict[int, Tuple[float, float]]) -> Optional[Tuple[float, float]]:
        points = []
        for position, ref in enumerate(way.node_refs):
            location = way.location_of(position) or locations.get(ref)
            if location is not None:
                points.append(location)
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        if not points:
            return None
        centroid = MultiPoint(points).centroid
        return centroid.x, centroid.y

    @staticmethod
    def _reference_lat(handoff: HandoffRecord, zone_sources: List[_ZoneSource]) -> float:
        if handoff.bounding_box is not None:
            return (handoff.bounding_box[1] + handoff.bounding_box[3]) / 2.0
        if zone_sources:
            return zone_sources[0].lat
        return 0.0
