"""Network graph builder for OSM highway, railway and ferry ways."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import structlog

from ..decoder import DecodedEntity, DecodedNode, DecodedWay
from ..errors import BuildError
from ..graph_model import NetworkGraph
from ..graph_orchestrator import GraphOrchestrator
from ..handoff import HandoffRecorder
from ..modes import ModeCategory, ModeRegistry
from ..settings import NetworkSettings

logger = structlog.get_logger(__name__)

MOTORISED_ROAD_MODES = frozenset({"motorcycle", "motorcar", "goods", "hgv", "bus"})
ALL_ROAD_MODES = MOTORISED_ROAD_MODES | {"foot", "bicycle"}
ROAD_MODE_TAGS = ("foot", "bicycle", "motorcycle", "motorcar", "goods", "hgv", "bus")
ACCESS_YES = frozenset({"yes", "designated", "permissive", "destination"})
ACCESS_NO = frozenset({"no", "private"})

HIGHWAY_DEFAULT_MODES: Dict[str, FrozenSet[str]] = {
    "motorway": MOTORISED_ROAD_MODES,
    "motorway_link": MOTORISED_ROAD_MODES,
    "trunk": MOTORISED_ROAD_MODES,
    "trunk_link": MOTORISED_ROAD_MODES,
    "primary": ALL_ROAD_MODES,
    "primary_link": ALL_ROAD_MODES,
    "secondary": ALL_ROAD_MODES,
    "secondary_link": ALL_ROAD_MODES,
    "tertiary": ALL_ROAD_MODES,
    "tertiary_link": ALL_ROAD_MODES,
    "unclassified": ALL_ROAD_MODES,
    "residential": ALL_ROAD_MODES,
    "living_street": ALL_ROAD_MODES,
    "service": ALL_ROAD_MODES,
    "road": ALL_ROAD_MODES,
    "busway": frozenset({"bus"}),
    "cycleway": frozenset({"bicycle", "foot"}),
    "track": frozenset({"foot", "bicycle"}),
    "footway": frozenset({"foot"}),
    "pedestrian": frozenset({"foot"}),
    "path": frozenset({"foot"}),
    "steps": frozenset({"foot"}),
}
ONEWAY_HIGHWAYS = frozenset({"motorway", "motorway_link"})

RAILWAY_MODES: Dict[str, str] = {
    "rail": "train",
    "light_rail": "light_rail",
    "subway": "subway",
    "tram": "tram",
    "narrow_gauge": "narrow_gauge",
    "funicular": "funicular",
    "monorail": "monorail",
}


@dataclass
class _WayPiece:
    category: ModeCategory
    way: DecodedWay
    refs: List[int]
    coordinates: List[Tuple[float, float]]
    modes_ab: FrozenSet[str]
    modes_ba: FrozenSet[str]


class OsmNetworkBuilder:
    """Turns decoded ways into a layered, mode-tagged network graph.

    Way end points and nodes shared by several ways of the same layer become
    graph nodes; ways are split into links at those nodes and every other
    way node is recorded as internal to its link.
    """

    def __init__(self, settings: NetworkSettings) -> None:
        self.settings = settings
        self.registry: ModeRegistry = settings.activated_registry()

    def build(
        self,
        entities: Iterable[DecodedEntity],
        orchestrator: GraphOrchestrator,
        recorder: HandoffRecorder,
    ) -> NetworkGraph:
        locations: Dict[int, Tuple[float, float]] = {}
        node_tags: Dict[int, Dict[str, str]] = {}
        ways: List[Tuple[ModeCategory, DecodedWay]] = []
        skipped = 0

        for entity in entities:
            if isinstance(entity, DecodedNode):
                locations[entity.id] = (entity.lon, entity.lat)
                if entity.tags:
                    node_tags[entity.id] = entity.tags
            elif isinstance(entity, DecodedWay):
                category = self.classify_way(entity)
                if category is None:
                    continue
                if entity.id in self.settings.excluded_way_ids:
                    logger.debug("way_excluded", way=entity.id)
                    continue
                if len(entity.node_refs) < 2:
                    raise BuildError("Network way with fewer than two nodes", entity_id=entity.id)
                ways.append((category, entity))

        pieces: List[_WayPiece] = []
        for category, way in ways:
            modes_ab, modes_ba = self.collect_modes(category, way)
            if not modes_ab and not modes_ba:
                skipped += 1
                continue
            for refs, coordinates in self._inside_runs(way, locations):
                pieces.append(_WayPiece(category, way, refs, coordinates, modes_ab, modes_ba))

        usage: Dict[Tuple[ModeCategory, int], int] = defaultdict(int)
        endpoints: Set[Tuple[ModeCategory, int]] = set()
        for piece in pieces:
            for ref in set(piece.refs):
                usage[(piece.category, ref)] += 1
            endpoints.add((piece.category, piece.refs[0]))
            endpoints.add((piece.category, piece.refs[-1]))
        materialised = endpoints | {key for key, count in usage.items() if count > 1}

        for piece in pieces:
            self._add_piece(piece, materialised, node_tags, orchestrator, recorder)

        network = orchestrator.network
        logger.info(
            "network_built",
            nodes=network.node_count,
            links=network.link_count,
            segments=network.segment_count,
            skipped_ways=skipped,
        )

        if self.settings.remove_dangling_subnetworks:
            from ..cleanup import remove_dangling_subnetworks

            remove_dangling_subnetworks(orchestrator, self.settings)
        return network

    def classify_way(self, way: DecodedWay) -> Optional[ModeCategory]:
        tags = way.tags
        if tags.get("area") == "yes":
            return None
        if "highway" in tags and tags["highway"] in HIGHWAY_DEFAULT_MODES:
            category = ModeCategory.ROAD
        elif tags.get("railway") in RAILWAY_MODES:
            category = ModeCategory.RAIL
        elif tags.get("route") == "ferry":
            category = ModeCategory.WATER
        else:
            return None
        if not self.settings.is_category_active(category):
            return None
        return category

    def collect_modes(self, category: ModeCategory, way: DecodedWay) -> Tuple[FrozenSet[str], FrozenSet[str]]:
        """Internal mode identifiers per direction (A->B, B->A)."""
        override = self.settings.way_mode_overrides.get(way.id)
        if override is not None:
            source_modes = set(override)
        elif category is ModeCategory.ROAD:
            source_modes = self._road_modes(way.tags)
        elif category is ModeCategory.RAIL:
            source_modes = {RAILWAY_MODES[way.tags["railway"]]}
        else:
            source_modes = {"ferry"}

        modes = {}
        for tag in source_modes:
            mode = self.registry.resolve(tag)
            if mode is not None and mode.category is category:
                modes[tag] = mode.identifier
        if not modes:
            return frozenset(), frozenset()

        all_modes = frozenset(modes.values())
        oneway = self._oneway(category, way.tags)
        if oneway == 0:
            return all_modes, all_modes
        two_way = frozenset(identifier for tag, identifier in modes.items() if tag == "foot")
        if oneway > 0:
            return all_modes, two_way
        return two_way, all_modes

    @staticmethod
    def _road_modes(tags: Dict[str, str]) -> Set[str]:
        modes = set(HIGHWAY_DEFAULT_MODES[tags["highway"]])
        if tags.get("access") in ACCESS_NO:
            modes.clear()
        if tags.get("vehicle") in ACCESS_NO:
            modes -= MOTORISED_ROAD_MODES | {"bicycle"}
        if tags.get("motor_vehicle") in ACCESS_NO:
            modes -= MOTORISED_ROAD_MODES
        if tags.get("psv") in ACCESS_YES:
            modes.add("bus")
        for tag in ROAD_MODE_TAGS:
            value = tags.get(tag)
            if value in ACCESS_YES:
                modes.add(tag)
            elif value in ACCESS_NO:
                modes.discard(tag)
        return modes

    @staticmethod
    def _oneway(category: ModeCategory, tags: Dict[str, str]) -> int:
        """1 for A->B only, -1 for B->A only, 0 for both directions."""
        if category is not ModeCategory.ROAD:
            return 0
        value = tags.get("oneway", "").lower()
        if value == "-1":
            return -1
        if value in {"yes", "true", "1"} or tags.get("junction") == "roundabout":
            return 1
        if value == "no":
            return 0
        return 1 if tags.get("highway") in ONEWAY_HIGHWAYS else 0

    def _inside_runs(
        self, way: DecodedWay, locations: Dict[int, Tuple[float, float]]
    ) -> List[Tuple[List[int], List[Tuple[float, float]]]]:
        runs = []
        refs: List[int] = []
        coordinates: List[Tuple[float, float]] = []
        for index, ref in enumerate(way.node_refs):
            location = way.location_of(index) or locations.get(ref)
            if location is None or not self._inside(location):
                if len(refs) > 1:
                    runs.append((refs, coordinates))
                refs, coordinates = [], []
                continue
            if refs and refs[-1] == ref:
                continue
            refs.append(ref)
            coordinates.append(location)
        if len(refs) > 1:
            runs.append((refs, coordinates))
        return runs

    def _inside(self, location: Tuple[float, float]) -> bool:
        box = self.settings.bounding_box
        if box is None:
            return True
        lon, lat = location
        return box[0] <= lon <= box[2] and box[1] <= lat <= box[3]

    def _add_piece(
        self,
        piece: _WayPiece,
        materialised: Set[Tuple[ModeCategory, int]],
        node_tags: Dict[int, Dict[str, str]],
        orchestrator: GraphOrchestrator,
        recorder: HandoffRecorder,
    ) -> None:
        category = piece.category
        split_at = [
            index
            for index, ref in enumerate(piece.refs)
            if (category, ref) in materialised
        ]
        for start, end in zip(split_at, split_at[1:]):
            refs = piece.refs[start : end + 1]
            coordinates = piece.coordinates[start : end + 1]
            node_a = orchestrator.add_or_update_node(
                category, refs[0], *coordinates[0], tags=node_tags.get(refs[0])
            )
            node_b = orchestrator.add_or_update_node(
                category, refs[-1], *coordinates[-1], tags=node_tags.get(refs[-1])
            )
            recorder.register_node(category, node_a)
            recorder.register_node(category, node_b)
            orchestrator.add_link(
                category,
                piece.way.id,
                node_a.id,
                node_b.id,
                piece.modes_ab,
                piece.modes_ba,
                refs,
                coordinates,
                tags=piece.way.tags,
            )
            recorder.register_internal(category, refs[1:-1])
            recorder.register_geometry(coordinates)
