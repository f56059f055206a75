"""Source decoding into typed OSM entities."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

import osmium
import structlog

from .errors import BuildError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DecodedNode:
    id: int
    lon: float
    lat: float
    tags: Dict[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class DecodedWay:
    id: int
    node_refs: Tuple[int, ...]
    coordinates: Tuple[Optional[Tuple[float, float]], ...] = ()
    tags: Dict[str, str] = field(default_factory=dict, hash=False)

    def location_of(self, index: int) -> Optional[Tuple[float, float]]:
        if index < len(self.coordinates):
            return self.coordinates[index]
        return None


@dataclass(frozen=True)
class RelationMember:
    kind: str
    ref: int
    role: str = ""


@dataclass(frozen=True)
class DecodedRelation:
    id: int
    members: Tuple[RelationMember, ...]
    tags: Dict[str, str] = field(default_factory=dict, hash=False)


DecodedEntity = Union[DecodedNode, DecodedWay, DecodedRelation]

_MEMBER_KINDS = {"n": "node", "w": "way", "r": "relation"}


def decode_osm_source(source: Union[str, Path]) -> Iterator[DecodedEntity]:
    """Lazily decode an ``.osm``/``.osm.pbf`` file, one pass only.

    Way coordinates are resolved from the node locations of the same file.
    Unreadable sources raise ``BuildError``.
    """
    path = Path(source)
    if not path.exists():
        raise BuildError(f"Input source not found: {path}")

    logger.info("decoding_source", source=str(path))
    counts = {"node": 0, "way": 0, "relation": 0}
    try:
        processor = osmium.FileProcessor(str(path)).with_locations()
        for obj in processor:
            kind = obj.type_str()
            if kind == "n":
                counts["node"] += 1
                yield _decode_node(obj)
            elif kind == "w":
                counts["way"] += 1
                yield _decode_way(obj)
            elif kind == "r":
                counts["relation"] += 1
                yield _decode_relation(obj)
    except (RuntimeError, ValueError) as exc:
        raise BuildError(f"Unable to decode {path}: {exc}") from exc
    logger.info("decoding_done", source=str(path), **counts)


def _tags(obj) -> Dict[str, str]:
    return {tag.k: tag.v for tag in obj.tags}


def _decode_node(node) -> DecodedNode:
    location = node.location
    if not location.valid():
        raise BuildError("Node without valid location", entity_id=node.id)
    return DecodedNode(id=node.id, lon=location.lon, lat=location.lat, tags=_tags(node))


def _decode_way(way) -> DecodedWay:
    refs = []
    coordinates = []
    for node_ref in way.nodes:
        refs.append(node_ref.ref)
        if node_ref.location.valid():
            coordinates.append((node_ref.location.lon, node_ref.location.lat))
        else:
            coordinates.append(None)
    return DecodedWay(id=way.id, node_refs=tuple(refs), coordinates=tuple(coordinates), tags=_tags(way))


def _decode_relation(relation) -> DecodedRelation:
    members = tuple(
        RelationMember(kind=_MEMBER_KINDS.get(member.type, member.type), ref=member.ref, role=member.role)
        for member in relation.members
    )
    return DecodedRelation(id=relation.id, members=members, tags=_tags(relation))
