"""Network and zone graph data model."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from .modes import ModeCategory


@dataclass(eq=False)
class NetworkNode:
    id: str
    source_id: int
    x: float
    y: float
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class LinkSegment:
    id: str
    upstream: str
    downstream: str
    modes: FrozenSet[str] = frozenset()


@dataclass(eq=False)
class Link:
    id: str
    source_id: int
    node_a: str
    node_b: str
    segment_ab: Optional[LinkSegment] = None
    segment_ba: Optional[LinkSegment] = None
    node_refs: Tuple[int, ...] = ()
    geometry: List[Tuple[float, float]] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    def segments(self) -> List[LinkSegment]:
        return [segment for segment in (self.segment_ab, self.segment_ba) if segment is not None]

    def internal_source_ids(self) -> Tuple[int, ...]:
        return self.node_refs[1:-1]


@dataclass
class NetworkLayer:
    category: ModeCategory
    nodes: Dict[str, NetworkNode] = field(default_factory=dict)
    links: Dict[str, Link] = field(default_factory=dict)

    def links_of_node(self, node_id: str) -> List[Link]:
        return [link for link in self.links.values() if node_id in (link.node_a, link.node_b)]

    @property
    def segment_count(self) -> int:
        return sum(len(link.segments()) for link in self.links.values())


@dataclass
class NetworkGraph:
    layers: Dict[ModeCategory, NetworkLayer] = field(default_factory=dict)

    def layer(self, category: ModeCategory) -> NetworkLayer:
        if category not in self.layers:
            self.layers[category] = NetworkLayer(category=category)
        return self.layers[category]

    def iter_links(self) -> Iterator[Tuple[ModeCategory, Link]]:
        for category, layer in self.layers.items():
            for link in layer.links.values():
                yield category, link

    @property
    def node_count(self) -> int:
        return sum(len(layer.nodes) for layer in self.layers.values())

    @property
    def link_count(self) -> int:
        return sum(len(layer.links) for layer in self.layers.values())

    @property
    def segment_count(self) -> int:
        return sum(layer.segment_count for layer in self.layers.values())


@dataclass(frozen=True)
class ZoneAssociation:
    category: ModeCategory
    node_id: Optional[str] = None
    link_id: Optional[str] = None


@dataclass(eq=False)
class TransferZone:
    id: str
    source_id: int
    source_kind: str
    zone_kind: str
    x: float
    y: float
    modes: FrozenSet[str] = frozenset()
    name: str = ""
    association: Optional[ZoneAssociation] = None
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class ZoneGroup:
    id: str
    source_id: int
    name: str = ""
    source_kind: str = "relation"
    zone_ids: Set[str] = field(default_factory=set)


@dataclass
class ZoneGraph:
    zones: Dict[str, TransferZone] = field(default_factory=dict)
    groups: Dict[str, ZoneGroup] = field(default_factory=dict)

    def groups_of_zone(self, zone_id: str) -> List[ZoneGroup]:
        return [group for group in self.groups.values() if zone_id in group.zone_ids]
