"""Handoff record passed from the network phase to the transit phase.

The network phase fills a ``HandoffRecorder`` while it creates nodes and
links. Once the network graph is complete the recorder is frozen into a
``HandoffRecord``, an immutable value that the zone builder can query but
never modify.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .graph_model import NetworkNode
from .modes import ModeCategory, ModeRegistry
from .settings import BoundingBox, NetworkSettings


@dataclass(frozen=True)
class LayerHandoff:
    category: ModeCategory
    nodes_by_source_id: Mapping[int, NetworkNode]
    internal_source_ids: FrozenSet[int]

    def node(self, source_id: int) -> Optional[NetworkNode]:
        return self.nodes_by_source_id.get(source_id)

    def is_internal(self, source_id: int) -> bool:
        return source_id in self.internal_source_ids


@dataclass(frozen=True)
class HandoffRecord:
    layers: Mapping[ModeCategory, LayerHandoff]
    country: str
    active_categories: FrozenSet[ModeCategory]
    mode_registry: ModeRegistry
    bounding_box: Optional[BoundingBox] = None

    def activated_registry(self) -> ModeRegistry:
        """Registry of the categories the network was built with."""
        return self.mode_registry.restrict(self.active_categories)

    def layer(self, category: ModeCategory) -> Optional[LayerHandoff]:
        return self.layers.get(category)

    def nodes_for_source_id(self, source_id: int) -> List[Tuple[ModeCategory, NetworkNode]]:
        found = []
        for category, layer in self.layers.items():
            node = layer.node(source_id)
            if node is not None:
                found.append((category, node))
        return found

    def internal_categories(self, source_id: int) -> List[ModeCategory]:
        return [category for category, layer in self.layers.items() if layer.is_internal(source_id)]

    def covers(self, x: float, y: float, margin: float = 0.0) -> bool:
        """True when the point lies within the (buffered) network bounding box."""
        if self.bounding_box is None:
            return True
        min_x, min_y, max_x, max_y = self.bounding_box
        return min_x - margin <= x <= max_x + margin and min_y - margin <= y <= max_y + margin


@dataclass
class HandoffRecorder:
    network_settings: NetworkSettings
    _nodes: Dict[ModeCategory, Dict[int, NetworkNode]] = field(default_factory=dict)
    _internal: Dict[ModeCategory, Set[int]] = field(default_factory=dict)
    _extent: Optional[List[float]] = None

    def register_node(self, category: ModeCategory, node: NetworkNode) -> None:
        self._nodes.setdefault(category, {})[node.source_id] = node
        self._internal.setdefault(category, set()).discard(node.source_id)
        self._extend(node.x, node.y)

    def register_internal(self, category: ModeCategory, source_ids: Iterable[int]) -> None:
        materialised = self._nodes.get(category, {})
        internal = self._internal.setdefault(category, set())
        internal.update(source_id for source_id in source_ids if source_id not in materialised)

    def register_geometry(self, points: Iterable[Tuple[float, float]]) -> None:
        for x, y in points:
            self._extend(x, y)

    def freeze(self) -> HandoffRecord:
        categories = set(self._nodes) | set(self._internal)
        layers = {
            category: LayerHandoff(
                category=category,
                nodes_by_source_id=MappingProxyType(dict(self._nodes.get(category, {}))),
                internal_source_ids=frozenset(self._internal.get(category, set())),
            )
            for category in categories
        }
        bounding_box = tuple(self._extent) if self._extent is not None else None
        return HandoffRecord(
            layers=MappingProxyType(layers),
            country=self.network_settings.country,
            active_categories=frozenset(self.network_settings.active_categories()),
            mode_registry=self.network_settings.mode_registry,
            bounding_box=bounding_box,
        )

    def _extend(self, x: float, y: float) -> None:
        if self._extent is None:
            self._extent = [x, y, x, y]
            return
        extent = self._extent
        extent[0] = min(extent[0], x)
        extent[1] = min(extent[1], y)
        extent[2] = max(extent[2], x)
        extent[3] = max(extent[3], y)
