"""Deterministic orchestrator for network and zone graph mutations."""

from hashlib import sha1
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from .graph_model import (
    Link,
    LinkSegment,
    NetworkGraph,
    NetworkNode,
    TransferZone,
    ZoneAssociation,
    ZoneGraph,
    ZoneGroup,
)
from .modes import ModeCategory

logger = structlog.get_logger(__name__)


class GraphOrchestrator:
    """Owns identifiers and safe updates of both graphs."""

    def __init__(self) -> None:
        self.network = NetworkGraph()
        self.zoning = ZoneGraph()
        self._node_registry: Dict[str, str] = {}
        self._link_registry: Dict[str, str] = {}
        self._zone_registry: Dict[str, str] = {}
        self._group_registry: Dict[str, str] = {}
        self._registry_keys: Dict[str, str] = {}

    # network

    def add_or_update_node(
        self,
        category: ModeCategory,
        source_id: int,
        x: float,
        y: float,
        tags: Dict[str, str] | None = None,
    ) -> NetworkNode:
        registry_key = f"{category.value}:node:{source_id}"
        layer = self.network.layer(category)
        existing_id = self._node_registry.get(registry_key)
        if existing_id:
            node = layer.nodes[existing_id]
            node.tags.update(tags or {})
            return node

        node_id = self._build_id("node", registry_key)
        node = NetworkNode(id=node_id, source_id=source_id, x=x, y=y, tags=dict(tags or {}))
        layer.nodes[node_id] = node
        self._register(self._node_registry, registry_key, node_id)
        return node

    def node_by_source_id(self, category: ModeCategory, source_id: int) -> Optional[NetworkNode]:
        node_id = self._node_registry.get(f"{category.value}:node:{source_id}")
        if node_id is None:
            return None
        return self.network.layers[category].nodes.get(node_id)

    def add_link(
        self,
        category: ModeCategory,
        source_id: int,
        node_a_id: str,
        node_b_id: str,
        modes_ab: Iterable[str],
        modes_ba: Iterable[str],
        node_refs: Sequence[int],
        geometry: Sequence[Tuple[float, float]],
        tags: Dict[str, str] | None = None,
    ) -> Link:
        layer = self.network.layer(category)
        if node_a_id not in layer.nodes:
            raise ValueError(f"Unknown node A in {category.value} layer: {node_a_id}")
        if node_b_id not in layer.nodes:
            raise ValueError(f"Unknown node B in {category.value} layer: {node_b_id}")

        link_signature = f"{category.value}:link:{source_id}:{','.join(str(ref) for ref in node_refs)}"
        existing_id = self._link_registry.get(link_signature)
        if existing_id:
            link = layer.links[existing_id]
            link.tags.update(tags or {})
            return link

        link_id = self._build_id("link", link_signature)
        modes_ab = frozenset(modes_ab)
        modes_ba = frozenset(modes_ba)
        link = Link(
            id=link_id,
            source_id=source_id,
            node_a=node_a_id,
            node_b=node_b_id,
            segment_ab=LinkSegment(f"{link_id}_ab", node_a_id, node_b_id, modes_ab) if modes_ab else None,
            segment_ba=LinkSegment(f"{link_id}_ba", node_b_id, node_a_id, modes_ba) if modes_ba else None,
            node_refs=tuple(node_refs),
            geometry=list(geometry),
            tags=dict(tags or {}),
        )
        layer.links[link_id] = link
        self._register(self._link_registry, link_signature, link_id)
        return link

    def remove_link(self, category: ModeCategory, link_id: str) -> None:
        layer = self.network.layers.get(category)
        if layer is None or link_id not in layer.links:
            return
        del layer.links[link_id]
        self._unregister(self._link_registry, link_id)
        self._clear_associations(category, set(), {link_id})

    def remove_node(self, category: ModeCategory, node_id: str) -> List[str]:
        """Remove a node with its links, returns the removed link ids."""
        return self.remove_nodes(category, [node_id])

    def remove_nodes(self, category: ModeCategory, node_ids: Iterable[str]) -> List[str]:
        layer = self.network.layers.get(category)
        if layer is None:
            return []
        doomed = {node_id for node_id in node_ids if node_id in layer.nodes}
        if not doomed:
            return []
        removed_links = [
            link.id for link in layer.links.values() if link.node_a in doomed or link.node_b in doomed
        ]
        for link_id in removed_links:
            del layer.links[link_id]
            self._unregister(self._link_registry, link_id)
        for node_id in doomed:
            del layer.nodes[node_id]
            self._unregister(self._node_registry, node_id)
        self._clear_associations(category, doomed, set(removed_links))
        return removed_links

    # zoning

    def add_or_update_transfer_zone(
        self,
        source_kind: str,
        source_id: int,
        zone_kind: str,
        x: float,
        y: float,
        modes: Iterable[str],
        name: str = "",
        properties: Dict[str, Any] | None = None,
    ) -> TransferZone:
        registry_key = f"zone:{source_kind}:{source_id}"
        existing_id = self._zone_registry.get(registry_key)
        if existing_id:
            zone = self.zoning.zones[existing_id]
            zone.modes = zone.modes | frozenset(modes)
            zone.properties.update(properties or {})
            return zone

        zone_id = self._build_id("zone", registry_key)
        zone = TransferZone(
            id=zone_id,
            source_id=source_id,
            source_kind=source_kind,
            zone_kind=zone_kind,
            x=x,
            y=y,
            modes=frozenset(modes),
            name=name,
            properties=dict(properties or {}),
        )
        self.zoning.zones[zone_id] = zone
        self._register(self._zone_registry, registry_key, zone_id)
        return zone

    def zone_by_source_id(self, source_kind: str, source_id: int) -> Optional[TransferZone]:
        zone_id = self._zone_registry.get(f"zone:{source_kind}:{source_id}")
        if zone_id is None:
            return None
        return self.zoning.zones.get(zone_id)

    def associate_zone(self, zone_id: str, association: ZoneAssociation) -> None:
        if zone_id not in self.zoning.zones:
            raise ValueError(f"Unknown transfer zone: {zone_id}")
        layer = self.network.layers.get(association.category)
        if layer is None:
            raise ValueError(f"Unknown network layer: {association.category.value}")
        if association.node_id is not None and association.node_id not in layer.nodes:
            raise ValueError(f"Unknown node for association: {association.node_id}")
        if association.link_id is not None and association.link_id not in layer.links:
            raise ValueError(f"Unknown link for association: {association.link_id}")
        self.zoning.zones[zone_id].association = association

    def add_or_update_zone_group(self, source_id: int, name: str = "", source_kind: str = "relation") -> ZoneGroup:
        registry_key = f"group:{source_kind}:{source_id}"
        existing_id = self._group_registry.get(registry_key)
        if existing_id:
            group = self.zoning.groups[existing_id]
            if name and not group.name:
                group.name = name
            return group

        group_id = self._build_id("group", registry_key)
        group = ZoneGroup(id=group_id, source_id=source_id, name=name, source_kind=source_kind)
        self.zoning.groups[group_id] = group
        self._register(self._group_registry, registry_key, group_id)
        return group

    def add_zone_to_group(self, group_id: str, zone_id: str) -> None:
        if group_id not in self.zoning.groups:
            raise ValueError(f"Unknown zone group: {group_id}")
        if zone_id not in self.zoning.zones:
            raise ValueError(f"Unknown transfer zone: {zone_id}")
        self.zoning.groups[group_id].zone_ids.add(zone_id)

    def remove_transfer_zone(self, zone_id: str) -> None:
        if zone_id not in self.zoning.zones:
            return
        for group in self.zoning.groups_of_zone(zone_id):
            group.zone_ids.discard(zone_id)
        del self.zoning.zones[zone_id]
        self._unregister(self._zone_registry, zone_id)

    def remove_zone_group(self, group_id: str) -> None:
        if group_id not in self.zoning.groups:
            return
        del self.zoning.groups[group_id]
        self._unregister(self._group_registry, group_id)

    def to_json(self) -> Dict[str, Any]:
        layers = []
        for category, layer in sorted(self.network.layers.items(), key=lambda item: item[0].value):
            layers.append(
                {
                    "category": category.value,
                    "nodes": [
                        {"id": node.id, "source_id": node.source_id, "x": node.x, "y": node.y, "tags": node.tags}
                        for node in layer.nodes.values()
                    ],
                    "links": [self._link_to_json(link) for link in layer.links.values()],
                }
            )
        zones = []
        for zone in self.zoning.zones.values():
            association = None
            if zone.association is not None:
                association = {
                    "category": zone.association.category.value,
                    "node_id": zone.association.node_id,
                    "link_id": zone.association.link_id,
                }
            zones.append(
                {
                    "id": zone.id,
                    "source_id": zone.source_id,
                    "source_kind": zone.source_kind,
                    "zone_kind": zone.zone_kind,
                    "x": zone.x,
                    "y": zone.y,
                    "modes": sorted(zone.modes),
                    "name": zone.name,
                    "association": association,
                    "properties": dict(zone.properties),
                }
            )
        groups = [
            {
                "id": group.id,
                "source_id": group.source_id,
                "source_kind": group.source_kind,
                "name": group.name,
                "zone_ids": sorted(group.zone_ids),
            }
            for group in self.zoning.groups.values()
        ]
        return {"network": {"layers": layers}, "zoning": {"zones": zones, "groups": groups}}

    @staticmethod
    def _link_to_json(link: Link) -> Dict[str, Any]:
        segments = [
            {"id": segment.id, "upstream": segment.upstream, "downstream": segment.downstream, "modes": sorted(segment.modes)}
            for segment in link.segments()
        ]
        return {
            "id": link.id,
            "source_id": link.source_id,
            "node_a": link.node_a,
            "node_b": link.node_b,
            "segments": segments,
            "node_refs": list(link.node_refs),
            "geometry": [list(point) for point in link.geometry],
            "tags": link.tags,
        }

    def _clear_associations(self, category: ModeCategory, node_ids: Set[str], link_ids: Set[str]) -> None:
        for zone in self.zoning.zones.values():
            association = zone.association
            if association is None or association.category != category:
                continue
            if association.node_id in node_ids or association.link_id in link_ids:
                logger.debug("zone_association_cleared", zone=zone.id, source_id=zone.source_id)
                zone.association = None

    def _register(self, registry: Dict[str, str], key: str, element_id: str) -> None:
        registry[key] = element_id
        self._registry_keys[element_id] = key

    def _unregister(self, registry: Dict[str, str], element_id: str) -> None:
        key = self._registry_keys.pop(element_id, None)
        if key is not None:
            registry.pop(key, None)

    @staticmethod
    def _build_id(prefix: str, signature: str) -> str:
        digest = sha1(signature.encode("utf-8")).hexdigest()[:12]
        return f"{prefix}_{digest}"
