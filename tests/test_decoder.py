# tests/test_decoder.py
"""Tests for decoding OSM XML through osmium."""

import pytest

from intermodal_graph.decoder import DecodedNode, DecodedRelation, DecodedWay, decode_osm_source
from intermodal_graph.errors import BuildError


class TestDecodeOsmSource:
    def test_decodes_all_entity_kinds(self, osm_file) -> None:
        entities = list(decode_osm_source(osm_file))

        nodes = [entity for entity in entities if isinstance(entity, DecodedNode)]
        ways = [entity for entity in entities if isinstance(entity, DecodedWay)]
        relations = [entity for entity in entities if isinstance(entity, DecodedRelation)]
        assert [node.id for node in nodes] == [1, 2, 3, 4]
        assert [way.id for way in ways] == [100]
        assert [relation.id for relation in relations] == [40]

    def test_keeps_tags_and_locations(self, osm_file) -> None:
        entities = {(type(entity).__name__, entity.id): entity for entity in decode_osm_source(osm_file)}

        bus_stop = entities[("DecodedNode", 2)]
        assert bus_stop.tags == {"highway": "bus_stop", "name": "Main St"}
        assert bus_stop.lon == pytest.approx(0.001)

        way = entities[("DecodedWay", 100)]
        assert way.node_refs == (1, 2, 3)
        assert way.location_of(2) == pytest.approx((0.002, 0.0))
        assert way.location_of(3) is None

    def test_relation_members(self, osm_file) -> None:
        relation = next(entity for entity in decode_osm_source(osm_file) if isinstance(entity, DecodedRelation))

        assert [(member.kind, member.ref, member.role) for member in relation.members] == [
            ("node", 2, "platform"),
            ("node", 4, "platform"),
        ]
        assert relation.tags["public_transport"] == "stop_area"

    def test_missing_source_raises(self, tmp_path) -> None:
        with pytest.raises(BuildError, match="not found"):
            list(decode_osm_source(tmp_path / "missing.osm.pbf"))
