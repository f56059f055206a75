# tests/conftest.py
"""Shared fixtures: a small in-memory OSM extract and settings factories.

The extract (coordinates are lon/lat, around the origin):

* road: residential ways 100 (nodes 1-2-3) and 101 (nodes 3-4-5), so node 2
  is internal to a link; footway 102 (nodes 50-51) forms a separate,
  dangling subnetwork.
* rail: way 200 (nodes 10-11) north of the road.
* zones: bus stops 2 (on the road) and 20 (11 m off it), tram stop 22 with
  no compatible infrastructure, platform 31 next to the rail line and tram
  stop 23 far outside the network.
* groups: stop area 40 (bus stops 2 and 20), stop area 41 without any
  existing member, station 30 next to platform 31.

Hypothesis profiles:
    HYPOTHESIS_PROFILE=debug pytest tests/
"""

import os
from typing import Callable, Iterator, List

import pytest
from hypothesis import Verbosity, settings

from intermodal_graph.decoder import (
    DecodedEntity,
    DecodedNode,
    DecodedRelation,
    DecodedWay,
    RelationMember,
)
from intermodal_graph.settings import NetworkSettings, TransitSettings

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))

SOURCE = "extract.osm.pbf"
COUNTRY = "Australia"


def sample_entities() -> List[DecodedEntity]:
    return [
        DecodedNode(1, 0.000, 0.0),
        DecodedNode(2, 0.001, 0.0, {"highway": "bus_stop", "name": "Main St"}),
        DecodedNode(3, 0.002, 0.0),
        DecodedNode(4, 0.003, 0.0),
        DecodedNode(5, 0.004, 0.0),
        DecodedNode(10, 0.000, 0.001),
        DecodedNode(11, 0.002, 0.001),
        DecodedNode(20, 0.0035, 0.0001, {"highway": "bus_stop", "ref": "20A"}),
        DecodedNode(22, 0.002, 0.0002, {"railway": "tram_stop"}),
        DecodedNode(23, 0.1, 0.1, {"railway": "tram_stop"}),
        DecodedNode(30, 0.001, 0.0012, {"railway": "station", "name": "Central"}),
        DecodedNode(31, 0.001, 0.0011, {"railway": "platform"}),
        DecodedNode(50, 0.003, 0.003),
        DecodedNode(51, 0.0031, 0.003),
        DecodedWay(100, (1, 2, 3), tags={"highway": "residential"}),
        DecodedWay(101, (3, 4, 5), tags={"highway": "residential"}),
        DecodedWay(102, (50, 51), tags={"highway": "footway"}),
        DecodedWay(200, (10, 11), tags={"railway": "rail"}),
        DecodedWay(300, (1, 10), tags={"building": "yes"}),
        DecodedRelation(
            40,
            (RelationMember("node", 2, "platform"), RelationMember("node", 20, "platform")),
            {"type": "public_transport", "public_transport": "stop_area", "name": "Main St"},
        ),
        DecodedRelation(
            41,
            (RelationMember("node", 999, "platform"),),
            {"type": "public_transport", "public_transport": "stop_area"},
        ),
    ]


class ListDecoder:
    """Decoder factory replaying the same entities on every call."""

    def __init__(self, entities: List[DecodedEntity]) -> None:
        self.entities = entities
        self.sources: List[str] = []

    def __call__(self, source: str) -> Iterator[DecodedEntity]:
        self.sources.append(source)
        return iter(self.entities)


@pytest.fixture
def entities() -> List[DecodedEntity]:
    return sample_entities()


@pytest.fixture
def decoder(entities: List[DecodedEntity]) -> ListDecoder:
    return ListDecoder(entities)


@pytest.fixture
def make_network_settings() -> Callable[..., NetworkSettings]:
    def factory(**overrides) -> NetworkSettings:
        values = {"country": COUNTRY, "input_source": SOURCE, "rail_active": True}
        values.update(overrides)
        return NetworkSettings(**values)

    return factory


@pytest.fixture
def make_transit_settings() -> Callable[..., TransitSettings]:
    def factory(**overrides) -> TransitSettings:
        values = {"country": COUNTRY, "input_source": SOURCE}
        values.update(overrides)
        return TransitSettings(**values)

    return factory


OSM_XML = """<?xml version='1.0' encoding='UTF-8'?>
<osm version="0.6" generator="intermodal-graph-tests">
  <node id="1" version="1" lat="0.0" lon="0.0"/>
  <node id="2" version="1" lat="0.0" lon="0.001">
    <tag k="highway" v="bus_stop"/>
    <tag k="name" v="Main St"/>
  </node>
  <node id="3" version="1" lat="0.0" lon="0.002"/>
  <node id="4" version="1" lat="0.0001" lon="0.0015">
    <tag k="highway" v="bus_stop"/>
  </node>
  <way id="100" version="1">
    <nd ref="1"/>
    <nd ref="2"/>
    <nd ref="3"/>
    <tag k="highway" v="residential"/>
  </way>
  <relation id="40" version="1">
    <member type="node" ref="2" role="platform"/>
    <member type="node" ref="4" role="platform"/>
    <tag k="type" v="public_transport"/>
    <tag k="public_transport" v="stop_area"/>
    <tag k="name" v="Main St"/>
  </relation>
</osm>
"""


@pytest.fixture
def osm_file(tmp_path):
    path = tmp_path / "extract.osm"
    path.write_text(OSM_XML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clear_intermodal_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("INTERMODAL_"):
            monkeypatch.delenv(name, raising=False)
