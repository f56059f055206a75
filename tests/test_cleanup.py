# tests/test_cleanup.py
"""Tests for the deferred dangling cleanup pass."""

import copy

from hypothesis import given
from hypothesis import strategies as st

from intermodal_graph.cleanup import DanglingCleanup
from intermodal_graph.graph_model import ZoneAssociation
from intermodal_graph.graph_orchestrator import GraphOrchestrator
from intermodal_graph.modes import ModeCategory
from intermodal_graph.settings import NetworkSettings, TransitSettings

ROAD = ModeCategory.ROAD


def chain(orchestrator: GraphOrchestrator, source_ids, way_id: int):
    nodes = [orchestrator.add_or_update_node(ROAD, source_id, float(source_id), 0.0) for source_id in source_ids]
    links = []
    for node_a, node_b in zip(nodes, nodes[1:]):
        links.append(
            orchestrator.add_link(
                ROAD,
                way_id,
                node_a.id,
                node_b.id,
                ["car"],
                ["car"],
                [node_a.source_id, node_b.source_id],
                [(node_a.x, node_a.y), (node_b.x, node_b.y)],
            )
        )
    return nodes, links


def settings_pair(**network_overrides):
    network = NetworkSettings(country="Australia", input_source="file.dat", **network_overrides)
    transit = TransitSettings(country="Australia", input_source="file.dat")
    return network, transit


def scenario():
    orchestrator = GraphOrchestrator()
    _, main_links = chain(orchestrator, range(1, 26), 100)
    small_nodes, _ = chain(orchestrator, [101, 102, 103], 200)

    on_main = orchestrator.add_or_update_transfer_zone("node", 1, "platform", 1.0, 0.0, ["bus"])
    orchestrator.associate_zone(on_main.id, ZoneAssociation(ROAD, link_id=main_links[0].id))
    on_small = orchestrator.add_or_update_transfer_zone("node", 2, "platform", 101.0, 0.0, ["bus"])
    orchestrator.associate_zone(on_small.id, ZoneAssociation(ROAD, node_id=small_nodes[0].id))
    loose = orchestrator.add_or_update_transfer_zone("node", 3, "platform", 50.0, 0.0, ["bus"])

    kept_group = orchestrator.add_or_update_zone_group(10, "Main")
    orchestrator.add_zone_to_group(kept_group.id, on_main.id)
    orchestrator.add_zone_to_group(kept_group.id, on_small.id)
    doomed_group = orchestrator.add_or_update_zone_group(11, "Small")
    orchestrator.add_zone_to_group(doomed_group.id, on_small.id)
    orchestrator.add_zone_to_group(doomed_group.id, loose.id)
    orchestrator.add_or_update_zone_group(12, "Empty")
    return orchestrator, {"main": on_main, "small": on_small, "loose": loose, "kept": kept_group, "doomed": doomed_group}


class TestDanglingCleanup:
    def test_removes_in_order(self) -> None:
        orchestrator, items = scenario()

        report = DanglingCleanup(*settings_pair()).run(orchestrator)

        assert report.steps == ["subnetworks", "zones", "zone_groups"]
        assert report.removed_subnetworks == 1
        assert report.removed_nodes == 3
        assert report.removed_links == 2
        # the zone on the small subnetwork loses its association first
        assert report.removed_zones == 2
        assert set(orchestrator.zoning.zones) == {items["main"].id}
        assert set(orchestrator.zoning.groups) == {items["kept"].id}
        assert items["kept"].zone_ids == {items["main"].id}

    def test_all_flags_off_changes_nothing(self) -> None:
        orchestrator, _ = scenario()
        before = copy.deepcopy(orchestrator.to_json())
        network, transit = settings_pair(remove_dangling_subnetworks=False)
        transit.remove_dangling_zones = False
        transit.remove_dangling_zone_groups = False

        report = DanglingCleanup(network, transit).run(orchestrator)

        assert orchestrator.to_json() == before
        assert report.steps == []

    def test_keeps_largest_even_when_small(self) -> None:
        orchestrator = GraphOrchestrator()
        chain(orchestrator, [1, 2, 3], 100)
        chain(orchestrator, [11, 12], 200)

        DanglingCleanup(*settings_pair()).run(orchestrator)

        layer = orchestrator.network.layers[ROAD]
        assert sorted(node.source_id for node in layer.nodes.values()) == [1, 2, 3]

    def test_discard_above_removes_large_components(self) -> None:
        orchestrator = GraphOrchestrator()
        chain(orchestrator, range(1, 31), 100)
        chain(orchestrator, range(101, 106), 200)
        network, transit = settings_pair(
            discard_subnetworks_below=2,
            discard_subnetworks_above=10,
            always_keep_largest_subnetwork=False,
        )

        DanglingCleanup(network, transit).run(orchestrator)

        layer = orchestrator.network.layers[ROAD]
        assert sorted(node.source_id for node in layer.nodes.values()) == list(range(101, 106))

    def test_second_run_is_a_no_op(self) -> None:
        orchestrator, _ = scenario()
        cleanup = DanglingCleanup(*settings_pair())
        cleanup.run(orchestrator)
        after_first = copy.deepcopy(orchestrator.to_json())

        report = cleanup.run(orchestrator)

        assert orchestrator.to_json() == after_first
        assert report.removed_nodes == report.removed_zones == report.removed_zone_groups == 0

    @given(
        edges=st.lists(st.tuples(st.integers(1, 30), st.integers(1, 30)), max_size=40),
        below=st.integers(0, 12),
        keep_largest=st.booleans(),
    )
    def test_idempotent_on_random_networks(self, edges, below, keep_largest) -> None:
        orchestrator = GraphOrchestrator()
        for index, (a, b) in enumerate(edges):
            node_a = orchestrator.add_or_update_node(ROAD, a, float(a), 0.0)
            node_b = orchestrator.add_or_update_node(ROAD, b, float(b), 1.0)
            orchestrator.add_link(ROAD, index, node_a.id, node_b.id, ["car"], [], [a, b], [(0.0, 0.0), (1.0, 1.0)])
        cleanup = DanglingCleanup(
            *settings_pair(discard_subnetworks_below=below, always_keep_largest_subnetwork=keep_largest)
        )

        cleanup.run(orchestrator)
        after_first = copy.deepcopy(orchestrator.to_json())
        cleanup.run(orchestrator)

        assert orchestrator.to_json() == after_first
        layer = orchestrator.network.layers.get(ROAD)
        if layer is not None:
            for link in layer.links.values():
                assert link.node_a in layer.nodes and link.node_b in layer.nodes
