# tests/test_reconciler.py
"""Tests for the settings reconciliation gate."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from intermodal_graph.errors import ConfigurationError
from intermodal_graph.reconciler import ensure_reconciled, reconcile_settings
from intermodal_graph.settings import IntermodalSettings, NetworkSettings, TransitSettings

countries = st.sampled_from(["Australia", "New Zealand", "Global"])
sources = st.one_of(st.none(), st.sampled_from(["a.osm.pbf", "b.osm.pbf", "file.dat"]))


def snapshot(settings) -> dict:
    return dict(vars(settings))


class TestReconcileSettings:
    def test_matching_settings_pass(self, make_network_settings, make_transit_settings) -> None:
        result = reconcile_settings(make_network_settings(), make_transit_settings())

        assert result.ok
        assert result.messages == []
        assert result.network.input_source == result.transit.input_source == "extract.osm.pbf"

    def test_country_mismatch_fails(self) -> None:
        network = NetworkSettings(country="Australia", input_source="file.dat")
        transit = TransitSettings(country="New Zealand", input_source="file.dat")

        result = reconcile_settings(network, transit)

        assert not result.ok
        assert result.network is None and result.transit is None
        assert "same country" in result.messages[0]

    def test_salvages_missing_transit_source(self) -> None:
        network = NetworkSettings(country="Australia", input_source="file.dat")
        transit = TransitSettings(country="Australia")

        result = reconcile_settings(network, transit)

        assert result.ok
        assert result.transit.input_source == "file.dat"
        assert transit.input_source is None
        assert any(message.startswith("salvaged") for message in result.messages)

    def test_salvages_missing_network_source(self) -> None:
        network = NetworkSettings(country="Australia")
        transit = TransitSettings(country="Australia", input_source="file.dat")

        result = reconcile_settings(network, transit)

        assert result.ok
        assert result.network.input_source == "file.dat"
        assert network.input_source is None

    def test_two_different_sources_fail(self) -> None:
        network = NetworkSettings(country="Australia", input_source="a.osm")
        transit = TransitSettings(country="Australia", input_source="b.osm")

        assert not reconcile_settings(network, transit).ok

    def test_no_source_at_all_fails(self) -> None:
        result = reconcile_settings(NetworkSettings(country="Australia"), TransitSettings(country="Australia"))

        assert not result.ok
        assert "no input source" in result.messages[0]

    def test_no_active_category_fails(self, make_network_settings, make_transit_settings) -> None:
        network = make_network_settings(road_active=False, rail_active=False, water_active=False)

        result = reconcile_settings(network, make_transit_settings())

        assert not result.ok
        assert "at least one" in result.messages[-1]

    def test_success_returns_copies(self, make_network_settings, make_transit_settings) -> None:
        network = make_network_settings()
        transit = make_transit_settings()

        result = reconcile_settings(network, transit)

        assert result.network is not network
        assert result.transit is not transit

    def test_ensure_reconciled_raises_with_messages(self) -> None:
        network = NetworkSettings(country="Australia", input_source="file.dat")
        transit = TransitSettings(country="New Zealand", input_source="file.dat")

        with pytest.raises(ConfigurationError) as excinfo:
            ensure_reconciled(network, transit)

        assert excinfo.value.messages
        assert "Settings reconciliation failed" in str(excinfo.value)

    def test_for_source_activates_rail_and_water(self) -> None:
        settings = IntermodalSettings.for_source("file.dat", "Australia")

        network, transit = ensure_reconciled(settings.network, settings.transit)

        assert network.rail_active and network.water_active
        assert transit.input_source == "file.dat"


class TestReconcileProperties:
    @given(
        network_country=countries,
        transit_country=countries,
        network_source=sources,
        transit_source=sources,
    )
    def test_inputs_never_mutated(self, network_country, transit_country, network_source, transit_source) -> None:
        network = NetworkSettings(country=network_country, input_source=network_source)
        transit = TransitSettings(country=transit_country, input_source=transit_source)
        before = (snapshot(network), snapshot(transit))

        reconcile_settings(network, transit)

        assert (snapshot(network), snapshot(transit)) == before

    @given(
        network_country=countries,
        transit_country=countries,
        network_source=sources,
        transit_source=sources,
    )
    def test_success_means_agreement(self, network_country, transit_country, network_source, transit_source) -> None:
        network = NetworkSettings(country=network_country, input_source=network_source)
        transit = TransitSettings(country=transit_country, input_source=transit_source)

        result = reconcile_settings(network, transit)

        if network_country != transit_country:
            assert not result.ok
        if result.ok:
            assert result.network.country == result.transit.country
            assert result.network.input_source == result.transit.input_source
            assert result.network.input_source is not None
