"""CLI entrypoint helpers for an intermodal OSM run."""

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List

from .coordinator import IntermodalPipeline
from .settings import IntermodalSettings, settings_from_env


def build_settings(args: argparse.Namespace) -> IntermodalSettings:
    settings = settings_from_env()
    if args.input_path:
        settings.network.input_source = args.input_path
        settings.transit.input_source = args.input_path
    if args.country:
        settings.network.country = args.country
        settings.transit.country = args.country
    if args.no_rail:
        settings.network.rail_active = False
    if args.no_water:
        settings.network.water_active = False
    if args.keep_dangling:
        settings.network.remove_dangling_subnetworks = False
        settings.transit.remove_dangling_zones = False
        settings.transit.remove_dangling_zone_groups = False
    return settings


def run_pipeline(settings: IntermodalSettings, pipeline: IntermodalPipeline | None = None) -> Dict[str, Any]:
    pipeline = pipeline or IntermodalPipeline()
    final_context = pipeline.run_context(settings.network, settings.transit)
    artifact = final_context["orchestrator"].to_json()
    cleanup_report = final_context.get("cleanup_report")
    artifact["meta"] = {
        "input_path": final_context["reconciled_network_settings"].input_source,
        "network_settings": final_context["reconciled_network_settings"].summary(),
        "transit_settings": final_context["reconciled_transit_settings"].summary(),
        "reconciliation_messages": final_context.get("reconciliation_messages", []),
        "cleanup_report": cleanup_report.to_json() if cleanup_report is not None else {},
        "validation_report": final_context.get("validation_report", {}),
        "phases": [record.to_json() for record in final_context.get("phase_log", [])],
    }
    return artifact


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read network and zoning from an OSM file and save JSON artifact.")
    parser.add_argument(
        "--input-path",
        default="",
        help="Path to the .osm or .osm.pbf source (defaults to INTERMODAL_INPUT_SOURCE).",
    )
    parser.add_argument(
        "--country",
        default="",
        help="Country name shared by network and transit settings (defaults to INTERMODAL_COUNTRY).",
    )
    parser.add_argument(
        "--output-path",
        default="03_data/intermodal/graph_artifact.json",
        help="Where to save resulting graph artifact JSON.",
    )
    parser.add_argument("--no-rail", action="store_true", help="Do not parse railways.")
    parser.add_argument("--no-water", action="store_true", help="Do not parse ferry routes.")
    parser.add_argument(
        "--keep-dangling",
        action="store_true",
        help="Keep dangling subnetworks, transfer zones and zone groups.",
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    artifact = run_pipeline(build_settings(args))
    output_path = Path(args.output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(artifact, ensure_ascii=False, indent=2), encoding="utf-8")
    report = artifact["meta"]["validation_report"]
    print(f"Intermodal artifact saved to: {output_path.resolve()}")
    print(
        "Counts:",
        f"layers={report['layer_count']}",
        f"nodes={report['node_count']}",
        f"links={report['link_count']}",
        f"zones={report['zone_count']}",
        f"zone_groups={report['zone_group_count']}",
        f"warnings={len(report['warnings'])}",
    )
    return 0
