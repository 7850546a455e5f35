#!/usr/bin/env python3
"""CLI script to inspect a pipeline descriptor.

Usage:
    stagegraph-inspect <pipeline.yaml>

    # or with JSON output
    stagegraph-inspect <pipeline.yaml> --json

    # print the sample descriptor
    stagegraph-inspect --sample
"""

import argparse
import json
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path

from stagegraph.analysis.config_fields import ConfigurationField, derive_fields
from stagegraph.analysis.environment import participates_in_attribution, resolve_owning_environment
from stagegraph.errors import FormatError, UnresolvedDependency
from stagegraph.logging import configure_logging
from stagegraph.models.stage_graph import StageGraph
from stagegraph.sdk.converter import find_unresolved_dependencies, graph_from_descriptor, parse_descriptor
from stagegraph.sdk.templates import sample_descriptor_yaml


@dataclass
class PipelineReport:
    """What a descriptor turns into once converted and analyzed."""

    name: str
    node_count: int
    edge_count: int
    edges: list[tuple[str, str]]
    # stage label -> owning environment label (None when unattributed)
    environments: dict[str, str | None] = field(default_factory=dict)
    unresolved: list[UnresolvedDependency] = field(default_factory=list)
    fields: list[ConfigurationField] = field(default_factory=list)


def build_report(text: str) -> PipelineReport:
    """Convert descriptor text and collect the report."""
    descriptor = parse_descriptor(text)
    graph: StageGraph = graph_from_descriptor(descriptor)

    environments: dict[str, str | None] = {}
    for node in graph.nodes:
        if not participates_in_attribution(node):
            continue
        owner = resolve_owning_environment(graph, node.id)
        environments[node.display_name] = owner.display_name if owner else None

    labels = {node.id: node.display_name for node in graph.nodes}
    return PipelineReport(
        name=descriptor.metadata.name,
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        edges=[(labels[edge.source], labels[edge.target]) for edge in graph.edges],
        environments=environments,
        unresolved=find_unresolved_dependencies(descriptor),
        fields=derive_fields(graph),
    )


def format_report(report: PipelineReport) -> str:
    """Format a report for human-readable output."""
    lines = []
    lines.append("=" * 60)
    lines.append(f"PIPELINE: {report.name}")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"Stages: {report.node_count}")
    lines.append(f"Edges:  {report.edge_count}")
    for source, target in report.edges:
        lines.append(f"  {source} -> {target}")
    lines.append("")

    if report.environments:
        lines.append("Owning environments:")
        for stage, environment in report.environments.items():
            lines.append(f"  {stage}: {environment or '(none)'}")
        lines.append("")

    if report.unresolved:
        lines.append("Unresolved dependencies (dropped):")
        for item in report.unresolved:
            lines.append(f"  {item.stage} -> {item.dependency}")
        lines.append("")

    lines.append("Configuration fields:")
    if not report.fields:
        lines.append("  (none)")
    for config_field in report.fields:
        lines.append(f"  {config_field.key}: {config_field.label}")
    return "\n".join(lines)


def report_to_dict(report: PipelineReport) -> dict:
    """Convert a PipelineReport to a JSON-serializable dict."""
    d = asdict(report)
    d["edges"] = [{"source": source, "target": target} for source, target in report.edges]
    d["fields"] = [config_field.model_dump(mode="json") for config_field in report.fields]
    return d


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Convert a pipeline descriptor and report its graph and configuration fields."
    )
    parser.add_argument(
        "descriptor_file",
        type=Path,
        nargs="?",
        help="path to the pipeline YAML file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="output the report as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="print the sample pipeline descriptor and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="log level (default from STAGEGRAPH_LOG_LEVEL)",
    )

    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)

    if args.sample:
        print(sample_descriptor_yaml(), end="")
        return 0

    if args.descriptor_file is None:
        parser.error("a descriptor file is required unless --sample is given")

    if not args.descriptor_file.exists():
        print(f"Error: descriptor file not found: {args.descriptor_file}", file=sys.stderr)
        return 1

    try:
        report = build_report(args.descriptor_file.read_text(encoding="utf-8"))
    except FormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report_to_dict(report), indent=2))
    else:
        print(format_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
