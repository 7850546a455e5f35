"""SDK for converting, exporting and templating pipelines."""

from stagegraph.sdk.converter import (
    dump_descriptor,
    export_graph,
    fallback_position,
    find_unresolved_dependencies,
    from_descriptor,
    graph_from_descriptor,
    parse_descriptor,
    assign_stage_names,
    stage_name,
    to_descriptor,
)
from stagegraph.sdk.templates import (
    STEP_TYPE_TO_STAGE_TYPE,
    TEMPLATE_FLOWS,
    TemplateStep,
    download_filename,
    graph_from_steps,
    graph_from_template,
    sample_descriptor,
    sample_descriptor_yaml,
    stage_type_for_step,
)

__all__ = [
    # converter
    "to_descriptor",
    "dump_descriptor",
    "export_graph",
    "parse_descriptor",
    "from_descriptor",
    "graph_from_descriptor",
    "find_unresolved_dependencies",
    "fallback_position",
    "assign_stage_names",
    "stage_name",
    # templates
    "STEP_TYPE_TO_STAGE_TYPE",
    "TEMPLATE_FLOWS",
    "TemplateStep",
    "download_filename",
    "graph_from_steps",
    "graph_from_template",
    "sample_descriptor",
    "sample_descriptor_yaml",
    "stage_type_for_step",
]
