"""Queries over stage graphs: environment attribution and configuration fields."""

from stagegraph.analysis.config_fields import (
    ConfigurationField,
    FieldType,
    derive_fields,
    field_slug,
    initial_values,
    tool_name_from_stage_type,
)
from stagegraph.analysis.environment import (
    environment_name,
    group_by_environment,
    participates_in_attribution,
    resolve_owning_environment,
)

__all__ = [
    # config_fields exports
    "ConfigurationField",
    "FieldType",
    "derive_fields",
    "field_slug",
    "initial_values",
    "tool_name_from_stage_type",
    # environment exports
    "environment_name",
    "group_by_environment",
    "participates_in_attribution",
    "resolve_owning_environment",
]
