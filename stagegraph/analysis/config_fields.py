"""Derive the operator input fields a pipeline needs before it can run.

Per owning environment:

- plan stages yield one "<Tool>#" ticket field per tool, shared by every
  environment (planning tickets are environment-agnostic)
- approval stages yield one "<Environment> Sign off(Approver)" field,
  however many approval stages the environment has
- release stages yield one "<Environment> <Tool>#" field per environment and
  tool
"""

import re
from enum import Enum

from pydantic import BaseModel

from stagegraph.analysis.environment import group_by_environment
from stagegraph.models.category import Category
from stagegraph.models.stage_graph import StageGraph


class FieldType(str, Enum):
    plan = "plan"
    approval = "approval"
    release = "release"


class ConfigurationField(BaseModel):
    """One operator input, keyed by a synthetic key stable across runs."""

    key: str
    label: str
    type: FieldType
    node_name: str | None = None
    tool_name: str | None = None
    value: str = ""


def tool_name_from_stage_type(stage_type: str) -> str:
    """Readable tool name: `plan_azure_devops` -> "Azure Devops".

    Returns an empty string for types without a tool suffix.
    """
    parts = stage_type.split("_")
    if len(parts) < 2:
        return ""
    words = re.split(r"[_\s]+", "_".join(parts[1:]))
    return " ".join(word[:1].upper() + word[1:].lower() for word in words if word)


def field_slug(text: str) -> str:
    """Key fragment: lowercase, runs of anything but letters and digits become underscores."""
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


def derive_fields(graph: StageGraph) -> list[ConfigurationField]:
    """Configuration fields for every attributed plan, approval and release stage."""
    fields: list[ConfigurationField] = []
    plan_keys: set[str] = set()
    release_keys: set[str] = set()

    for environment, stages in group_by_environment(graph).items():
        environment_slug = field_slug(environment)

        for stage in stages:
            if stage.category is not Category.plan:
                continue
            tool = tool_name_from_stage_type(stage.type)
            if not tool:
                continue
            key = f"plan_{field_slug(tool)}"
            if key in plan_keys:
                continue
            plan_keys.add(key)
            fields.append(
                ConfigurationField(key=key, label=f"{tool}#", type=FieldType.plan, tool_name=tool)
            )

        if any(stage.category is Category.approval for stage in stages):
            fields.append(
                ConfigurationField(
                    key=f"approval_{environment_slug}",
                    label=f"{environment} Sign off(Approver)",
                    type=FieldType.approval,
                    node_name=environment,
                )
            )

        for stage in stages:
            if stage.category is not Category.release:
                continue
            tool = tool_name_from_stage_type(stage.type)
            if not tool:
                continue
            key = f"release_{environment_slug}_{field_slug(tool)}"
            if key in release_keys:
                continue
            release_keys.add(key)
            fields.append(
                ConfigurationField(
                    key=key,
                    label=f"{environment} {tool}#",
                    type=FieldType.release,
                    node_name=environment,
                    tool_name=tool,
                )
            )

    return fields


def initial_values(fields: list[ConfigurationField]) -> dict[str, str]:
    """Caller-owned `key -> value` map with every field empty."""
    return {field.key: "" for field in fields}
