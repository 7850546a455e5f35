"""Serialized pipeline descriptor models.

The descriptor is the text form a pipeline is stored and exchanged in:

    apiVersion: pipeline/v1
    kind: Pipeline
    metadata: {name, description, enterprise, entity, deploymentType, ...}
    spec:
      stages: [{name, type, dependsOn, config, position, notifications, ...}]
      variables: {...}
      notifications: {email: [...], slack: [...], teams: [...]}
      triggers: {push, pullRequest, schedule}

Python attributes are snake_case; the wire spelling is kept through aliases.
Parsed descriptors are frozen, transformations build new values.
"""

from collections import Counter
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator, model_validator

from stagegraph.utils.identifiers import utc_timestamp

API_VERSION = "pipeline/v1"
PIPELINE_KIND = "Pipeline"
DEFAULT_VERSION = "1.0.0"

# frozen, accepts both the python names and the wire aliases on input
WIRE_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


def _scalar_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class DeploymentType(str, Enum):
    """Kind of deployment a pipeline produces."""

    integration = "Integration"
    extension = "Extension"


class StageStatus(str, Enum):
    """Last known run status of a stage."""

    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class Position(BaseModel):
    """2D canvas coordinate hint."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class StageNotifications(BaseModel):
    """Channel flags serialized per stage."""

    model_config = ConfigDict(frozen=True)

    email: bool = False
    slack: bool = False


class Stage(BaseModel):
    """One unit of work, identified by its unique name."""

    model_config = WIRE_CONFIG

    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    description: str | None = None
    depends_on: list[str] | None = Field(default=None, alias="dependsOn")
    config: dict[str, JsonValue] = Field(default_factory=dict)
    position: Position | None = None
    notifications: StageNotifications | None = None
    status: StageStatus | None = None
    duration: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_text(cls, value: Any) -> Any:
        # `name: 1` is a stage named "1"
        return _scalar_text(value)

    @field_validator("depends_on", mode="before")
    @classmethod
    def _dependency_text(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_scalar_text(item) for item in value]
        return value

    @field_validator("config", mode="before")
    @classmethod
    def _empty_config(cls, value: Any) -> Any:
        # `config:` with no value parses as null
        return {} if value is None else value

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class PipelineMetadata(BaseModel):
    """Descriptive metadata carried alongside the stages."""

    model_config = WIRE_CONFIG

    name: str = ""
    description: str | None = None
    enterprise: str | None = None
    entity: str | None = None
    deployment_type: DeploymentType = Field(
        default=DeploymentType.integration, alias="deploymentType"
    )
    created_at: str = Field(default_factory=utc_timestamp, alias="createdAt")
    updated_at: str = Field(default_factory=utc_timestamp, alias="updatedAt")
    version: str = DEFAULT_VERSION

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _timestamp_text(cls, value: Any) -> Any:
        # unquoted ISO timestamps come out of YAML as datetime objects
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    @field_validator("name", "version", mode="before")
    @classmethod
    def _scalar_fields(cls, value: Any) -> Any:
        # `version: 1.0` and numeric pipeline names are text
        return _scalar_text(value)


class SpecNotifications(BaseModel):
    """Pipeline-wide notification recipients per channel."""

    model_config = ConfigDict(frozen=True)

    email: list[str] = Field(default_factory=list)
    slack: list[str] = Field(default_factory=list)
    teams: list[str] = Field(default_factory=list)


class Triggers(BaseModel):
    """What starts a pipeline run."""

    model_config = WIRE_CONFIG

    push: bool = False
    pull_request: bool = Field(default=False, alias="pullRequest")
    schedule: str | None = None


class PipelineSpec(BaseModel):
    """Ordered stages plus pipeline-wide settings."""

    model_config = WIRE_CONFIG

    stages: list[Stage] = Field(default_factory=list)
    variables: dict[str, str] = Field(default_factory=dict)
    notifications: SpecNotifications | None = None
    triggers: Triggers | None = None

    @field_validator("stages", mode="before")
    @classmethod
    def _empty_stages(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("variables", mode="before")
    @classmethod
    def _variable_text(cls, value: Any) -> Any:
        if value is None:
            return {}
        # `NODE_VERSION: 18` is a string variable written without quotes
        if isinstance(value, dict):
            return {key: _scalar_text(item) for key, item in value.items()}
        return value

    @model_validator(mode="after")
    def validate_unique_stage_names(self) -> Self:
        """Stage names are the dependency cross-reference key, so must be unique."""
        counts = Counter(stage.name for stage in self.stages)
        duplicates = sorted(name for name, count in counts.items() if count > 1)
        if duplicates:
            raise ValueError(f"duplicate stage names: {', '.join(duplicates)}")
        return self


class Descriptor(BaseModel):
    """A serialized pipeline: apiVersion, kind, metadata and spec."""

    model_config = WIRE_CONFIG

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: Literal["Pipeline"] = PIPELINE_KIND
    metadata: PipelineMetadata = Field(default_factory=PipelineMetadata)
    spec: PipelineSpec = Field(default_factory=PipelineSpec)

    @field_validator("metadata", "spec", mode="before")
    @classmethod
    def _empty_block(cls, value: Any) -> Any:
        # `metadata:` with no value parses as null
        return {} if value is None else value

    def to_wire(self) -> dict[str, Any]:
        """Plain-data form with wire key names, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.spec.stages]
