"""Per-node notification policy.

Each graph node can carry a policy with three outcome branches (success,
warning, failure). Policies are immutable values: every update takes the
previous policy and returns a new one, and the caller merges the result into
the pipeline-wide `node id -> policy` map it owns.
"""

from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

if TYPE_CHECKING:
    from stagegraph.models.descriptor import StageNotifications
    from stagegraph.models.stage_graph import GraphNode


class Outcome(str, Enum):
    """Outcome branches of a policy."""

    success = "success"
    warning = "warning"
    failure = "failure"


class Channel(str, Enum):
    email = "email"
    slack = "slack"


class FailureAction(str, Enum):
    rollback = "rollback"
    retrigger = "retrigger"
    notify = "notify"


class ChannelMap(BaseModel):
    """Which channels an outcome notifies."""

    model_config = ConfigDict(frozen=True)

    email: bool = False
    slack: bool = False


class OutcomeBranch(BaseModel):
    """Message and channels for one outcome."""

    model_config = ConfigDict(frozen=True)

    message: str = ""
    enabled: bool = True
    notifications: ChannelMap = Field(default_factory=ChannelMap)


class FailureActions(BaseModel):
    """Automatic reactions to a failed stage."""

    model_config = ConfigDict(frozen=True)

    rollback: bool = False
    retrigger: bool = True
    notify: bool = True


class FailureBranch(OutcomeBranch):
    actions: FailureActions = Field(default_factory=FailureActions)


class NotificationPolicy(BaseModel):
    """Success/warning/failure notification configuration for one node."""

    model_config = ConfigDict(frozen=True)

    success: OutcomeBranch
    warning: OutcomeBranch
    failure: FailureBranch

    def branch(self, outcome: Outcome | str) -> OutcomeBranch:
        return getattr(self, Outcome(outcome).value)


# pipeline-wide policies keyed by node id
PolicyMap = dict[str, NotificationPolicy]

POLICY_MAP_ADAPTER = TypeAdapter(PolicyMap)


def default_policy() -> NotificationPolicy:
    """Policy for a node that has none configured yet."""
    return NotificationPolicy(
        success=OutcomeBranch(
            message="Pipeline completed successfully!",
            notifications=ChannelMap(email=True, slack=False),
        ),
        warning=OutcomeBranch(
            message="Pipeline completed with warnings",
            notifications=ChannelMap(email=True, slack=True),
        ),
        failure=FailureBranch(
            message="Pipeline failed - check logs for details",
            notifications=ChannelMap(email=True, slack=True),
            actions=FailureActions(rollback=False, retrigger=True, notify=True),
        ),
    )


def policy_from_stage_notifications(channels: "StageNotifications") -> NotificationPolicy:
    """Rebuild a full policy from the single channel pair a descriptor stores.

    All three branches share the serialized flags and failure actions take
    their defaults. Only the success branch is written back out, so this is a
    superset of what was serialized.
    """
    shared = ChannelMap(email=channels.email, slack=channels.slack)
    return NotificationPolicy(
        success=OutcomeBranch(message="Stage completed successfully!", notifications=shared),
        warning=OutcomeBranch(message="Stage completed with warnings", notifications=shared),
        failure=FailureBranch(
            message="Stage failed - check logs for details",
            notifications=shared,
            actions=FailureActions(rollback=False, retrigger=True, notify=True),
        ),
    )


def _replace_branch(
    previous: NotificationPolicy, outcome: Outcome | str, **changes: Any
) -> NotificationPolicy:
    outcome = Outcome(outcome)
    branch = previous.branch(outcome).model_copy(update=changes)
    return previous.model_copy(update={outcome.value: branch})


def with_message(
    previous: NotificationPolicy, outcome: Outcome | str, message: str
) -> NotificationPolicy:
    return _replace_branch(previous, outcome, message=message)


def with_enabled(
    previous: NotificationPolicy, outcome: Outcome | str, enabled: bool
) -> NotificationPolicy:
    return _replace_branch(previous, outcome, enabled=enabled)


def with_channel(
    previous: NotificationPolicy,
    outcome: Outcome | str,
    channel: Channel | str,
    value: bool,
) -> NotificationPolicy:
    """Set one channel flag on one branch."""
    channels = previous.branch(outcome).notifications.model_copy(
        update={Channel(channel).value: value}
    )
    return _replace_branch(previous, outcome, notifications=channels)


def with_failure_action(
    previous: NotificationPolicy, action: FailureAction | str, value: bool
) -> NotificationPolicy:
    """Set one automatic action on the failure branch."""
    actions = previous.failure.actions.model_copy(update={FailureAction(action).value: value})
    return _replace_branch(previous, Outcome.failure, actions=actions)


def merge_policy(
    previous: NotificationPolicy, updates: Mapping[str, Any]
) -> NotificationPolicy:
    """Apply a branch-level partial update.

    `updates` maps branch names to either a complete branch or a mapping of
    branch fields; mappings are merged over the previous branch (one level
    deep), branches replace it. Passing a complete NotificationPolicy to the
    caller's map is the full-replace path and needs no merge.
    """
    merged = previous.model_dump()
    for name, value in updates.items():
        outcome = Outcome(name)
        if isinstance(value, OutcomeBranch):
            merged[outcome.value] = value.model_dump()
        elif isinstance(value, Mapping):
            merged[outcome.value] = {**merged[outcome.value], **value}
        else:
            raise TypeError(f"cannot merge {type(value).__name__} into the {name} branch")
    return NotificationPolicy.model_validate(merged)


def resolve_policy(policies: Mapping[str, NotificationPolicy], node: "GraphNode") -> NotificationPolicy:
    """Effective policy for a node: pipeline map entry, node's own, or the default."""
    return policies.get(node.id) or node.notification_policy or default_policy()
