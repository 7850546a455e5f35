"""Error kinds raised or reported by the engine."""

from dataclasses import dataclass


class StageGraphError(Exception):
    """Base class for stagegraph errors."""


class FormatError(StageGraphError, ValueError):
    """Descriptor text is not parseable or does not describe a Pipeline."""


class UnknownNodeError(StageGraphError, KeyError):
    """A graph operation referenced a node id that is not in the graph."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class UnknownTemplateError(StageGraphError, KeyError):
    """A template flow or template step type is not known."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class StoreError(StageGraphError):
    """A descriptor or policy store could not complete a request."""


@dataclass(frozen=True)
class UnresolvedDependency:
    """A dependsOn reference that names no stage in the descriptor.

    Not raised: the converter drops the edge and keeps going.
    """

    stage: str
    dependency: str
