"""Adapters for the collaborators the engine talks to: descriptor and policy stores."""

from stagegraph.adapters.descriptor_store import (
    DescriptorStore,
    FileDescriptorStore,
    HttpDescriptorStore,
    InMemoryDescriptorStore,
)
from stagegraph.adapters.policy_saver import (
    DebouncedPolicySaver,
    HttpPolicySink,
    ListPolicySink,
    PolicySink,
)

__all__ = [
    "DescriptorStore",
    "InMemoryDescriptorStore",
    "FileDescriptorStore",
    "HttpDescriptorStore",
    "PolicySink",
    "ListPolicySink",
    "HttpPolicySink",
    "DebouncedPolicySaver",
]
