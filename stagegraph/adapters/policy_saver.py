"""Debounced persistence of pipeline-wide notification policies.

Editors call `update()` for every local change. The saver keeps one timer per
pipeline: each edit cancels and restarts it, and once no edit has arrived for
`delay` seconds the whole `node id -> policy` map is written to the sink.
Failed writes are not retried; the error is raised to the caller on its next
interaction with the saver.
"""

import threading
from typing import Protocol
from urllib.parse import quote

import httpx

from stagegraph.config import get_settings
from stagegraph.errors import StoreError
from stagegraph.logging import get_logger
from stagegraph.models.notification_policy import POLICY_MAP_ADAPTER, NotificationPolicy, PolicyMap

logger = get_logger(__name__)


class PolicySink(Protocol):
    """Protocol for receiving flushed policy maps."""

    def save(self, pipeline_id: str, policies: PolicyMap) -> None:
        """Persist the full policy map of one pipeline."""
        ...


class ListPolicySink:
    """Records every flush in a list."""

    def __init__(self) -> None:
        self.saves: list[tuple[str, PolicyMap]] = []
        self.saved = threading.Event()

    def save(self, pipeline_id: str, policies: PolicyMap) -> None:
        self.saves.append((pipeline_id, dict(policies)))
        self.saved.set()

    def clear(self) -> None:
        self.saves.clear()
        self.saved.clear()


class HttpPolicySink:
    """PUTs policy maps to the stagegraph server."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.server_url).rstrip("/")
        self.timeout = settings.http_timeout if timeout is None else timeout
        self.transport = transport

    def save(self, pipeline_id: str, policies: PolicyMap) -> None:
        url = f"{self.base_url}/api/pipelines/{quote(pipeline_id, safe='')}/notification-policies"
        payload = POLICY_MAP_ADAPTER.dump_python(policies, mode="json")
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.put(url, json=payload)
                response.raise_for_status()
        except httpx.RequestError as e:
            raise StoreError(f"Failed to connect to server at {self.base_url}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Saving notification policies failed ({e.response.status_code})"
            ) from e


class DebouncedPolicySaver:
    """Accumulates policy edits for one pipeline and flushes them after a quiet period."""

    def __init__(
        self,
        pipeline_id: str,
        sink: PolicySink,
        delay: float | None = None,
        policies: PolicyMap | None = None,
    ) -> None:
        """
        Args:
            pipeline_id: Pipeline whose policies are saved
            sink: Where flushed maps go
            delay: Quiet period in seconds (default STAGEGRAPH_DEBOUNCE_SECONDS)
            policies: Already persisted policies to start from
        """
        self.pipeline_id = pipeline_id
        self.sink = sink
        self.delay = get_settings().debounce_seconds if delay is None else delay
        self._policies: PolicyMap = dict(policies or {})
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0  # bumped whenever the timer restarts
        self._dirty = False
        self._error: Exception | None = None

    @property
    def policies(self) -> PolicyMap:
        """Copy of the current local map, including unflushed edits."""
        with self._lock:
            return dict(self._policies)

    @property
    def pending(self) -> bool:
        """Whether edits are waiting for the timer."""
        with self._lock:
            return self._dirty and self._timer is not None

    def update(self, node_id: str, policy: NotificationPolicy) -> None:
        """Record a node's new policy and restart the quiet-period timer.

        The edit is kept even when an earlier background flush failed; that
        failure is raised after the edit is recorded.
        """
        with self._lock:
            self._policies[node_id] = policy
            self._dirty = True
            self._restart_timer()
        self._raise_deferred_error()

    def remove(self, node_id: str) -> None:
        """Forget a deleted node's policy (also debounced)."""
        with self._lock:
            if self._policies.pop(node_id, None) is not None:
                self._dirty = True
                self._restart_timer()
        self._raise_deferred_error()

    def flush(self) -> bool:
        """Write outstanding edits now. Returns whether anything was written.

        Raises whatever the sink raised, including a failure from an earlier
        timer-driven flush.
        """
        with self._lock:
            self._cancel_timer()
        self._raise_deferred_error()
        return self._write(generation=None)

    def close(self) -> None:
        """Flush outstanding edits and stop the timer."""
        self.flush()

    def __enter__(self) -> "DebouncedPolicySaver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            with self._lock:
                self._cancel_timer()

    # --- internals ---

    def _restart_timer(self) -> None:
        # caller holds the lock
        self._cancel_timer()
        self._generation += 1
        timer = threading.Timer(self.delay, self._on_timer, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        # caller holds the lock
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int) -> None:
        try:
            self._write(generation=generation)
        except Exception as e:
            logger.error(
                "policy_flush_failed",
                pipeline_id=self.pipeline_id,
                error=str(e),
            )
            with self._lock:
                self._error = e

    def _write(self, generation: int | None) -> bool:
        with self._lock:
            if generation is not None:
                if generation != self._generation:
                    # superseded by a newer edit; its own timer will flush
                    return False
                self._timer = None
            if not self._dirty:
                return False
            snapshot = dict(self._policies)
            self._dirty = False

        try:
            self.sink.save(self.pipeline_id, snapshot)
        except Exception:
            with self._lock:
                self._dirty = True
            raise

        logger.debug("policies_flushed", pipeline_id=self.pipeline_id, nodes=len(snapshot))
        return True

    def _raise_deferred_error(self) -> None:
        with self._lock:
            error, self._error = self._error, None
        if error is not None:
            raise error
