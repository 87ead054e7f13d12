"""Polling lifecycle for the console.

RefreshOrchestrator keeps a FleetSnapshot current. Phases:

    IDLE -> LOADING (start) -> READY
    READY -> REFRESHING (interval, focus or manual trigger) -> READY

A cycle fetches every source concurrently and commits only when all of them
succeed. A failed cycle keeps the previous snapshot and is reported through
``on_error`` and ``last_error``. Per-node snapshot storage is best effort and
never fails a cycle. Cycles may overlap: each gets an increasing id and only
the most recently issued one is allowed to commit.

Used as a context manager the orchestrator owns its interval timer and focus
listener, both of which stop when the block exits.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, wait
from enum import Enum
from typing import Any

from ...api import ApiClient
from ...constants import CYCLE_DEADLINE_S, REFRESH_INTERVAL_S
from ...exceptions import ChainOpsError
from ...models import FleetSnapshot, SnapshotStorage
from ...utils import utc_now_iso
from .storage import fetch_node_storage, summarize_storage

logger = logging.getLogger(__name__)


class RefreshPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    REFRESHING = "refreshing"


class RefreshOrchestrator:
    """Owns the fetch cycles, the interval timer and the committed snapshot.

    Args:
        client: API client used for every fetch
        interval: Seconds between timer-driven refreshes (0 disables the timer)
        deadline: Seconds a whole cycle may take before it is failed
        on_commit: Called with the new snapshot after a successful cycle
        on_error: Called with the exception after a failed cycle
    """

    def __init__(
        self,
        client: ApiClient,
        *,
        interval: float = REFRESH_INTERVAL_S,
        deadline: float = CYCLE_DEADLINE_S,
        on_commit: Callable[[FleetSnapshot], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.client = client
        self.interval = interval
        self.deadline = deadline
        self.on_commit = on_commit
        self.on_error = on_error

        self._lock = threading.Lock()
        self._snapshot = FleetSnapshot()
        self._phase = RefreshPhase.IDLE
        self._issued_cycle = 0
        self._in_flight = 0
        self._version = 0
        self._last_error: Exception | None = None
        self._last_error_at: str | None = None
        self._last_success_at: str | None = None

        self._stop_event = threading.Event()
        self._timer: threading.Thread | None = None
        self._started = False
        self._stopped = False
        self._listening = False

    # State accessors

    @property
    def snapshot(self) -> FleetSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def phase(self) -> RefreshPhase:
        with self._lock:
            return self._phase

    @property
    def is_initial_loading(self) -> bool:
        return self.phase is RefreshPhase.LOADING

    @property
    def is_refreshing(self) -> bool:
        return self.phase is RefreshPhase.REFRESHING

    @property
    def last_error(self) -> Exception | None:
        with self._lock:
            return self._last_error

    @property
    def last_error_at(self) -> str | None:
        with self._lock:
            return self._last_error_at

    @property
    def last_success_at(self) -> str | None:
        with self._lock:
            return self._last_success_at

    @property
    def version(self) -> int:
        """Counter bumped on every phase change, commit or failure."""
        with self._lock:
            return self._version

    @property
    def focus_listener_active(self) -> bool:
        with self._lock:
            return self._listening

    def poll_changed(self, seen_version: int) -> bool:
        """Return True if state changed since ``seen_version`` was read."""
        return self.version != seen_version

    # Lifecycle

    def start(self, *, block: bool = False) -> None:
        """Run the initial load and start the interval timer.

        Args:
            block: Wait for the initial load instead of running it in the background
        """
        with self._lock:
            if self._started:
                return
            self._started = True
            self._listening = True

        if block:
            self.refresh("initial")
        else:
            self._spawn("initial")

        if self.interval and self.interval > 0:
            self._timer = threading.Thread(
                target=self._timer_loop, name="chainops-refresh-timer", daemon=True
            )
            self._timer.start()

    def stop(self) -> None:
        """Stop the timer and ignore any later trigger or late cycle result."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._listening = False
        self._stop_event.set()
        if self._timer is not None and self._timer is not threading.current_thread():
            self._timer.join(timeout=1.0)
        self._timer = None

    def __enter__(self) -> RefreshOrchestrator:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # Triggers

    def request_refresh(self, reason: str = "manual") -> bool:
        """Start a background cycle. Returns False once the orchestrator is stopped."""
        if self._is_stopped():
            return False
        self._spawn(reason)
        return True

    def notify_focus(self) -> bool:
        """Focus-in event from the terminal; refreshes while the listener is registered."""
        if not self.focus_listener_active:
            return False
        return self.request_refresh("focus")

    def refresh(self, reason: str = "manual") -> bool:
        """Run one cycle in the calling thread.

        Returns:
            True if this cycle committed a new snapshot
        """
        cycle_id = self._begin_cycle(reason)
        try:
            snapshot = self._fetch_all()
        except Exception as e:
            return self._finish_cycle(cycle_id, reason, error=e)
        return self._finish_cycle(cycle_id, reason, snapshot=snapshot)

    # Internals

    def _is_stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def _spawn(self, reason: str) -> None:
        thread = threading.Thread(
            target=self.refresh, args=(reason,), name=f"chainops-refresh-{reason}", daemon=True
        )
        thread.start()

    def _timer_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.refresh("interval")

    def _begin_cycle(self, reason: str) -> int:
        with self._lock:
            self._issued_cycle += 1
            cycle_id = self._issued_cycle
            self._in_flight += 1
            if self._phase is RefreshPhase.IDLE:
                self._phase = RefreshPhase.LOADING
            elif self._phase is RefreshPhase.READY:
                self._phase = RefreshPhase.REFRESHING
            self._version += 1
        logger.debug("Refresh cycle %d started (%s)", cycle_id, reason)
        return cycle_id

    def _finish_cycle(
        self,
        cycle_id: int,
        reason: str,
        *,
        snapshot: FleetSnapshot | None = None,
        error: Exception | None = None,
    ) -> bool:
        committed = False
        notify_error = False
        with self._lock:
            self._in_flight -= 1
            latest = cycle_id == self._issued_cycle
            if self._stopped:
                logger.debug("Refresh cycle %d finished after stop; discarded", cycle_id)
            elif not latest:
                logger.debug(
                    "Refresh cycle %d superseded by %d; discarded", cycle_id, self._issued_cycle
                )
            elif error is not None:
                self._last_error = error
                self._last_error_at = utc_now_iso()
                notify_error = True
            elif snapshot is not None:
                self._snapshot = snapshot
                self._last_error = None
                self._last_success_at = snapshot.fetched_at
                committed = True

            if latest and self._phase is RefreshPhase.LOADING:
                self._phase = (
                    RefreshPhase.READY if self._in_flight == 0 else RefreshPhase.REFRESHING
                )
            elif self._phase is RefreshPhase.REFRESHING and self._in_flight == 0:
                self._phase = RefreshPhase.READY
            self._version += 1

        if notify_error:
            logger.warning("Refresh failed (%s): %s", reason, error)
            if self.on_error is not None:
                self.on_error(error)
        elif committed:
            logger.debug("Refresh cycle %d committed (%s)", cycle_id, reason)
            if self.on_commit is not None:
                self.on_commit(snapshot)
        return committed

    def _fetch_all(self) -> FleetSnapshot:
        """Fetch every source concurrently; raise on the first failure or on timeout.

        Snapshot storage is fetched per node once the configs are in, within
        what is left of the deadline. It never fails the cycle.
        """
        client = self.client
        started = time.monotonic()
        fetchers: dict[str, Callable[[], Any]] = {
            "node_configs": client.fetch_node_configs,
            "hermes_configs": client.fetch_hermes_configs,
            "nodes": client.fetch_node_health,
            "relayers": client.fetch_relayer_health,
            "etl": client.fetch_etl_health,
            "operations": client.fetch_active_operations,
        }
        future_to_source = {_submit(fn): name for name, fn in fetchers.items()}
        _, not_done = wait(future_to_source, timeout=self.deadline)
        if not_done:
            pending = ", ".join(sorted(future_to_source[f] for f in not_done))
            raise ChainOpsError(f"Refresh timed out after {self.deadline}s waiting for {pending}")
        results = {name: future.result() for future, name in future_to_source.items()}

        remaining = max(self.deadline - (time.monotonic() - started), 0)
        storage = self._fetch_storage(sorted(results["node_configs"]), timeout=remaining)

        return FleetSnapshot(
            node_configs=results["node_configs"],
            hermes_configs=results["hermes_configs"],
            nodes=tuple(results["nodes"]),
            relayers=tuple(results["relayers"]),
            etl=tuple(results["etl"]),
            operations=tuple(results["operations"]),
            storage=storage,
            fetched_at=utc_now_iso(),
        )

    def _fetch_storage(self, node_names: list[str], *, timeout: float) -> SnapshotStorage:
        if not node_names:
            return SnapshotStorage()
        future_to_node = {
            _submit(fetch_node_storage, self.client, name): name for name in node_names
        }
        done, not_done = wait(future_to_node, timeout=timeout)
        if not_done:
            logger.debug(
                "Snapshot storage skipped for %s",
                ", ".join(sorted(future_to_node[f] for f in not_done)),
            )
        return summarize_storage(future.result() for future in done)


def _submit(fn: Callable[..., Any], *args: Any) -> Future:
    """Run fn on its own daemon thread.

    A request stuck past the deadline is abandoned and its socket times out on
    its own; being a daemon, the thread never holds up interpreter exit.
    """
    future: Future = Future()

    def run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)

    threading.Thread(target=run, name="chainops-fetch", daemon=True).start()
    return future
