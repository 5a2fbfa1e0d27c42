"""
Periodic and on-demand trigger for unit synchronization.
"""
import threading
from enum import Enum
from typing import Callable, List, Optional, TypeVar, Union

from ..reconciliation.engine import ReconciliationEngine
from ..storage.base import SyncStore
from ..utils.models import SyncInterval, SyncResult
from ..utils.network import NetworkMonitor
from ..utils.logger import get_logger, SyncLogger
from config.settings import sync_config


T = TypeVar("T")


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


def parse_interval(value: Union[str, int, SyncInterval]) -> SyncInterval:
    """Accept 15/30/60 (minutes) or "manual", case-insensitive."""
    if isinstance(value, SyncInterval):
        return value
    normalized = str(value).strip().lower()
    try:
        return SyncInterval(normalized)
    except ValueError:
        raise ValueError(f"Unsupported sync interval: {value!r} (expected 15, 30, 60 or manual)")


class SyncScheduler:
    """
    Runs a sync cycle over every unit on a timer and on demand.

    States: STOPPED and RUNNING. Units are synced one after another; a
    failing unit is logged and the cycle moves on.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        store: SyncStore,
        network: NetworkMonitor,
        interval: Optional[Union[str, int, SyncInterval]] = None,
        sync_logger: Optional[SyncLogger] = None,
    ):
        self.engine = engine
        self.store = store
        self.network = network
        self.interval = parse_interval(interval if interval is not None else sync_config.interval)
        self.state = SchedulerState.STOPPED
        self.logger = get_logger("sync_scheduler")
        self.sync_logger = sync_logger or SyncLogger(self.logger)
        self._cycle_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe: Callable[[], None] = network.subscribe(self.on_network_change)

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    def set_interval(self, value: Union[str, int, SyncInterval]) -> SyncInterval:
        """Replace the timer; "manual" leaves the scheduler stopped."""
        self.interval = parse_interval(value)
        self.stop()
        if self.interval != SyncInterval.MANUAL:
            self.start()
        self.logger.info("Sync interval changed", interval=self.interval.value)
        return self.interval

    def start(self):
        """Run one cycle immediately, then every interval."""
        if self.is_running or self.interval == SyncInterval.MANUAL:
            return

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event, self.interval.minutes * 60),
            name="sync-scheduler",
            daemon=True,
        )
        self.state = SchedulerState.RUNNING
        self._thread.start()
        self.logger.info("Sync scheduler started", every_minutes=self.interval.minutes)

    def stop(self):
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None
        if self.is_running:
            self.logger.info("Sync scheduler stopped")
        self.state = SchedulerState.STOPPED

    def close(self):
        """Stop the timer and detach from the network monitor."""
        self.stop()
        self._unsubscribe()

    def on_network_change(self, online: bool):
        if online and self.interval != SyncInterval.MANUAL:
            self.start()
        else:
            self.stop()

    def _run(self, stop_event: threading.Event, period_seconds: float):
        self._tick()
        while not stop_event.wait(period_seconds):
            self._tick()

    def _tick(self):
        try:
            self.run_cycle(automated=True)
        except Exception as e:
            self.logger.error("Scheduled sync cycle failed", error=str(e))

    def run_exclusive(self, fn: Callable[[], T]) -> T:
        """Run fn while no sync cycle holds the working set."""
        with self._cycle_lock:
            return fn()

    def trigger_now(self) -> List[SyncResult]:
        """Run one cycle now, whatever the timer state; still skipped when offline."""
        return self.run_cycle(automated=False)

    def run_cycle(self, automated: bool = True) -> List[SyncResult]:
        if not self.network.is_online():
            self.logger.info("Sync skipped: offline")
            return []

        results: List[SyncResult] = []
        with self._cycle_lock:
            units = self.store.get_units()
            self.logger.info("Sync cycle started", units=len(units), automated=automated)
            for unit in units:
                try:
                    result = self.engine.sync_unit(unit.id, automated=automated)
                except Exception as e:
                    self.sync_logger.log_error(e, context=f"unit {unit.id}")
                    continue
                results.append(result)
                self.sync_logger.log_unit_synced(unit.id, result)
            self.logger.info("Sync cycle completed", units=len(results))
        return results
