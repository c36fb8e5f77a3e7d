"""Process-wide pipeline counters."""
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from ..mev_detection.opportunity_models import Resolution


@dataclass(frozen=True)
class CountersSnapshot:
    """Read-only copy of the pipeline counters."""
    pending_scanned: int
    fetch_misses: int
    dropped_events: int
    opportunities_found: int
    unprofitable: int
    stale_discarded: int
    executions_attempted: int
    profitable_executions: int
    total_profit_eth: float
    resolutions: Dict[str, int]
    uptime_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PipelineCounters:
    """
    Aggregate counters owned by the pipeline.

    Mutated by pipeline workers and read from the status surface, which may
    run in a worker thread, so every access goes through a threading lock.
    Counters are never persisted and only reset on restart.
    """
    pending_scanned: int = 0
    fetch_misses: int = 0
    dropped_events: int = 0
    opportunities_found: int = 0
    unprofitable: int = 0
    stale_discarded: int = 0
    executions_attempted: int = 0
    profitable_executions: int = 0
    total_profit_eth: float = 0.0
    resolutions: Dict[str, int] = field(
        default_factory=lambda: {resolution.value: 0 for resolution in Resolution}
    )
    started_at: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_scanned(self) -> None:
        with self._lock:
            self.pending_scanned += 1

    def record_fetch_miss(self) -> None:
        with self._lock:
            self.fetch_misses += 1

    def record_dropped(self) -> None:
        with self._lock:
            self.dropped_events += 1

    def record_opportunity(self) -> None:
        with self._lock:
            self.opportunities_found += 1

    def record_unprofitable(self) -> None:
        with self._lock:
            self.unprofitable += 1

    def record_stale(self) -> None:
        with self._lock:
            self.stale_discarded += 1

    def record_attempt(self) -> None:
        with self._lock:
            self.executions_attempted += 1

    def record_resolution(self, resolution: Resolution, net_yield_eth: float = 0.0) -> None:
        """Tally a resolution; only inclusions credit profit."""
        with self._lock:
            self.resolutions[resolution.value] += 1
            if resolution is Resolution.INCLUDED:
                self.profitable_executions += 1
                self.total_profit_eth += net_yield_eth

    def snapshot(self) -> CountersSnapshot:
        with self._lock:
            return CountersSnapshot(
                pending_scanned=self.pending_scanned,
                fetch_misses=self.fetch_misses,
                dropped_events=self.dropped_events,
                opportunities_found=self.opportunities_found,
                unprofitable=self.unprofitable,
                stale_discarded=self.stale_discarded,
                executions_attempted=self.executions_attempted,
                profitable_executions=self.profitable_executions,
                total_profit_eth=self.total_profit_eth,
                resolutions=dict(self.resolutions),
                uptime_seconds=time.time() - self.started_at,
            )
