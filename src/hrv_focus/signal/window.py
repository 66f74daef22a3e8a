from bisect import insort
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple


@dataclass(frozen=True)
class Sample:
    timestamp: float
    heart_rate_bpm: float
    motion_magnitude: float = 0.0


class TimeSeriesWindow:
    """Sliding time window over timestamped values with hop-based emission.

    Entries are kept ordered by timestamp. Eviction is purely age based,
    relative to the latest timestamp seen, so out-of-order pushes are accepted.
    The first snapshot is only emitted once ``window_seconds`` have elapsed
    since the first sample ever pushed; afterwards one snapshot per
    ``hop_seconds``.
    """

    def __init__(self, window_seconds: float = 60.0, hop_seconds: float = 5.0):
        self.window_seconds = float(window_seconds)
        self.hop_seconds = float(hop_seconds)
        self._entries: List[Tuple[float, int, Any]] = []
        self._seq = 0
        self._first_ts: Optional[float] = None
        self._latest_ts: Optional[float] = None
        self._last_emit_ts: Optional[float] = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def first_timestamp(self) -> Optional[float]:
        return self._first_ts

    @property
    def latest_timestamp(self) -> Optional[float]:
        return self._latest_ts

    @property
    def has_emitted(self) -> bool:
        return self._last_emit_ts is not None

    def _evict(self) -> None:
        cutoff = self._latest_ts - self.window_seconds
        idx = 0
        while idx < len(self._entries) and self._entries[idx][0] < cutoff:
            idx += 1
        if idx:
            del self._entries[:idx]

    def is_due(self) -> bool:
        if not self._entries or self._latest_ts is None:
            return False
        if self._last_emit_ts is None:
            return self._latest_ts - self._first_ts >= self.window_seconds
        return self._latest_ts - self._last_emit_ts >= self.hop_seconds

    def snapshot(self) -> Tuple[Any, ...]:
        return tuple(value for _, _, value in self._entries)

    def push(self, timestamp: float, value: Any, commit: bool = True) -> Optional[Tuple[Any, ...]]:
        """Add a value; return a read-only snapshot when an emission is due.

        With ``commit=False`` the emission anchor is not advanced and the
        caller is expected to call :meth:`mark_emitted` once the snapshot has
        been consumed successfully.
        """
        ts = float(timestamp)
        # seq keeps equal timestamps in arrival order and is never equal,
        # so values are never compared
        insort(self._entries, (ts, self._seq, value))
        self._seq += 1
        if self._first_ts is None:
            self._first_ts = ts
        if self._latest_ts is None or ts > self._latest_ts:
            self._latest_ts = ts
        self._evict()

        if not self.is_due():
            return None
        if commit:
            self.mark_emitted()
        return self.snapshot()

    def mark_emitted(self, timestamp: Optional[float] = None) -> None:
        self._last_emit_ts = self._latest_ts if timestamp is None else float(timestamp)

    def clear(self) -> None:
        self._entries.clear()
        self._seq = 0
        self._first_ts = None
        self._latest_ts = None
        self._last_emit_ts = None
