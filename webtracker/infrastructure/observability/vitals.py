"""
In-process operational counters for the bot.
"""

import threading
import time
from dataclasses import dataclass, field

COUNTERS = (
    "jobs_processed",
    "parse_success",
    "parse_failure",
    "duplicate_found",
    "insert_success",
    "insert_failure",
    "transition_success",
)


@dataclass
class Vitals:
    start_time: float = field(default_factory=time.time)
    _counts: dict[str, int] = field(default_factory=lambda: dict.fromkeys(COUNTERS, 0))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _inc(self, name: str) -> None:
        with self._lock:
            self._counts[name] += 1

    def inc_jobs(self) -> None:
        self._inc("jobs_processed")

    def inc_parse_success(self) -> None:
        self._inc("parse_success")

    def inc_parse_failure(self) -> None:
        self._inc("parse_failure")

    def inc_duplicate(self) -> None:
        self._inc("duplicate_found")

    def inc_insert_success(self) -> None:
        self._inc("insert_success")

    def inc_insert_failure(self) -> None:
        self._inc("insert_failure")

    def inc_transition(self) -> None:
        self._inc("transition_success")

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def uptime(self) -> float:
        return time.time() - self.start_time


vitals = Vitals()
