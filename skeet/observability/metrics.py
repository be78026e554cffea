"""In-process tool call metrics — no external deps."""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field


@dataclass
class MetricsCollector:
    call_count: int = 0
    error_count: int = 0
    refresh_count: int = 0
    tool_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    error_codes: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    latencies: list[int] = field(default_factory=list)
    _start_time: float = field(default_factory=time.time)

    def record_call(self, tool: str, latency_ms: int = 0, error_code: str = "") -> None:
        self.call_count += 1
        self.tool_counts[tool] += 1
        if error_code:
            self.error_count += 1
            self.error_codes[error_code] += 1
        if latency_ms:
            self.latencies.append(latency_ms)
            if len(self.latencies) > 1000:
                self.latencies = self.latencies[-500:]

    def record_refresh(self) -> None:
        self.refresh_count += 1

    def summary(self) -> dict:
        avg_latency = sum(self.latencies) / len(self.latencies) if self.latencies else 0
        return {
            "uptime_seconds": int(time.time() - self._start_time),
            "total_calls": self.call_count,
            "total_errors": self.error_count,
            "refreshes": self.refresh_count,
            "tools": dict(self.tool_counts),
            "errors": dict(self.error_codes),
            "avg_latency_ms": int(avg_latency),
        }
