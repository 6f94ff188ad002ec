"""
Operator Metrics: In-Process Counters

Tracks, per operator instance:
- Calls per operation
- Bytes uploaded / downloaded and transfer latency
- Idempotency signals absorbed (the "no-op" branch of an idempotent call)
- Faults wrapped and propagated

Cheap enough to leave on; export with snapshot().
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OperatorMetrics:
    """
    Counters for one operator instance.

    Thread-safe: file transfers record from worker threads.
    """

    calls: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    absorbed_signals: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    failures: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    bytes_uploaded: int = 0
    bytes_downloaded: int = 0
    upload_latency_sum_ns: int = 0
    download_latency_sum_ns: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_call(self, operation: str) -> None:
        with self._lock:
            self.calls[operation] += 1

    def record_absorbed(self, operation: str) -> None:
        """An expected backend signal was converted into a boolean result."""
        with self._lock:
            self.absorbed_signals[operation] += 1

    def record_failure(self, operation: str) -> None:
        with self._lock:
            self.failures[operation] += 1

    def record_upload(self, size_bytes: int, latency_ns: int) -> None:
        with self._lock:
            self.bytes_uploaded += size_bytes
            self.upload_latency_sum_ns += latency_ns

    def record_download(self, size_bytes: int, latency_ns: int) -> None:
        with self._lock:
            self.bytes_downloaded += size_bytes
            self.download_latency_sum_ns += latency_ns

    def get_upload_throughput_mbps(self) -> float:
        """Average upload throughput in MB/s."""
        if self.upload_latency_sum_ns == 0:
            return 0.0
        seconds = self.upload_latency_sum_ns / 1_000_000_000
        return (self.bytes_uploaded / 1_000_000) / seconds

    def get_download_throughput_mbps(self) -> float:
        """Average download throughput in MB/s."""
        if self.download_latency_sum_ns == 0:
            return 0.0
        seconds = self.download_latency_sum_ns / 1_000_000_000
        return (self.bytes_downloaded / 1_000_000) / seconds

    def snapshot(self) -> dict[str, Any]:
        """Point-in-time copy suitable for logging or health endpoints."""
        with self._lock:
            return {
                "calls": dict(self.calls),
                "absorbed_signals": dict(self.absorbed_signals),
                "failures": dict(self.failures),
                "bytes_uploaded": self.bytes_uploaded,
                "bytes_downloaded": self.bytes_downloaded,
                "upload_throughput_mbps": self.get_upload_throughput_mbps(),
                "download_throughput_mbps": self.get_download_throughput_mbps(),
            }
