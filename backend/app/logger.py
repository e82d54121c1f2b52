"""
In-memory generation history.

Capability services report every provider call here as a GenerationRecord;
aggregated GatewayStats are computed on demand.
"""

import threading
from collections import Counter, defaultdict

from backend.app.models import (
    Capability,
    GatewayStats,
    GenerationRecord,
    ProviderUsageStat,
)

_DEFAULT_MAX_ENTRIES = 10_000


class RequestLogger:
    """Thread-safe in-memory store for generation records and statistics."""

    def __init__(self, max_entries: int = _DEFAULT_MAX_ENTRIES) -> None:
        self._entries: list[GenerationRecord] = []
        self._max_entries = max_entries
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def log(self, record: GenerationRecord) -> GenerationRecord:
        """Store ``record``; the oldest entries go once the store is full."""
        with self._lock:
            self._entries.append(record)
            overflow = len(self._entries) - self._max_entries
            if overflow > 0:
                del self._entries[:overflow]
        return record

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_logs(self, limit: int = 50, offset: int = 0) -> list[GenerationRecord]:
        """
        Return records in reverse-chronological order (newest first).
        Supports pagination via limit/offset.
        """
        with self._lock:
            reversed_entries = list(reversed(self._entries))
        return reversed_entries[offset : offset + limit]

    def get_stats(self) -> GatewayStats:
        """Aggregate call counts, failures, and latency per provider."""
        with self._lock:
            entries = list(self._entries)

        if not entries:
            return GatewayStats(
                total_requests=0,
                total_failures=0,
                success_rate_percent=0.0,
            )

        counts: dict[str, int] = defaultdict(int)
        failures: dict[str, int] = defaultdict(int)
        latencies: dict[str, list[int]] = defaultdict(list)
        capability_counts: Counter[Capability] = Counter()

        for entry in entries:
            counts[entry.provider] += 1
            latencies[entry.provider].append(entry.latency_ms)
            capability_counts[entry.capability] += 1
            if not entry.success:
                failures[entry.provider] += 1

        total_requests = len(entries)
        total_failures = sum(failures.values())
        success_rate = (total_requests - total_failures) / total_requests * 100

        provider_usage = [
            ProviderUsageStat(
                provider=provider,
                request_count=counts[provider],
                failure_count=failures[provider],
                avg_latency_ms=round(sum(latencies[provider]) / len(latencies[provider]), 2),
            )
            for provider in counts
        ]

        return GatewayStats(
            total_requests=total_requests,
            total_failures=total_failures,
            success_rate_percent=round(success_rate, 2),
            provider_usage=provider_usage,
            capability_counts=dict(capability_counts),
        )

    @property
    def count(self) -> int:
        """Return total number of stored records."""
        with self._lock:
            return len(self._entries)
