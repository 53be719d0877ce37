"""
Outbound Ops API — Cache-Control Policies
===========================================

What:  Builds Cache-Control header values and defines the per-resource presets.
Why:   Lookup and dashboard data tolerate brief staleness; rendering the header
       from one function keeps every route consistent.
How:   Pure functions, no I/O. Presets are computed once at import.

Header format:
    "<scope>, max-age=<n>[, stale-while-revalidate=<m>]"

    - scope "private": browser cache only (per-user data, the default)
    - scope "public":  shared caches (CDN) may store the response too
    - stale-while-revalidate is only emitted when strictly positive
"""

import math
from dataclasses import dataclass
from typing import Literal

CacheScope = Literal["private", "public"]

NO_STORE = "no-store"


def to_cache_seconds(milliseconds: float) -> int:
    """
    Convert a millisecond duration to whole cache seconds.

    Non-finite and non-positive inputs yield 0; any positive input yields at
    least 1, so a sub-second TTL still produces a cacheable header.
    """
    if not math.isfinite(milliseconds) or milliseconds <= 0:
        return 0
    return max(1, math.floor(milliseconds / 1000))


def build_cache_control(
    max_age_seconds: int,
    scope: CacheScope = "private",
    stale_while_revalidate_seconds: int = 0,
) -> str:
    parts = [scope, f"max-age={max(0, max_age_seconds)}"]
    if stale_while_revalidate_seconds > 0:
        parts.append(f"stale-while-revalidate={stale_while_revalidate_seconds}")
    return ", ".join(parts)


@dataclass(frozen=True)
class CachePolicy:
    """Immutable description of how long a response may be reused."""

    max_age_seconds: int
    scope: CacheScope = "private"
    stale_while_revalidate_seconds: int = 0

    def header(self) -> str:
        return build_cache_control(
            self.max_age_seconds,
            scope=self.scope,
            stale_while_revalidate_seconds=self.stale_while_revalidate_seconds,
        )


# ── Presets ───────────────────────────────────────────────────────────────
# Lookup lists (hubs, clusters, processors) change rarely
LOOKUP_CACHE_MS = 60_000
LOOKUP_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(LOOKUP_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(LOOKUP_CACHE_MS * 5),
)

LH_TRIP_CACHE_MS = 60_000
LH_TRIP_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(LH_TRIP_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(LH_TRIP_CACHE_MS * 2),
)

# KPI and hub dashboards refresh every half minute
KPI_CACHE_MS = 30_000
KPI_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(KPI_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(KPI_CACHE_MS * 2),
)

HUB_CACHE_MS = 30_000
HUB_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(HUB_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(HUB_CACHE_MS * 2),
)
