"""In-memory TTL cache for per-year book values.

Report endpoints ask for the same asset/year combination many times while
rendering. ``ResultCache`` memoizes ``book_values_for_year`` per instance;
construct one per reporting service (or per test) rather than sharing a
module-level map.

Keys carry a fingerprint of every depreciation-affecting field, so changing
an asset's method, salvage value or start date misses the cache even when
its price and useful life are unchanged.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import NamedTuple

from config.settings import settings
from depreciation_engine.errors import ValidationError
from depreciation_engine.query.book_value import (
    MONTHS,
    book_values_for_year,
    report_fallback,
    resolve_strict,
)
from depreciation_engine.schedule.models import AssetDepreciationInput

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    asset_id: str
    year: int
    unit_price: Decimal
    useful_life_years: int | Decimal
    fingerprint: str

    def __str__(self) -> str:
        return f"{self.asset_id}-{self.year}-{self.unit_price}-{self.useful_life_years}-{self.fingerprint}"


@dataclass
class _Entry:
    values: dict[int, Decimal]
    stored_at: float


def fingerprint(asset: AssetDepreciationInput) -> str:
    """Short md5 over the fields not already spelled out in the key."""
    parts = (
        asset.method.value,
        str(asset.salvage_value),
        asset.service_start_date.isoformat(),
        str(asset.declining_rate),
        str(asset.units_total),
        ",".join(str(u) for u in asset.units_per_year),
    )
    return hashlib.md5("|".join(parts).encode()).hexdigest()[:12]


class ResultCache:
    """TTL-bounded memo of ``book_values_for_year`` results.

    Thread-safe: the map is guarded by a lock, computation runs outside it.
    Two threads missing on the same key may both compute; the results are
    identical so the second write is harmless.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        strict: bool | None = None,
    ):
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        if self.ttl_seconds < 0:
            raise ValidationError("ttl_seconds", f"must be non-negative, got {self.ttl_seconds}")
        self._clock = clock
        self._strict = strict
        self._entries: dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()

    def _key(self, asset_id, year: int, asset: AssetDepreciationInput) -> CacheKey:
        return CacheKey(
            asset_id=str(asset_id),
            year=year,
            unit_price=asset.unit_price,
            useful_life_years=asset.useful_life_years,
            fingerprint=fingerprint(asset),
        )

    def _fresh(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at < self.ttl_seconds

    def _evict_expired(self, now: float) -> int:
        # caller holds self._lock
        expired = [k for k, e in self._entries.items() if not self._fresh(e, now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def get_cached(self, asset_id, year: int, asset: AssetDepreciationInput) -> dict[int, Decimal]:
        """Monthly book values for ``year``, served from cache when fresh.

        Fallback results (unit price substituted after an unexpected error)
        are returned but never stored, so the next call retries. Every miss
        also evicts expired entries, including keys superseded by a changed
        fingerprint that will never be read again.
        """
        if not isinstance(asset, AssetDepreciationInput):
            raise ValidationError("asset", f"expected AssetDepreciationInput, got {type(asset).__name__}")

        key = self._key(asset_id, year, asset)
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is not None and self._fresh(entry, now):
                logger.debug("Cache hit for %s", key)
                return dict(entry.values)
            evicted = self._evict_expired(now)
        if evicted:
            logger.debug("Evicted %d expired cache entries", evicted)

        logger.debug("Cache miss for %s", key)
        try:
            values = book_values_for_year(asset, year, strict=True)
        except ValidationError:
            raise
        except Exception:
            if resolve_strict(self._strict):
                raise
            report_fallback("get_cached", asset, asset_id=str(asset_id), year=year)
            return {m: asset.unit_price for m in MONTHS}

        with self._lock:
            self._entries[key] = _Entry(values=dict(values), stored_at=self._clock())
        return values

    def invalidate(self, asset_id) -> int:
        """Drop every entry for one asset. Returns the number removed."""
        asset_id = str(asset_id)
        with self._lock:
            stale = [k for k in self._entries if k.asset_id == asset_id]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("Invalidated %d cache entries for asset %s", len(stale), asset_id)
        return len(stale)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop entries older than the TTL. Returns the number removed."""
        now = self._clock()
        with self._lock:
            return self._evict_expired(now)

    def stats(self) -> dict:
        """Size and keys of the live (unexpired) entries."""
        now = self._clock()
        with self._lock:
            keys = [str(k) for k, e in self._entries.items() if self._fresh(e, now)]
        return {"size": len(keys), "keys": keys}
