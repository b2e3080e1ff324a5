"""Embedded triplet store with subject, predicate and object indexes."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Mapping

from .constants import TRIPLET_FIELDS
from .exceptions import StoreError
from .persistence import TripletPersistence
from .types import Triplet
from .utils import make_triplet, matches_pattern, triplet_key, validate_pattern

logger = logging.getLogger(__name__)

TripletKey = tuple[str, str, str]


class TripletStore:
    """
    Asynchronous store of (subject, predicate, object) triplets.

    Structure:
    - _triplets[(s, p, o)] = {"subject": s, "predicate": p, "object": o}
    - _indexes["subject"][s] = ordered keys of triplets with that subject
      (same for "predicate" and "object")

    Patterns passed to get() bind any subset of the three fields; omitted
    fields are wildcards. When a path is given, every write is persisted
    before the call returns.
    """

    def __init__(self, path: Path | None = None):
        self._persistence = TripletPersistence(path) if path is not None else None
        self._triplets: dict[TripletKey, Triplet] = {}
        self._indexes: dict[str, dict[str, dict[TripletKey, None]]] = {
            field: {} for field in TRIPLET_FIELDS
        }
        self._write_lock = asyncio.Lock()
        self._closed = False

        if self._persistence is not None:
            for triplet in self._persistence.load():
                self._insert(triplet)

        logger.info(f"Triplet store opened ({path or 'in-memory'}): {len(self._triplets)} triplets")

    @property
    def path(self) -> Path | None:
        return self._persistence.path if self._persistence else None

    def count(self) -> int:
        """Return number of stored triplets."""
        return len(self._triplets)

    # ========================================================================
    # Index maintenance
    # ========================================================================

    def _insert(self, triplet: Triplet) -> bool:
        key = triplet_key(triplet)
        if key in self._triplets:
            return False

        self._triplets[key] = make_triplet(*key)
        for field, value in zip(TRIPLET_FIELDS, key):
            self._indexes[field].setdefault(value, {})[key] = None
        return True

    def _remove(self, triplet: Triplet) -> bool:
        key = triplet_key(triplet)
        if key not in self._triplets:
            return False

        del self._triplets[key]
        for field, value in zip(TRIPLET_FIELDS, key):
            bucket = self._indexes[field][value]
            del bucket[key]
            if not bucket:
                del self._indexes[field][value]
        return True

    def _candidates(self, pattern: dict[str, str]) -> list[TripletKey]:
        """Pick the smallest index bucket for the bound fields."""
        if not pattern:
            return list(self._triplets)

        buckets = [self._indexes[field].get(value, {}) for field, value in pattern.items()]
        return list(min(buckets, key=len))

    # ========================================================================
    # Public API
    # ========================================================================

    async def put(self, triplet: Mapping[str, Any]) -> Triplet:
        """Store a triplet. Storing an existing triplet is a no-op."""
        record = self._check_triplet(triplet)

        async with self._write_lock:
            self._ensure_open()
            if not self._insert(record):
                logger.debug(f"Triplet already stored: {triplet_key(record)}")
                return record
            try:
                await self._flush("put")
            except StoreError:
                self._remove(record)
                raise

        logger.debug(f"Put triplet {triplet_key(record)}")
        return record

    async def delete(self, triplet: Mapping[str, Any]) -> bool:
        """Delete a triplet. Returns False if it was not stored."""
        record = self._check_triplet(triplet)

        async with self._write_lock:
            self._ensure_open()
            if not self._remove(record):
                return False
            try:
                await self._flush("del")
            except StoreError:
                self._insert(record)
                raise

        logger.debug(f"Deleted triplet {triplet_key(record)}")
        return True

    async def get(self, pattern: Mapping[str, Any] | None = None) -> list[Triplet]:
        """Return copies of every triplet matching the pattern, in insertion order."""
        self._ensure_open()
        bound = validate_pattern(pattern)

        results = []
        for key in self._candidates(bound):
            triplet = self._triplets[key]
            if matches_pattern(triplet, bound):
                results.append(dict(triplet))

        # Completion is always asynchronous, like a real embedded store
        await asyncio.sleep(0)
        return results

    def close(self):
        """Close the store; further operations raise StoreError."""
        self._closed = True
        logger.info(f"Triplet store closed ({self.path or 'in-memory'})")

    # ========================================================================
    # Helpers
    # ========================================================================

    def _ensure_open(self):
        if self._closed:
            raise StoreError("access", "store is closed")

    @staticmethod
    def _check_triplet(triplet: Mapping[str, Any]) -> Triplet:
        missing = [field for field in TRIPLET_FIELDS if not isinstance(triplet.get(field), str)]
        if missing:
            raise ValueError(f"Triplet fields must be strings: {missing}")
        return make_triplet(triplet["subject"], triplet["predicate"], triplet["object"])

    async def _flush(self, operation: str):
        """Persist the current triplets. Caller must hold the write lock."""
        if self._persistence is None:
            await asyncio.sleep(0)
            return

        snapshot = list(self._triplets.values())
        saved = await asyncio.to_thread(self._persistence.save, snapshot)
        if not saved:
            raise StoreError(operation, f"could not write {self._persistence.path}")
