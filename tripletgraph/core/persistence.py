"""Triplet persistence with atomic writes."""

import json
import logging
import os
from pathlib import Path

from .constants import TRIPLET_FIELDS
from .exceptions import StoreError
from .types import Triplet

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class TripletPersistence:
    """Reads and writes a store's triplets as a single JSON document."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> list[Triplet]:
        """
        Load triplets from disk.
        A missing file is an empty store; an unreadable one raises StoreError.
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path) as f:
                data = json.load(f)

            triplets = []
            for record in data.get("triplets", []):
                triplets.append({field: str(record[field]) for field in TRIPLET_FIELDS})

        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load triplets from {self.path}: {e}")
            raise StoreError("load", str(e)) from e

        logger.info(f"Loaded {len(triplets)} triplets from {self.path}")
        return triplets

    def save(self, triplets: list[Triplet]) -> bool:
        """
        Save triplets to disk with atomic write.
        Returns True on success, False on failure.
        """
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            data = {
                "triplets": triplets,
                "_meta": {"version": FORMAT_VERSION, "count": len(triplets)},
            }

            with open(temp_path, 'w') as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            # Atomic rename (POSIX guarantees atomicity)
            temp_path.replace(self.path)

            logger.debug(f"Saved {len(triplets)} triplets to {self.path}")
            return True

        except Exception as e:
            logger.error(f"Failed to save triplets to {self.path}: {e}")
            if temp_path.exists():
                temp_path.unlink()
            return False
