"""Configuration for a triplet graph instance."""

from dataclasses import dataclass, field
from pathlib import Path

from .constants import (
    DEFAULT_LINK_COLOR,
    DEFAULT_PALETTE,
    LAYOUT_HEIGHT,
    LAYOUT_WIDTH,
    LINK_LENGTH,
    WARMUP_ITERATIONS,
)


@dataclass
class GraphConfig:
    """Configuration for a triplet graph."""
    data_dir: Path | None = None  # None keeps the triplet store in memory
    width: int = LAYOUT_WIDTH
    height: int = LAYOUT_HEIGHT
    link_length: float = LINK_LENGTH
    avoid_overlaps: bool = True
    warmup_iterations: tuple[int, ...] = WARMUP_ITERATIONS
    palette: tuple[str, ...] = field(default=DEFAULT_PALETTE)
    default_link_color: str = DEFAULT_LINK_COLOR

    def store_path(self, document_id: str) -> Path | None:
        """Path of the persisted store for a document, or None when in memory."""
        if self.data_dir is None:
            return None
        return Path(self.data_dir) / f"{document_id}.json"
