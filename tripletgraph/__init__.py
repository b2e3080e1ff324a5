"""Live triplet graph with a force-directed layout."""

__version__ = "0.1.0"
