"""Utility functions for triplet graph operations."""

import hashlib
from typing import Any, Mapping

from .constants import DEFAULT_PALETTE, TRIPLET_FIELDS
from .exceptions import InvalidDocumentIdError
from .types import Triplet


def triplet_key(triplet: Mapping[str, str]) -> tuple[str, str, str]:
    """Generate the storage key for a triplet."""
    return (triplet["subject"], triplet["predicate"], triplet["object"])


def make_triplet(subject: str, predicate: str, obj: str) -> Triplet:
    """Build a flat triplet record."""
    return {"subject": subject, "predicate": predicate, "object": obj}


def validate_pattern(pattern: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Normalize a query pattern. Omitted fields are wildcards.
    Raises ValueError for unknown fields or non-string values.
    """
    if not pattern:
        return {}

    unknown = set(pattern) - set(TRIPLET_FIELDS)
    if unknown:
        raise ValueError(f"Unknown pattern fields: {sorted(unknown)}")

    normalized = {}
    for field, value in pattern.items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"Pattern field '{field}' must be a string")
        normalized[field] = value
    return normalized


def matches_pattern(triplet: Mapping[str, str], pattern: Mapping[str, str]) -> bool:
    """Check whether a triplet matches every bound field of a pattern."""
    return all(triplet[field] == value for field, value in pattern.items())


def default_color(predicate_type: str, palette: tuple[str, ...] = DEFAULT_PALETTE) -> str:
    """Pick a deterministic palette color for a predicate type."""
    digest = hashlib.sha1(predicate_type.encode("utf-8")).digest()
    return palette[digest[0] % len(palette)]


def marker_id(color: str) -> str:
    """Generate the marker id for an arrowhead color."""
    return f"arrow-{color}"


def validate_document_id(document_id: Any) -> str:
    """Validate a graph document id. Raises InvalidDocumentIdError if unusable."""
    if not isinstance(document_id, str) or document_id == "":
        raise InvalidDocumentIdError(document_id)
    # Used as a file name for persisted stores
    if "/" in document_id or "\\" in document_id or document_id.startswith("."):
        raise InvalidDocumentIdError(document_id, f"Document Id '{document_id}' is not a valid file name.")
    return document_id
