"""Canonical node storage, hash index and predicate colors."""

import logging
from typing import Any, Mapping

from .types import Edge, Node

logger = logging.getLogger(__name__)


class GraphModel:
    """
    Owns the nodes, the hash -> node index, the derived links and the
    predicate type -> color map for one graph instance.

    The nodes and links lists are handed to the layout solver by reference:
    the solver reads them and writes position fields onto node objects, but
    every structural change goes through this class. Node identity is the
    object first inserted for a hash; later inserts with the same hash are
    ignored so a running layout keeps its positions.
    """

    def __init__(self):
        self._nodes: list[Node] = []
        self._index: dict[str, Node] = {}
        self._links: list[Edge] = []
        self._colors: dict[str, str] = {}

    # ========================================================================
    # Read access
    # ========================================================================

    @property
    def nodes(self) -> list[Node]:
        """Live node list. Read-only for callers."""
        return self._nodes

    @property
    def links(self) -> list[Edge]:
        """Live link list, replaced wholesale on every resync. Read-only for callers."""
        return self._links

    @property
    def colors(self) -> dict[str, str]:
        return dict(self._colors)

    def has_node(self, node_hash: str) -> bool:
        return node_hash in self._index

    def get_node(self, node_hash: str) -> Node | None:
        return self._index.get(node_hash)

    def color_for(self, predicate_type: str) -> str | None:
        return self._colors.get(predicate_type)

    # ========================================================================
    # Mutation
    # ========================================================================

    def upsert_node(self, node: Mapping[str, Any]) -> bool:
        """Insert a node if its hash is unseen. Returns whether it was inserted."""
        node_hash = node["hash"]
        if node_hash in self._index:
            return False

        self._nodes.append(node)
        self._index[node_hash] = node
        logger.debug(f"Inserted node '{node_hash}'")
        return True

    def remove_node_by_hash(self, node_hash: str) -> bool:
        """Remove a node from the list and the index. Returns False if unknown."""
        node = self._index.pop(node_hash, None)
        if node is None:
            return False

        for i, candidate in enumerate(self._nodes):
            if candidate is node:
                # In place, the solver holds this list
                del self._nodes[i]
                break

        logger.debug(f"Removed node '{node_hash}'")
        return True

    def bind_color(self, predicate_type: str, color: str) -> bool:
        """Bind a color to a predicate type unless one is bound already."""
        if predicate_type in self._colors:
            return False

        self._colors[predicate_type] = color
        logger.debug(f"Bound color {color} to predicate '{predicate_type}'")
        return True

    def replace_links(self, links: list[Edge]):
        """Install a freshly derived link list."""
        self._links = links

    # ========================================================================
    # Serialization
    # ========================================================================

    def snapshot(self) -> dict:
        """JSON-safe view: nodes without layout fields, links as hashes."""
        return {
            "nodes": [
                {k: v for k, v in node.items() if k not in ("vx", "vy", "index")}
                for node in self._nodes
            ],
            "links": [
                {
                    "source": link["source"]["hash"],
                    "target": link["target"]["hash"],
                    "predicate": link["predicate"],
                }
                for link in self._links
            ],
            "colors": dict(self._colors),
        }
