"""Synchronization engine: validates input, writes through to the triplet
store and rebuilds the derived links after every mutation."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Mapping

from .config import GraphConfig
from .layout import LayoutAdapter
from .model import GraphModel
from .triplet_store import TripletStore
from .types import Edge, Triplet
from .exceptions import StoreError, TripletValidationError
from .utils import default_color, make_triplet, triplet_key

logger = logging.getLogger(__name__)

ChangeListener = Callable[[dict], None]


class SyncEngine:
    """
    Keeps a GraphModel consistent with a TripletStore.

    The store is the single source of truth for edges: after each mutation
    the full triplet set is read back and the model's links are rebuilt
    from it, then the layout is restarted. Every public operation holds
    the engine lock for its whole compound operation, so overlapping
    callers run one after another in arrival order.
    """

    def __init__(
        self,
        model: GraphModel,
        store: TripletStore,
        layout: LayoutAdapter,
        config: GraphConfig | None = None,
    ):
        self.model = model
        self.store = store
        self.layout = layout
        self.config = config or GraphConfig()
        self._lock = asyncio.Lock()
        self._change_listeners: list[ChangeListener] = []

    def add_change_listener(self, listener: ChangeListener):
        self._change_listeners.append(listener)

    # ========================================================================
    # Public API
    # ========================================================================

    async def add_triplet(
        self,
        subject: Mapping[str, Any] | None,
        predicate: Mapping[str, Any] | None,
        obj: Mapping[str, Any] | None,
    ) -> Triplet | None:
        """
        Persist a triplet and add its subject and object nodes.
        Returns the stored triplet, or None when the input was rejected.
        """
        if subject is None and predicate is None and obj is None:
            logger.error("TripletObject undefined")
            return None

        missing = [
            name for name, part in (("subject", subject), ("predicate", predicate), ("object", obj))
            if part is None
        ]
        if missing:
            raise TripletValidationError(missing=missing)

        invalid = [
            name for name, part in (("subject", subject), ("predicate", predicate), ("object", obj))
            if not isinstance(part, Mapping)
        ]
        if invalid:
            raise TripletValidationError(invalid=invalid)

        if not (subject.get("hash") and obj.get("hash")):
            logger.error("Subject and Object require a hash field.")
            return None

        predicate_type = predicate.get("type")
        if not predicate_type:
            logger.error("Predicate requires type field.")
            return None
        if not isinstance(predicate_type, str):
            logger.error("Predicate type field must be a string")
            return None

        async with self._lock:
            # A type keeps the color it was first seen with
            color = predicate.get("color") or default_color(predicate_type, self.config.palette)
            if self.model.bind_color(predicate_type, color):
                self.layout.register_marker(color)

            triplet = await self.store.put(make_triplet(subject["hash"], predicate_type, obj["hash"]))

            self.model.upsert_node(subject)
            self.model.upsert_node(obj)

            await self._resync()

        logger.info(f"Added triplet {triplet_key(triplet)}")
        return triplet

    async def add_node(self, node: Mapping[str, Any] | None) -> bool:
        """Add a node without any triplet. Returns False when rejected."""
        if not isinstance(node, Mapping) or not node.get("hash"):
            logger.error("Node requires a hash field.")
            return False

        async with self._lock:
            inserted = self.model.upsert_node(node)
            await self._resync()

        logger.info(f"Added node '{node['hash']}' (new: {inserted})")
        return True

    async def remove_node(self, node_hash: str) -> int | None:
        """
        Remove a node and every triplet naming it as subject or object.
        Returns the number of triplets deleted, or None when no triplet
        references the node. A failed delete is logged and not counted, so
        0 means the node was found but none of its triplets went away.
        """
        async with self._lock:
            as_subject = await self.store.get({"subject": node_hash})
            as_object = await self.store.get({"object": node_hash})

            if not as_subject and not as_object:
                logger.error("There was nothing to remove")
                return None

            # A self-loop shows up in both queries
            dependent = {triplet_key(t): t for t in as_subject + as_object}

            deleted = 0
            for triplet in dependent.values():
                try:
                    if await self.store.delete(triplet):
                        deleted += 1
                except (StoreError, ValueError) as e:
                    logger.error(f"Failed to delete triplet {triplet_key(triplet)}: {e}")

            if not self.model.remove_node_by_hash(node_hash):
                logger.error(f"There is no node '{node_hash}'")

            await self._resync()

        logger.info(f"Removed node '{node_hash}' and {deleted} triplets")
        return deleted

    async def load(self) -> int:
        """
        Rebuild the graph from an already populated store.
        Every hash the store mentions gets a node if it has none yet.
        Returns the number of nodes created.
        """
        async with self._lock:
            created = 0
            for triplet in await self.store.get({}):
                for node_hash in (triplet["subject"], triplet["object"]):
                    if self.model.upsert_node({"hash": node_hash}):
                        created += 1
                # Stored triplets carry no color; use the policy
                predicate_type = triplet["predicate"]
                color = default_color(predicate_type, self.config.palette)
                if self.model.bind_color(predicate_type, color):
                    self.layout.register_marker(color)

            await self._resync()

        logger.info(f"Loaded graph from store: {created} nodes, {len(self.model.links)} links")
        return created

    # ========================================================================
    # Resync
    # ========================================================================

    async def _resync(self):
        """Derive the links from the store contents. Caller must hold the lock."""
        triplets = await self.store.get({})

        links: list[Edge] = []
        for triplet in triplets:
            source = self.model.get_node(triplet["subject"])
            target = self.model.get_node(triplet["object"])
            if source is None or target is None:
                logger.warning(f"Skipping triplet with unknown node: {triplet_key(triplet)}")
                continue
            links.append({"source": source, "target": target, "predicate": triplet["predicate"]})

        self.model.replace_links(links)
        self.layout.restart()
        logger.debug(f"Resynced {len(links)} links from {len(triplets)} triplets")

        if self._change_listeners:
            snapshot = self.model.snapshot()
            for listener in list(self._change_listeners):
                listener(snapshot)
