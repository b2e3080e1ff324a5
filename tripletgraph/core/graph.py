"""Graph factory: composes store, model, layout and engine for one document."""

import logging
from typing import Any, Mapping

from .config import GraphConfig
from .engine import ChangeListener, SyncEngine
from .layout import LayoutAdapter, LayoutSolver, TickListener
from .model import GraphModel
from .triplet_store import TripletStore
from .types import Edge, Marker, Node, Triplet
from .utils import validate_document_id

logger = logging.getLogger(__name__)


class Graph:
    """
    One live triplet graph.

    add_triplet, add_node and remove_node are the mutation surface; the
    rest is read access for renderers and listener registration.
    """

    def __init__(
        self,
        document_id: str,
        model: GraphModel,
        store: TripletStore,
        layout: LayoutAdapter,
        engine: SyncEngine,
    ):
        self.document_id = document_id
        self.model = model
        self.store = store
        self.layout = layout
        self.engine = engine

    async def add_triplet(
        self,
        subject: Mapping[str, Any] | None,
        predicate: Mapping[str, Any] | None,
        obj: Mapping[str, Any] | None,
    ) -> Triplet | None:
        return await self.engine.add_triplet(subject, predicate, obj)

    async def add_node(self, node: Mapping[str, Any] | None) -> bool:
        return await self.engine.add_node(node)

    async def remove_node(self, node_hash: str) -> int | None:
        return await self.engine.remove_node(node_hash)

    async def load(self) -> int:
        return await self.engine.load()

    async def triplets(self, pattern: Mapping[str, Any] | None = None) -> list[Triplet]:
        return await self.store.get(pattern)

    @property
    def nodes(self) -> list[Node]:
        return self.model.nodes

    @property
    def links(self) -> list[Edge]:
        return self.model.links

    @property
    def markers(self) -> list[Marker]:
        return self.layout.markers.all()

    def color_for(self, predicate_type: str) -> str | None:
        return self.model.color_for(predicate_type)

    def on_change(self, listener: ChangeListener):
        self.engine.add_change_listener(listener)

    def on_tick(self, listener: TickListener):
        self.layout.add_tick_listener(listener)

    def snapshot(self) -> dict:
        data = self.model.snapshot()
        data["markers"] = self.markers
        return data

    def close(self):
        self.layout.solver.stop()
        self.store.close()


def create_graph(
    document_id: str,
    config: GraphConfig | None = None,
    solver: LayoutSolver | None = None,
) -> Graph:
    """Build a graph for a document. Raises InvalidDocumentIdError for a bad id."""
    validate_document_id(document_id)
    config = config or GraphConfig()

    store = TripletStore(config.store_path(document_id))
    model = GraphModel()
    layout = LayoutAdapter(model, solver=solver, config=config)
    engine = SyncEngine(model, store, layout, config=config)

    logger.info(f"Created graph '{document_id}'")
    return Graph(document_id, model, store, layout, engine)
