"""FastAPI HTTP server for a live triplet graph."""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from tripletgraph import __version__
from tripletgraph.core import (
    Graph,
    GraphConfig,
    GraphError,
    LAYOUT_FIELDS,
    NodeNotFoundError,
    StoreError,
    TripletValidationError,
    create_graph,
    LAYOUT_HEIGHT,
    LAYOUT_WIDTH,
    LINK_LENGTH,
)
from tripletgraph.server.websocket import ConnectionManager

# Configure logging
log_level = os.getenv("TG_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================

class TripletRequest(BaseModel):
    """Request to add a triplet."""
    subject_hash: str = Field(..., min_length=1, description="Hash of the subject node")
    predicate_type: str = Field(..., min_length=1, description="Predicate type")
    object_hash: str = Field(..., min_length=1, description="Hash of the object node")
    color: str | None = Field(None, description="Color for a predicate type not seen before")


class NodeRequest(BaseModel):
    """Request to add a node without triplets."""
    hash: str = Field(..., min_length=1, description="Node hash")
    data: dict[str, Any] | None = Field(
        None, description="Additional node fields; layout fields (x, y, vx, vy, index) are ignored"
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    document_id: str
    nodes: int
    links: int
    triplets: int
    connections: int


# ============================================================================
# Global State
# ============================================================================

graph: Graph | None = None
connection_manager: ConnectionManager | None = None

# The loop only keeps weak references to tasks
broadcast_tasks: set[asyncio.Task] = set()


def broadcast(message: dict):
    """Push a message to connected WebSocket clients."""
    if not connection_manager or connection_manager.count() == 0:
        return
    task = asyncio.get_running_loop().create_task(connection_manager.broadcast_all(message))
    broadcast_tasks.add(task)
    task.add_done_callback(broadcast_tasks.discard)


def config_from_env() -> GraphConfig:
    """Build the graph configuration from TG_* environment variables."""
    data_dir = os.getenv("TG_DATA_DIR")
    return GraphConfig(
        data_dir=Path(data_dir) if data_dir else None,
        width=int(os.getenv("TG_WIDTH", str(LAYOUT_WIDTH))),
        height=int(os.getenv("TG_HEIGHT", str(LAYOUT_HEIGHT))),
        link_length=float(os.getenv("TG_LINK_LENGTH", str(LINK_LENGTH))),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global graph, connection_manager

    # Startup
    logger.info("Starting Triplet Graph HTTP Server...")

    document_id = os.getenv("TG_DOCUMENT_ID", "graph")
    connection_manager = ConnectionManager()
    graph = create_graph(document_id, config_from_env())

    graph.on_change(lambda snapshot: broadcast({"type": "graph", **snapshot, "markers": graph.markers}))
    graph.on_tick(lambda frame: broadcast({"type": "tick", **frame}))

    await graph.load()

    logger.info("Server ready")

    yield

    # Shutdown
    for task in list(broadcast_tasks):
        task.cancel()
    if graph:
        graph.close()

    logger.info("Server stopped")


app = FastAPI(
    title="Triplet Graph Server",
    description="Live subject-predicate-object graph with force-directed layout",
    version=__version__,
    lifespan=lifespan
)


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    if not graph:
        raise HTTPException(status_code=500, detail="Graph not initialized")

    return {
        "status": "ok",
        "version": __version__,
        "document_id": graph.document_id,
        "nodes": len(graph.nodes),
        "links": len(graph.links),
        "triplets": graph.store.count(),
        "connections": connection_manager.count() if connection_manager else 0,
    }


@app.get("/api/graph")
async def read_graph():
    """Current nodes, links (as hashes), predicate colors and markers."""
    if not graph:
        raise HTTPException(status_code=500, detail="Graph not initialized")

    return graph.snapshot()


@app.get("/api/graph/triplets")
async def query_triplets(
    subject: str | None = None,
    predicate: str | None = None,
    object: str | None = None,
):
    """Exact-match triplet lookup; omitted fields are wildcards."""
    if not graph:
        raise HTTPException(status_code=500, detail="Graph not initialized")

    try:
        pattern = {"subject": subject, "predicate": predicate, "object": object}
        return {"triplets": await graph.triplets(pattern)}
    except StoreError as e:
        logger.error(f"Error querying triplets: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/graph/triplets")
async def add_triplet(request: TripletRequest):
    """Add a triplet, creating its subject and object nodes if needed."""
    if not graph:
        raise HTTPException(status_code=500, detail="Graph not initialized")

    predicate = {"type": request.predicate_type}
    if request.color:
        predicate["color"] = request.color

    try:
        triplet = await graph.add_triplet(
            {"hash": request.subject_hash},
            predicate,
            {"hash": request.object_hash},
        )
    except TripletValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error(f"Error adding triplet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    if triplet is None:
        raise HTTPException(status_code=400, detail="Triplet rejected")

    return {"triplet": triplet, "color": graph.color_for(request.predicate_type)}


@app.post("/api/graph/nodes")
async def add_node(request: NodeRequest):
    """Add a node that has no triplets yet."""
    if not graph:
        raise HTTPException(status_code=500, detail="Graph not initialized")

    # Positions belong to the layout solver
    node = {key: value for key, value in (request.data or {}).items() if key not in LAYOUT_FIELDS}
    node["hash"] = request.hash

    try:
        added = await graph.add_node(node)
    except StoreError as e:
        logger.error(f"Error adding node: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    if not added:
        raise HTTPException(status_code=400, detail="Node requires a hash field.")

    return {"node": request.hash, "nodes": len(graph.nodes)}


@app.delete("/api/graph/nodes/{node_hash}")
async def remove_node(node_hash: str):
    """Delete a node and every triplet that references it."""
    if not graph:
        raise HTTPException(status_code=500, detail="Graph not initialized")

    try:
        deleted = await graph.remove_node(node_hash)
        if deleted is None:
            raise NodeNotFoundError(node_hash)
        return {"deleted": node_hash, "triplets_deleted": deleted}
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        logger.error(f"Error removing node: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    except GraphError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for live updates.
    Clients receive "graph" messages after each change and "tick" frames
    while the layout runs.
    """
    if not connection_manager or not graph:
        await websocket.close(code=1011, reason="Server not initialized")
        return

    connection_id = await connection_manager.connect(websocket)
    await connection_manager.send_personal(connection_id, {"type": "graph", **graph.snapshot()})

    try:
        # Keep connection alive and receive messages (for heartbeat/ping)
        while True:
            data = await websocket.receive_text()
            await websocket.send_json({"type": "pong", "message": data})

    except WebSocketDisconnect:
        connection_manager.disconnect(connection_id)
    except Exception as e:
        logger.error(f"WebSocket error for {connection_id}: {e}")
        connection_manager.disconnect(connection_id)
