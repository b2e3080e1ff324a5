"""Core triplet graph components."""

from .types import Node, Predicate, Triplet, Edge, Marker, EdgePath, TickFrame
from .constants import *
from .exceptions import *
from .config import GraphConfig
from .model import GraphModel
from .persistence import TripletPersistence
from .triplet_store import TripletStore
from .layout import ForceSimulation, LayoutAdapter, LayoutSolver, MarkerRegistry
from .engine import SyncEngine
from .graph import Graph, create_graph
from .utils import triplet_key, make_triplet, default_color, marker_id, validate_document_id

__all__ = [
    # Types
    "Node",
    "Predicate",
    "Triplet",
    "Edge",
    "Marker",
    "EdgePath",
    "TickFrame",
    # Constants
    "LAYOUT_WIDTH",
    "LAYOUT_HEIGHT",
    "LINK_LENGTH",
    "WARMUP_ITERATIONS",
    "DEFAULT_LINK_COLOR",
    "DEFAULT_PALETTE",
    "TRIPLET_FIELDS",
    # Exceptions
    "GraphError",
    "TripletValidationError",
    "StoreError",
    "NodeNotFoundError",
    "InvalidDocumentIdError",
    # Classes
    "GraphConfig",
    "GraphModel",
    "TripletPersistence",
    "TripletStore",
    "ForceSimulation",
    "LayoutAdapter",
    "LayoutSolver",
    "MarkerRegistry",
    "SyncEngine",
    "Graph",
    "create_graph",
    # Utils
    "triplet_key",
    "make_triplet",
    "default_color",
    "marker_id",
    "validate_document_id",
]
