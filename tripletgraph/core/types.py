"""Type definitions for the triplet graph."""

from typing import TypedDict, NotRequired


class Node(TypedDict):
    """Node in the rendering graph. Extra application fields are allowed."""
    hash: str
    x: NotRequired[float]
    y: NotRequired[float]
    vx: NotRequired[float]
    vy: NotRequired[float]
    index: NotRequired[int]


class Predicate(TypedDict):
    """Edge type; the color is only read on the first sighting of a type."""
    type: str
    color: NotRequired[str]


class Triplet(TypedDict):
    """Persisted unit: node hashes and the predicate type."""
    subject: str
    predicate: str
    object: str


class Edge(TypedDict):
    """Derived edge holding live node references."""
    source: Node
    target: Node
    predicate: str


class Marker(TypedDict):
    """Arrowhead definition, one per distinct color."""
    id: str
    color: str
    view_box: str
    ref_x: float
    ref_y: float
    width: int
    height: int
    orient: str
    path: str


class EdgePath(TypedDict):
    """Per-tick geometry for one edge."""
    source: str
    target: str
    predicate: str
    x1: float
    y1: float
    x2: float
    y2: float
    curvature: float
    path: str
    color: str
    marker: str


class TickFrame(TypedDict):
    """Positions handed to the renderer on every layout iteration."""
    nodes: list[dict]
    links: list[EdgePath]
