"""Force-directed layout bridge: solver, arrowhead markers and tick frames."""

import asyncio
import hashlib
import logging
import math
from collections.abc import Callable
from typing import Protocol

from .config import GraphConfig
from .constants import (
    CENTERING_STRENGTH,
    INITIAL_SPREAD,
    LAYOUT_HEIGHT,
    LAYOUT_WIDTH,
    LINK_LENGTH,
    MARKER_PATH,
    MARKER_REF_X,
    MARKER_REF_Y,
    MARKER_SIZE,
    MARKER_VIEW_BOX,
    NODE_RADIUS,
    REPULSION_STRENGTH,
    SPRING_STRENGTH,
    VELOCITY_DECAY,
    WARMUP_ITERATIONS,
)
from .model import GraphModel
from .types import Edge, EdgePath, Marker, Node, TickFrame
from .utils import marker_id

logger = logging.getLogger(__name__)

TickListener = Callable[[TickFrame], None]


class LayoutSolver(Protocol):
    """What the adapter needs from a force/constraint layout solver."""
    handle_disconnected: bool

    def set_nodes(self, nodes: list[Node]) -> None: ...

    def set_links(self, links: list[Edge]) -> None: ...

    def on_tick(self, callback: Callable[[], None]) -> None: ...

    def start(self, *iterations: int) -> None: ...

    def stop(self) -> None: ...


class ForceSimulation:
    """
    Small force-directed solver: link springs, pairwise repulsion, a weak
    pull towards the centre and optional overlap removal.

    Nodes are read from the bound list on every tick and only their position
    fields (x, y, vx, vy, index) are written. Nodes that already carry a
    numeric position keep it across restarts; new nodes, and nodes whose
    position is not a number, are seeded next to a linked neighbour or near
    the centre, so the drawing does not jump.

    Disconnected components are never packed; handle_disconnected is only
    read by the adapter, which keeps it False.
    """

    def __init__(
        self,
        width: float = LAYOUT_WIDTH,
        height: float = LAYOUT_HEIGHT,
        link_length: float = LINK_LENGTH,
        avoid_overlaps: bool = True,
        handle_disconnected: bool = False,
    ):
        self.width = width
        self.height = height
        self.link_length = link_length
        self.avoid_overlaps = avoid_overlaps
        self.handle_disconnected = handle_disconnected

        self._nodes: list[Node] = []
        self._links: list[Edge] = []
        self._tick_callbacks: list[Callable[[], None]] = []
        self._task: asyncio.Task | None = None
        self.ticks = 0

    def set_nodes(self, nodes: list[Node]):
        self._nodes = nodes

    def set_links(self, links: list[Edge]):
        self._links = links

    def on_tick(self, callback: Callable[[], None]):
        self._tick_callbacks.append(callback)

    # ========================================================================
    # Scheduling
    # ========================================================================

    def start(self, *iterations: int):
        """
        Run one phase per iteration budget, each with a smaller step.
        Inside an event loop the phases run as a task that yields between
        ticks; a new start replaces the previous run.
        """
        schedule = iterations or WARMUP_ITERATIONS
        self.stop()
        self._prepare()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            for phase, count in enumerate(schedule):
                for _ in range(count):
                    self.tick(self._phase_alpha(phase))
            return

        self._task = loop.create_task(self._run(schedule))
        self._task.add_done_callback(self._log_run_failure)

    @staticmethod
    def _log_run_failure(task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Layout run stopped: {exc}", exc_info=exc)

    async def _run(self, schedule: tuple[int, ...]):
        for phase, count in enumerate(schedule):
            for _ in range(count):
                self.tick(self._phase_alpha(phase))
                await asyncio.sleep(0)

    def stop(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self):
        """Wait until the current run (and any run that replaced it) finishes."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @staticmethod
    def _phase_alpha(phase: int) -> float:
        return 1.0 / (2 ** phase)

    # ========================================================================
    # Physics
    # ========================================================================

    def _prepare(self):
        """Index nodes and seed positions for nodes that have none."""
        for i, node in enumerate(self._nodes):
            node["index"] = i
        self._seed_positions()

    @staticmethod
    def _has_position(node: Node) -> bool:
        for key in ("x", "y"):
            value = node.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if not math.isfinite(value):
                return False
        return True

    def _seed_positions(self):
        neighbours: dict[str, Node] = {}
        for link in self._links:
            source, target = link["source"], link["target"]
            neighbours.setdefault(source["hash"], target)
            neighbours.setdefault(target["hash"], source)

        for node in self._nodes:
            if not isinstance(node.get("vx"), (int, float)) or not isinstance(node.get("vy"), (int, float)):
                node["vx"] = node["vy"] = 0.0
            if self._has_position(node):
                continue

            anchor = neighbours.get(node["hash"])
            if anchor is not None and self._has_position(anchor):
                cx, cy, spread = anchor["x"], anchor["y"], self.link_length
            else:
                cx, cy, spread = self.width / 2, self.height / 2, INITIAL_SPREAD

            # Stable per hash so a re-added node lands in the same spot
            digest = hashlib.sha1(node["hash"].encode("utf-8")).digest()
            angle = digest[0] / 255 * 2 * math.pi
            radius = spread * (0.5 + digest[1] / 510)
            node["x"] = cx + radius * math.cos(angle)
            node["y"] = cy + radius * math.sin(angle)

    def tick(self, alpha: float = 1.0):
        """Advance the simulation by one iteration and notify listeners."""
        # Nodes may be inserted while a run is in flight
        self._seed_positions()
        nodes = self._nodes
        forces = [[0.0, 0.0] for _ in nodes]
        position = {id(node): i for i, node in enumerate(nodes)}

        for i in range(len(nodes)):
            a = nodes[i]
            for j in range(i + 1, len(nodes)):
                b = nodes[j]
                dx, dy = a["x"] - b["x"], a["y"] - b["y"]
                dist2 = max(dx * dx + dy * dy, 1.0)
                dist = math.sqrt(dist2)
                push = REPULSION_STRENGTH * alpha / dist2
                fx, fy = dx / dist * push, dy / dist * push
                forces[i][0] += fx
                forces[i][1] += fy
                forces[j][0] -= fx
                forces[j][1] -= fy

        for link in self._links:
            i = position.get(id(link["source"]))
            j = position.get(id(link["target"]))
            if i is None or j is None or i == j:
                continue
            a, b = nodes[i], nodes[j]
            dx, dy = b["x"] - a["x"], b["y"] - a["y"]
            dist = max(math.sqrt(dx * dx + dy * dy), 1e-6)
            pull = (dist - self.link_length) / dist * SPRING_STRENGTH * alpha
            forces[i][0] += dx * pull
            forces[i][1] += dy * pull
            forces[j][0] -= dx * pull
            forces[j][1] -= dy * pull

        cx, cy = self.width / 2, self.height / 2
        for node, (fx, fy) in zip(nodes, forces):
            fx += (cx - node["x"]) * CENTERING_STRENGTH * alpha
            fy += (cy - node["y"]) * CENTERING_STRENGTH * alpha
            node["vx"] = (node.get("vx", 0.0) + fx) * VELOCITY_DECAY
            node["vy"] = (node.get("vy", 0.0) + fy) * VELOCITY_DECAY
            node["x"] += node["vx"]
            node["y"] += node["vy"]

        if self.avoid_overlaps:
            self._separate()

        self.ticks += 1
        for callback in self._tick_callbacks:
            callback()

    def _separate(self):
        min_dist = 2 * NODE_RADIUS
        nodes = self._nodes
        for i in range(len(nodes)):
            a = nodes[i]
            for j in range(i + 1, len(nodes)):
                b = nodes[j]
                dx, dy = b["x"] - a["x"], b["y"] - a["y"]
                dist = math.sqrt(dx * dx + dy * dy)
                if dist >= min_dist:
                    continue
                if dist < 1e-6:
                    dx, dy, dist = 1.0, 0.0, 1.0
                shift = (min_dist - dist) / 2 / dist
                a["x"] -= dx * shift
                a["y"] -= dy * shift
                b["x"] += dx * shift
                b["y"] += dy * shift


class MarkerRegistry:
    """Arrowhead definitions, one per distinct color."""

    def __init__(self):
        self._markers: dict[str, Marker] = {}

    def register(self, color: str) -> bool:
        """Create a marker for a color. Returns False if it already exists."""
        if color in self._markers:
            return False

        self._markers[color] = {
            "id": marker_id(color),
            "color": color,
            "view_box": MARKER_VIEW_BOX,
            "ref_x": MARKER_REF_X,
            "ref_y": MARKER_REF_Y,
            "width": MARKER_SIZE,
            "height": MARKER_SIZE,
            "orient": "auto",
            "path": MARKER_PATH,
        }
        logger.debug(f"Registered marker for color {color}")
        return True

    def __contains__(self, color: str) -> bool:
        return color in self._markers

    def __len__(self) -> int:
        return len(self._markers)

    def all(self) -> list[Marker]:
        return list(self._markers.values())


class LayoutAdapter:
    """
    Binds a graph model's live node and link lists to a layout solver and
    turns solver ticks into frames for the renderer.
    """

    def __init__(
        self,
        model: GraphModel,
        solver: LayoutSolver | None = None,
        config: GraphConfig | None = None,
    ):
        self.model = model
        self.config = config or GraphConfig()
        self.markers = MarkerRegistry()
        self.solver = solver or ForceSimulation(
            width=self.config.width,
            height=self.config.height,
            link_length=self.config.link_length,
            avoid_overlaps=self.config.avoid_overlaps,
        )
        self._tick_listeners: list[TickListener] = []
        self.restarts = 0

        # Packing components moves existing nodes and makes the graph jump
        self.solver.handle_disconnected = False
        self.solver.set_nodes(model.nodes)
        self.solver.set_links(model.links)
        self.solver.on_tick(self._on_tick)

    def restart(self):
        """Re-bind the current links and run the warm-up schedule."""
        # Links are a new list after every resync
        self.solver.set_links(self.model.links)
        self.solver.set_nodes(self.model.nodes)
        if self.solver.handle_disconnected:
            logger.warning("handle_disconnected was enabled on the solver; disabling it")
            self.solver.handle_disconnected = False

        self.restarts += 1
        self.solver.start(*self.config.warmup_iterations)

    def register_marker(self, color: str) -> bool:
        return self.markers.register(color)

    def add_tick_listener(self, listener: TickListener):
        self._tick_listeners.append(listener)

    def remove_tick_listener(self, listener: TickListener):
        if listener in self._tick_listeners:
            self._tick_listeners.remove(listener)

    def _on_tick(self):
        if not self._tick_listeners:
            return
        frame = self.frame()
        for listener in list(self._tick_listeners):
            try:
                listener(frame)
            except Exception as e:
                logger.error(f"Tick listener failed: {e}", exc_info=True)

    def frame(self) -> TickFrame:
        """Current node positions and edge paths."""
        nodes = [
            {"hash": node["hash"], "x": node.get("x", 0.0), "y": node.get("y", 0.0)}
            for node in self.model.nodes
        ]
        links = [self._edge_path(link) for link in self.model.links]
        return {"nodes": nodes, "links": links}

    def _edge_path(self, link: Edge) -> EdgePath:
        source, target = link["source"], link["target"]
        x1, y1 = source.get("x", 0.0), source.get("y", 0.0)
        x2, y2 = target.get("x", 0.0), target.get("y", 0.0)
        dr = math.hypot(x2 - x1, y2 - y1)
        color = self.model.color_for(link["predicate"])

        return {
            "source": source["hash"],
            "target": target["hash"],
            "predicate": link["predicate"],
            "x1": x1,
            "y1": y1,
            "x2": x2,
            "y2": y2,
            "curvature": dr,
            "path": f"M{x1:.2f},{y1:.2f}A{dr:.2f},{dr:.2f} 0 0,1 {x2:.2f},{y2:.2f}",
            "color": color or self.config.default_link_color,
            "marker": marker_id(color) if color else "",
        }
