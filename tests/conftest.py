"""Shared fixtures for triplet graph tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tripletgraph.core import Graph, GraphConfig, create_graph


class RecordingSolver:
    """Layout solver stand-in that records what the adapter asks of it."""

    def __init__(self) -> None:
        # Starts enabled so tests can see the adapter switch it off
        self.handle_disconnected = True
        self.nodes = None
        self.links = None
        self.starts: list[tuple[int, ...]] = []
        self.link_bindings: list[list] = []
        self.tick_callbacks = []
        self.stopped = False

    def set_nodes(self, nodes) -> None:
        self.nodes = nodes

    def set_links(self, links) -> None:
        self.links = links
        self.link_bindings.append(links)

    def on_tick(self, callback) -> None:
        self.tick_callbacks.append(callback)

    def start(self, *iterations: int) -> None:
        self.starts.append(iterations)

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def solver() -> RecordingSolver:
    return RecordingSolver()


@pytest.fixture
def graph(solver: RecordingSolver) -> Graph:
    return create_graph("test-doc", GraphConfig(), solver=solver)


@pytest.fixture
def persisted_config(tmp_path: Path) -> GraphConfig:
    return GraphConfig(data_dir=tmp_path / "graphs")
