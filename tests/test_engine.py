"""Synchronization engine tests."""

from __future__ import annotations

import asyncio
import logging

import pytest

from tripletgraph.core import (
    GraphConfig,
    InvalidDocumentIdError,
    StoreError,
    TripletValidationError,
    create_graph,
    default_color,
)


def link_tuples(graph) -> list[tuple[str, str, str]]:
    return [(l["source"]["hash"], l["predicate"], l["target"]["hash"]) for l in graph.links]


def test_end_to_end_scenario(graph, solver) -> None:
    a, b, c = {"hash": "A"}, {"hash": "B"}, {"hash": "C"}

    async def scenario():
        await graph.add_triplet(a, {"type": "knows", "color": "#f00"}, b)

        assert graph.nodes == [a, b]
        assert graph.links == [{"source": a, "target": b, "predicate": "knows"}]
        assert graph.links[0]["source"] is a
        assert graph.color_for("knows") == "#f00"

        await graph.add_triplet({"hash": "A"}, {"type": "knows", "color": "#00f"}, c)

        assert graph.color_for("knows") == "#f00"
        assert [n["hash"] for n in graph.nodes] == ["A", "B", "C"]
        assert graph.nodes[0] is a
        assert len(graph.links) == 2

    asyncio.run(scenario())

    # One restart per mutation, each with the warm-up schedule
    assert solver.starts == [(10, 15, 20), (10, 15, 20)]


def test_add_node_twice_keeps_one_entry(graph) -> None:
    first = {"hash": "n1", "label": "first"}

    async def scenario():
        assert await graph.add_node(first) is True
        assert await graph.add_node({"hash": "n1", "label": "second"}) is True

    asyncio.run(scenario())

    assert len(graph.nodes) == 1
    assert graph.nodes[0] is first
    assert graph.model.get_node("n1")["label"] == "first"


def test_repeated_triplet_keeps_node_identity(graph) -> None:
    subject = {"hash": "a"}

    async def scenario():
        await graph.add_triplet(subject, {"type": "knows"}, {"hash": "b"})
        await graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"})

    asyncio.run(scenario())

    assert [n["hash"] for n in graph.nodes] == ["a", "b"]
    assert graph.nodes[0] is subject
    # Same triplet stored once, so one edge
    assert link_tuples(graph) == [("a", "knows", "b")]


def test_add_node_without_hash_is_rejected(graph, solver) -> None:
    async def scenario():
        assert await graph.add_node({"label": "no hash"}) is False
        assert await graph.add_node(None) is False

    asyncio.run(scenario())

    assert graph.nodes == []
    assert solver.starts == []


def test_malformed_triplets_are_rejected(graph, solver, caplog: pytest.LogCaptureFixture) -> None:
    async def scenario():
        with pytest.raises(TripletValidationError):
            await graph.add_triplet(None, {"type": "knows", "color": "red"}, {"hash": "b"})
        assert await graph.add_triplet({"hash": "a"}, {}, {"hash": "b"}) is None
        assert await graph.add_triplet({}, {"type": "knows", "color": "red"}, {"hash": "b"}) is None
        assert await graph.add_triplet({"hash": "a"}, {"type": 7}, {"hash": "b"}) is None
        assert await graph.add_triplet(None, None, None) is None

    with caplog.at_level(logging.ERROR):
        asyncio.run(scenario())

    assert graph.store.count() == 0
    assert graph.nodes == []
    assert graph.links == []
    assert graph.model.colors == {}
    assert solver.starts == []
    assert "Predicate requires type field." in caplog.text
    assert "Subject and Object require a hash field." in caplog.text


def test_validation_error_names_missing_parts(graph) -> None:
    with pytest.raises(TripletValidationError) as excinfo:
        asyncio.run(graph.add_triplet({"hash": "a"}, None, None))

    assert excinfo.value.missing == ["predicate", "object"]


def test_non_mapping_parts_are_rejected(graph, solver) -> None:
    async def scenario():
        with pytest.raises(TripletValidationError) as excinfo:
            await graph.add_triplet("a", {"type": "knows"}, {"hash": "b"})
        assert excinfo.value.invalid == ["subject"]
        assert excinfo.value.missing == []

        with pytest.raises(TripletValidationError) as excinfo:
            await graph.add_triplet({"hash": "a"}, "knows", ["b"])
        assert excinfo.value.invalid == ["predicate", "object"]

        assert await graph.add_node("lonely") is False

    asyncio.run(scenario())

    assert graph.store.count() == 0
    assert graph.nodes == []
    assert solver.starts == []



def test_color_and_marker_bound_on_first_sighting(graph) -> None:
    async def scenario():
        await graph.add_triplet({"hash": "a"}, {"type": "knows", "color": "red"}, {"hash": "b"})
        await graph.add_triplet({"hash": "b"}, {"type": "knows", "color": "blue"}, {"hash": "c"})
        await graph.add_triplet({"hash": "c"}, {"type": "likes", "color": "red"}, {"hash": "a"})

    asyncio.run(scenario())

    assert graph.color_for("knows") == "red"
    assert graph.color_for("likes") == "red"
    # "blue" was never bound, and "red" is registered once
    assert [m["id"] for m in graph.markers] == ["arrow-red"]


def test_missing_color_uses_palette_policy(graph) -> None:
    asyncio.run(graph.add_triplet({"hash": "a"}, {"type": "owns"}, {"hash": "b"}))

    assert graph.color_for("owns") == default_color("owns")
    assert graph.color_for("owns") == default_color("owns", GraphConfig().palette)


def test_links_are_projection_of_store(graph) -> None:
    async def scenario():
        await graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"})
        await graph.add_triplet({"hash": "b"}, {"type": "likes"}, {"hash": "c"})
        await graph.add_triplet({"hash": "c"}, {"type": "knows"}, {"hash": "a"})
        await graph.remove_node("b")
        await graph.add_node({"hash": "d"})
        await graph.add_triplet({"hash": "d"}, {"type": "likes"}, {"hash": "a"})
        return await graph.store.get({})

    triplets = asyncio.run(scenario())

    expected = [(t["subject"], t["predicate"], t["object"]) for t in triplets]
    assert link_tuples(graph) == expected
    assert expected == [("c", "knows", "a"), ("d", "likes", "a")]
    for link in graph.links:
        assert graph.model.get_node(link["source"]["hash"]) is link["source"]
        assert graph.model.get_node(link["target"]["hash"]) is link["target"]


def test_remove_node_deletes_dependent_triplets(graph) -> None:
    async def scenario():
        await graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"})
        await graph.add_triplet({"hash": "c"}, {"type": "likes"}, {"hash": "a"})
        removed = await graph.remove_node("a")
        return removed, await graph.store.get({})

    removed, remaining = asyncio.run(scenario())

    assert removed == 2
    assert remaining == []
    assert not graph.model.has_node("a")
    assert [n["hash"] for n in graph.nodes] == ["b", "c"]
    assert graph.links == []


def test_remove_node_with_self_loop_deletes_once(graph) -> None:
    async def scenario():
        await graph.add_triplet({"hash": "a"}, {"type": "refers"}, {"hash": "a"})
        return await graph.remove_node("a")

    assert asyncio.run(scenario()) == 1
    assert graph.nodes == []


def test_remove_unknown_node_changes_nothing(graph, solver, caplog: pytest.LogCaptureFixture) -> None:
    async def scenario():
        await graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"})
        links_before = graph.links
        starts_before = len(solver.starts)

        with caplog.at_level(logging.ERROR):
            assert await graph.remove_node("nonexistent") is None

        assert graph.links is links_before
        assert len(solver.starts) == starts_before
        assert graph.store.count() == 1
        assert [n["hash"] for n in graph.nodes] == ["a", "b"]

    asyncio.run(scenario())
    assert "There was nothing to remove" in caplog.text


def test_node_without_triplets_is_not_removable(graph) -> None:
    async def scenario():
        await graph.add_node({"hash": "lonely"})
        return await graph.remove_node("lonely")

    assert asyncio.run(scenario()) is None
    assert graph.model.has_node("lonely")


def test_store_write_failure_propagates(graph, monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_put(triplet):
        raise StoreError("put", "disk full")

    monkeypatch.setattr(graph.store, "put", failing_put)

    with pytest.raises(StoreError):
        asyncio.run(graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"}))

    assert graph.nodes == []
    assert graph.links == []


def test_store_read_failure_during_resync_propagates(graph, monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_get(pattern=None):
        raise StoreError("get", "unreadable")

    monkeypatch.setattr(graph.store, "get", failing_get)

    with pytest.raises(StoreError):
        asyncio.run(graph.add_node({"hash": "a"}))


def test_partial_delete_failure_is_logged(graph, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    async def setup():
        await graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"})
        await graph.add_triplet({"hash": "c"}, {"type": "likes"}, {"hash": "a"})

    asyncio.run(setup())

    real_delete = graph.store.delete

    async def flaky_delete(triplet):
        if triplet["predicate"] == "likes":
            raise StoreError("del", "locked")
        return await real_delete(triplet)

    monkeypatch.setattr(graph.store, "delete", flaky_delete)

    with caplog.at_level(logging.WARNING):
        removed = asyncio.run(graph.remove_node("a"))

    assert removed == 1
    assert not graph.model.has_node("a")
    assert graph.store.count() == 1
    # The surviving triplet names a removed node, so it cannot become an edge
    assert graph.links == []
    assert "Failed to delete triplet" in caplog.text
    assert "Skipping triplet with unknown node" in caplog.text


def test_remove_node_reports_zero_when_every_delete_fails(graph, monkeypatch: pytest.MonkeyPatch) -> None:
    asyncio.run(graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"}))

    async def failing_delete(triplet):
        raise StoreError("del", "locked")

    monkeypatch.setattr(graph.store, "delete", failing_delete)

    # Found but nothing deleted, which is not the same as an unknown node
    assert asyncio.run(graph.remove_node("a")) == 0
    assert not graph.model.has_node("a")
    assert graph.store.count() == 1



def test_concurrent_mutations_are_serialized(graph) -> None:
    async def scenario():
        await asyncio.gather(
            graph.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"}),
            graph.add_triplet({"hash": "b"}, {"type": "knows"}, {"hash": "c"}),
            graph.add_triplet({"hash": "c"}, {"type": "knows"}, {"hash": "a"}),
        )

    asyncio.run(scenario())

    assert [n["hash"] for n in graph.nodes] == ["a", "b", "c"]
    assert link_tuples(graph) == [("a", "knows", "b"), ("b", "knows", "c"), ("c", "knows", "a")]


def test_change_listener_receives_snapshot(graph) -> None:
    snapshots = []
    graph.on_change(snapshots.append)

    asyncio.run(graph.add_triplet({"hash": "a"}, {"type": "knows", "color": "red"}, {"hash": "b"}))

    assert snapshots == [{
        "nodes": [{"hash": "a"}, {"hash": "b"}],
        "links": [{"source": "a", "target": "b", "predicate": "knows"}],
        "colors": {"knows": "red"},
    }]


def test_load_hydrates_nodes_from_persisted_store(persisted_config, solver) -> None:
    first = create_graph("doc", persisted_config, solver=solver)

    async def write():
        await first.add_triplet({"hash": "a"}, {"type": "knows"}, {"hash": "b"})
        await first.add_triplet({"hash": "b"}, {"type": "likes"}, {"hash": "c"})

    asyncio.run(write())
    first.close()

    reopened = create_graph("doc", persisted_config, solver=solver)
    created = asyncio.run(reopened.load())

    assert created == 3
    assert [n["hash"] for n in reopened.nodes] == ["a", "b", "c"]
    assert link_tuples(reopened) == [("a", "knows", "b"), ("b", "likes", "c")]
    assert reopened.color_for("likes") == default_color("likes")


@pytest.mark.parametrize("document_id", ["", None, 42, "../escape", ".hidden"])
def test_create_graph_rejects_bad_document_ids(document_id) -> None:
    with pytest.raises(InvalidDocumentIdError):
        create_graph(document_id)
