from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from querykit.endpoints import BaseQueryApi, mutation_endpoint, query_endpoint
from querykit.engine import MutationApi, QueryEngine
from querykit.exceptions import MutationRollbackError, QueryCancelledError, TransportFailureError
from querykit.patches.models import Patch, PatchCollection, PatchOp
from querykit.state.entry import QueryStatus
from querykit.state.events import LifecycleEvent, PatchedEvent, RejectedEvent
from querykit.state.store import QueryCacheStore


@dataclass
class FakeTodoBackend:
    todos: dict[int, dict[str, Any]] = field(default_factory=lambda: {1: {"id": 1, "text": "a"}})
    fail_writes: bool = False
    calls: list[Any] = field(default_factory=list)
    write_gate: asyncio.Event | None = None
    write_error: BaseException | None = None

    async def __call__(self, args: Any, _api: BaseQueryApi) -> Any:
        self.calls.append(args)
        if not isinstance(args, dict):
            return dict(self.todos[args])
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.write_error is not None:
            raise self.write_error
        if self.fail_writes:
            raise ConnectionError("write failed")
        todo = self.todos[args["id"]]
        todo["text"] = args["text"]
        return {"todo": dict(todo), "version": 2}


def _optimistic_rename(args: dict[str, Any], api: MutationApi) -> None:
    def _recipe(draft: dict[str, Any]) -> None:
        draft["text"] = args["text"]

    api.context["undo"] = api.update_query_result("getTodo", args["id"], _recipe)


def _rollback(args: dict[str, Any], api: MutationApi, _error: BaseException) -> None:
    undo: PatchCollection = api.context["undo"]
    api.patch_query_result("getTodo", args["id"], undo.inverse_patches)


def _make_engine(backend: FakeTodoBackend, **rename_hooks: Any) -> tuple[QueryEngine, list[LifecycleEvent]]:
    hooks = {"on_start": _optimistic_rename, "on_error": _rollback}
    hooks.update(rename_hooks)
    store = QueryCacheStore()
    events: list[LifecycleEvent] = []
    store.subscribe(events.append)
    engine = QueryEngine(
        {
            "getTodo": query_endpoint(),
            "renameTodo": mutation_endpoint(transform_response=lambda response: response["todo"], **hooks),
        },
        backend,
        store,
    )
    return engine, events


@pytest.mark.asyncio
async def test_failed_mutation_rolls_back_optimistic_update() -> None:
    backend = FakeTodoBackend(fail_writes=True, write_gate=asyncio.Event())
    engine, _ = _make_engine(backend)
    await engine.query("getTodo", 1)
    before = engine.select_query("getTodo", 1)

    handle = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})

    # on_start ran before start_mutation returned.
    assert engine.select_query("getTodo", 1).data == {"id": 1, "text": "b"}

    backend.write_gate.set()  # type: ignore[union-attr]
    outcome = await handle

    assert isinstance(outcome.error, TransportFailureError)
    with pytest.raises(TransportFailureError):
        outcome.unwrap()
    after = engine.select_query("getTodo", 1)
    assert after.data == before.data == {"id": 1, "text": "a"}
    assert after.status == QueryStatus.FULFILLED


@pytest.mark.asyncio
async def test_optimistic_patches_match_recipe() -> None:
    backend = FakeTodoBackend(fail_writes=True)
    captured: dict[str, PatchCollection] = {}

    def _capture(args: dict[str, Any], api: MutationApi) -> None:
        _optimistic_rename(args, api)
        captured["undo"] = api.context["undo"]

    engine, _ = _make_engine(backend, on_start=_capture)
    await engine.query("getTodo", 1)

    await engine.mutate("renameTodo", {"id": 1, "text": "b"})

    assert captured["undo"].patches == [Patch(op=PatchOp.REPLACE, path=("text",), value="b")]
    assert captured["undo"].inverse_patches == [Patch(op=PatchOp.REPLACE, path=("text",), value="a")]


@pytest.mark.asyncio
async def test_successful_mutation_runs_hooks_in_order() -> None:
    backend = FakeTodoBackend()
    order: list[str] = []

    def _on_start(args: dict[str, Any], api: MutationApi) -> None:
        order.append("start")
        _optimistic_rename(args, api)

    def _on_success(_args: dict[str, Any], api: MutationApi, result: Any) -> None:
        order.append("success")
        api.context["result"] = result

    def _on_error(_args: dict[str, Any], _api: MutationApi, _error: BaseException) -> None:
        order.append("error")

    engine, events = _make_engine(backend, on_start=_on_start, on_success=_on_success, on_error=_on_error)
    await engine.query("getTodo", 1)

    handle = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})
    outcome = await handle

    assert order == ["start", "success"]
    assert outcome.unwrap() == {"id": 1, "text": "b"}
    assert engine.select_query("getTodo", 1).data == {"id": 1, "text": "b"}
    entry = engine.store.get_mutation(handle.request_id)  # type: ignore[attr-defined]
    assert entry.status == QueryStatus.FULFILLED
    assert entry.data == {"id": 1, "text": "b"}
    assert [e.type for e in events][-3:] == [
        "api/executeMutation/pending",
        "api/queryResultPatched",
        "api/executeMutation/fulfilled",
    ]


@pytest.mark.asyncio
async def test_on_success_receives_transformed_result() -> None:
    received: list[Any] = []
    engine, _ = _make_engine(
        FakeTodoBackend(),
        on_success=lambda _args, _api, result: received.append(result),
    )
    await engine.query("getTodo", 1)

    await engine.mutate("renameTodo", {"id": 1, "text": "c"})

    assert received == [{"id": 1, "text": "c"}]


@pytest.mark.asyncio
async def test_identical_mutations_are_not_deduplicated() -> None:
    backend = FakeTodoBackend(write_gate=asyncio.Event())
    engine, _ = _make_engine(backend)
    await engine.query("getTodo", 1)

    first = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})
    second = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})
    backend.write_gate.set()  # type: ignore[union-attr]
    outcomes = await asyncio.gather(first, second)

    assert all(outcome.is_fulfilled for outcome in outcomes)
    assert first.request_id != second.request_id
    assert backend.calls.count({"id": 1, "text": "b"}) == 2


@pytest.mark.asyncio
async def test_failing_rollback_keeps_both_errors() -> None:
    def _broken_rollback(_args: dict[str, Any], _api: MutationApi, _error: BaseException) -> None:
        raise KeyError("undo")

    engine, events = _make_engine(FakeTodoBackend(fail_writes=True), on_error=_broken_rollback)
    await engine.query("getTodo", 1)

    outcome = await engine.mutate("renameTodo", {"id": 1, "text": "b"})

    error = outcome.error
    assert isinstance(error, MutationRollbackError)
    assert isinstance(error.original, TransportFailureError)
    assert isinstance(error.rollback_error, KeyError)
    assert error.__cause__ is error.rollback_error
    rejected = events[-1]
    assert isinstance(rejected, RejectedEvent)
    assert rejected.error["name"] == "MutationRollbackError"


@pytest.mark.asyncio
async def test_on_start_failure_aborts_before_request() -> None:
    def _bad_start(_args: dict[str, Any], _api: MutationApi) -> None:
        raise ValueError("cannot prepare")

    backend = FakeTodoBackend()
    engine, events = _make_engine(backend, on_start=_bad_start)

    handle = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})

    assert handle.done()
    outcome = await handle
    assert isinstance(outcome.error, ValueError)
    assert backend.calls == []
    assert [e.phase for e in events] == ["pending", "rejected"]


@pytest.mark.asyncio
async def test_on_success_failure_triggers_rollback() -> None:
    seen_errors: list[BaseException] = []

    def _bad_success(_args: dict[str, Any], _api: MutationApi, _result: Any) -> None:
        raise RuntimeError("confirm failed")

    def _on_error(args: dict[str, Any], api: MutationApi, error: BaseException) -> None:
        seen_errors.append(error)
        _rollback(args, api, error)

    engine, _ = _make_engine(FakeTodoBackend(), on_success=_bad_success, on_error=_on_error)
    await engine.query("getTodo", 1)

    outcome = await engine.mutate("renameTodo", {"id": 1, "text": "b"})

    assert isinstance(outcome.error, RuntimeError)
    assert seen_errors == [outcome.error]
    assert engine.select_query("getTodo", 1).data == {"id": 1, "text": "a"}


@pytest.mark.asyncio
async def test_aborted_mutation_rolls_back() -> None:
    seen_errors: list[BaseException] = []

    def _on_error(args: dict[str, Any], api: MutationApi, error: BaseException) -> None:
        seen_errors.append(error)
        _rollback(args, api, error)

    backend = FakeTodoBackend(write_gate=asyncio.Event())
    engine, _ = _make_engine(backend, on_error=_on_error)
    await engine.query("getTodo", 1)

    handle = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})
    await asyncio.sleep(0)
    handle.abort("superseded")
    outcome = await handle

    assert isinstance(outcome.error, QueryCancelledError)
    assert len(seen_errors) == 1
    assert isinstance(seen_errors[0], QueryCancelledError)
    assert engine.select_query("getTodo", 1).data == {"id": 1, "text": "a"}


@pytest.mark.asyncio
async def test_untracked_mutation_leaves_no_entry() -> None:
    engine, events = _make_engine(FakeTodoBackend())
    await engine.query("getTodo", 1)

    handle = engine.start_mutation("renameTodo", {"id": 1, "text": "b"}, track=False)
    await handle

    assert engine.store.get_mutation(handle.request_id) is None  # type: ignore[attr-defined]
    assert any(e.phase == "fulfilled" and not e.track for e in events if not isinstance(e, PatchedEvent))


@pytest.mark.asyncio
async def test_update_query_result_on_uninitialized_entry_is_noop() -> None:
    engine, events = _make_engine(FakeTodoBackend())

    collection = engine.update_query_result("getTodo", 1, lambda draft: None)

    assert collection.patches == []
    assert collection.inverse_patches == []
    assert events == []


@pytest.mark.asyncio
async def test_update_query_result_on_opaque_value_replaces_root() -> None:
    async def _counter(_args: Any, _api: BaseQueryApi) -> int:
        return 41

    engine = QueryEngine({"getCount": query_endpoint()}, _counter)
    await engine.query("getCount")

    collection = engine.update_query_result("getCount", None, lambda count: count + 1)

    assert collection.patches == [Patch(op=PatchOp.REPLACE, path=(), value=42)]
    assert collection.inverse_patches == [Patch(op=PatchOp.REPLACE, path=(), value=41)]
    assert engine.select_query("getCount", None).data == 42


@pytest.mark.asyncio
async def test_patch_query_result_accepts_plain_patches() -> None:
    engine, events = _make_engine(FakeTodoBackend())
    await engine.query("getTodo", 1)

    engine.patch_query_result("getTodo", 1, [{"op": "replace", "path": ["text"], "value": "b"}])

    assert engine.select_query("getTodo", 1).data == {"id": 1, "text": "b"}
    patched = events[-1]
    assert isinstance(patched, PatchedEvent)
    assert patched.cache_key == "getTodo(1)"
    assert patched.patches == [Patch(op=PatchOp.REPLACE, path=("text",), value="b")]


class _Halt(BaseException):
    pass


@pytest.mark.asyncio
async def test_base_exception_rolls_back_and_settles_the_mutation() -> None:
    backend = FakeTodoBackend(write_error=_Halt())
    engine, events = _make_engine(backend)
    await engine.query("getTodo", 1)

    handle = engine.start_mutation("renameTodo", {"id": 1, "text": "b"})
    with pytest.raises(_Halt):
        await handle

    rejected = events[-1]
    assert isinstance(rejected, RejectedEvent)
    assert rejected.request_id == handle.request_id
    assert engine.store.get_mutation(handle.request_id).status == QueryStatus.REJECTED  # type: ignore[attr-defined]
    assert engine.select_query("getTodo", 1).data == {"id": 1, "text": "a"}
