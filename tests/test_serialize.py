from __future__ import annotations

import pytest
from pydantic import BaseModel

from querykit.serialize import default_serialize_query_args


class _TodoFilter(BaseModel):
    done: bool
    tag: str


def test_scalar_args() -> None:
    assert default_serialize_query_args("getTodo", 1) == "getTodo(1)"
    assert default_serialize_query_args("getTodo", "a") == 'getTodo("a")'
    assert default_serialize_query_args("listTodos", None) == "listTodos(null)"


def test_mapping_key_order_does_not_matter() -> None:
    first = default_serialize_query_args("listTodos", {"page": 1, "tag": "home"})
    second = default_serialize_query_args("listTodos", {"tag": "home", "page": 1})

    assert first == second == 'listTodos({"page":1,"tag":"home"})'


def test_models_tuples_and_sets() -> None:
    assert (
        default_serialize_query_args("listTodos", _TodoFilter(done=True, tag="x"))
        == 'listTodos({"done":true,"tag":"x"})'
    )
    assert default_serialize_query_args("getMany", (1, 2)) == "getMany([1,2])"
    assert default_serialize_query_args("getMany", {3, 1, 2}) == "getMany([1,2,3])"


def test_unserializable_args_raise() -> None:
    with pytest.raises(TypeError):
        default_serialize_query_args("getTodo", object())
