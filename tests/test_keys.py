"""Tests for cache key generation."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from cacheme.exceptions import KeyGenerationError
from cacheme.keys import function_identity, make_key


def fetch_user(user_id, **options):
    return user_id


def fetch_order(order_id):
    return order_id


@dataclass
class Point:
    x: int
    y: int


class Query(BaseModel):
    term: str
    page: int = 1


class Color(enum.Enum):
    RED = "red"
    BLUE = "blue"


class Opaque:
    pass


class TestDeterminism:
    def test_same_call_same_key(self) -> None:
        assert make_key(fetch_user, (1,), {}) == make_key(fetch_user, (1,), {})

    def test_key_is_sha256_hex(self) -> None:
        key = make_key(fetch_user, (1,), {})
        assert len(key) == 64
        int(key, 16)

    def test_kwarg_order_independent(self) -> None:
        key1 = make_key(fetch_user, (1,), {"a": 1, "b": 2})
        key2 = make_key(fetch_user, (1,), {"b": 2, "a": 1})
        assert key1 == key2

    def test_dict_order_independent(self) -> None:
        key1 = make_key(fetch_user, ({"a": 1, "b": [1, 2]},), {})
        key2 = make_key(fetch_user, ({"b": [1, 2], "a": 1},), {})
        assert key1 == key2

    def test_set_order_independent(self) -> None:
        key1 = make_key(fetch_user, ({"x", "y", "z"},), {})
        key2 = make_key(fetch_user, ({"z", "y", "x"},), {})
        assert key1 == key2


class TestDistinctness:
    def test_different_functions(self) -> None:
        assert make_key(fetch_user, (1,), {}) != make_key(fetch_order, (1,), {})

    def test_different_arguments(self) -> None:
        assert make_key(fetch_user, (1,), {}) != make_key(fetch_user, (2,), {})

    def test_tuple_and_list_differ(self) -> None:
        assert make_key(fetch_user, ((1, 2),), {}) != make_key(fetch_user, ([1, 2],), {})

    def test_positional_and_keyword_differ(self) -> None:
        assert make_key(fetch_user, (1,), {}) != make_key(fetch_user, (), {"user_id": 1})

    def test_bool_and_int_differ(self) -> None:
        assert make_key(fetch_user, (True,), {}) != make_key(fetch_user, (1,), {})

    def test_string_and_int_differ(self) -> None:
        assert make_key(fetch_user, ("1",), {}) != make_key(fetch_user, (1,), {})


class TestStructuredArguments:
    def test_dataclass_by_fields(self) -> None:
        assert make_key(fetch_user, (Point(1, 2),), {}) == make_key(fetch_user, (Point(1, 2),), {})
        assert make_key(fetch_user, (Point(1, 2),), {}) != make_key(fetch_user, (Point(2, 1),), {})

    def test_pydantic_model_by_fields(self) -> None:
        key1 = make_key(fetch_user, (Query(term="cache"),), {})
        key2 = make_key(fetch_user, (Query(term="cache", page=1),), {})
        key3 = make_key(fetch_user, (Query(term="cache", page=2),), {})
        assert key1 == key2
        assert key1 != key3

    def test_enum_member(self) -> None:
        assert make_key(fetch_user, (Color.RED,), {}) != make_key(fetch_user, (Color.BLUE,), {})

    def test_bytes(self) -> None:
        assert make_key(fetch_user, (b"\x00",), {}) != make_key(fetch_user, (b"\x01",), {})

    def test_object_without_repr_is_rejected(self) -> None:
        with pytest.raises(KeyGenerationError, match="Opaque"):
            make_key(fetch_user, (Opaque(),), {})


class TestFunctionIdentity:
    def test_module_and_qualname(self) -> None:
        assert function_identity(fetch_user) == f"{__name__}.fetch_user"

    def test_lambda(self) -> None:
        assert function_identity(lambda: None).endswith("<lambda>")
