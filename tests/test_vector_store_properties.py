"""
Property-based tests for vector store addressing and the in-memory store.

**Feature: mbs-vector-sync, Property 13: Stable Point Addressing**
"""

import asyncio
import uuid

from hypothesis import given, settings
from hypothesis import strategies as st

from mbs_sync.infrastructure.fakes import InMemoryVectorStore
from mbs_sync.infrastructure.vector_store import HASH_FIELD, to_point_id

identifier_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "P")),
    min_size=1,
    max_size=20,
)

vector_strategy = st.lists(
    st.floats(min_value=-1.0, max_value=1.0, allow_nan=False, allow_infinity=False),
    min_size=8,
    max_size=8,
)


@given(identifier=identifier_strategy)
@settings(max_examples=200, deadline=None)
def test_point_id_is_deterministic_and_valid(identifier: str):
    """
    **Feature: mbs-vector-sync, Property 13: Stable Point Addressing**

    *For any* identifier, the point id is the same on every call and is
    either an unsigned 64-bit integer or a UUID string.
    """
    point_id = to_point_id(identifier)

    assert point_id == to_point_id(identifier)
    if isinstance(point_id, int):
        assert 0 <= point_id < 2**64
        assert str(point_id) == identifier
    else:
        uuid.UUID(point_id)


@given(first=identifier_strategy, second=identifier_strategy)
@settings(max_examples=200, deadline=None)
def test_distinct_identifiers_get_distinct_ids(first: str, second: str):
    """*For any* two different identifiers, the point ids differ."""
    if first == second:
        return
    assert to_point_id(first) != to_point_id(second)


@given(identifier=identifier_strategy, vector=vector_strategy, fingerprint=st.text(max_size=64))
@settings(max_examples=100, deadline=None)
def test_upsert_then_lookup_round_trip(identifier: str, vector: list[float], fingerprint: str):
    """*For any* stored point, lookup returns its payload and scan lists it once."""
    store = InMemoryVectorStore(vector_size=8)
    payload = {HASH_FIELD: fingerprint, "item_num": identifier}

    async def run_test():
        await store.upsert(identifier, vector, payload)
        await store.upsert(identifier, vector, payload)
        return await store.get_point(identifier), await store.scroll_all()

    entry, entries = asyncio.run(run_test())

    assert entry.payload == payload
    assert entry.vector == vector
    assert entry.fingerprint == fingerprint
    assert [e.identifier for e in entries] == [identifier]


@given(number=st.integers(min_value=0, max_value=10**9), zeros=st.integers(min_value=1, max_value=3))
@settings(max_examples=100, deadline=None)
def test_leading_zeros_address_a_different_point(number: int, zeros: int):
    """
    *For any* number, the identifier with leading zeros and the canonical
    identifier never share a point.
    """
    canonical = str(number)
    padded = "0" * zeros + canonical

    assert to_point_id(canonical) == number
    assert isinstance(to_point_id(padded), str)
    assert to_point_id(padded) != to_point_id(canonical)
