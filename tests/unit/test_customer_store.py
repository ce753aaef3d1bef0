from decimal import Decimal

import pytest

from src.models import CustomerFilter
from src.utils.errors import CustomerNotFoundError


@pytest.mark.asyncio
async def test_empty_filter_lists_everyone(store):
    records = await store.find_all(CustomerFilter())
    assert len(records) == 6


@pytest.mark.asyncio
async def test_text_matches_any_field_case_insensitively(store):
    by_name = await store.find_all(CustomerFilter(text="SHARMA"))
    assert {r.id for r in by_name} == {'c1', 'c3'}

    by_notes = await store.find_all(CustomerFilter(text="sundays"))
    assert [r.id for r in by_notes] == ['c4']


@pytest.mark.asyncio
async def test_tokens_must_all_match(store):
    records = await store.find_all(CustomerFilter(tokens=["amit", "temple"]))
    assert [r.id for r in records] == ['c2']


@pytest.mark.asyncio
async def test_text_or_tokens(store):
    # Whole text matches nobody, but the tokens match Bharat
    records = await store.find_all(CustomerFilter(text="bharat atm paas", tokens=["bharat", "atm"]))
    assert [r.id for r in records] == ['c4']


@pytest.mark.asyncio
async def test_phone_and_limit(store):
    by_phone = await store.find_all(CustomerFilter(phone="98765-43210"))
    assert [r.id for r in by_phone] == ['c1']

    limited = await store.find_all(CustomerFilter(limit=2))
    assert len(limited) == 2


@pytest.mark.asyncio
async def test_create_and_update(store):
    created = await store.create({"name": " Kavita Joshi "})
    assert created.id
    assert created.name == "Kavita Joshi"
    assert created.balance == Decimal('0')

    updated = await store.update(created.id, {"landmark": "Post Office"})
    assert updated.landmark == "Post Office"
    assert (await store.find_by_id(created.id)).landmark == "Post Office"
    assert store.create_calls == 1
    assert store.update_calls == 1


@pytest.mark.asyncio
async def test_update_unknown_customer(store):
    with pytest.raises(CustomerNotFoundError):
        await store.update("missing", {"name": "X"})
    assert await store.find_by_id("missing") is None
