"""
End-to-end tests of the conversation-aware resolver over the in-memory store.
"""
import asyncio
from decimal import Decimal

import pytest

from src.conversation import CustomerResolver
from src.models import CustomerUpdate, SearchStatus
from src.store import InMemoryCustomerStore
from src.utils.errors import (
    CustomerNotFoundError,
    CustomerStoreError,
    InvalidIdentifierError,
    InvalidQueryError,
    InvalidUpdateError,
)
from tests.conftest import SHOP_CUSTOMERS, make_customer

CONV = "conv-1"


class BrokenStore(InMemoryCustomerStore):
    """Store whose queries fail like an unreachable database."""

    async def find_all(self, customer_filter):
        self.find_all_calls += 1
        raise ConnectionError("database unreachable")


# --- search -----------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_goes_to_store_then_cache(resolver, store):
    first = await resolver.search_with_context("Rahul", CONV)
    assert first.status == SearchStatus.FOUND
    assert first.source == "store"
    assert first.top.id == 'c1'

    second = await resolver.search_with_context("rahul", CONV)
    assert second.source == "cache"
    assert second.top.id == 'c1'
    assert store.find_all_calls == 1


@pytest.mark.asyncio
async def test_devanagari_query(resolver):
    outcome = await resolver.search_with_context("राहुल", CONV)
    assert outcome.top.name == "Rahul Sharma"


@pytest.mark.asyncio
async def test_phone_number_search(resolver):
    outcome = await resolver.search_with_context("98765 43210", CONV)
    assert [r.id for r in outcome.results] == ['c1']
    assert outcome.top.match_score == 1.0


@pytest.mark.asyncio
async def test_no_match_is_not_a_failure(resolver):
    outcome = await resolver.search_with_context("Zorawar", CONV)
    assert outcome.status == SearchStatus.NO_MATCH
    assert outcome.ok
    assert outcome.results == []


@pytest.mark.asyncio
async def test_store_failure_is_reported(memory, settings):
    resolver = CustomerResolver(BrokenStore(SHOP_CUSTOMERS), memory, settings)
    outcome = await resolver.search_with_context("Rahul", CONV)
    assert outcome.status == SearchStatus.FAILED
    assert not outcome.ok
    assert "database unreachable" in outcome.error

    with pytest.raises(CustomerStoreError) as excinfo:
        await resolver.resolve_ambiguity("Rahul", CONV)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_input_validation(resolver):
    with pytest.raises(InvalidQueryError):
        await resolver.search_with_context("  ", CONV)
    with pytest.raises(InvalidIdentifierError):
        await resolver.search_with_context("Rahul", "")


# --- ambiguity --------------------------------------------------------------

@pytest.mark.asyncio
async def test_shared_first_name_needs_confirmation(resolver):
    resolution = await resolver.resolve_ambiguity("Amit", CONV)
    assert resolution.exact is None
    assert resolution.needs_confirmation
    assert {c.customer.id for c in resolution.candidates} == {'c2', 'c3'}


@pytest.mark.asyncio
async def test_confident_match_becomes_active(resolver, store):
    resolution = await resolver.resolve_ambiguity("Rahul Sharma", CONV)
    assert resolution.exact.id == 'c1'
    assert not resolution.needs_confirmation

    active = await resolver.get_active_customer(CONV)
    assert active.id == 'c1'
    assert store.find_by_id_calls == 0


@pytest.mark.asyncio
async def test_warm_cache_does_not_hide_namesakes(resolver):
    await resolver.search_with_context("Patel", CONV)

    resolution = await resolver.resolve_ambiguity("Amit", CONV)
    assert resolution.exact is None
    assert resolution.needs_confirmation
    assert {c.customer.id for c in resolution.candidates} == {'c2', 'c3'}


@pytest.mark.asyncio
async def test_tie_above_auto_accept_is_ambiguous(memory, settings):
    twins = SHOP_CUSTOMERS + [make_customer('c7', 'Rahul Sharma', landmark='Mill Colony')]
    resolver = CustomerResolver(InMemoryCustomerStore(twins), memory, settings)

    resolution = await resolver.resolve_ambiguity("Rahul Sharma", CONV)
    assert resolution.exact is None
    assert resolution.needs_confirmation
    assert {c.customer.id for c in resolution.candidates} == {'c1', 'c7'}
    assert await resolver.get_active_customer(CONV) is None


@pytest.mark.asyncio
async def test_nothing_found(resolver):
    resolution = await resolver.resolve_ambiguity("Zorawar", CONV)
    assert resolution.exact is None
    assert resolution.candidates == []
    assert not resolution.needs_confirmation


# --- confirmation and focus -------------------------------------------------

@pytest.mark.asyncio
async def test_confirmed_customer_served_from_cache(resolver, store):
    confirmed = await resolver.confirm_selection('c2', CONV)
    assert confirmed.name == 'Amit Patel'
    assert store.find_by_id_calls == 1

    active = await resolver.get_active_customer(CONV)
    assert active.id == 'c2'
    assert store.find_by_id_calls == 1


@pytest.mark.asyncio
async def test_confirm_unknown_customer(resolver):
    with pytest.raises(CustomerNotFoundError):
        await resolver.confirm_selection('missing', CONV)


@pytest.mark.asyncio
async def test_confirm_with_updates(resolver, store):
    confirmed = await resolver.confirm_selection('c2', CONV, CustomerUpdate(landmark="New Market"))
    assert confirmed.landmark == "New Market"
    assert (await store.find_by_id('c2')).landmark == "New Market"


@pytest.mark.asyncio
async def test_pronoun_refers_to_active_customer(resolver, store):
    await resolver.confirm_selection('c2', CONV)
    outcome = await resolver.search_with_context("usko", CONV)
    assert outcome.source == "cache"
    assert [r.id for r in outcome.results] == ['c2']
    assert store.find_all_calls == 0


@pytest.mark.asyncio
async def test_pronoun_after_invalidate_reloads_active_customer(resolver, store):
    await resolver.confirm_selection('c2', CONV)
    await resolver.invalidate_conversation_cache(CONV)

    outcome = await resolver.search_with_context("usko", CONV)
    assert outcome.status == SearchStatus.FOUND
    assert [r.id for r in outcome.results] == ['c2']
    assert store.find_all_calls == 0


@pytest.mark.asyncio
async def test_switch_to_previous_customer(resolver):
    await resolver.confirm_selection('c1', CONV)
    assert await resolver.switch_to_previous_customer(CONV) is None

    await resolver.confirm_selection('c2', CONV)
    previous = await resolver.switch_to_previous_customer(CONV)
    assert previous.id == 'c1'
    assert (await resolver.get_active_customer(CONV)).id == 'c1'

    # Switching again toggles back
    assert (await resolver.switch_to_previous_customer(CONV)).id == 'c2'


@pytest.mark.asyncio
async def test_switch_to_customer_by_name(resolver):
    await resolver.confirm_selection('c1', CONV)
    await resolver.confirm_selection('c2', CONV)
    assert [c.id for c in await resolver.customers_in_context(CONV)] == ['c2', 'c1']

    switched = await resolver.switch_to_customer_by_name("Raju", CONV)
    assert switched.id == 'c1'
    assert (await resolver.get_active_customer(CONV)).id == 'c1'
    assert [c.id for c in await resolver.customers_in_context(CONV)] == ['c1', 'c2']


@pytest.mark.asyncio
async def test_switch_by_name_only_considers_conversation_customers(resolver):
    assert await resolver.switch_to_customer_by_name("Rahul", CONV) is None
    assert await resolver.customers_in_context(CONV) == []

    await resolver.confirm_selection('c2', CONV)
    assert await resolver.switch_to_customer_by_name("Suresh", CONV) is None
    assert (await resolver.get_active_customer(CONV)).id == 'c2'


# --- expiry -----------------------------------------------------------------

@pytest.mark.asyncio
async def test_context_expires_after_ttl(resolver, store, clock):
    await resolver.confirm_selection('c2', CONV)
    clock.advance(299)
    assert (await resolver.get_active_customer(CONV)).id == 'c2'

    clock.advance(301)
    assert await resolver.get_active_customer(CONV) is None

    outcome = await resolver.search_with_context("Amit Patel", CONV)
    assert outcome.source == "store"


@pytest.mark.asyncio
async def test_cache_activity_keeps_context_alive(resolver, store, clock):
    await resolver.search_with_context("Priya", CONV)
    for _ in range(3):
        clock.advance(200)
        outcome = await resolver.search_with_context("Priya", CONV)
        assert outcome.source == "cache"

    await resolver.confirm_selection('c6', CONV)
    clock.advance(200)
    assert (await resolver.get_active_customer(CONV)).id == 'c6'
    clock.advance(200)
    assert (await resolver.get_active_customer(CONV)).id == 'c6'
    assert store.find_all_calls == 1


@pytest.mark.asyncio
async def test_invalidate_keeps_active_customer(resolver, store):
    await resolver.search_with_context("Rahul", CONV)
    await resolver.confirm_selection('c1', CONV)
    assert await resolver.invalidate_conversation_cache(CONV)

    outcome = await resolver.search_with_context("Rahul", CONV)
    assert outcome.source == "store"
    assert store.find_all_calls == 2

    active = await resolver.get_active_customer(CONV)
    assert active.id == 'c1'


# --- creation and updates ---------------------------------------------------

@pytest.mark.asyncio
async def test_duplicate_name_blocks_creation(resolver, store):
    result = await resolver.create_customer_fast("rahul sharma", CONV)
    assert not result.success
    assert result.duplicate_found
    assert result.suggestions[0].id == 'c1'
    assert store.create_calls == 0


@pytest.mark.asyncio
async def test_new_customer_is_created_and_active(resolver, store):
    result = await resolver.create_customer_fast("Kavita Joshi", CONV)
    assert result.success
    assert result.customer.name == "Kavita Joshi"
    assert store.create_calls == 1

    active = await resolver.get_active_customer(CONV)
    assert active.id == result.customer.id


@pytest.mark.asyncio
async def test_create_requires_a_name(resolver, store):
    with pytest.raises(InvalidQueryError):
        await resolver.create_customer_fast("   ", CONV)
    assert store.create_calls == 0


@pytest.mark.asyncio
async def test_find_similar_customers(resolver):
    similar = await resolver.find_similar_customers("Amit Patil", CONV)
    assert [s.customer.id for s in similar] == ['c2']
    assert similar[0].similarity == pytest.approx(0.9)


@pytest.mark.asyncio
async def test_update_patches_cached_copy(resolver, store):
    await resolver.search_with_context("Priya", CONV)
    await resolver.update_customer_instant('c6', CustomerUpdate(landmark="Clock Tower"), CONV)

    outcome = await resolver.search_with_context("Priya", CONV)
    assert outcome.source == "cache"
    assert outcome.top.landmark == "Clock Tower"

    with pytest.raises(InvalidUpdateError):
        await resolver.update_customer_instant('c6', CustomerUpdate(), CONV)


@pytest.mark.asyncio
async def test_update_unknown_customer_is_not_a_store_failure(resolver, store):
    with pytest.raises(CustomerNotFoundError):
        await resolver.update_customer_instant('missing', CustomerUpdate(landmark="X"), CONV)
    assert store.update_calls == 0


# --- live balance -----------------------------------------------------------

@pytest.mark.asyncio
async def test_balance_stream_and_unsubscribe(resolver):
    updates = []
    unsubscribe = await resolver.stream_customer_balance('c6', CONV, updates.append, interval=0.01)
    assert updates[0].balance == Decimal('420.50')

    await asyncio.sleep(0.05)
    assert len(updates) >= 2

    await unsubscribe()
    seen = len(updates)
    await asyncio.sleep(0.03)
    assert len(updates) == seen


@pytest.mark.asyncio
async def test_clearing_conversation_stops_streams(resolver, memory):
    updates = []
    unsubscribe = await resolver.stream_customer_balance('c2', CONV, updates.append, interval=0.01)
    task = memory.get(CONV).subscriptions['balance_c2']

    assert await resolver.clear_conversation_cache(CONV)
    await asyncio.sleep(0.02)
    assert task.done()

    # Unsubscribing after teardown is harmless
    await unsubscribe()


@pytest.mark.asyncio
async def test_stream_unknown_customer(resolver):
    with pytest.raises(CustomerNotFoundError):
        await resolver.stream_customer_balance('missing', CONV, lambda update: None)
