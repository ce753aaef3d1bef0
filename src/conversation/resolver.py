"""
Conversation-aware customer resolution.

Turns what a shopkeeper says ("Amit", "Bharat ATM wala", "usko") into one
customer record, or into a short list to confirm. Works cache-first: the
customers a conversation has recently touched are re-ranked before the
store is queried at all.
"""

import asyncio
import inspect
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from src.conversation.memory import ConversationContext, ConversationMemory
from src.matching.name_matcher import IndianNameMatcher
from src.matching.similarity import name_similarity
from src.matching.transliteration import has_devanagari, transliterate
from src.models import (
    AmbiguityResolution,
    BalanceUpdate,
    CreateCustomerResult,
    CustomerFilter,
    CustomerRecord,
    CustomerSearchResult,
    CustomerSuggestion,
    CustomerUpdate,
    SearchOutcome,
    SearchStatus,
    SimilarCustomer,
)
from src.query.customer_ranker import CustomerRanker
from src.store.customer_store import CustomerStore
from src.utils.config import ResolverSettings
from src.utils.errors import (
    CustomerNotFoundError,
    CustomerStoreError,
    InvalidUpdateError,
    ResolverError,
    require_identifier,
    require_text,
    require_threshold,
)
from src.utils.logging_config import logger
from src.utils.normalization import is_pronoun_reference, looks_like_phone, normalize_phone

PHONE_LOOKUP_LIMIT = 5
STORE_CANDIDATE_LIMIT = 20
DEFAULT_SIMILAR_THRESHOLD = 0.7
SWITCH_THRESHOLD = 0.7

BalanceCallback = Callable[[BalanceUpdate], Any]
Unsubscribe = Callable[[], Awaitable[None]]


def _comparable(text: str) -> str:
    return transliterate(text) if has_devanagari(text) else text


def _by_similarity(item: SimilarCustomer):
    return (-item.similarity, item.customer.name.lower(), item.customer.id)


async def _emit(callback: BalanceCallback, update: BalanceUpdate) -> None:
    result = callback(update)
    if inspect.isawaitable(result):
        await result


class CustomerResolver:
    """
    Resolves spoken customer references within a conversation.

    Every public operation validates its input, then runs under the
    conversation's lock so concurrent turns of one conversation never
    interleave. Store failures are logged and raised as CustomerStoreError,
    except in ``search_with_context`` which reports them as a FAILED outcome.

    Args:
        store: Persistence boundary for customer records.
        memory: Conversation memory; built from ``settings`` when omitted.
        settings: Thresholds and timings.
        matcher: Name matcher used for similar-candidate detection.
        ranker: Multi-field ranker used for search results.
    """

    def __init__(
        self,
        store: CustomerStore,
        memory: Optional[ConversationMemory] = None,
        settings: Optional[ResolverSettings] = None,
        matcher: Optional[IndianNameMatcher] = None,
        ranker: Optional[CustomerRanker] = None,
    ):
        self.store = store
        self.settings = settings or (memory.settings if memory else ResolverSettings())
        self.memory = memory or ConversationMemory(self.settings)
        self.matcher = matcher or IndianNameMatcher()
        self.ranker = ranker or CustomerRanker()

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    async def _call_store(self, operation: str, method, *args):
        try:
            return await method(*args)
        except ResolverError:
            raise
        except Exception as exc:
            logger.error(f"Customer store failed during {operation}: {exc}")
            raise CustomerStoreError(operation, exc) from exc

    async def _search_store(self, query: str) -> List[CustomerSearchResult]:
        # 1. Bare phone numbers go straight to a phone lookup
        if looks_like_phone(query):
            phone = normalize_phone(query)
            records = await self._call_store(
                "find_all", self.store.find_all, CustomerFilter(phone=phone, limit=PHONE_LOOKUP_LIMIT)
            )
            if records:
                return [CustomerSearchResult.from_record(r, 1.0) for r in records]

        # 2. Substring/token search, then rank
        parsed = self.ranker.parse(query)
        if not parsed.normalized:
            return []
        records = await self._call_store(
            "find_all",
            self.store.find_all,
            CustomerFilter(text=parsed.normalized, tokens=parsed.tokens, limit=STORE_CANDIDATE_LIMIT),
        )
        ranked = self.ranker.rank_candidates(query, records, floor=self.settings.store_floor)
        return ranked[:self.settings.cache_size]

    async def _fetch(self, customer_id: str) -> Optional[CustomerRecord]:
        return await self._call_store("find_by_id", self.store.find_by_id, customer_id)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def _search(self, context: ConversationContext, query: str) -> SearchOutcome:
        cid = context.conversation_id

        if is_pronoun_reference(query) and context.active_customer_id:
            source = "cache" if context.cached(context.active_customer_id) else "store"
            active = await self._load_focused(context, context.active_customer_id)
            if active is not None:
                self.memory.touch(context)
                logger.info(f"Pronoun '{query}' resolved to active customer {active.id} ({cid})")
                return SearchOutcome(status=SearchStatus.FOUND, results=[active.with_score(1.0)], source=source)

        if context.recent_customers:
            hits = self.ranker.rank_candidates(query, context.recent_customers, floor=self.settings.cache_floor)
            if hits:
                self.memory.touch(context)
                logger.info(f"Customer search from cache: {len(hits)} hit(s) for '{query}' ({cid})")
                return SearchOutcome(status=SearchStatus.FOUND, results=hits, source="cache")

        logger.info(f"Customer search from store: '{query}' ({cid})")
        results = await self._search_store(query)

        context.remember(results, self.memory.cache_size)
        context.last_search = query
        self.memory.touch(context)

        status = SearchStatus.FOUND if results else SearchStatus.NO_MATCH
        return SearchOutcome(status=status, results=results, source="store")

    async def search_with_context(self, query: str, conversation_id: str) -> SearchOutcome:
        """
        Cache-first customer search.

        Devanagari queries are transliterated first. A warm conversation
        re-ranks its recent customers and answers from them when any scores
        at least the cache floor. Otherwise the store is searched, results
        at or above the store floor are ranked and cached.

        Returns:
            SearchOutcome with ``FOUND``, ``NO_MATCH`` or ``FAILED``. A store
            failure is reported, never disguised as an empty result.
        """
        query = _comparable(require_text(query))
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            try:
                return await self._search(context, query)
            except CustomerStoreError as exc:
                return SearchOutcome(status=SearchStatus.FAILED, source="store", error=str(exc))

    # ------------------------------------------------------------------
    # Ambiguity
    # ------------------------------------------------------------------

    def _match_names(self, query: str, customers: Iterable[CustomerSearchResult],
                     threshold: float) -> List[SimilarCustomer]:
        similar = []
        for customer in customers:
            result = self.matcher.best_name_part_match(query, _comparable(customer.name), threshold)
            if result is None:
                continue
            similar.append(SimilarCustomer(
                customer=customer.with_score(result.score),
                similarity=result.score,
                match_type=result.match_type,
            ))
        return sorted(similar, key=_by_similarity)

    async def _similar_candidates(self, query: str, ranked: List[CustomerSearchResult]) -> List[SimilarCustomer]:
        threshold = self.settings.similar_threshold
        records = await self._call_store("find_all", self.store.find_all, CustomerFilter())
        everyone = [CustomerSearchResult.from_record(r) for r in records]

        # Ranked copies come first so cached edits win equal scores
        best: Dict[str, SimilarCustomer] = {}
        for candidate in self._match_names(query, ranked, threshold) + self._match_names(query, everyone, threshold):
            current = best.get(candidate.customer.id)
            if current is None or candidate.similarity > current.similarity:
                best[candidate.customer.id] = candidate
        return sorted(best.values(), key=_by_similarity)[:self.settings.similar_limit]

    async def resolve_ambiguity(self, query: str, conversation_id: str) -> AmbiguityResolution:
        """
        Decides between one confident match and a list to confirm.

        A single candidate scoring above the auto-accept threshold becomes
        ``exact`` and the active customer. Two or more above it are a tie
        and always go back to the user. Otherwise name-similar candidates
        are gathered and confirmation is requested when there are several,
        or one below the confirmation threshold.

        Raises:
            CustomerStoreError: if the store fails.
        """
        query = _comparable(require_text(query))
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            logger.info(f"Resolving customer ambiguity for '{query}' ({cid})")

            results = (await self._search(context, query)).results
            if not results:
                return AmbiguityResolution()

            confident = [r for r in results if r.match_score > self.settings.auto_accept_threshold]
            if len(confident) == 1:
                exact = confident[0]
                context.focus(exact.id, self.memory.cache_size)
                self.memory.touch(context)
                logger.info(f"Exact match {exact.id} ({exact.name}) for '{query}'")
                return AmbiguityResolution(exact=exact)

            if len(confident) > 1:
                logger.info(f"{len(confident)} candidates tied above auto-accept for '{query}'")
                tied = [SimilarCustomer(customer=r, similarity=r.match_score) for r in confident]
                return AmbiguityResolution(candidates=tied[:self.settings.similar_limit], needs_confirmation=True)

            similar = await self._similar_candidates(query, results)
            needs_confirmation = len(similar) > 1 or (
                len(similar) == 1 and similar[0].similarity < self.settings.confirm_threshold
            )
            logger.info(f"{len(similar)} similar candidate(s) for '{query}', confirm={needs_confirmation}")
            return AmbiguityResolution(candidates=similar, needs_confirmation=needs_confirmation)

    # ------------------------------------------------------------------
    # Similar customers and creation
    # ------------------------------------------------------------------

    @staticmethod
    def _similar_by_name(name: str, customers: Iterable[CustomerSearchResult],
                         threshold: float) -> List[SimilarCustomer]:
        similar = []
        for customer in customers:
            score = name_similarity(name, _comparable(customer.name))
            if score >= threshold:
                similar.append(SimilarCustomer(customer=customer.with_score(score), similarity=score))
        return sorted(similar, key=_by_similarity)

    async def _find_similar(self, context: ConversationContext, name: str,
                            threshold: float) -> List[SimilarCustomer]:
        limit = self.settings.similar_limit

        cached = self._similar_by_name(name, context.recent_customers, threshold)
        if cached:
            logger.info(f"{len(cached)} similar customer(s) for '{name}' found in cache")
            return cached[:limit]

        records = await self._call_store("find_all", self.store.find_all, CustomerFilter())
        everyone = [CustomerSearchResult.from_record(r) for r in records]
        similar = self._similar_by_name(name, everyone, threshold)[:limit]
        logger.info(f"{len(similar)} similar customer(s) for '{name}' found in store")

        if similar:
            context.remember([s.customer for s in similar], self.memory.cache_size)
            self.memory.touch(context)
        return similar

    async def find_similar_customers(self, name: str, conversation_id: str,
                                     threshold: float = DEFAULT_SIMILAR_THRESHOLD) -> List[SimilarCustomer]:
        """Customers whose name is at least ``threshold`` similar, best first."""
        name = _comparable(require_text(name, "name"))
        cid = require_identifier(conversation_id, "conversation_id")
        threshold = require_threshold(threshold)

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            return await self._find_similar(context, name, threshold)

    async def create_customer_fast(self, name: str, conversation_id: str) -> CreateCustomerResult:
        """
        Creates a customer from a name alone.

        Refuses, with suggestions and without touching the store's create,
        when an existing customer's name is at least the duplicate threshold
        similar. On success the new customer is cached and made active.
        """
        name = require_text(name, "name")
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            logger.info(f"Creating customer with name only: '{name}' ({cid})")

            duplicates = await self._find_similar(context, _comparable(name), self.settings.duplicate_threshold)
            if duplicates:
                existing = duplicates[0].customer
                logger.warning(f"Duplicate customer name '{name}' matches '{existing.name}', creation blocked")
                return CreateCustomerResult(
                    success=False,
                    duplicate_found=True,
                    suggestions=[
                        CustomerSuggestion(
                            id=d.customer.id,
                            name=d.customer.name,
                            phone=d.customer.phone,
                            landmark=d.customer.landmark,
                            similarity=d.similarity,
                        )
                        for d in duplicates
                    ],
                    message=f'Customer "{existing.name}" already exists! Cannot create duplicate.',
                )

            record = await self._call_store("create", self.store.create, {"name": name, "balance": Decimal("0")})
            customer = CustomerSearchResult.from_record(record, 1.0)
            context.remember([customer], self.memory.cache_size)
            context.focus(customer.id, self.memory.cache_size)
            self.memory.touch(context)
            logger.info(f"Customer created: {customer.id} ({customer.name})")

            return CreateCustomerResult(
                success=True,
                customer=customer,
                message=f"{customer.name} added! You can update details later.",
            )

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------

    async def _apply_update(self, context: ConversationContext, customer_id: str,
                            updates: CustomerUpdate) -> CustomerRecord:
        fields = updates.fields()
        if not fields:
            raise InvalidUpdateError("At least one field must be provided for update")

        record = await self._call_store("update", self.store.update, customer_id, fields)
        cached = context.cached(customer_id)
        if cached is not None:
            context.recent_customers = [
                CustomerSearchResult.from_record(record, c.match_score) if c.id == customer_id else c
                for c in context.recent_customers
            ]
        self.memory.touch(context)
        logger.info(f"Customer {customer_id} updated: {', '.join(sorted(fields))}")
        return record

    async def confirm_selection(self, customer_id: str, conversation_id: str,
                                updates: Optional[CustomerUpdate] = None) -> CustomerSearchResult:
        """
        Records the user's choice: the customer becomes active and is the
        only cached candidate. Optional field updates are applied first.

        Raises:
            CustomerNotFoundError: if the id does not exist.
        """
        customer_id = require_identifier(customer_id)
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            record = await self._fetch(customer_id)
            if record is None:
                logger.warning(f"Confirm failed, customer not found: {customer_id}")
                raise CustomerNotFoundError(customer_id)

            if updates is not None and updates.fields():
                record = await self._apply_update(context, customer_id, updates)

            customer = CustomerSearchResult.from_record(record, 1.0)
            context.recent_customers = [customer]
            context.focus(customer.id, self.memory.cache_size)
            self.memory.touch(context)
            logger.info(f"Customer {customer.id} confirmed for conversation {cid}")
            return customer

    async def update_customer_instant(self, customer_id: str, updates: CustomerUpdate,
                                      conversation_id: str) -> CustomerRecord:
        """
        Applies a partial update through the store and patches cached copies.

        Raises:
            CustomerNotFoundError: if the id does not exist.
            InvalidUpdateError: if the update carries no fields.
        """
        customer_id = require_identifier(customer_id)
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            if await self._fetch(customer_id) is None:
                logger.warning(f"Update failed, customer not found: {customer_id}")
                raise CustomerNotFoundError(customer_id)
            return await self._apply_update(context, customer_id, updates)

    async def get_active_customer(self, conversation_id: str) -> Optional[CustomerSearchResult]:
        """
        The customer in focus, from cache when possible. A focus pointer to a
        customer the store no longer has is cleared.
        """
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get(cid)
            if context is None or not context.active_customer_id:
                return None
            active = await self._load_focused(context, context.active_customer_id)
            self.memory.touch(context)
            return active

    async def _load_focused(self, context: ConversationContext, customer_id: str) -> Optional[CustomerSearchResult]:
        cached = context.cached(customer_id)
        if cached is not None:
            return cached

        record = await self._fetch(customer_id)
        if record is None:
            logger.info(f"Active customer {customer_id} no longer exists, clearing focus")
            context.focus_history = [c for c in context.focus_history if c != customer_id]
            context.active_customer_id = context.focus_history[-1] if context.focus_history else None
            return None

        customer = CustomerSearchResult.from_record(record, 1.0)
        context.remember([customer], self.memory.cache_size)
        self.memory.touch(context)
        return customer

    async def switch_to_previous_customer(self, conversation_id: str) -> Optional[CustomerSearchResult]:
        """
        Moves focus back to the customer focused before the current one.
        Calling it twice toggles between the two.
        """
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get(cid)
            if context is None or len(context.focus_history) < 2:
                return None

            previous_id = context.focus_history[-2]
            context.focus(previous_id, self.memory.cache_size)
            self.memory.touch(context)
            logger.info(f"Switched to previous customer {previous_id} ({cid})")
            return await self._load_focused(context, previous_id)

    async def _context_customers(self, context: ConversationContext) -> List[CustomerSearchResult]:
        # Focused customers first, most recent first, then the rest of the cache
        customers = []
        for customer_id in reversed(context.focus_history):
            customer = context.cached(customer_id)
            if customer is None:
                record = await self._fetch(customer_id)
                if record is None:
                    continue
                customer = CustomerSearchResult.from_record(record, 1.0)
            customers.append(customer)
        seen = {c.id for c in customers}
        customers.extend(c for c in context.recent_customers if c.id not in seen)
        return customers

    async def switch_to_customer_by_name(self, name: str, conversation_id: str) -> Optional[CustomerSearchResult]:
        """
        Moves focus to the customer of this conversation whose name best
        matches ``name`` ("Raju", "Amit wala"). Only customers already
        discussed are considered; the store is not searched.

        Returns:
            The newly focused customer, or None when nobody in the
            conversation matches at the switch threshold.
        """
        name = _comparable(require_text(name, "name"))
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get(cid)
            if context is None:
                return None

            best, best_score = None, 0.0
            for customer in await self._context_customers(context):
                result = self.matcher.best_name_part_match(name, _comparable(customer.name), SWITCH_THRESHOLD)
                if result is not None and result.score > best_score:
                    best, best_score = customer, result.score
            if best is None:
                logger.info(f"No customer in conversation {cid} matches '{name}'")
                return None

            context.remember([best], self.memory.cache_size)
            context.focus(best.id, self.memory.cache_size)
            self.memory.touch(context)
            logger.info(f"Switched to customer {best.id} ({best.name}) by name '{name}' ({cid})")
            return best

    async def customers_in_context(self, conversation_id: str) -> List[CustomerSearchResult]:
        """Every customer this conversation has touched, most recent first."""
        cid = require_identifier(conversation_id, "conversation_id")

        async with self.memory.hold(cid):
            context = self.memory.get(cid)
            if context is None:
                return []
            customers = await self._context_customers(context)
            self.memory.touch(context)
            return customers

    # ------------------------------------------------------------------
    # Live balance
    # ------------------------------------------------------------------

    async def _poll_balance(self, customer_id: str, on_update: BalanceCallback, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                record = await self.store.find_by_id(customer_id)
                balance = record.balance if record is not None else Decimal("0")
                await _emit(on_update, BalanceUpdate(
                    customer_id=customer_id,
                    balance=balance,
                    updated_at=datetime.now(timezone.utc).isoformat(),
                ))
            except Exception as e:
                logger.error(f"Balance stream error for {customer_id}: {e}")

    async def stream_customer_balance(self, customer_id: str, conversation_id: str,
                                      on_update: BalanceCallback,
                                      interval: Optional[float] = None) -> Unsubscribe:
        """
        Pushes the customer's balance to ``on_update`` now and then every
        ``interval`` seconds until unsubscribed or the conversation ends.

        Args:
            customer_id: Customer to watch.
            conversation_id: Owning conversation; clearing or evicting it
                cancels the stream.
            on_update: Plain function or coroutine function taking a
                BalanceUpdate.
            interval: Poll period in seconds (default from settings).

        Returns:
            Coroutine function that stops the stream.

        Raises:
            CustomerNotFoundError: if the id does not exist.
        """
        customer_id = require_identifier(customer_id)
        cid = require_identifier(conversation_id, "conversation_id")
        period = self.settings.balance_poll_seconds if interval is None else interval
        if period <= 0:
            raise ValueError("interval must be positive")

        async with self.memory.hold(cid):
            context = self.memory.get_or_create(cid)
            record = await self._fetch(customer_id)
            if record is None:
                raise CustomerNotFoundError(customer_id)

            await _emit(on_update, BalanceUpdate(
                customer_id=customer_id,
                balance=record.balance,
                updated_at=datetime.now(timezone.utc).isoformat(),
            ))

            stream_id = f"balance_{customer_id}"
            previous = context.subscriptions.pop(stream_id, None)
            if previous is not None:
                previous.cancel()

            task = asyncio.create_task(self._poll_balance(customer_id, on_update, period))
            context.subscriptions[stream_id] = task
            logger.info(f"Starting balance stream for {customer_id} ({cid})")

        async def unsubscribe():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            if context.subscriptions.get(stream_id) is task:
                del context.subscriptions[stream_id]
            logger.info(f"Balance stream stopped for {customer_id} ({cid})")

        return unsubscribe

    # ------------------------------------------------------------------
    # Cache lifecycle
    # ------------------------------------------------------------------

    async def invalidate_conversation_cache(self, conversation_id: str) -> bool:
        """Forces the next search to the store; keeps the active customer."""
        cid = require_identifier(conversation_id, "conversation_id")
        async with self.memory.hold(cid):
            return self.memory.invalidate(cid)

    async def clear_conversation_cache(self, conversation_id: str) -> bool:
        """Forgets the conversation entirely and stops its streams."""
        cid = require_identifier(conversation_id, "conversation_id")
        async with self.memory.hold(cid):
            return self.memory.clear(cid)
