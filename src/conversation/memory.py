"""
Per-conversation short-term memory.

Each conversation id owns one ``ConversationContext``: the customers it has
recently seen, the customer currently in focus and any live balance streams.
Contexts live for a fixed TTL after their last use; a background sweep
evicts idle ones and cancels their streams.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from src.models import CustomerSearchResult
from src.utils.config import ResolverSettings
from src.utils.errors import require_identifier
from src.utils.logging_config import logger

Clock = Callable[[], float]


@dataclass
class ConversationContext:
    """
    Mutable state of one conversation.

    ``recent_customers`` is most-recent-first and capped by the memory's
    cache size. ``focus_history`` lists customer ids oldest-first, the last
    entry being the active customer.
    """
    conversation_id: str
    timestamp: float
    recent_customers: List[CustomerSearchResult] = field(default_factory=list)
    last_search: str = ""
    active_customer_id: Optional[str] = None
    focus_history: List[str] = field(default_factory=list)
    subscriptions: Dict[str, asyncio.Task] = field(default_factory=dict)

    def remember(self, customers: Iterable[CustomerSearchResult], limit: int) -> None:
        """Puts customers at the front of the cache, replacing older copies."""
        incoming = list(customers)
        ids = {c.id for c in incoming}
        kept = [c for c in self.recent_customers if c.id not in ids]
        self.recent_customers = (incoming + kept)[:limit]

    def cached(self, customer_id: str) -> Optional[CustomerSearchResult]:
        for customer in self.recent_customers:
            if customer.id == customer_id:
                return customer
        return None

    def focus(self, customer_id: str, limit: int) -> None:
        """Makes a customer active and moves it to the end of the focus history."""
        self.active_customer_id = customer_id
        self.focus_history = [cid for cid in self.focus_history if cid != customer_id]
        self.focus_history.append(customer_id)
        if len(self.focus_history) > limit:
            self.focus_history = self.focus_history[-limit:]

    def cancel_subscriptions(self) -> int:
        cancelled = 0
        for task in self.subscriptions.values():
            if not task.done():
                task.cancel()
                cancelled += 1
        self.subscriptions.clear()
        return cancelled


class ConversationMemory:
    """
    Owns every conversation context, its lock and the eviction sweep.

    State per conversation: EMPTY -> WARM -> EXPIRED -> EMPTY. A context is
    WARM while ``clock() - timestamp < ttl``. Expired contexts are treated as
    absent even before the sweep removes them.

    Args:
        settings: Resolver settings (TTL, cache size, sweep interval).
        clock: Returns seconds as a float. Defaults to ``time.monotonic``;
            tests inject a fake clock.
    """

    def __init__(self, settings: Optional[ResolverSettings] = None, clock: Clock = time.monotonic):
        self.settings = settings or ResolverSettings()
        self.clock = clock
        self._contexts: Dict[str, ConversationContext] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._sweep_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.is_running = False

    @property
    def ttl(self) -> float:
        return self.settings.cache_ttl_seconds

    @property
    def cache_size(self) -> int:
        return self.settings.cache_size

    def __len__(self) -> int:
        return len(self._contexts)

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """The lock serialising operations on one conversation."""
        if conversation_id not in self._locks:
            self._locks[conversation_id] = asyncio.Lock()
        return self._locks[conversation_id]

    @asynccontextmanager
    async def hold(self, conversation_id: str):
        """
        Holds the conversation's lock for the duration of the block.

        Waiters are counted from before they queue, so the lock outlives an
        eviction until the last holder leaves. Only then is it dropped, and
        only if no context was created meanwhile.
        """
        lock = self.lock(conversation_id)
        self._holders[conversation_id] = self._holders.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[conversation_id] -= 1
            if not self._holders[conversation_id]:
                del self._holders[conversation_id]
                if conversation_id not in self._contexts and self._locks.get(conversation_id) is lock:
                    del self._locks[conversation_id]

    def is_expired(self, context: ConversationContext) -> bool:
        return self.clock() - context.timestamp >= self.ttl

    def touch(self, context: ConversationContext) -> None:
        context.timestamp = self.clock()

    def get(self, conversation_id: str) -> Optional[ConversationContext]:
        """The live context, or None when absent or expired."""
        context = self._contexts.get(conversation_id)
        if context is None:
            return None
        if self.is_expired(context):
            self._evict(conversation_id, reason="expired")
            return None
        return context

    def get_or_create(self, conversation_id: str) -> ConversationContext:
        conversation_id = require_identifier(conversation_id, "conversation_id")
        context = self.get(conversation_id)
        if context is None:
            context = ConversationContext(conversation_id=conversation_id, timestamp=self.clock())
            self._contexts[conversation_id] = context
            logger.debug(f"Created context for conversation {conversation_id}")
        return context

    def invalidate(self, conversation_id: str) -> bool:
        """Drops cached candidates but keeps the active customer and streams."""
        context = self._contexts.get(conversation_id)
        if context is None:
            return False
        context.recent_customers = []
        context.last_search = ""
        self.touch(context)
        logger.info(f"Conversation cache invalidated: {conversation_id}")
        return True

    def clear(self, conversation_id: str) -> bool:
        """Tears down the context and cancels its subscriptions."""
        if conversation_id not in self._contexts:
            return False
        self._evict(conversation_id, reason="cleared")
        return True

    def _evict(self, conversation_id: str, reason: str) -> None:
        context = self._contexts.pop(conversation_id)
        cancelled = context.cancel_subscriptions()
        if conversation_id not in self._holders:
            self._locks.pop(conversation_id, None)
        logger.info(f"Conversation {conversation_id} {reason}, {cancelled} stream(s) cancelled")

    async def sweep_expired(self) -> int:
        """Evicts every expired context. Returns how many were removed."""
        async with self._sweep_lock:
            expired = [cid for cid, ctx in self._contexts.items() if self.is_expired(ctx)]
            for conversation_id in expired:
                self._evict(conversation_id, reason="expired")
            if expired:
                logger.info(f"Cleaned {len(expired)} expired conversation context(s)")
            return len(expired)

    async def start(self):
        """Start the periodic sweep."""
        if self.is_running:
            return

        self.is_running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("[ConversationMemory] Sweep started")

    async def stop(self):
        """Stop the sweep and cancel every live subscription."""
        self.is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for context in self._contexts.values():
            context.cancel_subscriptions()
        logger.info("[ConversationMemory] Sweep stopped")

    async def _run_loop(self):
        while self.is_running:
            await asyncio.sleep(self.settings.sweep_interval_seconds)
            try:
                await self.sweep_expired()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[ConversationMemory] Sweep failed: {e}")
