"""
Customer store interface and an in-memory implementation.

The resolver never owns customer records. It reads and writes them through
``CustomerStore``, an async interface that a database-backed implementation
provides in production. ``InMemoryCustomerStore`` backs local runs and tests.
"""

import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

from src.models import CustomerFilter, CustomerRecord
from src.utils.errors import CustomerNotFoundError
from src.utils.logging_config import logger
from src.utils.normalization import normalize_phone

SEARCHABLE_FIELDS = ('name', 'nickname', 'landmark', 'notes')


class CustomerStore(ABC):
    """Async persistence boundary for customer records."""

    @abstractmethod
    async def find_all(self, customer_filter: CustomerFilter) -> List[CustomerRecord]:
        """Records matching the filter. An empty filter lists every customer."""

    @abstractmethod
    async def find_by_id(self, customer_id: str) -> Optional[CustomerRecord]:
        """The record with this id, or None."""

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> CustomerRecord:
        """Persists a new customer and returns it with its assigned id."""

    @abstractmethod
    async def update(self, customer_id: str, fields: Dict[str, Any]) -> CustomerRecord:
        """Applies a partial update and returns the updated record."""


def _contains(record: CustomerRecord, needle: str) -> bool:
    # Case-insensitive substring over any searchable field
    for field in SEARCHABLE_FIELDS:
        value = getattr(record, field)
        if value and needle in value.lower():
            return True
    return False


class InMemoryCustomerStore(CustomerStore):
    """
    Dictionary-backed store.

    Text filters are case-insensitive substring matches over name, nickname,
    landmark and notes. ``text`` must appear in some field, every token must
    appear in some field, and a record matching either form is returned.
    Call counters let tests assert how often the resolver hit the store.
    """

    def __init__(self, records: Optional[List[CustomerRecord]] = None):
        self._records: Dict[str, CustomerRecord] = {}
        for record in records or []:
            self._records[record.id] = record
        self.find_all_calls = 0
        self.find_by_id_calls = 0
        self.create_calls = 0
        self.update_calls = 0

    def _matches(self, record: CustomerRecord, customer_filter: CustomerFilter) -> bool:
        if customer_filter.is_empty:
            return True

        if customer_filter.phone:
            wanted = normalize_phone(customer_filter.phone)
            if record.phone and wanted and wanted in normalize_phone(record.phone):
                return True

        if customer_filter.text and _contains(record, customer_filter.text.lower()):
            return True

        if customer_filter.tokens:
            return all(_contains(record, token.lower()) for token in customer_filter.tokens)

        return False

    async def find_all(self, customer_filter: CustomerFilter) -> List[CustomerRecord]:
        self.find_all_calls += 1
        found = [r for r in self._records.values() if self._matches(r, customer_filter)]
        if customer_filter.limit is not None:
            found = found[:customer_filter.limit]
        logger.debug(f"Store find_all returned {len(found)} record(s)")
        return found

    async def find_by_id(self, customer_id: str) -> Optional[CustomerRecord]:
        self.find_by_id_calls += 1
        return self._records.get(customer_id)

    async def create(self, data: Dict[str, Any]) -> CustomerRecord:
        self.create_calls += 1
        payload = dict(data)
        payload.setdefault('id', str(uuid.uuid4()))
        payload.setdefault('balance', Decimal('0'))
        record = CustomerRecord(**payload)
        self._records[record.id] = record
        logger.info(f"Created customer {record.id} ({record.name})")
        return record

    async def update(self, customer_id: str, fields: Dict[str, Any]) -> CustomerRecord:
        self.update_calls += 1
        current = self._records.get(customer_id)
        if current is None:
            raise CustomerNotFoundError(customer_id)
        # Revalidate through the model so bad updates are rejected
        updated = CustomerRecord(**{**current.model_dump(), **fields})
        self._records[customer_id] = updated
        return updated
