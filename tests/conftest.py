import sys
import os
from decimal import Decimal

import pytest

# Ensure the project root is in the python path for all tests
# This solves the 'ModuleNotFoundError' issues encountered when running tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.conversation import ConversationMemory, CustomerResolver  # noqa: E402
from src.models import CustomerRecord  # noqa: E402
from src.store import InMemoryCustomerStore  # noqa: E402
from src.utils.config import ResolverSettings  # noqa: E402


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_customer(customer_id, name, **fields):
    fields.setdefault('balance', Decimal('0'))
    return CustomerRecord(id=customer_id, name=name, **fields)


SHOP_CUSTOMERS = [
    make_customer('c1', 'Rahul Sharma', nickname='Raju', phone='9876543210', landmark='Station Road'),
    make_customer('c2', 'Amit Patel', phone='9123456780', landmark='Temple Gali', balance=Decimal('150')),
    make_customer('c3', 'Amit Sharma', phone='9988776655', landmark='Bus Stand'),
    make_customer('c4', 'Bharat Kumar', landmark='SBI ATM', notes='Pays on Sundays'),
    make_customer('c5', 'Suresh Yadav', nickname='Suri', phone='9000011111'),
    make_customer('c6', 'Priya Verma', landmark='Gandhi Chowk', balance=Decimal('420.50')),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return ResolverSettings()


@pytest.fixture
def store():
    return InMemoryCustomerStore([c.model_copy() for c in SHOP_CUSTOMERS])


@pytest.fixture
def memory(settings, clock):
    return ConversationMemory(settings, clock=clock)


@pytest.fixture
def resolver(store, memory, settings):
    return CustomerResolver(store, memory, settings)
