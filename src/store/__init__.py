from .customer_store import CustomerStore, InMemoryCustomerStore

__all__ = ["CustomerStore", "InMemoryCustomerStore"]
