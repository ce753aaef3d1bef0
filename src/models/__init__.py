"""
Data models for customer name resolution.
"""

from .customer import (
    AmbiguityResolution,
    BalanceUpdate,
    CreateCustomerResult,
    CustomerFilter,
    CustomerRecord,
    CustomerSearchResult,
    CustomerSuggestion,
    CustomerUpdate,
    MatchResult,
    MatchType,
    SearchOutcome,
    SearchStatus,
    SimilarCustomer,
)

__all__ = [
    "AmbiguityResolution", "BalanceUpdate", "CreateCustomerResult", "CustomerFilter",
    "CustomerRecord", "CustomerSearchResult", "CustomerSuggestion", "CustomerUpdate",
    "MatchResult", "MatchType", "SearchOutcome", "SearchStatus", "SimilarCustomer",
]
