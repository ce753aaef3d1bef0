"""
Data models for customer name resolution.

This module defines the records exchanged with the customer store, the
match results produced by the matching tiers and the structured outcomes
returned to the conversation orchestrator. Validation is done by Pydantic.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchType(str, Enum):
    """Tier that produced a name match, strongest first."""
    EXACT = "exact"
    NICKNAME = "nickname"
    PHONETIC = "phonetic"
    TRANSLITERATION = "transliteration"
    FUZZY = "fuzzy"


class SearchStatus(str, Enum):
    """Outcome class of a customer search."""
    FOUND = "found"
    NO_MATCH = "no_match"
    FAILED = "failed"


class MatchResult(BaseModel):
    """A query/candidate pair that cleared the matching threshold."""
    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    match_type: MatchType
    matched_text: str


class CustomerRecord(BaseModel):
    """
    A customer as held by the external store.
    Only the store creates or mutates these.
    """
    id: str
    name: str
    nickname: Optional[str] = None
    phone: Optional[str] = None
    landmark: Optional[str] = None
    notes: Optional[str] = None
    balance: Decimal = Field(default=Decimal('0'))

    @field_validator('id')
    @classmethod
    def validate_id(cls, v):
        """Customer ids must be non-blank."""
        if not v or not v.strip():
            raise ValueError('Customer id must not be empty')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Names are stored trimmed and must not be blank."""
        if not v or not v.strip():
            raise ValueError('Customer name must not be empty')
        return v.strip()


class CustomerSearchResult(BaseModel):
    """
    Read-only projection of a customer record annotated with a match score.
    Re-scoring produces a copy; instances are never mutated in place.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    nickname: Optional[str] = None
    phone: Optional[str] = None
    landmark: Optional[str] = None
    balance: Decimal = Field(default=Decimal('0'))
    match_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @classmethod
    def from_record(cls, record: CustomerRecord, match_score: float = 0.0) -> "CustomerSearchResult":
        """Projects a store record, dropping store-only fields such as notes."""
        return cls(
            id=record.id,
            name=record.name,
            nickname=record.nickname,
            phone=record.phone,
            landmark=record.landmark,
            balance=record.balance,
            match_score=match_score,
        )

    def with_score(self, score: float) -> "CustomerSearchResult":
        return self.model_copy(update={'match_score': score})


class CustomerFilter(BaseModel):
    """
    Query passed to ``CustomerStore.find_all``.

    ``text`` is matched as one substring, ``tokens`` must all match (each in
    any field). Results matching either form are returned. An empty filter
    lists every customer.
    """
    text: Optional[str] = None
    tokens: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.tokens and not self.phone


class CustomerUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied."""
    name: Optional[str] = None
    phone: Optional[str] = None
    nickname: Optional[str] = None
    landmark: Optional[str] = None
    notes: Optional[str] = None
    balance: Optional[Decimal] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Customer name must not be empty')
        return v.strip() if v is not None else v

    def fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class SimilarCustomer(BaseModel):
    """A candidate surfaced for confirmation or duplicate detection."""
    customer: CustomerSearchResult
    similarity: float = Field(ge=0.0, le=1.0)
    match_type: Optional[MatchType] = None


class SearchOutcome(BaseModel):
    """
    Typed result of a customer search.

    A failed store query is reported as ``FAILED`` with the error message and
    is never folded into an empty ``NO_MATCH`` result.
    """
    status: SearchStatus
    results: List[CustomerSearchResult] = Field(default_factory=list)
    source: Optional[str] = None  # cache | store
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != SearchStatus.FAILED

    @property
    def top(self) -> Optional[CustomerSearchResult]:
        return self.results[0] if self.results else None


class AmbiguityResolution(BaseModel):
    """
    Either a single confident ``exact`` match, or a list of candidates the
    user should choose between when ``needs_confirmation`` is set.
    """
    exact: Optional[CustomerSearchResult] = None
    candidates: List[SimilarCustomer] = Field(default_factory=list)
    needs_confirmation: bool = False


class CustomerSuggestion(BaseModel):
    """Existing customer offered instead of creating a duplicate."""
    id: str
    name: str
    phone: Optional[str] = None
    landmark: Optional[str] = None
    similarity: float = Field(ge=0.0, le=1.0)


class CreateCustomerResult(BaseModel):
    """Outcome of a name-only customer creation."""
    success: bool
    duplicate_found: bool = False
    customer: Optional[CustomerSearchResult] = None
    suggestions: List[CustomerSuggestion] = Field(default_factory=list)
    message: str


class BalanceUpdate(BaseModel):
    """Payload pushed to live balance subscribers."""
    customer_id: str
    balance: Decimal
    updated_at: str
