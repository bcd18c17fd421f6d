"""
Pydantic models for the extraction and session APIs.
"""

from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from labelscan.services.expiration import ExpirationDateParser
from labelscan.services.session import ScanDomain, SessionSnapshot, SessionState
from labelscan.utils.candidates import Candidate, NutrientValue, ShoppingItem


def jsonable_value(value: Any) -> Any:
    """Candidate payloads as plain JSON values (dates as YYYY-MM-DD)."""
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value):
        return asdict(value)
    return value


def describe_value(value: Any) -> str:
    if isinstance(value, date):
        return ExpirationDateParser.format_date(value)
    if isinstance(value, ShoppingItem):
        return value.display()
    if isinstance(value, NutrientValue):
        return f"{value.field.replace('_', ' ')} {value.amount:g}{value.unit or ''}"
    return str(value)


class TextRequest(BaseModel):
    """Raw OCR or speech text."""
    text: str


class CandidateResponse(BaseModel):
    value: Any
    display: str
    original_text: str
    confidence: float
    rule_id: str
    format_used: str

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "CandidateResponse":
        return cls(
            value=jsonable_value(candidate.value),
            display=describe_value(candidate.value),
            original_text=candidate.original_text,
            confidence=candidate.confidence,
            rule_id=candidate.rule_id,
            format_used=candidate.format_used,
        )


class DateExtractionResponse(BaseModel):
    """Best expiration date, or all-null when none was found."""
    candidate: Optional[CandidateResponse] = None
    date: Optional[str] = None  # YYYY-MM-DD
    formatted: Optional[str] = None
    days_until_expiration: Optional[int] = None
    status_text: Optional[str] = None


class DateListResponse(BaseModel):
    candidates: List[CandidateResponse]


class NutritionResponse(BaseModel):
    serving_size: Optional[float] = None
    serving_size_unit: Optional[str] = None
    servings_per_container: Optional[float] = None
    nutrients: Dict[str, Optional[float]]
    label_format: str
    confidence: float
    field_sources: Dict[str, str] = Field(default_factory=dict)
    has_minimum_data: bool
    field_count: int


class ShoppingItemResponse(BaseModel):
    name: str
    quantity: float
    unit: Optional[str] = None
    raw_text: str
    confidence: float
    shape: str


class ShoppingResponse(BaseModel):
    items: List[ShoppingItemResponse]
    display: str


class ReceiptLineItemResponse(BaseModel):
    description: str
    quantity: float = 1.0
    unit_price: Optional[Decimal] = None
    total_price: Decimal
    is_discount: bool = False
    is_tax: bool = False
    confidence: float


class ReceiptResponse(BaseModel):
    store_name: Optional[str] = None
    receipt_date: Optional[str] = None
    purchase_date: Optional[str] = None  # YYYY-MM-DD when receipt_date could be resolved
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Optional[Decimal] = None
    items: List[ReceiptLineItemResponse]
    confidence: float


class SessionCreate(BaseModel):
    domain: ScanDomain = ScanDomain.DATE


class ObserveRequest(BaseModel):
    text: str
    immediate: bool = False  # skip the debounce delay


class SelectRequest(BaseModel):
    """Pick one of the session's current candidates, or enter a value by hand."""
    index: Optional[int] = Field(None, ge=0)
    manual_value: Optional[str] = None


class SessionResponse(BaseModel):
    id: str
    domain: ScanDomain
    state: SessionState
    hint: str
    candidates: List[CandidateResponse]
    best: Optional[CandidateResponse] = None
    selected: Optional[CandidateResponse] = None
    last_text: Optional[str] = None
    observations: int

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionResponse":
        return cls(
            id=snapshot.id,
            domain=snapshot.domain,
            state=snapshot.state,
            hint=snapshot.hint,
            candidates=[CandidateResponse.from_candidate(c) for c in snapshot.candidates],
            best=CandidateResponse.from_candidate(snapshot.best) if snapshot.best else None,
            selected=CandidateResponse.from_candidate(snapshot.selected) if snapshot.selected else None,
            last_text=snapshot.last_text,
            observations=snapshot.observations,
        )
