"""
One-shot extraction API: text in, best candidates out.
"""

from fastapi import APIRouter, Depends

from labelscan.dependencies import (
    get_date_parser,
    get_nutrition_parser,
    get_receipt_parser,
    get_shopping_parser,
)
from labelscan.models.extraction import (
    CandidateResponse,
    DateExtractionResponse,
    DateListResponse,
    NutritionResponse,
    ReceiptLineItemResponse,
    ReceiptResponse,
    ShoppingItemResponse,
    ShoppingResponse,
    TextRequest,
)
from labelscan.services.expiration import ExpirationDateParser
from labelscan.services.nutrition import NutritionParser
from labelscan.services.receipt import ReceiptParser
from labelscan.services.shopping import ShoppingListParser

router = APIRouter(prefix="/extract", tags=["extract"])


@router.post("/date", response_model=DateExtractionResponse)
async def extract_date(
    request: TextRequest,
    parser: ExpirationDateParser = Depends(get_date_parser),
):
    """
    Extract the most likely expiration date from label text.

    Returns all-null fields when no plausible date is found.
    """
    best = parser.extract_date(request.text)
    if best is None:
        return DateExtractionResponse()

    return DateExtractionResponse(
        candidate=CandidateResponse.from_candidate(best),
        date=best.value.isoformat(),
        formatted=parser.format_date(best.value),
        days_until_expiration=parser.days_until_expiration(best.value),
        status_text=parser.expiration_status_text(best.value),
    )


@router.post("/dates", response_model=DateListResponse)
async def extract_dates(
    request: TextRequest,
    parser: ExpirationDateParser = Depends(get_date_parser),
):
    """Every plausible date in the text, one per calendar day."""
    candidates = parser.find_all_dates(request.text)
    return DateListResponse(candidates=[CandidateResponse.from_candidate(c) for c in candidates])


@router.post("/nutrition", response_model=NutritionResponse)
async def extract_nutrition(
    request: TextRequest,
    parser: NutritionParser = Depends(get_nutrition_parser),
):
    """Parse and range-check a nutrition facts panel."""
    facts = parser.validate(parser.parse_nutrition_label(request.text))

    return NutritionResponse(
        serving_size=facts.serving_size,
        serving_size_unit=facts.serving_size_unit,
        servings_per_container=facts.servings_per_container,
        nutrients=facts.nutrients(),
        label_format=facts.label_format.value,
        confidence=facts.confidence,
        field_sources=facts.field_sources,
        has_minimum_data=facts.has_minimum_data,
        field_count=facts.field_count,
    )


@router.post("/shopping", response_model=ShoppingResponse)
async def extract_shopping(
    request: TextRequest,
    parser: ShoppingListParser = Depends(get_shopping_parser),
):
    """Split a spoken shopping list into items."""
    candidates = parser.parse_shopping_utterance(request.text)

    items = [
        ShoppingItemResponse(
            name=c.value.name,
            quantity=c.value.quantity,
            unit=c.value.unit,
            raw_text=c.value.raw_text,
            confidence=c.confidence,
            shape=c.format_used,
        )
        for c in candidates
    ]
    return ShoppingResponse(items=items, display=parser.format_items_for_display(candidates))


@router.post("/receipt", response_model=ReceiptResponse)
async def extract_receipt(
    request: TextRequest,
    parser: ReceiptParser = Depends(get_receipt_parser),
):
    """Parse grocery receipt text locally (low confidence, meant for review)."""
    data = parser.parse_receipt(request.text)
    purchase_date = data.purchase_date

    return ReceiptResponse(
        store_name=data.store_name,
        receipt_date=data.receipt_date,
        purchase_date=purchase_date.isoformat() if purchase_date else None,
        subtotal=data.subtotal,
        tax=data.tax,
        total=data.total,
        items=[
            ReceiptLineItemResponse(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                is_discount=item.is_discount,
                is_tax=item.is_tax,
                confidence=item.confidence,
            )
            for item in data.items
        ],
        confidence=data.confidence,
    )
