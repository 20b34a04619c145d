"""
Quotation pricing.

WHAT: The single place where line items are valued and quotation totals
are computed. Schemas, the quotation service, the recompute task and the
pricing preview endpoints all call into this module.

WHY: Totals are persisted as a cache of this computation, so every caller
must get bit-identical numbers for the same items. Keeping the formula in
one module (and computing it in Decimal, not float) makes the cached
totals reproducible and order-independent.

HOW:
    gross           = qty * unit_price
    discount_amount = gross * discount_percent / 100
    taxable_amount  = gross - discount_amount
    tax_amount      = taxable_amount * tax_rate / 100
    line_total      = taxable_amount + tax_amount

Arithmetic runs at full Decimal precision; figures are rounded half-up to
2 places only when rendered or persisted. Quotation totals are summed
exactly and rounded once, at the aggregate level.

Input parsing is permissive for missing data (absent, None, blank or
non-numeric values count as 0, mirroring partially filled forms) and
strict for out-of-range numbers, which raise ValidationError. Inputs and
amounts are capped at MAX_AMOUNT, the capacity of the money columns.
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from quotedesk.core.exceptions import ValidationError


ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# Largest amount a Numeric(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")

# Numeric input fields of a line item
NUMERIC_FIELDS = ("qty", "unit_price", "discount_percent", "tax_rate")

# Descriptive fields carried through normalization untouched
TEXT_FIELDS = ("description", "uom")


def to_decimal(value: Any) -> Decimal:
    """
    Parse a loosely typed numeric value.

    Absent, None, blank, boolean, non-numeric and non-finite values all
    parse to 0. Floats go through their shortest repr so 0.1 stays 0.1.

    Args:
        value: Raw value from a form, JSON payload or stored item

    Returns:
        Finite Decimal
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        parsed = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not parsed.is_finite():
        return ZERO
    return parsed


def round_money(value: Decimal) -> Decimal:
    """Round to currency precision (2 places, half-up)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_json_number(value: Decimal) -> Union[int, float]:
    """
    Render a Decimal as a JSON-friendly number.

    WHY: Line items are stored in JSON columns, which only hold native
    numbers. Integral values stay ints so "2" does not become "2.0".
    """
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class LineValuation:
    """
    Monetary breakdown of one line item at full precision.

    Attributes:
        qty / unit_price / discount_percent / tax_rate: Parsed inputs
        gross / discount_amount / taxable_amount / tax_amount / line_total:
            Computed figures (unrounded)
    """

    qty: Decimal
    unit_price: Decimal
    discount_percent: Decimal
    tax_rate: Decimal
    gross: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    line_total: Decimal

    def rounded(self) -> Dict[str, Decimal]:
        """Computed figures rounded to currency precision."""
        return {
            "gross": round_money(self.gross),
            "discount_amount": round_money(self.discount_amount),
            "taxable_amount": round_money(self.taxable_amount),
            "tax_amount": round_money(self.tax_amount),
            "line_total": round_money(self.line_total),
        }


@dataclass(frozen=True)
class QuotationTotals:
    """
    Aggregate totals of a quotation, rounded once at the aggregate level.

    Attributes:
        subtotal: Sum of line gross amounts
        discount_total: Sum of line discounts
        tax_total: Sum of line taxes
        grand_total: Sum of line totals
        items: Normalized items the totals were computed from
    """

    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    grand_total: Decimal
    items: List[Dict[str, Any]] = field(default_factory=list)

    def columns(self) -> Dict[str, Decimal]:
        """Totals keyed by their Quotation column names."""
        return {
            "subtotal": self.subtotal,
            "discount_total": self.discount_total,
            "tax_total": self.tax_total,
            "grand_total": self.grand_total,
        }


def _check_range(
    name: str,
    value: Decimal,
    maximum: Optional[Decimal] = None,
) -> None:
    if value < 0:
        raise ValidationError(f"{name} must not be negative", field=name, value=str(value))
    if maximum is not None and value > maximum:
        raise ValidationError(
            f"{name} must be between 0 and {maximum}", field=name, value=str(value)
        )


def value_line(item: Mapping[str, Any]) -> LineValuation:
    """
    Value one line item.

    Args:
        item: Mapping with qty, unit_price, discount_percent, tax_rate
            (any may be missing)

    Returns:
        LineValuation at full precision

    Raises:
        ValidationError: Negative qty/unit_price/tax_rate, discount_percent
            outside [0, 100], or an input or amount above MAX_AMOUNT
    """
    if not isinstance(item, Mapping):
        raise ValidationError("Line item must be an object", field="item")

    qty = to_decimal(item.get("qty"))
    unit_price = to_decimal(item.get("unit_price"))
    discount_percent = to_decimal(item.get("discount_percent"))
    tax_rate = to_decimal(item.get("tax_rate"))

    _check_range("qty", qty, maximum=MAX_AMOUNT)
    _check_range("unit_price", unit_price, maximum=MAX_AMOUNT)
    _check_range("discount_percent", discount_percent, maximum=HUNDRED)
    _check_range("tax_rate", tax_rate, maximum=MAX_AMOUNT)

    gross = qty * unit_price
    discount_amount = gross * discount_percent / HUNDRED
    taxable_amount = gross - discount_amount
    tax_amount = taxable_amount * tax_rate / HUNDRED
    line_total = taxable_amount + tax_amount

    _check_range("gross", gross, maximum=MAX_AMOUNT)
    _check_range("line_total", line_total, maximum=MAX_AMOUNT)

    return LineValuation(
        qty=qty,
        unit_price=unit_price,
        discount_percent=discount_percent,
        tax_rate=tax_rate,
        gross=gross,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        line_total=line_total,
    )


def _product_id(value: Any) -> Optional[int]:
    # Custom lines carry no product
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_item(item: Mapping[str, Any], valuation: Optional[LineValuation] = None) -> Dict[str, Any]:
    """
    Build the stored form of a line item.

    WHAT: The item with its numeric inputs as JSON numbers and the rounded
    per-line figures written over it. Other keys (product_name, hsn_code and
    the like) are kept as they are.

    Args:
        item: Raw line item
        valuation: Pre-computed valuation (computed here if omitted)

    Returns:
        Normalized item dict
    """
    valuation = valuation or value_line(item)
    normalized: Dict[str, Any] = dict(item)
    normalized["product_id"] = _product_id(item.get("product_id"))
    for name in TEXT_FIELDS:
        value = item.get(name)
        normalized[name] = str(value) if value is not None else None
    for name in NUMERIC_FIELDS:
        normalized[name] = to_json_number(getattr(valuation, name))
    for name, amount in valuation.rounded().items():
        normalized[name] = to_json_number(amount)
    return normalized


def compute_totals(items: Optional[Sequence[Mapping[str, Any]]]) -> QuotationTotals:
    """
    Compute quotation totals from its line items.

    Sums are accumulated exactly and rounded once, so permuting the items
    never changes a total. An empty (or None) list yields all zeros.

    Args:
        items: Line items

    Returns:
        QuotationTotals with the normalized items attached

    Raises:
        ValidationError: If any line is invalid (details carry the 1-based line
            number), or the totals exceed MAX_AMOUNT
    """
    subtotal = discount_total = tax_total = grand_total = ZERO
    normalized: List[Dict[str, Any]] = []

    for index, item in enumerate(items or []):
        try:
            valuation = value_line(item)
        except ValidationError as e:
            raise ValidationError(
                f"Line {index + 1}: {e.message}", line=index + 1, **e.context
            ) from e

        subtotal += valuation.gross
        discount_total += valuation.discount_amount
        tax_total += valuation.tax_amount
        grand_total += valuation.line_total
        normalized.append(normalize_item(item, valuation))

    _check_range("subtotal", subtotal, maximum=MAX_AMOUNT)
    _check_range("grand_total", grand_total, maximum=MAX_AMOUNT)

    return QuotationTotals(
        subtotal=round_money(subtotal),
        discount_total=round_money(discount_total),
        tax_total=round_money(tax_total),
        grand_total=round_money(grand_total),
        items=normalized,
    )


def normalize_items(items: Optional[Sequence[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    """Normalized stored form of a list of line items."""
    return compute_totals(items).items


def parse_stored_items(raw: Any) -> List[Mapping[str, Any]]:
    """
    Coerce a stored items payload into a list of line items.

    WHAT: Lists pass through, JSON text is decoded, None/blank becomes [].

    WHY: Older rows hold items as serialized text or null. Reading them
    through this function lets the recompute task and the reissue workflow
    treat every row alike.

    Raises:
        ValidationError: Undecodable text, or a payload that is not a list
    """
    if raw is None:
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ValidationError("Stored items are not valid JSON", field="items") from e
        if raw is None:
            return []
    if not isinstance(raw, list):
        raise ValidationError(
            "Stored items must be a list", field="items", found=type(raw).__name__
        )
    return raw
