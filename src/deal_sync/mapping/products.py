"""
Deal product classification.

Line items whose product code contains the training marker (``form-`` by
default, case-insensitive) are training units: their quantities add up to the
number of sessions the deal needs. Everything else is an "extra".
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..config import config
from ..models.remote import PipedriveDealProduct
from .resolvers import resolve_text


@dataclass
class ProductClassification:
    """Training vs extra split of a deal's line items, in input order."""

    training_names: list[str] = field(default_factory=list)
    extra_names: list[str] = field(default_factory=list)
    sessions_needed: float = 0

    @property
    def training_summary(self) -> str:
        return build_training_summary(self)

    @property
    def extras_summary(self) -> str:
        return build_extras_summary(self)


def parse_quantity(value: Any) -> float:
    """Numeric quantity of a line item; missing, malformed or non-finite is 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0
    else:
        return 0
    return number if math.isfinite(number) else 0


def _product_name(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return resolve_text(value)
    return None


def is_training_code(code: Any, marker: str | None = None) -> bool:
    """True if the product code contains the training marker, ignoring case."""
    marker = (marker or config.TRAINING_CODE_MARKER).lower()
    return isinstance(code, str) and marker in code.lower()


def classify_deal_products(
    products: Iterable[PipedriveDealProduct | dict[str, Any]],
    marker: str | None = None,
) -> ProductClassification:
    """
    Partition line items into training and extras.

    Args:
        products: Deal line items (models or raw dicts)
        marker: Training code marker (defaults to config.TRAINING_CODE_MARKER)

    Returns:
        ProductClassification with names (duplicates kept, nameless items
        skipped) and the summed training quantity
    """
    classification = ProductClassification()
    total = 0.0

    for raw in products:
        item = raw if isinstance(raw, PipedriveDealProduct) else PipedriveDealProduct.model_validate(raw)
        code = item.product.code if item.product else None
        name = _product_name(item.product.name) if item.product else None

        if is_training_code(code, marker):
            total += parse_quantity(item.quantity)
            if name:
                classification.training_names.append(name)
        elif name:
            classification.extra_names.append(name)

    classification.sessions_needed = int(total) if total.is_integer() else total
    return classification


def build_training_summary(classification: ProductClassification) -> str:
    return ', '.join(classification.training_names)


def build_extras_summary(classification: ProductClassification) -> str:
    return ', '.join(classification.extra_names)


def calculate_sessions_needed(
    products: Iterable[PipedriveDealProduct | dict[str, Any]],
    marker: str | None = None,
) -> float:
    return classify_deal_products(products, marker).sessions_needed
