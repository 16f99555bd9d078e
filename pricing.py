# pricing.py
"""Per-unit book pricing at order time."""
from decimal import Decimal

from core import CENT, utcnow
from errors import CatalogIntegrityError


def sale_active(book, at=None):
    """True when the book's sale applies at ``at``; window bounds are inclusive."""
    if not book.is_on_sale:
        return False
    at = at or utcnow()
    if book.discount_start is not None and at < book.discount_start:
        return False
    if book.discount_end is not None and at > book.discount_end:
        return False
    return True


def effective_unit_price(book, at=None):
    price = Decimal(str(book.price))
    if not sale_active(book, at):
        return price.quantize(CENT)
    percent = Decimal(str(book.discount_percent or 0))
    # the catalog validates the range; a stored value outside it is corrupt data
    if percent < 0 or percent > 100:
        raise CatalogIntegrityError(book.id, percent)
    return (price * (1 - percent / 100)).quantize(CENT)
