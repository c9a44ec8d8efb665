# src/db/checkout.py
# turns a cart into a recorded sale: stock and ledger change together or not at all
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from db import collection, database
from db import products as product_repo
from db import sales as sales_repo
from db import settings as settings_repo
from db.database import PRODUCTS_KEY, SALES_KEY
from db.errors import SaleResult, Shortage, StockUpdate
from db.models import PAYMENT_METHODS, CartItem, PaymentMethod, Product, User
from utils.logger import get_logger

_logger = get_logger(__name__)


def build_cart_item(
    product: Product, quantity: int = 1, variant_id: Optional[str] = None
) -> CartItem:
    """
    Line item for a product, or for one of its variants.
    A variant line uses the variant price and is named "Product - Variant".
    """
    variant = product.variant(variant_id)
    if variant_id is not None and variant is None:
        raise ValueError(f"product {product.id} has no variant {variant_id!r}")
    if variant is not None:
        return CartItem.build(
            product.id,
            f"{product.name} - {variant.name}",
            variant.price,
            quantity,
            variant_id=variant.id,
        )
    return CartItem.build(product.id, product.name, product.price, quantity)


def compute_totals(
    items: Iterable[CartItem], tax_rate: float, discount: float = 0.0
) -> Tuple[float, float, float]:
    """Return (subtotal, tax, total) with total = subtotal + tax - discount."""
    subtotal = sum(item.total for item in items)
    tax = round(subtotal * tax_rate, 2)
    total = subtotal + tax - discount
    return subtotal, tax, total


def _reserve(
    stock: List[Product], items: Sequence[CartItem], when: str
) -> Tuple[List[Shortage], List[str]]:
    """
    Apply every line to the in-memory product list.
    Returns (shortages, other problems); the list is only meaningful if both are empty.
    """
    shortages: List[Shortage] = []
    problems: List[str] = []
    for item in items:
        if isinstance(item.quantity, int) and item.quantity <= 0:
            problems.append(f"invalid quantity {item.quantity!r} for {item.name!r}")
            continue
        idx = collection.find_index(stock, item.product_id)
        if idx is None:
            problems.append(f"unknown product {item.product_id}")
            continue
        product = stock[idx]
        if not product.is_active:
            problems.append(f"product {product.name!r} is not for sale")
            continue
        status, updated = product_repo.adjust_stock(
            product, item.quantity, "subtract", item.variant_id, when=when
        )
        if status is StockUpdate.OK:
            stock[idx] = updated
        elif status is StockUpdate.INSUFFICIENT_STOCK:
            variant = product.variant(item.variant_id)
            available = product.stock
            if variant is not None:
                available = min(available, variant.stock)
            shortages.append(
                Shortage(
                    product_id=product.id,
                    variant_id=item.variant_id,
                    name=item.name,
                    requested=item.quantity,
                    available=available,
                )
            )
        elif status is StockUpdate.NOT_FOUND:
            problems.append(f"{product.name!r} has no variant {item.variant_id!r}")
        else:
            problems.append(f"invalid quantity {item.quantity!r} for {item.name!r}")
    return shortages, problems


async def record_sale(
    items: Sequence[CartItem],
    *,
    cashier: User,
    payment_method: PaymentMethod = "cash",
    amount_paid: float = 0.0,
    discount: float = 0.0,
    tax_rate: Optional[float] = None,
    when: Optional[datetime] = None,
) -> SaleResult:
    """
    Record a completed sale and take its items out of stock.

    Every line is checked against current stock before anything is written; if
    any line cannot be filled the sale is rejected and no stock moves. Products
    and the sales ledger are then written in a single commit.
    Cash payments must cover the total; change is only given for cash.
    """
    items = list(items)
    if not items:
        return SaleResult(ok=False, reason="cart is empty")
    if payment_method not in PAYMENT_METHODS:
        return SaleResult(ok=False, reason=f"unknown payment method {payment_method!r}")
    if discount < 0:
        return SaleResult(ok=False, reason="discount cannot be negative")

    if tax_rate is None:
        tax_rate = (await settings_repo.get()).tax_rate
    subtotal, tax, total = compute_totals(items, tax_rate, discount)
    if round(discount, 2) > round(subtotal + tax, 2):
        return SaleResult(ok=False, reason="discount exceeds the amount due")
    if payment_method == "cash" and round(amount_paid, 2) < round(total, 2):
        return SaleResult(ok=False, reason="insufficient payment")
    change = max(0.0, amount_paid - total) if payment_method == "cash" else 0.0

    sale = sales_repo.new_sale(
        items=items,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        total=total,
        payment_method=payment_method,
        amount_paid=amount_paid,
        change=change,
        cashier_id=cashier.id,
        cashier_name=cashier.username,
        when=when,
    )

    async with database.write_lock():
        stock = await product_repo.get_all()
        shortages, problems = _reserve(stock, items, sale.timestamp)
        if shortages or problems:
            reason = "; ".join(
                problems
                + [
                    f"only {s.available} of {s.name!r} left, {s.requested} requested"
                    for s in shortages
                ]
            )
            _logger.warning(f"Sale rejected: {reason}")
            return SaleResult(ok=False, reason=reason, shortages=shortages)

        ledger = await sales_repo.get_all()
        ledger.append(sale)
        await database.set_many(
            {
                PRODUCTS_KEY: collection.dump(stock),
                SALES_KEY: collection.dump(ledger),
            }
        )

    _logger.info(
        f"Sale {sale.id} by {cashier.username}: {sale.item_count} items, "
        f"total={sale.total:.2f} ({payment_method})"
    )
    return SaleResult(ok=True, sale=sale)
