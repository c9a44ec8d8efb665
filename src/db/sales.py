# src/db/sales.py
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from db import collection
from db.database import SALES_KEY, write_lock
from db.models import (
    CartItem,
    DailySummary,
    PaymentMethod,
    Sale,
    iso_instant,
    utc_day,
    utc_now,
)
from utils.logger import get_logger
from utils.pure import generate_id

_logger = get_logger(__name__)

Day = Union[str, date]


def as_day(value: Day) -> str:
    if isinstance(value, datetime):
        return utc_day(value)
    return value.isoformat() if isinstance(value, date) else str(value)


async def get_all() -> List[Sale]:
    """The sales ledger, oldest first."""
    return await collection.load(SALES_KEY, Sale.from_dict)


async def save(sales: List[Sale]) -> None:
    await collection.store(SALES_KEY, sales)


async def get(sale_id: str) -> Optional[Sale]:
    return next((s for s in await get_all() if s.id == sale_id), None)


def new_sale(
    items: Iterable[CartItem],
    subtotal: float,
    tax: float,
    discount: float,
    total: float,
    payment_method: PaymentMethod,
    amount_paid: float,
    change: float,
    cashier_id: str,
    cashier_name: str,
    receipt_printed: bool = False,
    when: Optional[datetime] = None,
) -> Sale:
    """Build a sale record with a fresh id; date is the UTC day of the timestamp."""
    when = when or utc_now()
    return Sale(
        id=generate_id(),
        items=tuple(items),
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        total=total,
        payment_method=payment_method,
        amount_paid=amount_paid,
        change=change,
        cashier_id=cashier_id,
        cashier_name=cashier_name,
        receipt_printed=receipt_printed,
        timestamp=iso_instant(when),
        date=utc_day(when),
    )


async def add(**fields) -> Sale:
    """
    Append a sale built from the given fields (see new_sale) and return it.
    Stock is not touched here; checkout.record_sale does both atomically.
    """
    sale = new_sale(**fields)
    async with write_lock():
        sales = await get_all()
        sales.append(sale)
        await save(sales)
    _logger.info(f"Recorded sale {sale.id} total={sale.total:.2f}")
    return sale


async def update(sale_id: str, **changes) -> bool:
    """Sales are immutable apart from the receipt_printed flag."""
    illegal = set(changes) - {"receipt_printed"}
    if illegal:
        raise ValueError(f"sale fields cannot be changed: {sorted(illegal)}")
    async with write_lock():
        sales = await get_all()
        idx = collection.find_index(sales, sale_id)
        if idx is None:
            return False
        sales[idx] = collection.merge(sales[idx], changes)
        await save(sales)
    return True


async def mark_receipt_printed(sale_id: str) -> bool:
    return await update(sale_id, receipt_printed=True)


async def delete(sale_id: str) -> bool:
    async with write_lock():
        sales = await get_all()
        kept = [s for s in sales if s.id != sale_id]
        if len(kept) == len(sales):
            return False
        await save(kept)
    _logger.info(f"Deleted sale {sale_id}")
    return True


def filter_by_date_range(sales: Iterable[Sale], start: Day, end: Day) -> List[Sale]:
    lo, hi = as_day(start), as_day(end)
    return [s for s in sales if lo <= s.date <= hi]


async def get_by_date_range(start: Day, end: Day) -> List[Sale]:
    """Sales whose date lies in [start, end], compared as ISO date strings."""
    return filter_by_date_range(await get_all(), start, end)


def summarize(sales: List[Sale]) -> DailySummary:
    total_sales = sum(s.total for s in sales)
    count = len(sales)
    return DailySummary(
        total_sales=total_sales,
        total_transactions=count,
        total_items=sum(s.item_count for s in sales),
        average_transaction=total_sales / count if count > 0 else 0.0,
    )


async def get_daily_summary(day: Day) -> DailySummary:
    """Totals for the sales recorded on one day; average is 0 with no sales."""
    wanted = as_day(day)
    return summarize([s for s in await get_all() if s.date == wanted])
