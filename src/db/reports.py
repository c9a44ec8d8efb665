# src/db/reports.py
from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from db import products as product_repo
from db import sales as sales_repo
from db.models import (
    DailyBreakdown,
    PaymentBreakdown,
    Product,
    ReportData,
    Sale,
    TopProduct,
    iso_instant,
    utc_now,
)
from utils.logger import get_logger
from utils.pure import format_money, generate_markdown_table

_logger = get_logger(__name__)

TOP_PRODUCTS_LIMIT = 10

Period = Literal["today", "week", "month"]


def period_range(period: Period, today: date) -> Tuple[str, str]:
    """
    Date range for a preset period ending today: today only, or starting 7 or
    30 days back.
    """
    if period == "today":
        start = today
    elif period == "week":
        start = today - timedelta(days=7)
    elif period == "month":
        start = today - timedelta(days=30)
    else:
        raise ValueError(f"unknown report period {period!r}")
    return start.isoformat(), today.isoformat()


def aggregate(
    sales: List[Sale], products: Iterable[Product], start: str = "", end: str = ""
) -> ReportData:
    """
    Summarize a set of sales. Pure: the result depends only on the arguments.

    Top products are ranked by revenue (ties keep first-seen order) and named
    after the current product when it still exists, else after the line item.
    """
    names = {p.id: p.name for p in products}

    total_sales = sum(s.total for s in sales)
    total_transactions = len(sales)

    by_product: Dict[str, List] = {}  # product_id -> [name, quantity, revenue]
    by_day: Dict[str, List] = {}  # date -> [sales, transactions, items]
    by_method: Dict[str, List] = {}  # method -> [count, total]

    for sale in sales:
        for item in sale.items:
            row = by_product.setdefault(
                item.product_id, [names.get(item.product_id, item.name), 0, 0.0]
            )
            row[1] += item.quantity
            row[2] += item.total

        day = by_day.setdefault(sale.date, [0.0, 0, 0])
        day[0] += sale.total
        day[1] += 1
        day[2] += sale.item_count

        method = by_method.setdefault(sale.payment_method, [0, 0.0])
        method[0] += 1
        method[1] += sale.total

    top = [
        TopProduct(product_id=pid, product_name=name, quantity=qty, revenue=revenue)
        for pid, (name, qty, revenue) in by_product.items()
    ]
    # sorted() is stable, so equal revenue keeps grouping order
    top = sorted(top, key=lambda t: t.revenue, reverse=True)[:TOP_PRODUCTS_LIMIT]

    total_items = sum(s.item_count for s in sales)
    return ReportData(
        start=start,
        end=end,
        total_sales=total_sales,
        total_transactions=total_transactions,
        total_items=total_items,
        average_transaction=(
            total_sales / total_transactions if total_transactions > 0 else 0.0
        ),
        top_products=tuple(top),
        daily_breakdown=tuple(
            DailyBreakdown(date=d, sales=v[0], transactions=v[1], items=v[2])
            for d, v in sorted(by_day.items())
        ),
        payment_methods=tuple(
            PaymentBreakdown(method=m, count=v[0], total=v[1])
            for m, v in by_method.items()
        ),
    )


async def build_report(start, end) -> ReportData:
    """Report over sales dated within [start, end] inclusive."""
    in_range = await sales_repo.get_by_date_range(start, end)
    catalog = await product_repo.get_all()
    return aggregate(
        in_range, catalog, sales_repo.as_day(start), sales_repo.as_day(end)
    )


def to_markdown(report: ReportData, currency: str = "PHP") -> str:
    """Render a report as Markdown: a summary, then one table per breakdown."""
    def money(amount: float) -> str:
        return format_money(amount, currency)

    parts = [
        f"### Sales Report ({report.start} to {report.end})",
        generate_markdown_table(
            ["Total Sales", "Transactions", "Items Sold", "Average Sale"],
            [
                [
                    money(report.total_sales),
                    report.total_transactions,
                    report.total_items,
                    money(report.average_transaction),
                ]
            ],
            ["r", "r", "r", "r"],
        ),
        "#### Top Products",
        generate_markdown_table(
            ["#", "Product", "Qty", "Revenue"],
            [
                [rank, p.product_name, p.quantity, money(p.revenue)]
                for rank, p in enumerate(report.top_products, start=1)
            ],
            ["r", "l", "r", "r"],
        ),
        "#### Daily Breakdown",
        generate_markdown_table(
            ["Date", "Sales", "Transactions", "Items"],
            [
                [d.date, money(d.sales), d.transactions, d.items]
                for d in report.daily_breakdown
            ],
            ["l", "r", "r", "r"],
        ),
        "#### Payment Methods",
        generate_markdown_table(
            ["Method", "Count", "Total"],
            [[m.method, m.count, money(m.total)] for m in report.payment_methods],
            ["l", "r", "r"],
        ),
    ]
    return "\n\n".join(parts) + "\n"


def export_report(
    report: ReportData, when: Optional[datetime] = None
) -> Dict[str, Any]:
    """Report as a JSON-ready document stamped with its generation time."""
    doc = report.to_dict()
    doc["generatedAt"] = iso_instant(when or utc_now())
    return doc


def default_report_name(report: ReportData) -> str:
    return f"sales-report-{report.start}-to-{report.end}.json"


def dump_report(
    report: ReportData, path: Optional[Union[str, Path]] = None
) -> Path:
    """Write the report as indented JSON and return the file path."""
    out = Path(path) if path else Path(default_report_name(report))
    out.write_text(json.dumps(export_report(report), indent=2), encoding="utf-8")
    _logger.info(f"Report {report.start} to {report.end} written to {out}")
    return out
