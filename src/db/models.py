# provide dataclass models and their JSON document shapes
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Tuple

Role = Literal["admin", "cashier"]
PaymentMethod = Literal["cash", "card", "other"]
Severity = Literal["low", "critical"]

ROLES = ("admin", "cashier")
PAYMENT_METHODS = ("cash", "card", "other")


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _to_doc(obj) -> Dict[str, Any]:
    """Flat dataclass -> camelCase dict. Nested values are handled by callers."""
    return {camel_case(f.name): getattr(obj, f.name) for f in fields(obj)}


def whole(value: Any, name: str) -> int:
    """int() that refuses to drop a fractional part."""
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    return int(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_instant(dt: datetime) -> str:
    """ISO-8601 instant in UTC with millisecond precision and a Z suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_day(dt: datetime) -> str:
    """Calendar day (YYYY-MM-DD) of an instant, taken in UTC."""
    return dt.astimezone(timezone.utc).date().isoformat()


@dataclass(frozen=True)
class User:
    id: str
    username: str
    password: str
    role: Role  # "admin" or "cashier"
    is_active: bool
    created_at: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"unknown role {self.role!r}")

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "User":
        return cls(
            id=str(doc["id"]),
            username=str(doc["username"]),
            password=str(doc["password"]),
            role=doc["role"],
            is_active=bool(doc.get("isActive", True)),
            created_at=str(doc.get("createdAt", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _to_doc(self)


@dataclass(frozen=True)
class ProductVariant:
    id: str
    name: str
    price: float
    stock: int

    def __post_init__(self):
        if self.price < 0 or self.stock < 0:
            raise ValueError(f"variant {self.id!r} has negative price or stock")

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "ProductVariant":
        return cls(
            id=str(doc["id"]),
            name=str(doc["name"]),
            price=float(doc["price"]),
            stock=whole(doc["stock"], "stock"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _to_doc(self)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    code: str
    category: str
    price: float
    stock: int
    min_stock: int
    is_active: bool
    created_at: str
    updated_at: str
    variants: Optional[Tuple[ProductVariant, ...]] = None

    def __post_init__(self):
        if self.price < 0:
            raise ValueError(f"product {self.id!r} has a negative price")
        if self.stock < 0:
            raise ValueError(f"product {self.id!r} has negative stock")
        if self.min_stock < 0:
            raise ValueError(f"product {self.id!r} has a negative minimum stock")
        if self.variants is not None and not isinstance(self.variants, tuple):
            object.__setattr__(self, "variants", tuple(self.variants))

    def variant(self, variant_id: Optional[str]) -> Optional[ProductVariant]:
        if variant_id is None or not self.variants:
            return None
        return next((v for v in self.variants if v.id == variant_id), None)

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Product":
        variants = doc.get("variants")
        return cls(
            id=str(doc["id"]),
            name=str(doc["name"]),
            code=str(doc.get("code", "")),
            category=str(doc.get("category", "")),
            price=float(doc["price"]),
            stock=whole(doc["stock"], "stock"),
            min_stock=whole(doc.get("minStock", 0), "minStock"),
            is_active=bool(doc.get("isActive", True)),
            created_at=str(doc.get("createdAt", "")),
            updated_at=str(doc.get("updatedAt", "")),
            variants=(
                tuple(ProductVariant.from_dict(v) for v in variants)
                if variants is not None
                else None
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        doc = _to_doc(self)
        if self.variants is None:
            del doc["variants"]
        else:
            doc["variants"] = [v.to_dict() for v in self.variants]
        return doc


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    price: float
    quantity: int
    total: float
    variant_id: Optional[str] = None

    @classmethod
    def build(
        cls,
        product_id: str,
        name: str,
        price: float,
        quantity: int,
        variant_id: Optional[str] = None,
    ) -> "CartItem":
        return cls(
            product_id=product_id,
            name=name,
            price=price,
            quantity=quantity,
            total=price * quantity,
            variant_id=variant_id,
        )

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "CartItem":
        variant_id = doc.get("variantId")
        return cls(
            product_id=str(doc["productId"]),
            name=str(doc["name"]),
            price=float(doc["price"]),
            quantity=whole(doc["quantity"], "quantity"),
            total=float(doc["total"]),
            variant_id=str(variant_id) if variant_id is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        doc = _to_doc(self)
        if self.variant_id is None:
            del doc["variantId"]
        return doc


@dataclass(frozen=True)
class Sale:
    id: str
    items: Tuple[CartItem, ...]
    subtotal: float
    tax: float
    discount: float
    total: float
    payment_method: PaymentMethod
    amount_paid: float
    change: float
    cashier_id: str
    cashier_name: str
    receipt_printed: bool
    timestamp: str  # ISO instant, UTC
    date: str  # UTC calendar day of timestamp

    def __post_init__(self):
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))
        if self.payment_method not in PAYMENT_METHODS:
            raise ValueError(f"unknown payment method {self.payment_method!r}")

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Sale":
        return cls(
            id=str(doc["id"]),
            items=tuple(CartItem.from_dict(i) for i in doc["items"]),
            subtotal=float(doc["subtotal"]),
            tax=float(doc["tax"]),
            discount=float(doc.get("discount", 0)),
            total=float(doc["total"]),
            payment_method=doc["paymentMethod"],
            amount_paid=float(doc.get("amountPaid", 0)),
            change=float(doc.get("change", 0)),
            cashier_id=str(doc.get("cashierId", "")),
            cashier_name=str(doc.get("cashierName", "")),
            receipt_printed=bool(doc.get("receiptPrinted", False)),
            timestamp=str(doc["timestamp"]),
            date=str(doc["date"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        doc = _to_doc(self)
        doc["items"] = [i.to_dict() for i in self.items]
        return doc


@dataclass(frozen=True)
class InventoryAlert:
    product_id: str
    product_name: str
    current_stock: int
    min_stock: int
    severity: Severity  # "critical" iff current_stock == 0

    @classmethod
    def for_product(cls, product: Product) -> "InventoryAlert":
        return cls(
            product_id=product.id,
            product_name=product.name,
            current_stock=product.stock,
            min_stock=product.min_stock,
            severity="critical" if product.stock == 0 else "low",
        )


@dataclass(frozen=True)
class DailySummary:
    total_sales: float
    total_transactions: int
    total_items: int
    average_transaction: float


@dataclass(frozen=True)
class TopProduct:
    product_id: str
    product_name: str
    quantity: int
    revenue: float


@dataclass(frozen=True)
class DailyBreakdown:
    date: str
    sales: float
    transactions: int
    items: int


@dataclass(frozen=True)
class PaymentBreakdown:
    method: str
    count: int
    total: float


@dataclass(frozen=True)
class ReportData:
    start: str
    end: str
    total_sales: float
    total_transactions: int
    total_items: int
    average_transaction: float
    top_products: Tuple[TopProduct, ...] = field(default_factory=tuple)
    daily_breakdown: Tuple[DailyBreakdown, ...] = field(default_factory=tuple)
    payment_methods: Tuple[PaymentBreakdown, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Export layout: a summary block, then the three breakdowns."""
        return {
            "reportPeriod": f"{self.start} to {self.end}",
            "summary": {
                "totalSales": self.total_sales,
                "totalTransactions": self.total_transactions,
                "totalItems": self.total_items,
                "averageTransaction": self.average_transaction,
            },
            "topProducts": [_to_doc(p) for p in self.top_products],
            "dailyBreakdown": [_to_doc(d) for d in self.daily_breakdown],
            "paymentMethods": [_to_doc(m) for m in self.payment_methods],
        }
