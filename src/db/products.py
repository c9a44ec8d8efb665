# src/db/products.py
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Literal, Optional, Tuple

from db import collection
from db.database import PRODUCTS_KEY, write_lock
from db.errors import StockUpdate
from db.models import InventoryAlert, Product, ProductVariant, iso_instant, utc_now
from utils.logger import get_logger
from utils.pure import generate_id

_logger = get_logger(__name__)

Direction = Literal["add", "subtract"]


async def get_all() -> List[Product]:
    """Every stored product (active or not), in insertion order."""
    return await collection.load(PRODUCTS_KEY, Product.from_dict)


async def save(products: List[Product]) -> None:
    await collection.store(PRODUCTS_KEY, products)


async def get(product_id: str) -> Optional[Product]:
    return next((p for p in await get_all() if p.id == product_id), None)


async def add(
    name: str,
    code: str,
    category: str,
    price: float,
    stock: int = 0,
    min_stock: int = 0,
    is_active: bool = True,
    variants: Optional[Iterable[ProductVariant]] = None,
) -> Product:
    """Create a product with a fresh id; created_at and updated_at are the same instant."""
    now = iso_instant(utc_now())
    product = Product(
        id=generate_id(),
        name=name,
        code=code,
        category=category,
        price=price,
        stock=stock,
        min_stock=min_stock,
        is_active=is_active,
        created_at=now,
        updated_at=now,
        variants=tuple(variants) if variants is not None else None,
    )
    async with write_lock():
        products = await get_all()
        products.append(product)
        await save(products)
    _logger.info(f"Added product {code!r} {name!r} ({product.id})")
    return product


async def update(product_id: str, **changes) -> bool:
    """
    Patch the named fields of a product and refresh updated_at.
    Returns False if the id is unknown; raises ValueError for negative price/stock.
    """
    changes["updated_at"] = iso_instant(utc_now())
    async with write_lock():
        products = await get_all()
        idx = collection.find_index(products, product_id)
        if idx is None:
            return False
        products[idx] = collection.merge(products[idx], changes)
        await save(products)
    return True


async def delete(product_id: str) -> bool:
    async with write_lock():
        products = await get_all()
        kept = [p for p in products if p.id != product_id]
        if len(kept) == len(products):
            return False
        await save(kept)
    _logger.info(f"Deleted product {product_id}")
    return True


def adjust_stock(
    product: Product,
    quantity: int,
    direction: Direction = "subtract",
    variant_id: Optional[str] = None,
    when: Optional[str] = None,
) -> Tuple[StockUpdate, Product]:
    """
    Compute the product after moving `quantity` units in `direction`.

    A variant line moves both the variant's stock and the product's stock.
    Nothing is stored here; on any status other than OK the input product is
    returned unchanged.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        return StockUpdate.INVALID_QUANTITY, product
    if direction not in ("add", "subtract"):
        return StockUpdate.INVALID_QUANTITY, product
    delta = quantity if direction == "add" else -quantity

    new_stock = product.stock + delta
    if new_stock < 0:
        return StockUpdate.INSUFFICIENT_STOCK, product

    variants = product.variants
    if variant_id is not None:
        variant = product.variant(variant_id)
        if variant is None:
            return StockUpdate.NOT_FOUND, product
        if variant.stock + delta < 0:
            return StockUpdate.INSUFFICIENT_STOCK, product
        variants = tuple(
            replace(v, stock=v.stock + delta) if v.id == variant_id else v
            for v in product.variants
        )

    return StockUpdate.OK, replace(
        product,
        stock=new_stock,
        variants=variants,
        updated_at=when or iso_instant(utc_now()),
    )


async def update_stock(
    product_id: str,
    quantity: int,
    direction: Direction = "subtract",
    variant_id: Optional[str] = None,
) -> StockUpdate:
    """
    Add or subtract stock. Rejected without any write if the result would be negative.
    """
    async with write_lock():
        products = await get_all()
        idx = collection.find_index(products, product_id)
        if idx is None:
            return StockUpdate.NOT_FOUND
        status, updated = adjust_stock(products[idx], quantity, direction, variant_id)
        if status is not StockUpdate.OK:
            _logger.debug(f"Stock change on {product_id} rejected: {status.value}")
            return status
        products[idx] = updated
        await save(products)
    return StockUpdate.OK


def low_stock_alerts(products: Iterable[Product]) -> List[InventoryAlert]:
    return [
        InventoryAlert.for_product(p)
        for p in products
        if p.is_active and p.stock <= p.min_stock
    ]


async def get_low_stock_alerts() -> List[InventoryAlert]:
    """Active products at or below their minimum stock; stock 0 is critical."""
    return low_stock_alerts(await get_all())


async def search(query: str) -> List[Product]:
    """
    Case-insensitive substring match on name, code or category.
    Only active products; results keep collection order.
    """
    needle = (query or "").lower()
    return [
        p
        for p in await get_all()
        if p.is_active
        and (
            needle in p.name.lower()
            or needle in p.code.lower()
            or needle in p.category.lower()
        )
    ]
