# export / import of the whole data set, plus first-run seeding
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from db import collection, database
from db import products as product_repo
from db import sales as sales_repo
from db import settings as settings_repo
from db import users as user_repo
from db.database import PRODUCTS_KEY, SALES_KEY, SETTINGS_KEY, USERS_KEY
from db.errors import CorruptRecordError
from db.models import Product, Sale, User, iso_instant, utc_day, utc_now
from db.settings import Settings
from utils.logger import get_logger

_logger = get_logger(__name__)

# snapshot key -> (storage key, record parser)
_COLLECTIONS = {
    "users": (USERS_KEY, User.from_dict),
    "products": (PRODUCTS_KEY, Product.from_dict),
    "sales": (SALES_KEY, Sale.from_dict),
}

DEFAULT_USERS = [
    {"username": "admin", "password": "admin123", "role": "admin"},
    {"username": "cashier", "password": "cashier123", "role": "cashier"},
]

SAMPLE_PRODUCTS = [
    {"name": "Coca Cola 500ml", "code": "COKE500", "category": "Beverages", "price": 25, "stock": 50, "min_stock": 10},
    {"name": "Lucky Me Pancit Canton", "code": "LM-PC", "category": "Instant Noodles", "price": 15, "stock": 100, "min_stock": 20},
    {"name": "Skyflakes Crackers", "code": "SF-CRACK", "category": "Snacks", "price": 12, "stock": 30, "min_stock": 5},
    {"name": "Safeguard Bar Soap", "code": "SG-SOAP", "category": "Personal Care", "price": 45, "stock": 25, "min_stock": 5},
    {"name": "C2 Green Tea 500ml", "code": "C2-GT", "category": "Beverages", "price": 20, "stock": 40, "min_stock": 10},
]


async def export_snapshot() -> Dict[str, Any]:
    """Every user, product and sale plus the current settings, stamped with the export time."""
    return {
        "users": collection.dump(await user_repo.get_all()),
        "products": collection.dump(await product_repo.get_all()),
        "sales": collection.dump(await sales_repo.get_all()),
        "settings": (await settings_repo.get()).to_dict(),
        "exportDate": iso_instant(utc_now()),
    }


def default_backup_name() -> str:
    return f"pos-backup-{utc_day(utc_now())}.json"


async def dump_snapshot(path: Optional[Union[str, Path]] = None) -> Path:
    """Write a snapshot as indented JSON and return the file path."""
    out = Path(path) if path else Path(default_backup_name())
    snapshot = await export_snapshot()
    out.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
    _logger.info(
        f"Exported {len(snapshot['users'])} users, {len(snapshot['products'])} "
        f"products and {len(snapshot['sales'])} sales to {out}"
    )
    return out


def _validated(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Storage writes for every key present in a snapshot.
    Raises CorruptRecordError if any present section has the wrong shape.
    """
    writes: Dict[str, Any] = {}
    for name, (key, parse) in _COLLECTIONS.items():
        if document.get(name) is None:
            continue
        writes[key] = collection.dump(
            collection.parse_records(name, document[name], parse)
        )
    if document.get("settings") is not None:
        if not isinstance(document["settings"], dict):
            raise CorruptRecordError("'settings' is not an object")
        writes[SETTINGS_KEY] = Settings.from_dict(document["settings"]).to_dict()
    return writes


async def import_snapshot(document: Union[str, bytes, Dict[str, Any]]) -> bool:
    """
    Restore a snapshot, overwriting each collection it contains.

    Sections missing from the snapshot are left alone. The whole document is
    checked first and all sections are written in one commit; on a parse or
    shape error nothing is written and False is returned.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as e:
            _logger.error(f"Backup is not valid JSON: {e}")
            return False
    if not isinstance(document, dict):
        _logger.error("Backup must be a JSON object")
        return False

    try:
        writes = _validated(document)
    except CorruptRecordError as e:
        _logger.error(f"Backup rejected: {e}")
        return False

    if writes:
        async with database.write_lock():
            await database.set_many(writes)
    _logger.info(f"Imported backup sections: {sorted(writes) or 'none'}")
    return True


async def load_snapshot(path: Union[str, Path]) -> bool:
    """Import a backup file written by dump_snapshot."""
    return await import_snapshot(Path(path).read_bytes())


async def clear_all_data() -> None:
    """Remove every record, the settings and the login session."""
    async with database.write_lock():
        await database.clear()


async def seed_defaults() -> bool:
    """
    Create the default admin/cashier accounts and sample products when the
    store has none. Returns True if anything was added.
    """
    seeded = False
    if not await user_repo.get_all():
        for user in DEFAULT_USERS:
            await user_repo.add(**user)
        seeded = True
    if not await product_repo.get_all():
        for product in SAMPLE_PRODUCTS:
            await product_repo.add(**product)
        seeded = True
    if seeded:
        _logger.info("Seeded default users and sample products")
    return seeded
