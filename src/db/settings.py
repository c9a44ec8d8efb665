# store configuration, kept as one document under the settings key
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict

from db import database
from db.database import SETTINGS_KEY
from db.models import camel_case
from utils.logger import get_logger

_logger = get_logger(__name__)

SETTINGS_VERSION = 1


@dataclass(frozen=True)
class Settings:
    store_name: str = "Sari-sari Store"
    store_address: str = "123 Main Street"
    store_phone: str = "+63 123 456 7890"
    store_email: str = ""
    tax_rate: float = 0.12
    currency: str = "PHP"
    receipt_footer: str = "Thank you for your purchase!"
    version: int = SETTINGS_VERSION

    def __post_init__(self):
        if not 0 <= self.tax_rate <= 1:
            raise ValueError(f"tax rate must be within [0, 1], got {self.tax_rate}")

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Settings":
        """
        Build settings from a stored document.

        Each field falls back to its own default when missing, null, or of the
        wrong type; a tax rate outside [0, 1] also falls back.
        """
        values = {}
        for f in fields(cls):
            raw = doc.get(camel_case(f.name))
            if raw is None:
                continue
            if f.name == "tax_rate":
                if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                    continue
                if not 0 <= raw <= 1:
                    _logger.warning(f"Ignoring stored tax rate {raw}")
                    continue
                values[f.name] = float(raw)
            elif f.name == "version":
                if isinstance(raw, int) and not isinstance(raw, bool):
                    values[f.name] = raw
            elif isinstance(raw, str):
                values[f.name] = raw
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {camel_case(f.name): getattr(self, f.name) for f in fields(self)}


async def get() -> Settings:
    """Stored settings, or the defaults when none have been saved."""
    doc = await database.get(SETTINGS_KEY)
    if not isinstance(doc, dict):
        return Settings()
    return Settings.from_dict(doc)


async def save(settings: Settings) -> None:
    await database.set(SETTINGS_KEY, settings.to_dict())
    _logger.info("Saved store settings")


async def update(**changes) -> Settings:
    """Apply named changes to the current settings, store and return the result."""
    async with database.write_lock():
        updated = replace(await get(), **changes)
        await save(updated)
    return updated
