"""
Read-only snapshots passed into a single quotation render.

Rows come out of the data layer as dicts; ``from_row`` turns them into
frozen dataclasses so the renderer never mutates caller state.
"""

import enum
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


class ImageLayout(enum.Enum):
    """How an item's features list and image share the page."""
    WIDE = "wide"   # image spans the width below the description
    TALL = "tall"   # features on the left, 50x50mm image top-right

    @classmethod
    def parse(cls, value) -> "ImageLayout":
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.WIDE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown image layout {value!r} (expected 'wide' or 'tall')") from None


def _json_list(value) -> Optional[list]:
    """JSON columns arrive as text from SQLite, as lists from callers."""
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else None
    return list(value) if value is not None else None


@dataclass(frozen=True)
class Addon:
    name: str
    price: float = 0.0

    @classmethod
    def from_row(cls, row: dict) -> "Addon":
        return cls(name=row.get("name", ""), price=float(row.get("price") or 0))


@dataclass(frozen=True)
class Spec:
    key: str
    value: str

    @classmethod
    def from_row(cls, row: dict) -> "Spec":
        return cls(key=str(row.get("key", "")), value=str(row.get("value", "")))


@dataclass(frozen=True)
class Term:
    title: str
    text: str

    @classmethod
    def from_row(cls, row: dict) -> "Term":
        return cls(title=row.get("title", ""), text=row.get("text", ""))


@dataclass(frozen=True)
class Quotation:
    quotation_number: str
    customer_name: str
    customer_address: str = ""
    created_at: Union[str, datetime, None] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "Quotation":
        return cls(
            id=row.get("id"),
            quotation_number=row.get("quotation_number"),
            customer_name=row.get("customer_name", ""),
            customer_address=row.get("customer_address") or "",
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class LineItem:
    name: str
    price: float
    description: str = ""
    selected_addons: tuple = ()
    image_url: Optional[str] = None
    specs: tuple = ()
    features: Optional[tuple] = None
    image_format: ImageLayout = ImageLayout.WIDE
    id: Optional[Union[int, str]] = None

    @property
    def image_key(self):
        """Key the prefetched image is stored under."""
        return self.id if self.id is not None else (self.name, self.image_url)

    @classmethod
    def from_row(cls, row: dict) -> "LineItem":
        addons = _json_list(row.get("selected_addons")) or []
        specs = _json_list(row.get("specs")) or []
        features = _json_list(row.get("features"))
        return cls(
            id=row.get("id"),
            name=row.get("name", ""),
            description=row.get("description") or "",
            price=float(row.get("price") or 0),
            selected_addons=tuple(a if isinstance(a, Addon) else Addon.from_row(a) for a in addons),
            image_url=row.get("image_url") or None,
            specs=tuple(s if isinstance(s, Spec) else Spec.from_row(s) for s in specs),
            features=tuple(features) if features is not None else None,
            image_format=ImageLayout.parse(row.get("image_format")),
        )


@dataclass(frozen=True)
class CompanySettings:
    company_name: str = ""

    @classmethod
    def from_row(cls, row: Optional[dict]) -> "CompanySettings":
        return cls(company_name=(row or {}).get("company_name") or "")


@dataclass(frozen=True)
class ActingUser:
    full_name: str = ""
    phone: str = ""

    @classmethod
    def from_row(cls, row: Optional[dict]) -> "ActingUser":
        row = row or {}
        return cls(full_name=row.get("full_name") or "", phone=row.get("phone") or "")

