from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Origin(str, Enum):
    SHOPIFY = "Shopify"
    MONGODB = "MongoDB"


@dataclass(frozen=True)
class ContentItem:
    id: str  # unique per origin only
    origin: Origin
    title: str
    slug: str
    excerpt: str
    created_at: datetime  # UTC, tz-aware
    body: Optional[str] = None  # HTML, only for single-item lookups
    image_url: Optional[str] = None
    image_alt_hint: Optional[str] = None


@dataclass(frozen=True)
class Program:
    title: str
    handle: str
    price: float
    features: List[str] = field(default_factory=list)
    is_popular: bool = False
    is_digital: bool = False
    image_url: str = ""
    image_alt: str = ""


@dataclass(frozen=True)
class Testimonial:
    id: str
    name: str
    story: str
    image: str = ""
    ai_hint: str = ""
    order: int = 0
    rating: Optional[int] = None


@dataclass(frozen=True)
class EventEntry:
    message: str
    level: str
    timestamp: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckResult:
    name: str
    ok: bool
    message: str
