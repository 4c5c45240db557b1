from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.config import EXCERPT_MAX
from core.errors import InvalidRecord
from core.models import ContentItem, Origin
from core.utils import excerpt_from_html


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _optional(value: Any) -> Optional[str]:
    v = _text(value)
    return v or None


def _excerpt(excerpt: Any, body: Optional[str]) -> str:
    text = _text(excerpt)
    if not text and body:
        text = excerpt_from_html(body, EXCERPT_MAX)
    return text


def _require(origin: Origin, record_id: str, title: str, slug: str,
             created_at: Optional[datetime]) -> None:
    missing = [name for name, v in (("title", title), ("slug", slug), ("created_at", created_at)) if not v]
    if missing:
        raise InvalidRecord(f"{origin.value} record {record_id or '?'} missing {', '.join(missing)}")


def article_to_item(node: Dict[str, Any], with_body: bool = False) -> ContentItem:
    """Normalize a Storefront article node."""
    image = node.get("image") or {}
    body = _optional(node.get("contentHtml")) if with_body else None

    record_id = _text(node.get("id"))
    title = _text(node.get("title"))
    slug = _text(node.get("handle"))
    created_at = _parse_timestamp(node.get("publishedAt"))
    _require(Origin.SHOPIFY, record_id, title, slug, created_at)

    return ContentItem(
        id=record_id,
        origin=Origin.SHOPIFY,
        title=title,
        slug=slug,
        excerpt=_excerpt(node.get("excerpt"), body),
        created_at=created_at,
        body=body,
        image_url=_optional(image.get("url")),
        image_alt_hint=_optional(image.get("altText")),
    )


def post_to_item(doc: Dict[str, Any], with_body: bool = False) -> ContentItem:
    """Normalize a document-store post."""
    body = _optional(doc.get("content")) if with_body else None

    record_id = _text(doc.get("_id"))
    title = _text(doc.get("title"))
    slug = _text(doc.get("slug"))
    created_at = _parse_timestamp(doc.get("createdAt"))
    _require(Origin.MONGODB, record_id, title, slug, created_at)

    return ContentItem(
        id=record_id,
        origin=Origin.MONGODB,
        title=title,
        slug=slug,
        excerpt=_excerpt(doc.get("excerpt"), body),
        created_at=created_at,
        body=body,
        image_url=_optional(doc.get("imageUrl")),
        image_alt_hint=_optional(doc.get("aiHint")),
    )
