"""Unified blog feed over the Shopify blog and the MongoDB posts collection."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.content import article_to_item, post_to_item
from core.errors import InvalidRecord
from core.models import ContentItem, Origin

log = logging.getLogger("vmfit.aggregator")


def _normalize_all(records: List[Dict[str, Any]],
                   normalize: Callable[..., ContentItem]) -> List[ContentItem]:
    items = []
    for record in records:
        try:
            items.append(normalize(record))
        except InvalidRecord as e:
            log.warning("Skipping record: %s", e)
    return items


class ContentAggregator:
    def __init__(self, commerce, documents, recorder, monitor=None):
        self.commerce = commerce
        self.documents = documents
        self.recorder = recorder
        self.monitor = monitor

    async def _provider_failed(self, origin: Origin, operation: str, error: Exception,
                               **extra: Any) -> None:
        metadata = {"provider": origin.value, "operation": operation, "error": str(error)}
        metadata.update(extra)
        await self.recorder.record("Provider Fetch Failed", metadata, "error")
        if self.monitor is not None and self.monitor.record_failure(origin.value, error):
            await self.recorder.record(
                "Provider Unavailable Alert",
                {"provider": origin.value, "consecutive_failures": self.monitor.get_failures(origin.value)},
                "error",
            )

    def _provider_ok(self, origin: Origin) -> None:
        if self.monitor is not None:
            self.monitor.record_success(origin.value)

    async def _safe_list(self, origin: Origin, fetch: Callable[[int], Awaitable[List[Dict[str, Any]]]],
                         normalize: Callable[..., ContentItem], limit: int) -> List[ContentItem]:
        try:
            records = await fetch(limit)
        except Exception as e:
            await self._provider_failed(origin, "list", e, limit=limit)
            return []
        self._provider_ok(origin)
        return _normalize_all(records or [], normalize)

    async def fetch_list(self, limit: int) -> List[ContentItem]:
        """Newest-first merge of both providers, at most *limit* items.

        Both providers are asked for *limit* items concurrently. A failing provider
        contributes nothing; this never raises because of a provider.
        """
        if limit < 1:
            raise ValueError("limit must be a positive integer")

        commerce_items, document_items = await asyncio.gather(
            self._safe_list(Origin.SHOPIFY, self.commerce.list_articles, article_to_item, limit),
            self._safe_list(Origin.MONGODB, self.documents.list_posts, post_to_item, limit),
        )
        merged = commerce_items + document_items
        merged.sort(key=lambda item: item.created_at, reverse=True)
        return merged[:limit]

    async def _safe_get(self, origin: Origin, fetch, normalize, slug: str) -> Optional[ContentItem]:
        try:
            record = await fetch(slug)
        except Exception as e:
            await self._provider_failed(origin, "get", e, slug=slug)
            return None
        self._provider_ok(origin)
        if not record:
            return None
        try:
            return normalize(record, with_body=True)
        except InvalidRecord as e:
            log.warning("Slug %r matched an invalid record: %s", slug, e)
            return None

    async def fetch_by_slug(self, slug: str) -> Optional[ContentItem]:
        """First match in priority order (commerce blog, then document store), or None."""
        if not slug:
            return None

        item = await self._safe_get(Origin.SHOPIFY, self.commerce.get_article_by_slug,
                                    article_to_item, slug)
        if item is not None:
            return item

        item = await self._safe_get(Origin.MONGODB, self.documents.get_post_by_slug,
                                    post_to_item, slug)
        if item is None:
            log.info("Slug %r not found in any provider.", slug)
        return item
