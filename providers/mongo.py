import asyncio
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ASCENDING, MongoClient
from pymongo.database import Database

from core.models import EventEntry, Testimonial
from providers.base import DocumentStore, EventStore

log = logging.getLogger("vmfit.provider.mongo")


def connect(uri: str, db_name: str, timeout_ms: int = 5000) -> Database:
    client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
    return client[db_name]


def doc_to_testimonial(doc: Dict[str, Any]) -> Testimonial:
    rating = doc.get("rating")
    return Testimonial(
        id=str(doc.get("_id", "")),
        name=doc.get("name", ""),
        story=doc.get("story", ""),
        image=doc.get("image", "") or "",
        ai_hint=doc.get("aiHint", "") or "",
        order=int(doc.get("order") or 0),
        rating=int(rating) if rating is not None else None,
    )


class MongoPostStore(DocumentStore):
    """Posts and testimonials. pymongo is synchronous, calls go through to_thread."""

    name = "mongodb"

    def __init__(self, db: Database, posts_collection: str = "posts",
                 testimonials_collection: str = "testimonials"):
        self.db = db
        self.posts = db[posts_collection]
        self.testimonials = db[testimonials_collection]

    def _list_posts(self, limit: int) -> List[Dict[str, Any]]:
        cursor = self.posts.find({}, {"content": 0}).sort("createdAt", DESCENDING).limit(limit)
        return list(cursor)

    async def list_posts(self, limit: int) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list_posts, limit)

    async def get_post_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self.posts.find_one, {"slug": slug})

    async def insert_post(self, doc: Dict[str, Any]) -> str:
        result = await asyncio.to_thread(self.posts.insert_one, dict(doc))
        log.info("MongoDB: post inserted slug=%s id=%s", doc.get("slug"), result.inserted_id)
        return str(result.inserted_id)

    async def count_posts(self) -> int:
        return await asyncio.to_thread(self.posts.count_documents, {})

    def _list_testimonials(self) -> List[Testimonial]:
        return [doc_to_testimonial(d) for d in self.testimonials.find({}).sort("order", ASCENDING)]

    async def list_testimonials(self) -> List[Testimonial]:
        return await asyncio.to_thread(self._list_testimonials)

    async def count_testimonials(self) -> int:
        return await asyncio.to_thread(self.testimonials.count_documents, {})

    async def ping(self) -> str:
        """Round-trip to the server. Returns the database name."""
        await asyncio.to_thread(self.db.command, "ping")
        return self.db.name


class MongoEventStore(EventStore):
    def __init__(self, db: Database, collection: str = "logs"):
        self.collection = db[collection]

    async def add(self, entry: EventEntry) -> None:
        await asyncio.to_thread(self.collection.insert_one, asdict(entry))

    def _recent(self, limit: int) -> List[EventEntry]:
        cursor = self.collection.find({}, {"_id": 0}).sort("timestamp", DESCENDING).limit(limit)
        out = []
        for doc in cursor:
            out.append(EventEntry(
                message=doc.get("message", ""),
                level=doc.get("level", "info"),
                timestamp=doc.get("timestamp"),
                metadata=doc.get("metadata") or {},
            ))
        return out

    async def recent(self, limit: int) -> List[EventEntry]:
        return await asyncio.to_thread(self._recent, limit)
