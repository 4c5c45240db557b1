import asyncio
import json
from datetime import datetime, timezone
from types import SimpleNamespace

import aiohttp
import pytest
from google.genai import errors as genai_errors
from pydantic import BaseModel

from core.errors import ProviderUnavailable, RateLimited
from core.models import EventEntry
from providers.gemini import GeminiGenerator
from providers.mongo import MongoEventStore, MongoPostStore, doc_to_testimonial
from providers.shopify import GraphQLError, ShopifyStorefront, node_to_program


def _run(coro):
    return asyncio.run(coro)


# ── Shopify ───────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status=200, payload=None, body=""):
        self.status = status
        self.payload = payload
        self.body = body

    async def text(self):
        return self.body

    async def json(self, content_type=None):
        if self.payload is None:
            return json.loads(self.body)
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    closed = False

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, json=None, headers=None):
        self.posts.append(SimpleNamespace(url=url, json=json, headers=headers))
        if self.error:
            raise self.error
        return self.response


def _storefront(session):
    client = ShopifyStorefront("vm-fitness.myshopify.com", "tok", blog_handle="news")
    client._session = session
    return client


class TestShopifyStorefront:
    def test_endpoint(self):
        client = ShopifyStorefront("vm-fitness.myshopify.com", "tok", api_version="2024-04")
        assert client.endpoint == "https://vm-fitness.myshopify.com/api/2024-04/graphql.json"

    def test_list_articles(self):
        payload = {"data": {"articles": {"edges": [
            {"node": {"id": "gid://1", "title": "A", "handle": "a"}},
            {"node": {"id": "gid://2", "title": "B", "handle": "b"}},
        ]}}}
        session = FakeSession(FakeResponse(payload=payload))
        nodes = _run(_storefront(session).list_articles(5))
        assert [n["handle"] for n in nodes] == ["a", "b"]
        sent = session.posts[0]
        assert sent.json["variables"] == {"first": 5}
        assert sent.headers["X-Shopify-Storefront-Access-Token"] == "tok"

    def test_get_article_by_slug(self):
        payload = {"data": {"blog": {"articleByHandle": {"handle": "a", "contentHtml": "<p>x</p>"}}}}
        session = FakeSession(FakeResponse(payload=payload))
        node = _run(_storefront(session).get_article_by_slug("a"))
        assert node["contentHtml"] == "<p>x</p>"
        assert session.posts[0].json["variables"] == {"blog": "news", "handle": "a"}

    def test_article_not_found(self):
        payload = {"data": {"blog": {"articleByHandle": None}}}
        assert _run(_storefront(FakeSession(FakeResponse(payload=payload))).get_article_by_slug("x")) is None

    def test_http_error_status(self):
        session = FakeSession(FakeResponse(status=401, body="Unauthorized"))
        with pytest.raises(ProviderUnavailable) as exc_info:
            _run(_storefront(session).list_articles(5))
        assert exc_info.value.status == 401

    def test_graphql_errors(self):
        payload = {"errors": [{"message": "Throttled"}]}
        with pytest.raises(GraphQLError) as exc_info:
            _run(_storefront(FakeSession(FakeResponse(payload=payload))).list_articles(5))
        assert exc_info.value.messages == ["Throttled"]

    def test_network_error(self):
        session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(ProviderUnavailable):
            _run(_storefront(session).list_articles(5))

    def test_missing_collection(self):
        payload = {"data": {"collection": None}}
        assert _run(_storefront(FakeSession(FakeResponse(payload=payload))).list_programs("programs", 10)) == []

    def test_html_body_is_provider_unavailable(self):
        session = FakeSession(FakeResponse(body="<html>Enter store password</html>"))
        with pytest.raises(ProviderUnavailable) as exc_info:
            _run(_storefront(session).shop_name())
        assert exc_info.value.status == 200
        assert "not JSON" in str(exc_info.value)


class TestNodeToProgram:
    def test_full(self):
        node = {
            "title": "Reto 21 días",
            "handle": "reto-21",
            "priceRange": {"minVariantPrice": {"amount": "49.90"}},
            "features": {"value": json.dumps(["Plan semanal", "Chat"])},
            "is_popular": {"value": "true"},
            "is_digital": None,
            "images": {"edges": [{"node": {"url": "https://cdn/x.jpg", "altText": None}}]},
        }
        program = node_to_program(node)
        assert program.price == 49.90
        assert program.features == ["Plan semanal", "Chat"]
        assert program.is_popular is True
        assert program.is_digital is False
        assert program.image_url == "https://cdn/x.jpg"
        assert program.image_alt == "Reto 21 días"

    def test_invalid_metafield_uses_default(self):
        node = {"title": "X", "handle": "x", "features": {"value": "not json"}}
        program = node_to_program(node)
        assert program.features == []
        assert program.price == 0.0


# ── MongoDB ───────────────────────────────────────────────────

class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)
        self.sorted_by = None

    def sort(self, key, direction):
        self.sorted_by = (key, direction)
        self.docs.sort(key=lambda d: d.get(key), reverse=direction == -1)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


class FakeCollection:
    def __init__(self, docs=None):
        self.docs = list(docs or [])
        self.projections = []

    def find(self, query, projection=None):
        self.projections.append(projection)
        return FakeCursor(self.docs)

    def find_one(self, query):
        for d in self.docs:
            if all(d.get(k) == v for k, v in query.items()):
                return d
        return None

    def insert_one(self, doc):
        doc.setdefault("_id", f"id{len(self.docs) + 1}")
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def count_documents(self, query):
        return len(self.docs)


class FakeDatabase:
    name = "vm-fitness-hub"

    def __init__(self, **collections):
        self.collections = collections
        self.commands = []

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def command(self, name):
        self.commands.append(name)
        return {"ok": 1}


def _dt(day):
    return datetime(2024, 5, day, tzinfo=timezone.utc)


class TestMongoPostStore:
    def test_list_posts_newest_first_without_content(self):
        posts = FakeCollection([
            {"slug": "old", "createdAt": _dt(1)},
            {"slug": "new", "createdAt": _dt(9)},
            {"slug": "mid", "createdAt": _dt(5)},
        ])
        store = MongoPostStore(FakeDatabase(posts=posts))
        docs = _run(store.list_posts(2))
        assert [d["slug"] for d in docs] == ["new", "mid"]
        assert posts.projections == [{"content": 0}]

    def test_get_and_insert(self):
        store = MongoPostStore(FakeDatabase())
        new_id = _run(store.insert_post({"slug": "hola", "title": "Hola"}))
        assert new_id == "id1"
        assert _run(store.get_post_by_slug("hola"))["title"] == "Hola"
        assert _run(store.get_post_by_slug("nada")) is None
        assert _run(store.count_posts()) == 1

    def test_testimonials_ordered(self):
        testimonials = FakeCollection([
            {"_id": 2, "name": "B", "story": "b", "order": 2},
            {"_id": 1, "name": "A", "story": "a", "order": 1, "rating": "5"},
        ])
        store = MongoPostStore(FakeDatabase(testimonials=testimonials))
        out = _run(store.list_testimonials())
        assert [t.name for t in out] == ["A", "B"]
        assert out[0].rating == 5
        assert out[1].rating is None

    def test_ping(self):
        db = FakeDatabase()
        assert _run(MongoPostStore(db).ping()) == "vm-fitness-hub"
        assert db.commands == ["ping"]


class TestDocToTestimonial:
    def test_defaults(self):
        t = doc_to_testimonial({"_id": "abc", "name": "Ana", "story": "..."})
        assert t.id == "abc"
        assert t.order == 0
        assert t.image == ""


class TestMongoEventStore:
    def test_add_and_recent(self):
        db = FakeDatabase()
        store = MongoEventStore(db)
        _run(store.add(EventEntry("first", "info", _dt(1), {"a": 1})))
        _run(store.add(EventEntry("second", "error", _dt(2))))
        out = _run(store.recent(5))
        assert [e.message for e in out] == ["second", "first"]
        assert db["logs"].docs[0]["metadata"] == {"a": 1}


# ── Gemini ────────────────────────────────────────────────────

class Out(BaseModel):
    value: str


class FakeModels:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append(SimpleNamespace(model=model, contents=contents, config=config))
        if self.error:
            raise self.error
        return self.response


def _gemini(models):
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiGenerator(model="gemini-2.0-flash", client=client)


class TestGeminiGenerator:
    def test_returns_text_and_requests_json(self):
        models = FakeModels(SimpleNamespace(text='{"value": "x"}', candidates=[]))
        out = _run(_gemini(models).complete("prompt", Out, system="sys"))
        assert out == '{"value": "x"}'
        config = models.calls[0].config
        assert config.response_mime_type == "application/json"
        assert config.response_schema is Out
        assert config.system_instruction == "sys"

    def test_no_text_is_none(self):
        candidate = SimpleNamespace(finish_reason="SAFETY")
        models = FakeModels(SimpleNamespace(text=None, candidates=[candidate]))
        assert _run(_gemini(models).complete("prompt", Out)) is None

    def test_429_is_rate_limited(self):
        err = genai_errors.ClientError(429, {"error": {
            "code": 429, "message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED",
        }})
        with pytest.raises(RateLimited):
            _run(_gemini(FakeModels(error=err)).complete("prompt", Out))

    def test_other_api_errors_propagate(self):
        err = genai_errors.ClientError(403, {"error": {
            "code": 403, "message": "Permission denied", "status": "PERMISSION_DENIED",
        }})
        with pytest.raises(genai_errors.ClientError):
            _run(_gemini(FakeModels(error=err)).complete("prompt", Out))
