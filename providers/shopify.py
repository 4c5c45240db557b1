import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from core.errors import ProviderUnavailable
from core.models import Program
from providers.base import CommerceBlog

log = logging.getLogger("vmfit.provider.shopify")

ARTICLE_FIELDS = """
    id
    title
    handle
    excerpt
    publishedAt
    image {
        url
        altText
    }
"""

LIST_ARTICLES_QUERY = """
query getBlogArticles($first: Int!) {
    articles(first: $first, sortKey: PUBLISHED_AT, reverse: true) {
        edges {
            node {%s}
        }
    }
}
""" % ARTICLE_FIELDS

ARTICLE_BY_HANDLE_QUERY = """
query getArticleByHandle($blog: String!, $handle: String!) {
    blog(handle: $blog) {
        articleByHandle(handle: $handle) {%s    contentHtml
        }
    }
}
""" % ARTICLE_FIELDS

COLLECTION_PROGRAMS_QUERY = """
query getCollectionByHandle($handle: String!, $first: Int!) {
    collection(handle: $handle) {
        products(first: $first) {
            edges {
                node {
                    title
                    handle
                    priceRange { minVariantPrice { amount } }
                    features: metafield(namespace: "custom", key: "features") { value }
                    is_popular: metafield(namespace: "custom", key: "is_popular") { value }
                    is_digital: metafield(namespace: "custom", key: "is_digital") { value }
                    images(first: 1) { edges { node { url altText } } }
                }
            }
        }
    }
}
"""

SHOP_NAME_QUERY = "{ shop { name } }"


class GraphQLError(ProviderUnavailable):
    """The Storefront API answered 200 with a GraphQL ``errors`` array."""

    def __init__(self, messages: List[str]):
        super().__init__("Shopify", "GraphQL errors: " + ", ".join(messages))
        self.messages = messages


def _metafield_json(node: Dict[str, Any], key: str, default: Any) -> Any:
    field = node.get(key)
    if not field or field.get("value") is None:
        return default
    try:
        return json.loads(field["value"])
    except (json.JSONDecodeError, TypeError):
        log.warning("Shopify metafield %s invalid on %s: %r", key, node.get("handle"), field.get("value"))
        return default


def node_to_program(node: Dict[str, Any]) -> Program:
    images = (node.get("images") or {}).get("edges") or []
    image = images[0]["node"] if images else {}
    amount = (((node.get("priceRange") or {}).get("minVariantPrice") or {}).get("amount")) or 0
    features = _metafield_json(node, "features", [])
    return Program(
        title=node.get("title", ""),
        handle=node.get("handle", ""),
        price=float(amount),
        features=[str(f) for f in features] if isinstance(features, list) else [],
        is_popular=bool(_metafield_json(node, "is_popular", False)),
        is_digital=bool(_metafield_json(node, "is_digital", False)),
        image_url=image.get("url", "") or "",
        image_alt=image.get("altText") or node.get("title", ""),
    )


class ShopifyStorefront(CommerceBlog):
    name = "shopify"

    def __init__(self, domain: str, access_token: str, api_version: str = "2024-04",
                 blog_handle: str = "news", timeout: float = 20):
        self.domain = domain
        self.access_token = access_token
        self.api_version = api_version
        self.blog_handle = blog_handle
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def endpoint(self) -> str:
        return f"https://{self.domain}/api/{self.api_version}/graphql.json"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST a GraphQL query and return its ``data`` object."""
        sess = await self._ensure_session()
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": self.access_token,
        }
        payload = {"query": query, "variables": variables or {}}
        try:
            async with sess.post(self.endpoint, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    log.warning("Shopify error status=%s body=%s", resp.status, body[:600])
                    raise ProviderUnavailable(
                        "Shopify", f"request failed with status {resp.status}: {body[:200]}",
                        status=resp.status,
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    log.warning("Shopify returned a non-JSON body: %s", e)
                    raise ProviderUnavailable("Shopify", "response is not JSON", status=resp.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderUnavailable("Shopify", f"network error: {e}") from e

        if not isinstance(data, dict):
            raise ProviderUnavailable("Shopify", "unexpected response body")
        if data.get("errors"):
            raise GraphQLError([str(err.get("message", err)) for err in data["errors"]])
        return data.get("data") or {}

    async def list_articles(self, limit: int) -> List[Dict[str, Any]]:
        data = await self.request(LIST_ARTICLES_QUERY, {"first": limit})
        edges = ((data.get("articles") or {}).get("edges")) or []
        return [edge["node"] for edge in edges if edge.get("node")]

    async def get_article_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        data = await self.request(ARTICLE_BY_HANDLE_QUERY, {"blog": self.blog_handle, "handle": slug})
        blog = data.get("blog") or {}
        return blog.get("articleByHandle") or None

    async def list_programs(self, collection_handle: str, max_products: int) -> List[Program]:
        data = await self.request(
            COLLECTION_PROGRAMS_QUERY, {"handle": collection_handle, "first": max_products}
        )
        collection = data.get("collection")
        if not collection:
            log.warning("Shopify collection %r not found.", collection_handle)
            return []
        edges = ((collection.get("products") or {}).get("edges")) or []
        return [node_to_program(edge["node"]) for edge in edges if edge.get("node")]

    async def shop_name(self) -> str:
        data = await self.request(SHOP_NAME_QUERY)
        return ((data.get("shop") or {}).get("name")) or ""
