"""Health checks for the operations page."""

import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

from core.errors import DecodeError, ProviderUnavailable
from core.models import CheckResult

log = logging.getLogger("vmfit.diagnostics")

SERVICE_ACCOUNT_FIELDS = ("type", "project_id", "private_key_id", "private_key", "client_email")


def _decode_base64_json(raw: str) -> Any:
    decoded = base64.b64decode(raw.strip(), validate=True).decode("utf-8")
    return json.loads(decoded)


def decode_service_account_key(raw: str) -> Dict[str, Any]:
    """Base64-encoded JSON first, then raw JSON. Anything else is a DecodeError."""
    try:
        parsed = _decode_base64_json(raw)
    except (binascii.Error, ValueError) as base64_err:
        try:
            parsed = json.loads(raw)
        except ValueError as json_err:
            raise DecodeError(
                f"not base64 JSON ({base64_err}) nor raw JSON ({json_err})"
            ) from json_err
    if not isinstance(parsed, dict):
        raise DecodeError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def check_service_account(raw: Optional[str]) -> CheckResult:
    name = "Service account key"
    if not raw:
        return CheckResult(name, False, "FIREBASE_SERVICE_ACCOUNT_KEY is not set.")
    try:
        parsed = decode_service_account_key(raw)
    except DecodeError as e:
        log.warning("Service account key undecodable: %s", e)
        return CheckResult(name, False, "The service account key is neither valid JSON nor base64-encoded JSON.")
    missing = [f for f in SERVICE_ACCOUNT_FIELDS if f not in parsed]
    if missing:
        return CheckResult(name, False, f"The service account key is incomplete. Missing: {', '.join(missing)}.")
    return CheckResult(name, True, f"Service account key valid for project {parsed['project_id']}.")


async def check_mongo(uri: Optional[str], store) -> CheckResult:
    name = "MongoDB connection"
    if not uri:
        return CheckResult(name, False, "MONGODB_URI is not set.")
    if not uri.startswith(("mongodb://", "mongodb+srv://")):
        return CheckResult(name, False, "Invalid MONGODB_URI: must start with 'mongodb://' or 'mongodb+srv://'.")
    if store is None:
        return CheckResult(name, False, "MongoDB client was not initialised.")
    try:
        db_name = await store.ping()
    except Exception as e:
        text = str(e)
        if "bad auth" in text or "Authentication failed" in text:
            message = "MongoDB authentication failed. Check the user and password in MONGODB_URI."
        elif "ENOTFOUND" in text or "nodename nor servname" in text or "Name or service not known" in text:
            message = f"MongoDB host not found. Check the hostname in MONGODB_URI. Error: {text}"
        else:
            message = f"MongoDB connection failed. Error: {text}"
        return CheckResult(name, False, message)
    return CheckResult(name, True, f"Connected to database {db_name}.")


async def check_mongo_data(store) -> CheckResult:
    name = "MongoDB data"
    if store is None:
        return CheckResult(name, False, "No MongoDB connection to read from.")
    try:
        posts, testimonials = await asyncio.gather(store.count_posts(), store.count_testimonials())
    except Exception as e:
        return CheckResult(name, False, f"Reading MongoDB data failed. Error: {e}")
    return CheckResult(name, True, f"Found {posts} posts and {testimonials} testimonials.")


async def check_shopify(domain: Optional[str], token: Optional[str], client) -> CheckResult:
    name = "Shopify Storefront API"
    if not domain:
        return CheckResult(name, False, "Incomplete configuration. Missing SHOPIFY_STORE_DOMAIN.")
    if not token:
        return CheckResult(name, False, "Incomplete configuration. Missing SHOPIFY_STOREFRONT_ACCESS_TOKEN.")
    try:
        shop = await client.shop_name()
    except ProviderUnavailable as e:
        if e.status == 401:
            message = ("Unauthorized: the Storefront access token is invalid or lacks the "
                       "unauthenticated_read_* permissions.")
        elif e.status == 404:
            message = (f"Storefront API not found (404). SHOPIFY_STORE_DOMAIN ('{domain}') must look "
                       "like 'your-store.myshopify.com', without 'https://'.")
        elif getattr(e, "messages", None):
            message = (f"GraphQL errors: {', '.join(e.messages)}. The token is most likely missing "
                       "Storefront API read permissions.")
        else:
            message = f"Shopify connection failed. Error: {e}"
        return CheckResult(name, False, message)
    except Exception as e:
        return CheckResult(name, False, f"Shopify connection failed. Error: {e}")
    return CheckResult(name, True, f"Connected to shop {shop}.")


async def run_diagnostics(*, mongo_uri: Optional[str], store, shopify_domain: Optional[str],
                          shopify_token: Optional[str], shopify, service_account_key: Optional[str],
                          recorder, monitor=None, event_count: int = 15) -> Dict[str, Any]:
    mongo, mongo_data, shop, events = await asyncio.gather(
        check_mongo(mongo_uri, store),
        check_mongo_data(store),
        check_shopify(shopify_domain, shopify_token, shopify),
        recorder.recent(event_count),
    )
    failures = monitor.get_status() if monitor is not None else {}
    checks: List[CheckResult] = [check_service_account(service_account_key), mongo, mongo_data, shop]
    for c in checks:
        if not c.ok:
            log.warning("Diagnostics: %s failed: %s", c.name, c.message)
    return {
        "checks": checks,
        "events": events,
        "provider_failures": failures,
        "provider_errors": {name: monitor.last_error(name) for name, n in failures.items() if n},
    }
