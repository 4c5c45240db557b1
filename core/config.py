"""Centralized configuration for the fitness hub content core."""

import os
import logging

log = logging.getLogger("vmfit.config")

# =========================
# Document store (MongoDB)
# =========================
MONGODB_URI: str = os.environ.get("MONGODB_URI", "")
MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "vm-fitness-hub")
MONGODB_TIMEOUT_MS: int = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))
POSTS_COLLECTION: str = os.getenv("POSTS_COLLECTION", "posts")
TESTIMONIALS_COLLECTION: str = os.getenv("TESTIMONIALS_COLLECTION", "testimonials")
EVENTS_COLLECTION: str = os.getenv("EVENTS_COLLECTION", "logs")

# =========================
# Commerce blog (Shopify Storefront)
# =========================
SHOPIFY_STORE_DOMAIN: str = os.environ.get("SHOPIFY_STORE_DOMAIN", "")
SHOPIFY_STOREFRONT_ACCESS_TOKEN: str = os.environ.get("SHOPIFY_STOREFRONT_ACCESS_TOKEN", "")
SHOPIFY_API_VERSION: str = os.getenv("SHOPIFY_API_VERSION", "2024-04")
SHOPIFY_BLOG_HANDLE: str = os.getenv("SHOPIFY_BLOG_HANDLE", "news")
HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "20"))
PROGRAMS_COLLECTION_HANDLE: str = os.getenv("PROGRAMS_COLLECTION_HANDLE", "programas")
PROGRAMS_MAX: int = int(os.getenv("PROGRAMS_MAX", "10"))

# =========================
# Generative text (Gemini)
# =========================
GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", "") or os.environ.get("GOOGLE_API_KEY", "")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

# =========================
# Service account (diagnostics only)
# =========================
FIREBASE_SERVICE_ACCOUNT_KEY: str = os.environ.get("FIREBASE_SERVICE_ACCOUNT_KEY", "")

# =========================
# Blog feed
# =========================
BLOG_LIST_LIMIT: int = int(os.getenv("BLOG_LIST_LIMIT", "10"))
RECENT_TITLES_LIMIT: int = int(os.getenv("RECENT_TITLES_LIMIT", "10"))
EXCERPT_MAX: int = int(os.getenv("EXCERPT_MAX", "200"))

# =========================
# Retry / backoff
# =========================
# Generation: exponential, rate-limit only.
GENERATION_MAX_ATTEMPTS: int = int(os.getenv("GENERATION_MAX_ATTEMPTS", "5"))
GENERATION_RETRY_BASE_DELAY: float = float(os.getenv("GENERATION_RETRY_BASE_DELAY", "0.5"))
# Scheduled post job: fixed delay, any error.
JOB_MAX_ATTEMPTS: int = int(os.getenv("JOB_MAX_ATTEMPTS", "3"))
JOB_RETRY_DELAY_SECONDS: float = float(os.getenv("JOB_RETRY_DELAY_SECONDS", "2"))

# =========================
# Monitoring
# =========================
FAILURE_ALERT_THRESHOLD: int = int(os.getenv("FAILURE_ALERT_THRESHOLD", "5"))
DIAGNOSTICS_EVENT_COUNT: int = int(os.getenv("DIAGNOSTICS_EVENT_COUNT", "15"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def validate_required_env() -> None:
    """Validate that required environment variables are set. Call at startup."""
    missing = []
    if not MONGODB_URI:
        missing.append("MONGODB_URI")
    if not SHOPIFY_STORE_DOMAIN:
        missing.append("SHOPIFY_STORE_DOMAIN")
    if not SHOPIFY_STOREFRONT_ACCESS_TOKEN:
        missing.append("SHOPIFY_STOREFRONT_ACCESS_TOKEN")
    if not GEMINI_API_KEY:
        missing.append("GEMINI_API_KEY")
    if missing:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
    if SHOPIFY_STORE_DOMAIN.startswith(("http://", "https://")):
        log.warning("SHOPIFY_STORE_DOMAIN should be a bare host (your-store.myshopify.com).")
    if not FIREBASE_SERVICE_ACCOUNT_KEY:
        log.warning("FIREBASE_SERVICE_ACCOUNT_KEY not set: service account check will fail.")
