"""
Configuration Module for StoreDesk
==================================

This module centralizes the configuration settings, environment variables and
constants used throughout the StoreDesk API. Values are read once at import
time; small getter functions exist where tests need to override a value
without reloading the module.

Configuration Categories:
-------------------------
- **Database**: DATABASE_URL for the SQLAlchemy engine.

- **Rate Limiting**: Per-endpoint request throttling for the public widget
  routes and the write-heavy dashboard routes (slowapi format).

- **Input Validation**: Maximum message length accepted from the widget.

- **Pagination**: Default and maximum page sizes for list endpoints.

- **CORS Settings**: Allowed origins for the dashboard and the embeddable
  widget.

- **LLM**: OpenAI key, model and sampling defaults.

- **Chat Pipeline**: Escalation threshold, low-confidence threshold, the flow
  walk cap and the outgoing webhook timeout.

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy URL (default: "sqlite:///./storedesk.db")
- RATE_LIMIT_ENABLED: Enable/disable rate limiting (default: "true")
- RATE_LIMIT_CHAT: Widget chat limit (default: "30 per minute")
- RATE_LIMIT_CHAT_AI: AI reply limit (default: "10 per minute")
- RATE_LIMIT_WRITE: Dashboard create limit (default: "20 per minute")
- RATE_LIMIT_UPDATE: Dashboard update limit (default: "30 per minute")
- RATE_LIMIT_ORDERS: Public order placement limit (default: "10 per minute")
- MAX_MESSAGE_LENGTH: Max widget message length (default: 2000)
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")
- OPENAI_API_KEY: Enables the LLM tiers when set
- OPENAI_MODEL: Chat model (default: "gpt-4o-mini")
- ESCALATION_DEFAULT_THRESHOLD: Score that hands a chat to a human (default: 60)
- WEBHOOK_TIMEOUT_SECONDS: Timeout for store webhooks (default: 5)

Usage:
------
    from storedesk.config import (
        DEFAULT_PAGE_LIMIT,
        MAX_MESSAGE_LENGTH,
        get_rate_limit_chat,
    )
"""

import os
from typing import List


# =============================================================================
# Database Configuration
# =============================================================================

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./storedesk.db")


# =============================================================================
# Rate Limiting Configuration
# =============================================================================
# Uses slowapi with in-memory storage (use Redis for multi-worker prod).
# Rate limit format: "X per Y" where Y is second, minute, hour, or day

RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_CHAT: str = os.getenv("RATE_LIMIT_CHAT", "30 per minute")
RATE_LIMIT_CHAT_AI: str = os.getenv("RATE_LIMIT_CHAT_AI", "10 per minute")
RATE_LIMIT_WRITE: str = os.getenv("RATE_LIMIT_WRITE", "20 per minute")
RATE_LIMIT_UPDATE: str = os.getenv("RATE_LIMIT_UPDATE", "30 per minute")
RATE_LIMIT_ORDERS: str = os.getenv("RATE_LIMIT_ORDERS", "10 per minute")


def get_rate_limit_chat() -> str:
    """Return the current widget chat rate limit (allows dynamic override in tests)."""
    return RATE_LIMIT_CHAT


def get_rate_limit_chat_ai() -> str:
    return RATE_LIMIT_CHAT_AI


def get_rate_limit_write() -> str:
    return RATE_LIMIT_WRITE


def get_rate_limit_update() -> str:
    return RATE_LIMIT_UPDATE


def get_rate_limit_orders() -> str:
    return RATE_LIMIT_ORDERS


# =============================================================================
# Input Validation Configuration
# =============================================================================

# Maximum allowed widget message length in characters
MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "2000"))


# =============================================================================
# Pagination Configuration
# =============================================================================

DEFAULT_PAGE_LIMIT: int = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT: int = int(os.getenv("MAX_PAGE_LIMIT", "100"))


# =============================================================================
# CORS Configuration
# =============================================================================
# Format: comma-separated list of origins, e.g. "https://shop.mn,https://admin.shop.mn"
# Default "*" allows all origins (the widget is embedded on merchant sites)

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]


# =============================================================================
# LLM Configuration
# =============================================================================

OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "512"))


# =============================================================================
# Chat Pipeline Configuration
# =============================================================================

# Escalation score at which a conversation is handed to a human agent
ESCALATION_DEFAULT_THRESHOLD: int = int(os.getenv("ESCALATION_DEFAULT_THRESHOLD", "60"))

# Keyword score below which a classified intent is treated as a guess
LOW_CONFIDENCE_THRESHOLD: float = float(os.getenv("LOW_CONFIDENCE_THRESHOLD", "0.5"))

# Upper bound on nodes visited in a single flow step (guards against cycles)
FLOW_MAX_NODES: int = int(os.getenv("FLOW_MAX_NODES", "50"))

# Outgoing store webhooks and flow webhook actions
WEBHOOK_TIMEOUT_SECONDS: float = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "5"))

# Fallback store name used in bot replies
DEFAULT_STORE_NAME: str = "Манай дэлгүүр"
