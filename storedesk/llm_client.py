"""
OpenAI client wrapper used by the chat pipeline.

The client is created lazily so the API can run without an OPENAI_API_KEY;
every LLM tier checks is_openai_configured() first and falls back to the
deterministic templates when it returns False.

Usage:
    from storedesk import llm_client

    if llm_client.is_openai_configured():
        text = llm_client.chat_completion(messages, max_tokens=500)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import instructor
from dotenv import load_dotenv
from openai import OpenAI

from . import config

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent  # project root (where .env lives)
load_dotenv(dotenv_path=BASE_DIR / ".env")

_client: Optional[OpenAI] = None


def is_openai_configured() -> bool:
    """Return True when an OpenAI key is available."""
    return bool(os.getenv("OPENAI_API_KEY"))


def get_client() -> OpenAI:
    """Return the shared OpenAI client, creating it on first use."""
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY not set")
        _client = OpenAI(api_key=api_key)
        logger.debug("OpenAI client created (model=%s)", config.OPENAI_MODEL)
    return _client


def get_instructor_client():
    """Get instructor-wrapped OpenAI client for typed responses."""
    return instructor.from_openai(get_client())


def _usage_dict(response) -> Dict[str, int]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    return {
        "prompt_tokens": usage.prompt_tokens,
        "completion_tokens": usage.completion_tokens,
        "total_tokens": usage.total_tokens,
    }


def chat_completion(
    messages: List[Dict[str, str]],
    max_tokens: int = None,
    temperature: float = None,
    model: str = None,
) -> str:
    """
    Send a multi-turn chat completion request and return the reply text.

    Raises:
        ValueError: If the key is missing or the model returns no content.
    """
    model = model or config.OPENAI_MODEL
    response = get_client().chat.completions.create(
        model=model,
        temperature=config.LLM_TEMPERATURE if temperature is None else temperature,
        max_tokens=max_tokens or config.LLM_MAX_TOKENS,
        messages=messages,
    )
    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise ValueError("Empty response from OpenAI")

    usage = _usage_dict(response)
    logger.info(
        "openai chat model=%s tokens=%s (prompt=%s completion=%s)",
        model, usage["total_tokens"], usage["prompt_tokens"], usage["completion_tokens"],
    )
    return content


def json_completion(
    system_prompt: str,
    user_content: str,
    max_tokens: int = None,
    temperature: float = None,
    model: str = None,
) -> Dict[str, Any]:
    """
    Single-turn JSON-in/JSON-out completion.

    Returns:
        {"data": <parsed JSON object>, "usage": {...token counts}}
    """
    model = model or config.OPENAI_MODEL
    response = get_client().chat.completions.create(
        model=model,
        temperature=config.LLM_TEMPERATURE if temperature is None else temperature,
        max_tokens=max_tokens or config.LLM_MAX_TOKENS,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ],
    )
    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise ValueError("Empty response from OpenAI")

    usage = _usage_dict(response)
    logger.info("openai json model=%s tokens=%s", model, usage["total_tokens"])
    return {"data": json.loads(content), "usage": usage}
