import json
import logging
import re
from typing import Any

from openai import AsyncAzureOpenAI, AsyncOpenAI

from analyzer.config import settings

log = logging.getLogger(__name__)

# Client for the current notebook credential only.
_client: AsyncOpenAI | None = None
_client_key: str | None = None
_deployment: str = settings.openai.deployment

AVAILABLE_MODELS = [
    "gpt-4o-mini",
    "gpt-4.1-mini",
    "gpt-5-mini",
]

# Models that require max_completion_tokens instead of max_tokens.
_USES_MAX_COMPLETION_TOKENS = {"gpt-5", "gpt-5-mini", "gpt-5-nano", "gpt-5.1", "gpt-5.2",
                               "o1", "o1-mini", "o3", "o3-mini", "o4-mini"}


def _needs_max_completion_tokens(deployment: str) -> bool:
    """Check if a deployment uses the newer max_completion_tokens parameter."""
    d = deployment.lower()
    for prefix in _USES_MAX_COMPLETION_TOKENS:
        if d == prefix or d.startswith(prefix + "-"):
            return True
    return False


async def get_client(api_key: str) -> AsyncOpenAI:
    """Client for api_key. A client for a previous credential is closed."""
    global _client, _client_key
    if _client is not None and _client_key == api_key:
        return _client
    await close_client()

    cfg = settings.openai
    if cfg.endpoint:
        client = AsyncAzureOpenAI(
            azure_endpoint=cfg.endpoint,
            api_key=api_key,
            api_version=cfg.api_version,
        )
    else:
        client = AsyncOpenAI(api_key=api_key)
    _client, _client_key = client, api_key
    return client


async def close_client() -> None:
    global _client, _client_key
    client, _client, _client_key = _client, None, None
    if client is not None:
        log.info("Closing LLM client")
        await client.close()


def get_deployment() -> str:
    return _deployment


def set_deployment(name: str) -> None:
    global _deployment
    _deployment = name
    log.info("Deployment changed to: %s", name)


async def chat(system_prompt: str, user_message: str, api_key: str, max_tokens: int = 1024) -> tuple[str, str]:
    """Send a chat completion request. Returns (text, finish_reason)."""
    client = await get_client(api_key)

    kwargs: dict = {
        "model": _deployment,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ],
    }

    if _needs_max_completion_tokens(_deployment):
        # gpt-5 / o-series: max_completion_tokens, no temperature control
        kwargs["max_completion_tokens"] = max_tokens
    else:
        kwargs["max_tokens"] = max_tokens
        kwargs["temperature"] = 0.0

    resp = await client.chat.completions.create(**kwargs)
    choice = resp.choices[0]
    return choice.message.content or "", choice.finish_reason or "stop"


def parse_json_reply(text: str) -> dict[str, Any]:
    """Leniently parse a JSON object from model output."""
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    # Try extracting from code fences
    m = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1).strip())
        except json.JSONDecodeError:
            pass
    # Try finding first { ... }
    m = re.search(r"\{.*\}", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group())
        except json.JSONDecodeError:
            pass
    raise ValueError(f"Could not parse JSON from LLM output: {text[:200]}")
