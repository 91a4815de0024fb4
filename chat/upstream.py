import logging
from typing import List

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The completion provider could not produce a reply."""


def create_chat_completion(messages: List[dict], model: str) -> str:
    """Call the OpenAI-compatible chat completions API and return the reply text."""
    if not settings.API_KEY:
        raise UpstreamError("Set the GROQ_API_KEY environment variable to continue.")

    payload = {
        "model": model,
        "messages": messages,
        "temperature": settings.TEMPERATURE,
        "max_tokens": settings.MAX_TOKENS,
        "top_p": settings.TOP_P,
        "stream": False,
    }
    headers = {
        "Authorization": f"Bearer {settings.API_KEY}",
        "Content-Type": "application/json",
    }
    logger.debug("Requesting completion from %s with %d messages", settings.BASE_URL, len(messages))
    try:
        response = requests.post(
            f"{settings.BASE_URL}/chat/completions",
            json=payload,
            headers=headers,
            timeout=settings.UPSTREAM_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except requests.HTTPError as exc:
        raise UpstreamError(_provider_message(exc.response) or str(exc)) from exc
    except (requests.RequestException, ValueError) as exc:
        raise UpstreamError(str(exc)) from exc

    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamError("Completion provider returned an empty response.") from exc


def _provider_message(response) -> str:
    if response is None:
        return ""
    try:
        error = response.json().get("error")
    except (ValueError, AttributeError):
        return ""
    if isinstance(error, dict):
        return error.get("message", "")
    return error if isinstance(error, str) else ""
