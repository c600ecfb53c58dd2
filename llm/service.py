"""
LLM service for BKN content generation.

Talks to any OpenAI-compatible chat completion API (OpenAI, LM Studio,
Ollama, vLLM, etc.).

Usage:
    from llm.service import get_completion, stream_completion

    # One-shot completion
    text = get_completion("Describe a Pod entity", system_prompt="...")

    # Streamed completion, cancellable from another thread
    cancel = threading.Event()
    for chunk in stream_completion("Describe a Pod entity", cancel_event=cancel):
        print(chunk, end="")
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from typing import Dict, Iterator, List, Optional

import requests

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration from environment variables
# ============================================================================

LLM_API_BASE = os.environ.get("LLM_API_BASE", "https://api.openai.com/v1")
LLM_API_KEY = os.environ.get("LLM_API_KEY") or os.environ.get("OPENAI_API_KEY", "")
LLM_MODEL = os.environ.get("LLM_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.7"))
LLM_TIMEOUT = float(os.environ.get("LLM_TIMEOUT", "180"))

# Retry configuration
RETRY_LIMIT = int(os.environ.get("LLM_RETRY_LIMIT", "3"))
RETRY_BACKOFF = float(os.environ.get("LLM_RETRY_BACKOFF", "2.0"))


# ============================================================================
# Exceptions
# ============================================================================


class LLMServiceError(RuntimeError):
    """Base exception for LLM service errors."""
    pass


class GenerationCancelled(LLMServiceError):
    """Raised when a streamed generation is aborted by the caller."""
    pass


# ============================================================================
# Helper functions
# ============================================================================


def is_configured() -> bool:
    """True when an API key is available."""
    return bool(LLM_API_KEY)


def _headers() -> Dict[str, str]:
    """Get headers for OpenAI-compatible API requests."""
    headers = {"Content-Type": "application/json"}
    if LLM_API_KEY:
        headers["Authorization"] = f"Bearer {LLM_API_KEY}"
    return headers


def _chat_url() -> str:
    return LLM_API_BASE.rstrip("/") + "/chat/completions"


def _messages(prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


# ============================================================================
# Text Generation Functions
# ============================================================================


def get_completion(
    prompt: str,
    system_prompt: Optional[str] = None,
    temperature: float = LLM_TEMPERATURE,
    max_tokens: int = 2048,
) -> str:
    """
    Get a text completion from the LLM.

    Args:
        prompt: User prompt
        system_prompt: Optional system prompt to guide the model
        temperature: Sampling temperature (0.0 = deterministic, 1.0 = creative)
        max_tokens: Maximum tokens to generate

    Returns:
        Generated text response

    Raises:
        LLMServiceError: If the request fails after retries
    """
    logger.debug(f"Getting completion from {LLM_MODEL} (temp={temperature}, max_tokens={max_tokens})")

    payload = {
        "model": LLM_MODEL,
        "messages": _messages(prompt, system_prompt),
        "temperature": temperature,
        "max_tokens": max_tokens,
    }

    for attempt in range(1, RETRY_LIMIT + 1):
        try:
            response = requests.post(_chat_url(), headers=_headers(), json=payload, timeout=LLM_TIMEOUT)

            if response.status_code >= 400:
                raise LLMServiceError(
                    f"Completion error {response.status_code}: {response.text}"
                )

            data = response.json()
            result = data["choices"][0]["message"]["content"].strip()
            logger.debug(f"Successfully got completion (attempt {attempt}, length={len(result)})")
            return result

        except requests.RequestException as exc:
            logger.warning(f"Completion attempt {attempt} failed: {exc}")
            if attempt == RETRY_LIMIT:
                raise LLMServiceError(
                    f"Failed to get completion after {RETRY_LIMIT} attempts: {exc}"
                ) from exc
            time.sleep(RETRY_BACKOFF * attempt)

    raise LLMServiceError("Unexpected error in get_completion")


def stream_completion(
    prompt: str,
    system_prompt: Optional[str] = None,
    temperature: float = LLM_TEMPERATURE,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[str]:
    """
    Stream a completion as text chunks.

    Only opening the connection is retried; once chunks flow, a broken
    stream raises.

    Args:
        prompt: User prompt
        system_prompt: Optional system prompt
        temperature: Sampling temperature
        cancel_event: Set it to abort; the stream is closed and
            GenerationCancelled is raised

    Yields:
        Content deltas as they arrive

    Raises:
        LLMServiceError: If the request fails
    """
    payload = {
        "model": LLM_MODEL,
        "messages": _messages(prompt, system_prompt),
        "temperature": temperature,
        "stream": True,
    }

    response = None
    for attempt in range(1, RETRY_LIMIT + 1):
        try:
            response = requests.post(
                _chat_url(), headers=_headers(), json=payload, timeout=LLM_TIMEOUT, stream=True
            )
            break
        except requests.RequestException as exc:
            logger.warning(f"Stream attempt {attempt} failed: {exc}")
            if attempt == RETRY_LIMIT:
                raise LLMServiceError(
                    f"Failed to open stream after {RETRY_LIMIT} attempts: {exc}"
                ) from exc
            time.sleep(RETRY_BACKOFF * attempt)

    with response:
        if response.status_code >= 400:
            raise LLMServiceError(
                f"Streaming completion error {response.status_code}: {response.text}"
            )

        try:
            for line in response.iter_lines(decode_unicode=True):
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelled("Generation cancelled")
                chunk = _parse_stream_line(line)
                if chunk is None:
                    continue
                if chunk == "[DONE]":
                    return
                if chunk:
                    yield chunk
        except requests.RequestException as exc:
            raise LLMServiceError(f"Stream interrupted: {exc}") from exc


def _parse_stream_line(line: Optional[str]) -> Optional[str]:
    """Content of one server-sent event line.

    Returns None for blank/comment lines, "[DONE]" at end of stream.
    """
    if not line or not line.startswith("data:"):
        return None

    data = line[len("data:"):].strip()
    if data == "[DONE]":
        return data

    try:
        event = json.loads(data)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed stream event: {data[:80]}")
        return None

    choices = event.get("choices") or [{}]
    return (choices[0].get("delta") or {}).get("content") or ""


# ============================================================================
# Utility Functions
# ============================================================================


def get_provider_info() -> Dict[str, str]:
    """Get information about the current API configuration."""
    return {
        "api_base": LLM_API_BASE,
        "has_key": "Yes" if LLM_API_KEY else "No",
        "model": LLM_MODEL,
    }


def test_connection() -> bool:
    """
    Test the connection to the LLM service.

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        logger.info("Testing LLM service connection...")
        response = get_completion("Say 'OK'", temperature=0, max_tokens=10)
        logger.info(f"✓ Completions working (response: {response[:50]}...)")
        return True
    except LLMServiceError as exc:
        logger.error(f"✗ Connection test failed: {exc}")
        return False


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    print("="*70)
    print("LLM Service Configuration")
    print("="*70)

    for key, value in get_provider_info().items():
        print(f"  {key}: {value}")

    print("\n" + "="*70)
    print("Testing Connection")
    print("="*70)

    if test_connection():
        print("\n✓ All tests passed!")
    else:
        print("\n✗ Tests failed. Check configuration.")
        raise SystemExit(1)
