"""
LLM service module for the BKN toolkit.

This module provides centralized access to chat completions and the
document generation built on top of them.
"""

from .data_sources import DATA_VIEWS, build_data_sources_summary
from .generation import (
    build_system_prompt,
    fallback_document,
    generate_document,
    resolve_mentions,
)
from .service import (
    GenerationCancelled,
    LLMServiceError,
    get_completion,
    get_provider_info,
    is_configured,
    stream_completion,
    test_connection,
)

__all__ = [
    "DATA_VIEWS",
    "GenerationCancelled",
    "LLMServiceError",
    "build_data_sources_summary",
    "build_system_prompt",
    "fallback_document",
    "generate_document",
    "get_completion",
    "get_provider_info",
    "is_configured",
    "resolve_mentions",
    "stream_completion",
    "test_connection",
]
