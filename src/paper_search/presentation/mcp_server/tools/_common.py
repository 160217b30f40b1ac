"""
Shared helpers for MCP tools: input normalization and response formatting.

Every tool returns text. Successful calls return a JSON document; failures
return the Markdown produced by ``PaperSearchError.to_agent_message()``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from paper_search.domain.entities import PaperRecord
from paper_search.shared.exceptions import ErrorContext, PaperSearchError

logger = logging.getLogger(__name__)


class InputNormalizer:
    """Tolerant parsing of agent-supplied tool arguments."""

    @staticmethod
    def normalize_sources(sources: str | Sequence[str] | None) -> list[str] | None:
        """``"arxiv, inspire"`` or ``["arxiv", "inspire"]`` → ``["arxiv", "inspire"]``; empty → None."""
        if sources is None:
            return None
        if isinstance(sources, str):
            items = sources.split(",")
        else:
            items = list(sources)
        names = [str(item).strip().lower() for item in items if str(item).strip()]
        return names or None

    @staticmethod
    def normalize_id(paper_id: str | int | None) -> str:
        return str(paper_id).strip() if paper_id is not None else ""

    @staticmethod
    def normalize_optional(value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class ResponseFormatter:
    """JSON success payloads and agent-readable error messages."""

    @staticmethod
    def json(data: Any) -> str:
        return json.dumps(data, ensure_ascii=False, indent=2)

    @classmethod
    def papers(cls, papers: Sequence[PaperRecord], **extra: Any) -> str:
        payload: dict[str, Any] = dict(extra)
        payload["count"] = len(papers)
        payload["results"] = [paper.to_dict() for paper in papers]
        return cls.json(payload)

    @staticmethod
    def error(
        error: Exception | str,
        tool_name: str,
        suggestion: str | None = None,
        example: str | None = None,
    ) -> str:
        """
        Agent-readable failure text.

        ``PaperSearchError`` keeps its own suggestion; anything else is
        wrapped so the agent always sees the same shape.
        """
        if isinstance(error, PaperSearchError):
            message = error.to_agent_message()
            if suggestion and not error.context.suggestion:
                message += f"\n💡 **Suggestion**: {suggestion}"
            return message
        wrapped = PaperSearchError(
            str(error),
            context=ErrorContext(tool_name=tool_name, suggestion=suggestion, example=example),
        )
        return wrapped.to_agent_message()


def handle_tool_error(error: Exception, tool_name: str, suggestion: str | None = None) -> str:
    """Log and format an exception raised inside a tool."""
    if isinstance(error, PaperSearchError):
        logger.warning(f"{tool_name} failed: {error}")
    else:
        logger.exception(f"{tool_name} failed unexpectedly: {error}")
    return ResponseFormatter.error(error, tool_name=tool_name, suggestion=suggestion)
