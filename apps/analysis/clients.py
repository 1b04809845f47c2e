"""
Text-analysis collaborator clients.

The orchestrator only sees the ``AnalysisClient`` interface. Which variant
runs is decided by ``settings.ANALYSIS_CLIENT`` and constructed once at
startup (see ``AnalysisConfig.ready``).
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from django.conf import settings
from django.utils.module_loading import import_string

from . import prompts

logger = logging.getLogger(__name__)


class AnalysisClientError(Exception):
    """Transport or format failure talking to the collaborator."""


@dataclass(frozen=True)
class SearchMatch:
    survey_id: str
    reason: str


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    feedback: str


class AnalysisClient(ABC):
    @abstractmethod
    def search(self, query: str, corpus: List[Dict[str, Any]]) -> List[SearchMatch]:
        """Rank `corpus` entries ({id, title, area, description}) against `query`."""

    @abstractmethod
    def validate(self, rubric: str, text: str) -> ValidationResult:
        """Judge `text` against the free-text `rubric`."""

    @abstractmethod
    def summarize(self, responses: List[str], instructions: str) -> str:
        """Summarize `responses` following `instructions`."""


class OpenAIAnalysisClient(AnalysisClient):
    """
    Chat-completions backed client. Works with any OpenAI-compatible endpoint
    (set OPENAI_BASE_URL, e.g. OpenRouter). Calls block, honour the configured
    timeout and are never retried here.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model or settings.OPENAI_MODEL
        self._client = openai.OpenAI(
            api_key=api_key or settings.OPENAI_API_KEY,
            base_url=base_url or settings.OPENAI_BASE_URL,
            timeout=timeout or settings.ANALYSIS_TIMEOUT_SECONDS,
            max_retries=0,
        )

    def _complete(self, system: str, user: str, *, json_mode: bool) -> str:
        kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                **kwargs,
            )
        except openai.OpenAIError as exc:
            raise AnalysisClientError(f"{exc.__class__.__name__}: {exc}") from exc
        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            raise AnalysisClientError("empty completion")
        return content

    def _complete_json(self, system: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        raw = self._complete(system, json.dumps(payload, ensure_ascii=False), json_mode=True)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Collaborator returned invalid JSON: %.200s", raw)
            raise AnalysisClientError("invalid JSON from collaborator") from exc
        if not isinstance(data, dict):
            raise AnalysisClientError("expected a JSON object from collaborator")
        return data

    def search(self, query, corpus):
        data = self._complete_json(prompts.SEARCH_SYSTEM_PROMPT, {"query": query, "surveys": corpus})
        matches = data.get("matches") or []
        if not isinstance(matches, list):
            raise AnalysisClientError("'matches' must be a list")
        results = []
        for item in matches:
            if not isinstance(item, dict) or item.get("id") is None:
                continue
            results.append(SearchMatch(survey_id=str(item["id"]), reason=str(item.get("reason") or "")))
        return results

    def validate(self, rubric, text):
        data = self._complete_json(prompts.VALIDATE_SYSTEM_PROMPT, {"guidelines": rubric, "response": text})
        if not isinstance(data.get("is_valid"), bool):
            raise AnalysisClientError("'is_valid' must be a boolean")
        return ValidationResult(is_valid=data["is_valid"], feedback=str(data.get("feedback") or ""))

    def summarize(self, responses, instructions):
        system = prompts.SUMMARY_SYSTEM_PROMPT.format(instructions=instructions)
        return self._complete(system, prompts.format_responses(responses), json_mode=False)


class StubAnalysisClient(AnalysisClient):
    """
    Deterministic offline client for development and tests: substring search,
    responses mentioning "invalid" fail validation, templated summaries.
    """

    def search(self, query, corpus):
        needle = query.lower()
        results = []
        for entry in corpus:
            hits = [
                name for name in ("title", "area", "description")
                if needle in (entry.get(name) or "").lower()
            ]
            if hits:
                results.append(SearchMatch(
                    survey_id=str(entry["id"]),
                    reason=f"Matches search query in {' and '.join(hits)}",
                ))
        return results

    def validate(self, rubric, text):
        if "invalid" in text.lower():
            return ValidationResult(is_valid=False, feedback="Response contains invalid content")
        return ValidationResult(is_valid=True, feedback="Response meets all guidelines")

    def summarize(self, responses, instructions):
        lines = [f"Summary of {len(responses)} responses:"]
        lines.extend(f"- {text[:50]}" for text in responses)
        return "\n".join(lines)


def build_client(path: str, **options) -> AnalysisClient:
    client_cls = import_string(path)
    client = client_cls(**options)
    if not isinstance(client, AnalysisClient):
        raise TypeError(f"{path} is not an AnalysisClient")
    return client
