"""Optional LLM enrichment of capability verdicts.

The engine never depends on this service. Every failure path (no API
key, timeout, rate limit, API error, malformed reply) yields the same
conservative fallback analysis.
"""

from __future__ import annotations

import logging
import os
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

import anyio

from ferryman.engine.models import PluginVerdict, SupportTier
from ferryman.server.llm.openrouter import OpenRouterClient, OpenRouterError
from ferryman.server.llm.prompts import (
    ANALYSIS_STATUSES,
    ENRICHMENT_MODEL,
    ENRICHMENT_TEMPERATURE,
    MAX_ENRICHMENT_TOKENS,
    build_capability_prompt,
)

logger = logging.getLogger(__name__)

FALLBACK_STATUS = "partial"
FALLBACK_CONFIDENCE = 0.6
FALLBACK_NOTE = "Automated analysis unavailable; follow the migration checklist for this capability."

# Enrichment calls per translation
MAX_ENRICHED_VERDICTS = 10


@dataclass(frozen=True)
class CapabilityAnalysis:
    """Natural-language analysis of one capability."""

    capability_id: str
    status: str
    note: str
    blocking: bool
    workaround_available: bool
    confidence: float
    equivalent: str | None = None
    doc_url: str | None = None
    fallback: bool = False


def fallback_analysis(capability_id: str) -> CapabilityAnalysis:
    return CapabilityAnalysis(
        capability_id=capability_id,
        status=FALLBACK_STATUS,
        note=FALLBACK_NOTE,
        blocking=False,
        workaround_available=True,
        confidence=FALLBACK_CONFIDENCE,
        fallback=True,
    )


def _parse_analysis(capability_id: str, data: dict[str, Any]) -> CapabilityAnalysis:
    status = str(data.get("status", "")).lower()
    if status not in ANALYSIS_STATUSES:
        raise ValueError(f"unknown status {status!r}")
    note = str(data.get("note") or "").strip()
    if not note:
        raise ValueError("empty note")
    confidence = float(data.get("confidence", FALLBACK_CONFIDENCE))
    equivalent = data.get("equivalent")
    doc_url = data.get("doc_url")
    return CapabilityAnalysis(
        capability_id=capability_id,
        status=status,
        note=note,
        blocking=bool(data.get("blocking", False)),
        workaround_available=bool(data.get("workaround_available", False)),
        confidence=max(0.0, min(1.0, confidence)),
        equivalent=str(equivalent) if equivalent else None,
        doc_url=str(doc_url) if doc_url else None,
    )


class EnrichmentService:
    """Consults OpenRouter for capability notes with caching and rate limiting."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        rate_limit: int | None = None,
        cache_ttl: float | None = None,
        client_factory: Callable[[], OpenRouterClient] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the enrichment service.

        Args:
            api_key: OpenRouter key (falls back to OPENROUTER_API_KEY)
            model: Model id (falls back to FERRYMAN_ENRICHMENT_MODEL)
            timeout: Seconds per analysis (FERRYMAN_ENRICHMENT_TIMEOUT, default 10)
            rate_limit: Requests per minute (FERRYMAN_ENRICHMENT_RATE_LIMIT, default 50)
            cache_ttl: Cache lifetime in seconds (FERRYMAN_ENRICHMENT_CACHE_TTL, default 86400)
            client_factory: Builds the LLM client; used by tests
            clock: Monotonic time source; used by tests
        """
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        self.model = model or os.getenv("FERRYMAN_ENRICHMENT_MODEL") or ENRICHMENT_MODEL
        self.timeout = timeout if timeout is not None else float(os.getenv("FERRYMAN_ENRICHMENT_TIMEOUT", "10"))
        self.rate_limit = (
            rate_limit if rate_limit is not None else int(os.getenv("FERRYMAN_ENRICHMENT_RATE_LIMIT", "50"))
        )
        self.cache_ttl = (
            cache_ttl if cache_ttl is not None else float(os.getenv("FERRYMAN_ENRICHMENT_CACHE_TTL", "86400"))
        )
        self._client_factory = client_factory or self._default_client
        self._clock = clock
        self._cache: dict[tuple[str, str, str], tuple[float, CapabilityAnalysis]] = {}
        self._calls: deque[float] = deque()

    def _default_client(self) -> OpenRouterClient:
        return OpenRouterClient(api_key=self.api_key, model=self.model, timeout=self.timeout)

    def _allow_call(self) -> bool:
        now = self._clock()
        while self._calls and now - self._calls[0] >= 60:
            self._calls.popleft()
        if len(self._calls) >= self.rate_limit:
            return False
        self._calls.append(now)
        return True

    async def analyze(
        self,
        capability_id: str,
        usage_context: str,
        project_context: str | None = None,
    ) -> CapabilityAnalysis:
        """
        Analyze a capability, falling back on any failure.

        Args:
            capability_id: Canonical capability id
            usage_context: Jenkinsfile lines using it
            project_context: Optional project description

        Returns:
            The analysis; `fallback` is set when the model was not consulted
            successfully.
        """
        key = (capability_id, usage_context, project_context or "")
        cached = self._cache.get(key)
        now = self._clock()
        if cached and cached[0] > now:
            return cached[1]

        if not self._allow_call():
            logger.warning("Enrichment rate limit reached; using fallback for %s", capability_id)
            return fallback_analysis(capability_id)

        prompt = build_capability_prompt(capability_id, usage_context, project_context)
        try:
            with anyio.fail_after(self.timeout):
                async with self._client_factory() as client:
                    data = await client.complete_json(
                        prompt,
                        max_tokens=MAX_ENRICHMENT_TOKENS,
                        temperature=ENRICHMENT_TEMPERATURE,
                    )
            analysis = _parse_analysis(capability_id, data)
        except TimeoutError:
            logger.warning("Enrichment timed out after %ss for %s", self.timeout, capability_id)
            return fallback_analysis(capability_id)
        except OpenRouterError as e:
            logger.warning("Enrichment failed for %s: %s", capability_id, e)
            return fallback_analysis(capability_id)
        except (TypeError, ValueError) as e:
            logger.warning("Enrichment reply for %s rejected: %s", capability_id, e)
            return fallback_analysis(capability_id)

        self._cache[key] = (now + self.cache_ttl, analysis)
        return analysis

    async def enrich_verdicts(
        self,
        verdicts: Sequence[PluginVerdict],
        script: str,
        project_context: str | None = None,
    ) -> list[PluginVerdict]:
        """Attach analysis notes to verdicts that are not natively supported.

        Tier, confidence and every other field stay as the engine resolved
        them; only `enrichment_note` is set.
        """
        lines = script.splitlines()
        candidates = [v for v in verdicts if v.tier != SupportTier.NATIVE][:MAX_ENRICHED_VERDICTS]
        notes: dict[str, str] = {}

        async def run(verdict: PluginVerdict) -> None:
            usage = "\n".join(
                lines[hit.line - 1] for hit in verdict.hits if 0 < hit.line <= len(lines)
            )
            analysis = await self.analyze(verdict.id, usage, project_context)
            if not analysis.fallback:
                notes[verdict.id] = analysis.note

        async with anyio.create_task_group() as tg:
            for verdict in candidates:
                tg.start_soon(run, verdict)

        return [replace(v, enrichment_note=notes[v.id]) if v.id in notes else v for v in verdicts]
