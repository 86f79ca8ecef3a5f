"""Capability detection and compatibility verdicts."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime

from ferryman.engine.mappings import (
    COMPATIBILITY_TABLE,
    EXCLUDED_TOKENS,
    HIT_CONFIDENCE_VALUES,
    PLUGIN_ALIASES,
    SIGNATURES,
    TIER_PRIORITY,
    TIER_WEIGHTS,
    Signature,
)
from ferryman.engine.models import (
    CompatibilityEntry,
    ComplexityTier,
    FeatureSet,
    PluginHit,
    PluginVerdict,
    ReadinessSummary,
    SupportTier,
)

logger = logging.getLogger(__name__)

UNKNOWN_CAPABILITY_NOTE = "Unknown capability - requires manual research"

_COMMENT_PREFIXES = ("//", "#", "/*", "*")

_TIER_HEADINGS = (
    (SupportTier.NATIVE, "Native support"),
    (SupportTier.TEMPLATED, "Available as template"),
    (SupportTier.LIMITED, "Limited support - manual work needed"),
    (SupportTier.UNSUPPORTED, "Unsupported - requires redesign"),
)

_MIGRATION_NOTES = (
    "Store every credential as a masked, protected CI/CD variable before the first run.",
    "Move shared library steps into included CI templates.",
    "Replace interactive input steps with manual jobs.",
    "Run the converted pipeline on a feature branch before switching over.",
)


def round_half_up(value: float) -> int:
    return int(value + 0.5)


class PluginResolver:
    """Scans a pipeline script for capabilities and resolves them to verdicts.

    All tables are injected so the resolver holds no global state.
    """

    def __init__(
        self,
        signatures: Sequence[Signature] = SIGNATURES,
        aliases: Mapping[str, str] = PLUGIN_ALIASES,
        compatibility: Mapping[str, CompatibilityEntry] = COMPATIBILITY_TABLE,
        excluded_tokens: frozenset[str] = EXCLUDED_TOKENS,
    ) -> None:
        self.signatures = tuple(signatures)
        self.aliases = aliases
        self.compatibility = compatibility
        self.excluded_tokens = excluded_tokens

    def canonicalize(self, name: str) -> str:
        """Collapse an alias into its canonical capability id."""
        lowered = name.strip().lower()
        return self.aliases.get(lowered, lowered)

    def scan_all(self, text: str) -> list[PluginHit]:
        """Return every capability occurrence, in line order."""
        hits: list[PluginHit] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith(_COMMENT_PREFIXES):
                continue
            for signature in self.signatures:
                for match in signature.pattern.finditer(line):
                    if isinstance(signature.capability, int):
                        raw = match.group(signature.capability)
                        if not self._is_candidate(raw):
                            continue
                        capability = self.canonicalize(raw)
                    else:
                        capability = self.canonicalize(signature.capability)
                    hits.append(
                        PluginHit(
                            id=capability,
                            line=line_number,
                            matched_text=match.group(0).strip(),
                            confidence=signature.confidence,
                        )
                    )
        return hits

    def _is_candidate(self, raw: str) -> bool:
        return 2 <= len(raw) <= 50 and raw.lower() not in self.excluded_tokens

    def scan(self, text: str) -> list[PluginHit]:
        """Return one hit per canonical id, keeping the earliest line."""
        first: dict[str, PluginHit] = {}
        for hit in self.scan_all(text):
            first.setdefault(hit.id, hit)
        return sorted(first.values(), key=lambda h: (h.line, h.id))

    def resolve(self, hits: Sequence[PluginHit]) -> list[PluginVerdict]:
        """Merge hits per canonical id and look each id up.

        Args:
            hits: Hits from `scan` or `scan_all`, in any order

        Returns:
            One verdict per id, ordered by tier priority then id
        """
        grouped: dict[str, list[PluginHit]] = {}
        for hit in hits:
            grouped.setdefault(self.canonicalize(hit.id), []).append(hit)

        verdicts = [self._verdict(capability, group) for capability, group in grouped.items()]
        verdicts.sort(key=lambda v: (TIER_PRIORITY.get(v.tier, 99), v.id))
        logger.debug("Resolved %s capabilities from %s hits", len(verdicts), len(hits))
        return verdicts

    def _verdict(self, capability: str, hits: list[PluginHit]) -> PluginVerdict:
        ordered = tuple(sorted(hits, key=lambda h: (h.line, h.matched_text)))
        hit_confidence = max(HIT_CONFIDENCE_VALUES.get(h.confidence, 0.4) for h in ordered)
        entry = self.compatibility.get(capability)
        if entry is None:
            return PluginVerdict(
                id=capability,
                tier=SupportTier.UNSUPPORTED,
                note=UNKNOWN_CAPABILITY_NOTE,
                hits=ordered,
                confidence=0.0,
            )
        return PluginVerdict(
            id=capability,
            tier=entry.tier,
            note=entry.note,
            hits=ordered,
            confidence=min(TIER_WEIGHTS[entry.tier] / 100, hit_confidence),
            equivalent=entry.equivalent,
            include=entry.include,
            documentation=entry.documentation,
            alternative=entry.alternative,
        )

    @staticmethod
    def summarize(verdicts: Sequence[PluginVerdict]) -> ReadinessSummary:
        counts = {tier: 0 for tier in SupportTier}
        for verdict in verdicts:
            counts[verdict.tier] += 1
        total = len(verdicts)
        if total == 0:
            score = 100
        else:
            weighted = sum(TIER_WEIGHTS[tier] * count for tier, count in counts.items())
            score = round_half_up(100 * weighted / (100 * total))
        return ReadinessSummary(
            total=total,
            native=counts[SupportTier.NATIVE],
            templated=counts[SupportTier.TEMPLATED],
            limited=counts[SupportTier.LIMITED],
            unsupported=counts[SupportTier.UNSUPPORTED],
            score=max(0, min(100, score)),
        )

    @staticmethod
    def complexity_tier(verdicts: Sequence[PluginVerdict], features: FeatureSet | None = None) -> ComplexityTier:
        """Coarse run complexity used to pick the stage skeleton."""
        if len(verdicts) > 15 or (features is not None and features.style == "scripted"):
            return "complex"
        if len(verdicts) > 5:
            return "medium"
        return "simple"

    def render_checklist(
        self, verdicts: Sequence[PluginVerdict], generated_at: datetime | None = None
    ) -> str:
        """Render a markdown migration checklist grouped by tier."""
        summary = self.summarize(verdicts)
        lines = ["# Migration Checklist", ""]
        if generated_at is not None:
            lines.extend([f"Generated: {generated_at.isoformat()}", ""])
        lines.extend(
            [
                "## Summary",
                "",
                f"- Total capabilities: {summary.total}",
                f"- Native: {summary.native}",
                f"- Templated: {summary.templated}",
                f"- Limited: {summary.limited}",
                f"- Unsupported: {summary.unsupported}",
                f"- Readiness score: {summary.score}/100",
                "",
            ]
        )
        for tier, heading in _TIER_HEADINGS:
            group = [v for v in verdicts if v.tier == tier]
            if not group:
                continue
            lines.extend([f"## {heading}", ""])
            for verdict in group:
                label = verdict.id
                if verdict.equivalent:
                    label += f" -> {verdict.equivalent}"
                lines.append(f"- [ ] **{label}** (line {verdict.first_line}): {verdict.note}")
                if verdict.include:
                    lines.append(f"  - Include: `{verdict.include}`")
                if verdict.alternative:
                    lines.append(f"  - Alternative: {verdict.alternative}")
                if verdict.enrichment_note:
                    lines.append(f"  - Analysis: {verdict.enrichment_note}")
                if verdict.documentation:
                    lines.append(f"  - Docs: {verdict.documentation}")
            lines.append("")
        lines.extend(["## Migration notes", ""])
        lines.extend(f"- {note}" for note in _MIGRATION_NOTES)
        return "\n".join(lines) + "\n"
