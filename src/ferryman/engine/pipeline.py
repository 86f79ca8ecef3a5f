"""End-to-end Jenkins to GitLab translation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ferryman.engine.config import EngineConfig
from ferryman.engine.credentials import CredentialResolver, ResolveOptions
from ferryman.engine.extractor import FeatureExtractor
from ferryman.engine.models import (
    ComplexityTier,
    CredentialHit,
    ExtractionResult,
    FeatureSet,
    LintReport,
    PluginHit,
    PluginVerdict,
    ReadinessSummary,
    ValidationReport,
    VariableSpec,
)
from ferryman.engine.plugins import PluginResolver
from ferryman.engine.synthesizer import REVIEW_MARKER, ConfigurationSynthesizer, lint_configuration

logger = logging.getLogger(__name__)


class TranslationError(Exception):
    """Invalid input handed to the engine boundary."""

    pass


@dataclass(frozen=True)
class MigrationResult:
    """Everything one translation run produced."""

    extraction: ExtractionResult
    plugin_hits: tuple[PluginHit, ...]
    verdicts: tuple[PluginVerdict, ...]
    summary: ReadinessSummary
    credential_hits: tuple[CredentialHit, ...]
    specs: tuple[VariableSpec, ...]
    validation: ValidationReport
    tier: ComplexityTier
    configuration: str
    lint: LintReport
    checklist: str

    @property
    def features(self) -> FeatureSet:
        return self.extraction.features

    @property
    def review_count(self) -> int:
        return self.configuration.count(REVIEW_MARKER)


class MigrationEngine:
    """Bundles the extractor, both resolvers and the synthesizer.

    The engine keeps no per-run state, so one instance can serve
    concurrent translations.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.extractor = FeatureExtractor(self.config.excluded_tokens)
        self.plugins = PluginResolver(
            signatures=self.config.signatures,
            aliases=self.config.aliases,
            compatibility=self.config.compatibility,
            excluded_tokens=self.config.excluded_tokens,
        )
        self.credentials = CredentialResolver(
            reference_patterns=self.config.reference_patterns,
            classifiers=self.config.classifiers,
            kind_defaults=self.config.kind_defaults,
            generic_classifier=self.config.generic_classifier,
            reserved_prefix=self.config.reserved_prefix,
            app_marker=self.config.app_marker,
            max_key_length=self.config.max_key_length,
            warn_key_length=self.config.warn_key_length,
        )
        self.synthesizer = ConfigurationSynthesizer(
            review_threshold=self.config.review_threshold,
            generic_classifier=self.config.generic_classifier.name,
        )

    def translate(
        self,
        text: str,
        options: ResolveOptions | None = None,
        generated_at: datetime | None = None,
    ) -> MigrationResult:
        """Translate a Jenkins pipeline script.

        Args:
            text: Jenkinsfile content
            options: Credential resolution options
            generated_at: Header timestamp (defaults to now)

        Returns:
            The migration result

        Raises:
            TranslationError: If text is not a string or options are invalid
        """
        validate_input(text, options)
        return self.assemble(
            self.extractor.extract_with_confidence(text),
            self.plugins.scan(text),
            self.credentials.scan(text),
            options,
            generated_at,
        )

    def assemble(
        self,
        extraction: ExtractionResult,
        plugin_hits: list[PluginHit],
        credential_hits: list[CredentialHit],
        options: ResolveOptions | None = None,
        generated_at: datetime | None = None,
    ) -> MigrationResult:
        """Resolve scanner output and synthesize the configuration."""
        verdicts = self.plugins.resolve(plugin_hits)
        return self.assemble_resolved(extraction, plugin_hits, verdicts, credential_hits, options, generated_at)

    def assemble_resolved(
        self,
        extraction: ExtractionResult,
        plugin_hits: list[PluginHit],
        verdicts: list[PluginVerdict],
        credential_hits: list[CredentialHit],
        options: ResolveOptions | None = None,
        generated_at: datetime | None = None,
    ) -> MigrationResult:
        """Synthesize from already resolved (possibly enriched) verdicts."""
        features = extraction.features
        summary = self.plugins.summarize(verdicts)
        tier = self.plugins.complexity_tier(verdicts, features)
        specs = self.credentials.resolve(credential_hits, options)
        validation = self.credentials.validate(specs)
        configuration = self.synthesizer.synthesize(features, verdicts, specs, tier, generated_at)
        lint = lint_configuration(configuration)
        if not lint.valid:
            logger.debug("Synthesized configuration failed lint: %s", "; ".join(lint.errors))
        logger.debug(
            "Translated pipeline: %s capabilities, %s variables, tier %s, score %s",
            summary.total,
            len(specs),
            tier,
            summary.score,
        )
        return MigrationResult(
            extraction=extraction,
            plugin_hits=tuple(plugin_hits),
            verdicts=tuple(verdicts),
            summary=summary,
            credential_hits=tuple(credential_hits),
            specs=tuple(specs),
            validation=validation,
            tier=tier,
            configuration=configuration,
            lint=lint,
            checklist=self.plugins.render_checklist(verdicts),
        )


def validate_input(text: object, options: object = None) -> None:
    """Reject caller type errors before they reach the engine."""
    if not isinstance(text, str):
        raise TranslationError(f"Pipeline script must be a string, got {type(text).__name__}")
    if options is None:
        return
    if not isinstance(options, ResolveOptions):
        raise TranslationError("options must be ResolveOptions")
    if not options.environment_scope.strip():
        raise TranslationError("environment_scope must not be empty")
