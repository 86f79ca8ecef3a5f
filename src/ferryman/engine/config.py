"""Engine configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ferryman.engine import mappings
from ferryman.engine.mappings import Classifier, ReferencePattern, Signature
from ferryman.engine.models import CompatibilityEntry, ReferenceKind


@dataclass(frozen=True)
class EngineConfig:
    """Immutable tables and thresholds handed to the engine components.

    The defaults are the built-in Jenkins to GitLab tables; tests swap in
    smaller ones.
    """

    compatibility: Mapping[str, CompatibilityEntry] = field(
        default_factory=lambda: mappings.COMPATIBILITY_TABLE
    )
    aliases: Mapping[str, str] = field(default_factory=lambda: mappings.PLUGIN_ALIASES)
    signatures: tuple[Signature, ...] = mappings.SIGNATURES
    excluded_tokens: frozenset[str] = mappings.EXCLUDED_TOKENS
    reference_patterns: tuple[ReferencePattern, ...] = mappings.REFERENCE_PATTERNS
    classifiers: tuple[Classifier, ...] = mappings.CREDENTIAL_CLASSIFIERS
    kind_defaults: Mapping[ReferenceKind, Classifier] = field(
        default_factory=lambda: mappings.KIND_DEFAULT_CLASSIFIERS
    )
    generic_classifier: Classifier = mappings.GENERIC_CLASSIFIER
    review_threshold: float = 0.7
    max_key_length: int = 255
    warn_key_length: int = 100
    reserved_prefix: str = "CI_"
    app_marker: str = "APP_"
