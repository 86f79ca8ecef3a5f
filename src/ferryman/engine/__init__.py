"""Jenkins to GitLab CI/CD translation engine."""

from ferryman.engine.config import EngineConfig
from ferryman.engine.credentials import CredentialResolver, CustomMapping, ResolveOptions
from ferryman.engine.extractor import FeatureExtractor, extract, extract_with_confidence
from ferryman.engine.pipeline import MigrationEngine, MigrationResult, TranslationError
from ferryman.engine.plugins import PluginResolver
from ferryman.engine.synthesizer import ConfigurationSynthesizer, lint_configuration

__all__ = [
    "ConfigurationSynthesizer",
    "CredentialResolver",
    "CustomMapping",
    "EngineConfig",
    "FeatureExtractor",
    "MigrationEngine",
    "MigrationResult",
    "PluginResolver",
    "ResolveOptions",
    "TranslationError",
    "extract",
    "extract_with_confidence",
    "lint_configuration",
]
