"""Value types shared by the migration engine.

Every value is created fresh per translation call and never mutated
afterwards, so all of them are frozen dataclasses holding tuples rather
than lists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

ParameterKind = Literal["string", "boolean", "choice", "text", "password"]
PipelineStyle = Literal["declarative", "scripted", "unknown"]
ParsingMethod = Literal["primary", "fallback"]
ComplexityTier = Literal["simple", "medium", "complex"]
HitConfidence = Literal["high", "medium", "low"]


class SupportTier(str, Enum):
    """How well the target platform covers a source capability."""

    NATIVE = "native"
    TEMPLATED = "templated"
    LIMITED = "limited"
    UNSUPPORTED = "unsupported"


class Complexity(str, Enum):
    """Migration effort for one capability."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ReferenceKind(str, Enum):
    """Syntax a credential reference was found in."""

    STEP = "step"
    WITH_CREDENTIALS = "withCredentials"
    USERNAME_PASSWORD = "usernamePassword"
    STRING = "string"
    FILE = "file"
    SSH_USER_PRIVATE_KEY = "sshUserPrivateKey"
    ENV = "env"


class ValueKind(str, Enum):
    """Target variable type."""

    TEXT = "text"
    FILE = "file"


# Feature set (IR)


@dataclass(frozen=True)
class Parameter:
    """A build parameter declared by the source pipeline."""

    name: str
    kind: ParameterKind
    default: str = ""
    description: str = ""
    choices: tuple[str, ...] = ()


@dataclass(frozen=True)
class RetentionPolicy:
    """Build/artifact retention (0 means not configured)."""

    days_to_keep: int = 0
    num_to_keep: int = 0
    artifact_days_to_keep: int = 0
    artifact_num_to_keep: int = 0

    @property
    def is_empty(self) -> bool:
        return not (
            self.days_to_keep
            or self.num_to_keep
            or self.artifact_days_to_keep
            or self.artifact_num_to_keep
        )


@dataclass(frozen=True)
class CredentialBinding:
    """A credential bound to variables for a block of the pipeline."""

    source_id: str
    kind: str
    variables: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ConditionalGuard:
    """A `when` condition and the stage it guards."""

    condition: str
    expression: str
    stage: str = ""


@dataclass(frozen=True)
class FeatureSet:
    """Structured view of one source pipeline.

    All fields default to empty values; extraction never produces None.
    """

    parameters: tuple[Parameter, ...] = ()
    environment: tuple[tuple[str, str], ...] = ()
    matrix: tuple[tuple[str, tuple[str, ...]], ...] = ()
    timeout_minutes: int = 0
    retry_count: int = 0
    post_actions: tuple[tuple[str, tuple[str, ...]], ...] = ()
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    credential_bindings: tuple[CredentialBinding, ...] = ()
    guards: tuple[ConditionalGuard, ...] = ()
    parallel_stages: tuple[str, ...] = ()
    stage_names: tuple[str, ...] = ()
    libraries: tuple[str, ...] = ()
    style: PipelineStyle = "unknown"

    @property
    def environment_map(self) -> dict[str, str]:
        return dict(self.environment)

    @property
    def matrix_axes(self) -> dict[str, tuple[str, ...]]:
        return dict(self.matrix)

    @property
    def post_action_map(self) -> dict[str, tuple[str, ...]]:
        return dict(self.post_actions)


@dataclass(frozen=True)
class UnparsedRegion:
    """A block the fallback tokenizer could not interpret."""

    text: str
    start_line: int
    end_line: int
    reason: str


@dataclass(frozen=True)
class ExtractionResult:
    """Feature set plus how much of it can be trusted."""

    features: FeatureSet
    confidence: float
    method: ParsingMethod
    stage_lines: tuple[tuple[str, int], ...] = ()
    plugin_lines: tuple[tuple[str, int], ...] = ()
    unparsed: tuple[UnparsedRegion, ...] = ()


# Plugin resolution


@dataclass(frozen=True)
class PluginHit:
    """One occurrence of a capability signature in the source script."""

    id: str
    line: int
    matched_text: str
    confidence: HitConfidence


@dataclass(frozen=True)
class CompatibilityEntry:
    """Static compatibility data for a canonical capability id."""

    tier: SupportTier
    note: str
    equivalent: str | None = None
    include: str | None = None
    documentation: str | None = None
    alternative: str | None = None


@dataclass(frozen=True)
class PluginVerdict:
    """Resolved compatibility judgment for one capability."""

    id: str
    tier: SupportTier
    note: str
    hits: tuple[PluginHit, ...]
    confidence: float
    equivalent: str | None = None
    include: str | None = None
    documentation: str | None = None
    alternative: str | None = None
    enrichment_note: str | None = None

    @property
    def complexity(self) -> Complexity:
        return complexity_for(self.tier)

    @property
    def first_line(self) -> int:
        return self.hits[0].line if self.hits else 0


@dataclass(frozen=True)
class ReadinessSummary:
    """Verdict counts and the weighted readiness score."""

    total: int
    native: int
    templated: int
    limited: int
    unsupported: int
    score: int


# Credential resolution


@dataclass(frozen=True)
class CredentialHit:
    """A credential reference found in the source script."""

    source_id: str
    line: int
    kind: ReferenceKind
    matched_text: str
    context: str = ""


@dataclass(frozen=True)
class VariableSpec:
    """A target CI/CD variable to provision for a source credential."""

    source_id: str
    key: str
    value_kind: ValueKind
    masked: bool
    protected: bool
    scope: str
    description: str
    classifier: str
    children: tuple[VariableSpec, ...] = ()


@dataclass(frozen=True)
class ValidationReport:
    """Naming problems found in a set of variable specs."""

    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class IdCheck:
    """Naming problems for a raw credential id."""

    valid: bool
    issues: tuple[str, ...]
    suggested_key: str


@dataclass(frozen=True)
class LintReport:
    """Structural checks over synthesized configuration text."""

    valid: bool
    errors: tuple[str, ...] = ()


_COMPLEXITY_BY_TIER = {
    SupportTier.NATIVE: Complexity.EASY,
    SupportTier.TEMPLATED: Complexity.MEDIUM,
    SupportTier.LIMITED: Complexity.MEDIUM,
    SupportTier.UNSUPPORTED: Complexity.HARD,
}


def complexity_for(tier: SupportTier) -> Complexity:
    """Migration complexity is a pure function of the support tier."""
    return _COMPLEXITY_BY_TIER.get(tier, Complexity.HARD)
