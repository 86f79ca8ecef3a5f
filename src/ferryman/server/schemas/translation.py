"""Schemas for the translation and scan APIs."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ferryman.engine.credentials import CustomMapping, ResolveOptions
from ferryman.engine.models import ValueKind

MAX_SCRIPT_LENGTH = 1_000_000


class CustomMappingSchema(BaseModel):
    """Overrides for one credential id."""

    key: str | None = Field(None, description="Variable key to use instead of the sanitized id")
    value_kind: ValueKind | None = Field(None, description="text or file")
    masked: bool | None = None
    protected: bool | None = None
    scope: str | None = Field(None, description="Environment scope")
    description: str | None = None


class CredentialOptions(BaseModel):
    """Credential resolution options shared by several endpoints."""

    environment_scope: str = Field("*", description="Environment scope for created variables")
    force_protected: bool = Field(True, description="Mark every variable protected")
    custom_mappings: dict[str, CustomMappingSchema] = Field(
        default_factory=dict, description="Overrides keyed by Jenkins credential id"
    )

    def to_options(self) -> ResolveOptions:
        return ResolveOptions(
            environment_scope=self.environment_scope,
            force_protected=self.force_protected,
            custom_mappings={
                source_id: CustomMapping(**mapping.model_dump())
                for source_id, mapping in self.custom_mappings.items()
            },
        )


class TranslateRequest(CredentialOptions):
    """Translation request payload."""

    script: str = Field(..., max_length=MAX_SCRIPT_LENGTH, description="Jenkinsfile content")
    source_name: str | None = Field(None, max_length=255, description="Optional file name")
    enrich: bool = Field(False, description="Ask the LLM for capability notes")
    project_context: str | None = Field(None, max_length=4000, description="Project description for enrichment")


class UnparsedRegionSchema(BaseModel):
    text: str
    start_line: int
    end_line: int
    reason: str


class ExtractionSchema(BaseModel):
    """Extraction confidence and advisories."""

    method: Literal["primary", "fallback"]
    confidence: float
    style: str
    stages: list[str]
    unparsed: list[UnparsedRegionSchema]


class PluginHitSchema(BaseModel):
    id: str
    line: int
    matched_text: str
    confidence: str


class VerdictSchema(BaseModel):
    """Compatibility verdict for one capability."""

    id: str
    tier: str
    complexity: str
    note: str
    confidence: float
    equivalent: str | None = None
    include: str | None = None
    documentation: str | None = None
    alternative: str | None = None
    enrichment_note: str | None = None
    lines: list[int] = Field(default_factory=list)


class SummarySchema(BaseModel):
    total: int
    native: int
    templated: int
    limited: int
    unsupported: int
    score: int


class VariableSchema(BaseModel):
    """Planned CI/CD variable; never carries a value."""

    source_id: str
    key: str
    value_kind: str
    masked: bool
    protected: bool
    scope: str
    description: str
    classifier: str


class ValidationSchema(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]


class TranslateResponse(BaseModel):
    """Translation response payload."""

    configuration: str = Field(..., description="Generated .gitlab-ci.yml")
    checklist: str = Field(..., description="Markdown migration checklist")
    summary: SummarySchema
    complexity_tier: str
    extraction: ExtractionSchema
    verdicts: list[VerdictSchema]
    variables: list[VariableSchema]
    validation: ValidationSchema
    lint: ValidationSchema
    review_count: int
    enriched: bool
    record_id: int | None = Field(None, description="History record ID, null if not stored")


class PluginScanRequest(BaseModel):
    script: str = Field(..., max_length=MAX_SCRIPT_LENGTH, description="Jenkinsfile content")


class PluginScanResponse(BaseModel):
    hits: list[PluginHitSchema]
    verdicts: list[VerdictSchema]
    summary: SummarySchema
    checklist: str


class CredentialScanRequest(CredentialOptions):
    script: str = Field(..., max_length=MAX_SCRIPT_LENGTH, description="Jenkinsfile content")
    project_id: str = Field("", description="GitLab project ID for the provisioning script")
    dry_run: bool = Field(True, description="Default the provisioning script to dry-run mode")
    batch_size: int = Field(10, ge=1, le=50, description="Variables per API batch")


class CredentialHitSchema(BaseModel):
    source_id: str
    line: int
    kind: str
    matched_text: str


class UsageAnalysisSchema(BaseModel):
    total: int
    by_kind: dict[str, int]
    potential_secrets: list[str]
    recommendations: list[str]


class CredentialScanResponse(BaseModel):
    hits: list[CredentialHitSchema]
    variables: list[VariableSchema]
    validation: ValidationSchema
    analysis: UsageAnalysisSchema
    env_file: str
    provisioning_script: str


class MigrationRecordResponse(BaseModel):
    """History entry."""

    id: int
    source_name: str | None
    readiness_score: int
    complexity_tier: str
    extraction_confidence: float
    plugin_count: int
    variable_count: int
    review_count: int
    created_at: datetime


class MigrationRecordDetailResponse(MigrationRecordResponse):
    source_text: str
    output_text: str
    checklist: str
