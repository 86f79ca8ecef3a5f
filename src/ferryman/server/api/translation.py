"""Translation API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ferryman.data.database import get_session
from ferryman.data.models.migration_record import MigrationRecord
from ferryman.engine.models import (
    PluginVerdict,
    ReadinessSummary,
    ValidationReport,
    VariableSpec,
)
from ferryman.engine.pipeline import TranslationError
from ferryman.server.schemas.translation import (
    ExtractionSchema,
    MigrationRecordDetailResponse,
    MigrationRecordResponse,
    SummarySchema,
    TranslateRequest,
    TranslateResponse,
    UnparsedRegionSchema,
    ValidationSchema,
    VariableSchema,
    VerdictSchema,
)
from ferryman.server.services.translation import TranslationService

router = APIRouter()


def verdict_to_schema(verdict: PluginVerdict) -> VerdictSchema:
    return VerdictSchema(
        id=verdict.id,
        tier=verdict.tier.value,
        complexity=verdict.complexity.value,
        note=verdict.note,
        confidence=verdict.confidence,
        equivalent=verdict.equivalent,
        include=verdict.include,
        documentation=verdict.documentation,
        alternative=verdict.alternative,
        enrichment_note=verdict.enrichment_note,
        lines=[hit.line for hit in verdict.hits],
    )


def summary_to_schema(summary: ReadinessSummary) -> SummarySchema:
    return SummarySchema(
        total=summary.total,
        native=summary.native,
        templated=summary.templated,
        limited=summary.limited,
        unsupported=summary.unsupported,
        score=summary.score,
    )


def variable_to_schema(spec: VariableSpec) -> VariableSchema:
    return VariableSchema(
        source_id=spec.source_id,
        key=spec.key,
        value_kind=spec.value_kind.value,
        masked=spec.masked,
        protected=spec.protected,
        scope=spec.scope,
        description=spec.description,
        classifier=spec.classifier,
    )


def validation_to_schema(report: ValidationReport) -> ValidationSchema:
    return ValidationSchema(
        valid=report.valid,
        errors=list(report.errors),
        warnings=list(report.warnings),
    )


def _record_to_response(record: MigrationRecord) -> MigrationRecordResponse:
    return MigrationRecordResponse(
        id=record.id,
        source_name=record.source_name,
        readiness_score=record.readiness_score,
        complexity_tier=record.complexity_tier,
        extraction_confidence=record.extraction_confidence,
        plugin_count=record.plugin_count,
        variable_count=record.variable_count,
        review_count=record.review_count,
        created_at=record.created_at,
    )


@router.post("/api/translate", response_model=TranslateResponse)
async def translate_pipeline(
    payload: TranslateRequest,
    session: AsyncSession = Depends(get_session),
) -> TranslateResponse:
    """Translate a Jenkinsfile into GitLab CI/CD configuration."""
    service = TranslationService(session)

    try:
        outcome = await service.translate(
            payload.script,
            source_name=payload.source_name,
            options=payload.to_options(),
            enrich=payload.enrich,
            project_context=payload.project_context,
        )
    except TranslationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    result = outcome.result
    extraction = result.extraction
    return TranslateResponse(
        configuration=result.configuration,
        checklist=result.checklist,
        summary=summary_to_schema(result.summary),
        complexity_tier=result.tier,
        extraction=ExtractionSchema(
            method=extraction.method,
            confidence=extraction.confidence,
            style=extraction.features.style,
            stages=list(extraction.features.stage_names),
            unparsed=[
                UnparsedRegionSchema(
                    text=region.text,
                    start_line=region.start_line,
                    end_line=region.end_line,
                    reason=region.reason,
                )
                for region in extraction.unparsed
            ],
        ),
        verdicts=[verdict_to_schema(v) for v in result.verdicts],
        variables=[variable_to_schema(s) for s in result.specs],
        validation=validation_to_schema(result.validation),
        lint=ValidationSchema(valid=result.lint.valid, errors=list(result.lint.errors), warnings=[]),
        review_count=result.review_count,
        enriched=outcome.enriched,
        record_id=outcome.record_id,
    )


@router.get("/api/translate/log", response_model=list[MigrationRecordResponse])
async def get_translation_history(
    session: AsyncSession = Depends(get_session),
    limit: int = Query(20, ge=1, le=200, description="Maximum number of records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
) -> list[MigrationRecordResponse]:
    """List past translations, newest first."""
    service = TranslationService(session)
    records = await service.get_history(limit=limit, offset=offset)
    return [_record_to_response(record) for record in records]


@router.get("/api/translate/log/{record_id}", response_model=MigrationRecordDetailResponse)
async def get_translation_record(
    record_id: int,
    session: AsyncSession = Depends(get_session),
) -> MigrationRecordDetailResponse:
    """Fetch one past translation including its output."""
    service = TranslationService(session)
    record = await service.get_record(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Migration record {record_id} not found")
    return MigrationRecordDetailResponse(
        **_record_to_response(record).model_dump(),
        source_text=record.source_text,
        output_text=record.output_text,
        checklist=record.checklist,
    )
