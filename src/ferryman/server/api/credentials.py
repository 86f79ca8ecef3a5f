"""Credential scan endpoint."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ferryman.data.database import get_session
from ferryman.engine.pipeline import TranslationError
from ferryman.server.api.translation import validation_to_schema, variable_to_schema
from ferryman.server.schemas.translation import (
    CredentialHitSchema,
    CredentialScanRequest,
    CredentialScanResponse,
    UsageAnalysisSchema,
)
from ferryman.server.services.translation import TranslationService

router = APIRouter()


@router.post("/api/credentials", response_model=CredentialScanResponse)
async def scan_credentials(
    payload: CredentialScanRequest,
    session: AsyncSession = Depends(get_session),
) -> CredentialScanResponse:
    """Plan GitLab CI/CD variables for the credentials a Jenkinsfile uses."""
    service = TranslationService(session)
    try:
        outcome = await service.scan_credentials(
            payload.script,
            payload.to_options(),
            project_id=payload.project_id,
            dry_run=payload.dry_run,
            batch_size=payload.batch_size,
        )
    except TranslationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    analysis = outcome.analysis
    return CredentialScanResponse(
        hits=[
            CredentialHitSchema(
                source_id=h.source_id, line=h.line, kind=h.kind.value, matched_text=h.matched_text
            )
            for h in outcome.hits
        ],
        variables=[variable_to_schema(s) for s in outcome.specs],
        validation=validation_to_schema(outcome.validation),
        analysis=UsageAnalysisSchema(
            total=analysis.total,
            by_kind=analysis.by_kind,
            potential_secrets=list(analysis.potential_secrets),
            recommendations=list(analysis.recommendations),
        ),
        env_file=outcome.env_file,
        provisioning_script=outcome.provisioning_script,
    )
