"""Plugin scan endpoint."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ferryman.data.database import get_session
from ferryman.engine.pipeline import TranslationError
from ferryman.server.api.translation import summary_to_schema, verdict_to_schema
from ferryman.server.schemas.translation import (
    PluginHitSchema,
    PluginScanRequest,
    PluginScanResponse,
)
from ferryman.server.services.translation import TranslationService

router = APIRouter()


@router.post("/api/plugins/scan", response_model=PluginScanResponse)
async def scan_plugins(
    payload: PluginScanRequest,
    session: AsyncSession = Depends(get_session),
) -> PluginScanResponse:
    """Detect Jenkins capabilities and report GitLab compatibility."""
    service = TranslationService(session)
    try:
        outcome = await service.scan_plugins(payload.script)
    except TranslationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return PluginScanResponse(
        hits=[
            PluginHitSchema(id=h.id, line=h.line, matched_text=h.matched_text, confidence=h.confidence)
            for h in outcome.hits
        ],
        verdicts=[verdict_to_schema(v) for v in outcome.verdicts],
        summary=summary_to_schema(outcome.summary),
        checklist=outcome.checklist,
    )
