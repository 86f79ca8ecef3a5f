"""Translation service: runs the engine and keeps the audit trail."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import anyio
import anyio.to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ferryman.data.models.audit_event import AuditAction
from ferryman.data.models.migration_record import MigrationRecord
from ferryman.data.repositories.audit_event import AuditEventRepository
from ferryman.data.repositories.migration_record import MigrationRecordRepository
from ferryman.engine.credentials import ResolveOptions, UsageAnalysis
from ferryman.engine.models import (
    CredentialHit,
    ExtractionResult,
    PluginHit,
    PluginVerdict,
    ReadinessSummary,
    ValidationReport,
    VariableSpec,
)
from ferryman.engine.pipeline import MigrationEngine, MigrationResult, validate_input
from ferryman.server.services.enrichment import EnrichmentService

logger = logging.getLogger(__name__)

# One engine per process; it holds no per-run state.
_default_engine = MigrationEngine()


@dataclass(frozen=True)
class TranslationOutcome:
    """Engine result plus what the service added around it."""

    result: MigrationResult
    record_id: int | None
    enriched: bool


@dataclass(frozen=True)
class PluginScanOutcome:
    hits: list[PluginHit]
    verdicts: list[PluginVerdict]
    summary: ReadinessSummary
    checklist: str


@dataclass(frozen=True)
class CredentialScanOutcome:
    hits: list[CredentialHit]
    specs: list[VariableSpec]
    validation: ValidationReport
    analysis: UsageAnalysis
    env_file: str
    provisioning_script: str


class TranslationService:
    """Service for translating pipelines with audit logging."""

    def __init__(
        self,
        session: AsyncSession,
        engine: MigrationEngine | None = None,
        enrichment: EnrichmentService | None = None,
    ) -> None:
        """
        Initialize the translation service.

        Args:
            session: Database session for records and audit events
            engine: Migration engine (shared default if omitted)
            enrichment: Enrichment collaborator, created lazily when needed
        """
        self.session = session
        self.engine = engine or _default_engine
        self.enrichment = enrichment
        self.record_repo = MigrationRecordRepository(session)
        self.audit_repo = AuditEventRepository(session)

    async def _scan(self, script: str) -> tuple[ExtractionResult, list[PluginHit], list[CredentialHit]]:
        """Run the three independent scanners concurrently."""
        results: dict[str, Any] = {}

        async def run(name: str, func: Any) -> None:
            results[name] = await anyio.to_thread.run_sync(func, script)

        async with anyio.create_task_group() as tg:
            tg.start_soon(run, "extraction", self.engine.extractor.extract_with_confidence)
            tg.start_soon(run, "plugins", self.engine.plugins.scan)
            tg.start_soon(run, "credentials", self.engine.credentials.scan)

        return results["extraction"], results["plugins"], results["credentials"]

    async def translate(
        self,
        script: str,
        *,
        source_name: str | None = None,
        options: ResolveOptions | None = None,
        enrich: bool = False,
        project_context: str | None = None,
        generated_at: datetime | None = None,
    ) -> TranslationOutcome:
        """
        Translate a Jenkinsfile and record the run.

        Args:
            script: Jenkinsfile content
            source_name: Optional file name for the history
            options: Credential resolution options
            enrich: Ask the enrichment collaborator for capability notes
            project_context: Free-text project description for enrichment
            generated_at: Header timestamp override

        Returns:
            TranslationOutcome; record_id is None when persistence failed

        Raises:
            TranslationError: If the input is invalid
        """
        validate_input(script, options)
        extraction, plugin_hits, credential_hits = await self._scan(script)
        verdicts = self.engine.plugins.resolve(plugin_hits)

        enriched = False
        if enrich and verdicts:
            if self.enrichment is None:
                self.enrichment = EnrichmentService()
            verdicts = await self.enrichment.enrich_verdicts(verdicts, script, project_context)
            enriched = any(v.enrichment_note for v in verdicts)

        result = self.engine.assemble_resolved(
            extraction, plugin_hits, verdicts, credential_hits, options, generated_at
        )
        record_id = await self._persist(script, source_name, result)

        logger.info(
            "Translated %s: score %s, tier %s, %s variables, %s review items",
            source_name or "pipeline",
            result.summary.score,
            result.tier,
            len(result.specs),
            result.review_count,
        )
        return TranslationOutcome(result=result, record_id=record_id, enriched=enriched)

    async def scan_plugins(self, script: str) -> PluginScanOutcome:
        """Detect capabilities and resolve them without synthesizing."""
        validate_input(script)
        plugins = self.engine.plugins
        hits = await anyio.to_thread.run_sync(plugins.scan, script)
        verdicts = plugins.resolve(hits)
        summary = plugins.summarize(verdicts)
        await self._audit(
            AuditAction.PLUGIN_SCAN,
            {"capabilities": [v.id for v in verdicts], "score": summary.score},
        )
        return PluginScanOutcome(
            hits=hits,
            verdicts=verdicts,
            summary=summary,
            checklist=plugins.render_checklist(verdicts),
        )

    async def scan_credentials(
        self,
        script: str,
        options: ResolveOptions | None = None,
        *,
        project_id: str = "",
        dry_run: bool = True,
        batch_size: int = 10,
    ) -> CredentialScanOutcome:
        """Plan CI/CD variables and provisioning artifacts for a Jenkinsfile."""
        validate_input(script, options)
        credentials = self.engine.credentials
        hits = await anyio.to_thread.run_sync(credentials.scan, script)
        specs = credentials.resolve(hits, options)
        await self._audit(
            AuditAction.CREDENTIAL_SCAN,
            {"credential_ids": [h.source_id for h in hits], "keys": [s.key for s in specs]},
        )
        return CredentialScanOutcome(
            hits=hits,
            specs=specs,
            validation=credentials.validate(specs),
            analysis=credentials.analyze_usage(hits),
            env_file=credentials.render_env_file(specs),
            provisioning_script=credentials.render_provisioning_script(
                specs, project_id=project_id, dry_run=dry_run, batch_size=batch_size
            ),
        )

    async def get_history(self, limit: int = 20, offset: int = 0) -> list[MigrationRecord]:
        return await self.record_repo.list_recent(limit=limit, offset=offset)

    async def get_record(self, record_id: int) -> MigrationRecord | None:
        return await self.record_repo.get_by_id(record_id)

    async def _persist(self, script: str, source_name: str | None, result: MigrationResult) -> int | None:
        try:
            record = await self.record_repo.create(
                source_name=source_name,
                source_text=script,
                output_text=result.configuration,
                checklist=result.checklist,
                readiness_score=result.summary.score,
                complexity_tier=result.tier,
                extraction_confidence=result.extraction.confidence,
                plugin_count=result.summary.total,
                variable_count=len(result.specs),
                review_count=result.review_count,
            )
            await self.audit_repo.create(
                action=AuditAction.TRANSLATE,
                record_id=record.id,
                details={
                    "score": result.summary.score,
                    "tier": result.tier,
                    "method": result.extraction.method,
                    "variables": [spec.key for spec in result.specs],
                },
            )
        except SQLAlchemyError as e:
            logger.warning("Failed to persist migration record: %s", e)
            await self.session.rollback()
            return None
        return record.id

    async def _audit(self, action: AuditAction, details: dict[str, Any]) -> None:
        try:
            await self.audit_repo.create(action=action, details=details)
        except SQLAlchemyError as e:
            logger.warning("Failed to write audit event %s: %s", action.value, e)
            await self.session.rollback()
