"""Pydantic schemas for API request/response validation."""

from ferryman.server.schemas.common import ErrorResponse, HealthResponse
from ferryman.server.schemas.translation import (
    CredentialScanRequest,
    CredentialScanResponse,
    MigrationRecordDetailResponse,
    MigrationRecordResponse,
    PluginScanRequest,
    PluginScanResponse,
    TranslateRequest,
    TranslateResponse,
)

__all__ = [
    "CredentialScanRequest",
    "CredentialScanResponse",
    "ErrorResponse",
    "HealthResponse",
    "MigrationRecordDetailResponse",
    "MigrationRecordResponse",
    "PluginScanRequest",
    "PluginScanResponse",
    "TranslateRequest",
    "TranslateResponse",
]
