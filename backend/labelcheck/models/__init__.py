"""Pydantic models for label data, verdicts, and request/response schemas."""

from .schemas import (
    BeverageType,
    FieldKey,
    MatchStatus,
    OverallStatus,
    ExtractionConfidence,
    ApplicationData,
    WarningExtraction,
    ExtractedLabelData,
    FieldComparison,
    WarningComplianceResult,
    VerificationVerdict,
    BatchItemError,
    BatchProgress,
    VerificationResponse,
    ExtractionResponse,
    BatchVerificationResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "BeverageType",
    "FieldKey",
    "MatchStatus",
    "OverallStatus",
    "ExtractionConfidence",
    "ApplicationData",
    "WarningExtraction",
    "ExtractedLabelData",
    "FieldComparison",
    "WarningComplianceResult",
    "VerificationVerdict",
    "BatchItemError",
    "BatchProgress",
    "VerificationResponse",
    "ExtractionResponse",
    "BatchVerificationResponse",
    "ErrorResponse",
    "HealthResponse",
]
