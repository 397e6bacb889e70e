"""Pydantic schemas for label data, verification verdicts, and API responses."""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class BeverageType(str, Enum):
    """Product category; decides which optional fields are compared."""
    SPIRITS = "spirits"
    WINE = "wine"
    BEER = "beer"


class FieldKey(str, Enum):
    """Label fields the verification engine knows how to compare."""
    BRAND_NAME = "brand_name"
    CLASS_TYPE_DESIGNATION = "class_type_designation"
    ALCOHOL_CONTENT = "alcohol_content"
    NET_CONTENTS = "net_contents"
    PRODUCER_NAME = "producer_name"
    PRODUCER_ADDRESS = "producer_address"
    COUNTRY_OF_ORIGIN = "country_of_origin"
    APPELLATION = "appellation"
    VINTAGE_YEAR = "vintage_year"


class MatchStatus(str, Enum):
    """Status of a single field comparison."""
    MATCH = "match"
    PARTIAL_MATCH = "partial_match"
    MISMATCH = "mismatch"
    MISSING = "missing"
    NOT_REQUIRED = "not_required"


class OverallStatus(str, Enum):
    """Aggregated outcome for one label."""
    APPROVED = "approved"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"


class ExtractionConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ApplicationData(BaseModel):
    """Expected values submitted with the label application."""
    beverage_type: BeverageType
    brand_name: str = Field(..., min_length=1, description="Expected brand name")
    class_type_designation: Optional[str] = Field(None, description="Expected class/type (e.g., Kentucky Straight Bourbon Whiskey)")
    alcohol_content: Optional[str] = Field(None, description="Expected alcohol statement (e.g., 45% Alc./Vol.)")
    net_contents: Optional[str] = Field(None, description="Expected net contents (e.g., 750 mL)")
    producer_name: Optional[str] = None
    producer_address: Optional[str] = None
    country_of_origin: Optional[str] = None
    appellation: Optional[str] = Field(None, description="Appellation of origin (wine only)")
    vintage_year: Optional[str] = Field(None, description="Vintage year (wine only)")

    def value_for(self, key: FieldKey) -> Optional[str]:
        """Expected value for a field."""
        return getattr(self, key.value)

    class Config:
        json_schema_extra = {
            "example": {
                "beverage_type": "spirits",
                "brand_name": "OLD TOM DISTILLERY",
                "class_type_designation": "Kentucky Straight Bourbon Whiskey",
                "alcohol_content": "45% Alc./Vol. (90 Proof)",
                "net_contents": "750 mL",
                "producer_name": "Old Tom Distillery",
                "producer_address": "Bardstown, KY",
            }
        }


class WarningExtraction(BaseModel):
    """Government health warning as read from the label."""
    present: bool = False
    full_text: Optional[str] = None
    header_in_caps: bool = False
    header_appears_bold: bool = False
    body_text_appears_bold: bool = False
    separate_from_other_text: bool = False


class ExtractedLabelData(BaseModel):
    """Structured label data returned by the extraction service."""
    brand_name: Optional[str] = None
    class_type_designation: Optional[str] = None
    alcohol_content: Optional[str] = None
    net_contents: Optional[str] = None
    producer_name: Optional[str] = None
    producer_address: Optional[str] = None
    country_of_origin: Optional[str] = None
    appellation: Optional[str] = None
    vintage_year: Optional[str] = None
    government_warning: WarningExtraction = Field(default_factory=WarningExtraction)
    sulfites_declaration: Optional[str] = None
    additional_text: list[str] = Field(default_factory=list)
    confidence: ExtractionConfidence = ExtractionConfidence.MEDIUM
    raw_notes: str = ""

    def value_for(self, key: FieldKey) -> Optional[str]:
        """Extracted value for a field."""
        return getattr(self, key.value)


class FieldComparison(BaseModel):
    """Result for a single field comparison."""
    field_key: FieldKey
    display_name: str
    expected: Optional[str] = None
    extracted: Optional[str] = None
    status: MatchStatus
    similarity_score: int = Field(..., ge=-1, le=100, description="-1 when no score applies")
    notes: str

    class Config:
        json_schema_extra = {
            "example": {
                "field_key": "brand_name",
                "display_name": "Brand Name",
                "expected": "Old Tom Distillery",
                "extracted": "OLD TOM DISTILLERY",
                "status": "match",
                "similarity_score": 100,
                "notes": "Values match"
            }
        }


class WarningComplianceResult(BaseModel):
    """Outcome of the government warning checks."""
    present: bool
    text_correct: bool
    formatting_correct: bool
    issues: list[str] = Field(default_factory=list)


class VerificationVerdict(BaseModel):
    """Overall verification result for a label."""
    id: str
    timestamp: datetime
    image_file_name: str = ""
    beverage_type: BeverageType
    overall_status: OverallStatus
    field_comparisons: list[FieldComparison]
    government_warning_result: WarningComplianceResult
    extracted_data: ExtractedLabelData
    summary: str
    processing_time_ms: int = 0


class BatchItemError(BaseModel):
    """A batch item that could not be verified."""
    file_name: str
    error: str


class BatchProgress(BaseModel):
    """Snapshot of a batch run, emitted after each chunk settles."""
    total: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    results: list[VerificationVerdict] = Field(default_factory=list)
    errors: list[BatchItemError] = Field(default_factory=list)


class VerificationResponse(BaseModel):
    """Response for single label verification."""
    success: bool
    result: Optional[VerificationVerdict] = None
    error: Optional[str] = None


class ExtractionResponse(BaseModel):
    """Response for extraction without verification."""
    success: bool
    extracted: Optional[ExtractedLabelData] = None
    processing_time_ms: int = 0
    error: Optional[str] = None


class BatchVerificationResponse(BaseModel):
    """Response for batch verification."""
    success: bool
    run_id: str
    status: str
    total: int
    completed: int
    failed: int
    approved: int
    needs_review: int
    rejected: int
    results: list[VerificationVerdict]
    errors: list[BatchItemError]
    processing_time_ms: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Invalid image format",
                "detail": "Allowed formats: JPEG, PNG, WEBP, GIF"
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    extractor_configured: bool
