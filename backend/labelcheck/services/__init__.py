"""Services for label matching, verification, extraction, and batch processing."""

from .matching import (
    normalize,
    similarity_score,
    compare_alcohol_content,
    compare_net_contents,
    extract_alcohol_percentage,
    extract_net_contents,
)
from .fields import FieldDefinition, ComparatorKind, UnknownBeverageTypeError, get_field_definitions
from .warning import REQUIRED_WARNING_TEXT, validate_government_warning
from .verification import VerificationService, compare_fields, determine_overall_status
from .extraction import (
    LabelExtractor,
    AnthropicLabelExtractor,
    ExtractionError,
    UnsupportedImageError,
    detect_media_type,
    normalize_media_type,
)
from .pipeline import VerificationPipeline
from .batch import BatchItem, BatchRun, BatchState
from .history import VerificationHistory

__all__ = [
    "normalize",
    "similarity_score",
    "compare_alcohol_content",
    "compare_net_contents",
    "extract_alcohol_percentage",
    "extract_net_contents",
    "FieldDefinition",
    "ComparatorKind",
    "UnknownBeverageTypeError",
    "get_field_definitions",
    "REQUIRED_WARNING_TEXT",
    "validate_government_warning",
    "VerificationService",
    "compare_fields",
    "determine_overall_status",
    "LabelExtractor",
    "AnthropicLabelExtractor",
    "ExtractionError",
    "UnsupportedImageError",
    "detect_media_type",
    "normalize_media_type",
    "VerificationPipeline",
    "BatchItem",
    "BatchRun",
    "BatchState",
    "VerificationHistory",
]
