"""Verification service for comparing extracted label data against application data."""

import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging

from ..models.schemas import (
    ApplicationData,
    ExtractedLabelData,
    FieldComparison,
    FieldKey,
    MatchStatus,
    OverallStatus,
    VerificationVerdict,
    WarningComplianceResult,
)
from .fields import FieldDefinition, get_field_definitions
from .warning import validate_government_warning

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def classify_score(score: int, threshold: int) -> MatchStatus:
    """Map a comparator score to a match status using the field threshold."""
    if score == 100:
        return MatchStatus.MATCH
    if score >= threshold:
        return MatchStatus.PARTIAL_MATCH
    return MatchStatus.MISMATCH


def comparison_note(
    key: FieldKey,
    expected: str,
    extracted: str,
    score: int,
    status: MatchStatus,
) -> str:
    """Human-readable explanation for a compared field."""
    if status == MatchStatus.MATCH:
        return "Values match"
    if status == MatchStatus.PARTIAL_MATCH:
        return f"Similar ({score}% match), minor differences in formatting or casing"
    if key == FieldKey.ALCOHOL_CONTENT:
        return f'Alcohol content mismatch: expected "{expected}", found "{extracted}"'
    if key == FieldKey.NET_CONTENTS:
        return f'Net contents mismatch: expected "{expected}", found "{extracted}"'
    return f'Mismatch ({score}% similarity): expected "{expected}", found "{extracted}"'


def compare_field(
    definition: FieldDefinition,
    expected: Optional[str],
    extracted: Optional[str],
) -> Optional[FieldComparison]:
    """
    Compare one field.

    Returns None when neither the application nor the label has a value,
    in which case the field is left out of the report.
    """
    if _is_blank(expected):
        if _is_blank(extracted):
            return None
        return FieldComparison(
            field_key=definition.key,
            display_name=definition.display_name,
            expected=None,
            extracted=extracted,
            status=MatchStatus.NOT_REQUIRED,
            similarity_score=-1,
            notes="Not provided in application, found on label",
        )

    if _is_blank(extracted):
        return FieldComparison(
            field_key=definition.key,
            display_name=definition.display_name,
            expected=expected,
            extracted=None,
            status=MatchStatus.MISSING,
            similarity_score=0,
            notes="Required field not found on label",
        )

    score = definition.comparator(expected, extracted)
    status = classify_score(score, definition.threshold)
    logger.debug(f"{definition.key.value}: '{extracted}' vs '{expected}' -> score={score} ({status.value})")

    return FieldComparison(
        field_key=definition.key,
        display_name=definition.display_name,
        expected=expected,
        extracted=extracted,
        status=status,
        similarity_score=score,
        notes=comparison_note(definition.key, expected, extracted, score, status),
    )


def compare_fields(
    extracted: ExtractedLabelData,
    application: ApplicationData,
) -> List[FieldComparison]:
    """
    Compare every applicable field, in registry order.

    Raises:
        UnknownBeverageTypeError: If the application's beverage type is not registered
    """
    comparisons = []
    for definition in get_field_definitions(application.beverage_type):
        comparison = compare_field(
            definition,
            application.value_for(definition.key),
            extracted.value_for(definition.key),
        )
        if comparison is not None:
            comparisons.append(comparison)
    return comparisons


def determine_overall_status(
    comparisons: List[FieldComparison],
    warning: WarningComplianceResult,
) -> OverallStatus:
    """
    Combine field comparisons and warning compliance into one outcome.

    Rules, first match wins:
    1. Any mismatch -> rejected
    2. Half or more of the compared fields missing -> rejected
    3. Some fields missing, a partial match, or only the warning missing -> needs review
    4. Any other warning issue -> needs review
    5. Otherwise -> approved

    Front-only photos often miss producer, warning, and net contents text,
    so a few missing fields go to review rather than rejection.
    """
    mismatch_count = sum(1 for c in comparisons if c.status == MatchStatus.MISMATCH)
    missing_count = sum(1 for c in comparisons if c.status == MatchStatus.MISSING)
    compared_count = sum(1 for c in comparisons if c.status != MatchStatus.NOT_REQUIRED)
    has_partial_match = any(c.status == MatchStatus.PARTIAL_MATCH for c in comparisons)
    has_warning_issues = len(warning.issues) > 0
    warning_missing_only = len(warning.issues) == 1 and not warning.present

    if mismatch_count > 0:
        return OverallStatus.REJECTED
    # Un-rounded: with 3 compared fields, 2 missing already rejects
    if missing_count >= compared_count / 2:
        return OverallStatus.REJECTED
    if missing_count > 0 or has_partial_match or warning_missing_only:
        return OverallStatus.NEEDS_REVIEW
    if has_warning_issues:
        return OverallStatus.NEEDS_REVIEW
    return OverallStatus.APPROVED


def generate_summary(
    comparisons: List[FieldComparison],
    warning: WarningComplianceResult,
    overall_status: OverallStatus,
) -> str:
    """Generate human-readable summary."""
    if overall_status == OverallStatus.APPROVED:
        return "✅ All fields verified successfully. Label matches application data."

    issues = []
    for c in comparisons:
        if c.status in (MatchStatus.MISMATCH, MatchStatus.MISSING):
            issues.append(f"❌ {c.display_name}: {c.notes}")
        elif c.status == MatchStatus.PARTIAL_MATCH:
            issues.append(f"⚠️ {c.display_name}: {c.notes}")
    for issue in warning.issues:
        issues.append(f"⚠️ Government Warning: {issue}")

    if overall_status == OverallStatus.REJECTED:
        header = "❌ Verification failed. Issues found:"
    else:
        header = "⚠️ Review recommended. Potential issues:"

    return header + "\n" + "\n".join(issues)


class VerificationService:
    """Compares extracted label data against expected application data."""

    def __init__(
        self,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.id_factory = id_factory
        self.clock = clock

    def verify(
        self,
        extracted: ExtractedLabelData,
        application: ApplicationData,
        image_file_name: str = "",
        processing_time_ms: int = 0,
    ) -> VerificationVerdict:
        """
        Verify extracted label data against the application.

        Args:
            extracted: Structured data read from the label image
            application: Expected values from the application
            image_file_name: Name of the label image, echoed on the verdict
            processing_time_ms: Time already spent producing the extraction

        Returns:
            VerificationVerdict with per-field comparisons and overall status
        """
        comparisons = compare_fields(extracted, application)
        warning_result = validate_government_warning(extracted.government_warning)
        overall_status = determine_overall_status(comparisons, warning_result)

        logger.info(
            f"Verified {image_file_name or 'label'}: {overall_status.value} "
            f"({len(comparisons)} fields, {len(warning_result.issues)} warning issues)"
        )

        return VerificationVerdict(
            id=self.id_factory(),
            timestamp=self.clock(),
            image_file_name=image_file_name,
            beverage_type=application.beverage_type,
            overall_status=overall_status,
            field_comparisons=comparisons,
            government_warning_result=warning_result,
            extracted_data=extracted,
            summary=generate_summary(comparisons, warning_result, overall_status),
            processing_time_ms=processing_time_ms,
        )
