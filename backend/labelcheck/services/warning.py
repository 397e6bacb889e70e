"""Government health warning compliance checks (27 CFR part 16)."""

import re
import logging

from ..models.schemas import WarningComplianceResult, WarningExtraction
from .matching import edit_similarity

logger = logging.getLogger(__name__)


REQUIRED_WARNING_TEXT = (
    "GOVERNMENT WARNING: (1) According to the Surgeon General, women should not "
    "drink alcoholic beverages during pregnancy because of the risk of birth defects. "
    "(2) Consumption of alcoholic beverages impairs your ability to drive a car or "
    "operate machinery, and may cause health problems."
)

# Tolerates transcription noise (stray spaces, a dropped comma) but not a changed word
TEXT_SIMILARITY_THRESHOLD = 97

WARNING_NOT_FOUND = "Government Warning statement not found on label"


def _normalize_warning_text(text: str) -> str:
    """Straighten smart quotes and collapse whitespace. Case and punctuation are kept."""
    text = re.sub(r"[‘’‚‛]", "'", text)
    text = re.sub(r"[“”„‟]", '"', text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def warning_text_similarity(text: str) -> int:
    """Similarity (0-100) of a transcribed warning to the required wording."""
    extracted = _normalize_warning_text(text).lower()
    required = _normalize_warning_text(REQUIRED_WARNING_TEXT).lower()
    return edit_similarity(extracted, required)


def validate_government_warning(warning: WarningExtraction) -> WarningComplianceResult:
    """
    Validate the government warning for presence, wording, and formatting.

    Args:
        warning: Warning details read from the label

    Returns:
        WarningComplianceResult; issues is empty only when fully compliant
    """
    if not warning.present or not warning.full_text:
        return WarningComplianceResult(
            present=False,
            text_correct=False,
            formatting_correct=False,
            issues=[WARNING_NOT_FOUND],
        )

    issues = []

    score = warning_text_similarity(warning.full_text)
    text_correct = score >= TEXT_SIMILARITY_THRESHOLD
    if not text_correct:
        logger.debug(f"Warning text similarity {score}% below {TEXT_SIMILARITY_THRESHOLD}%")
        issues.append(
            f"Government Warning text does not match required wording ({score}% similarity)"
        )

    if not warning.header_in_caps:
        issues.append('"GOVERNMENT WARNING:" is not in all capitals')

    if not warning.header_appears_bold:
        issues.append('"GOVERNMENT WARNING:" does not appear to be in bold type')

    if warning.body_text_appears_bold:
        issues.append("Warning body text appears to be in bold type (should not be bold)")

    if not warning.separate_from_other_text:
        issues.append("Warning statement does not appear visually separate from other label text")

    formatting_correct = (
        warning.header_in_caps
        and warning.header_appears_bold
        and not warning.body_text_appears_bold
        and warning.separate_from_other_text
    )

    return WarningComplianceResult(
        present=True,
        text_correct=text_correct,
        formatting_correct=formatting_correct,
        issues=issues,
    )
