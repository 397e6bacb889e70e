"""Label data extraction using Claude vision with a forced tool call.

The model reads the label image and records what it sees through the
record_label_data tool, whose input schema mirrors ExtractedLabelData.
Nothing is retried here: a failed call surfaces as ExtractionError.
"""

import base64
import io
import logging
import time
from typing import Optional, Protocol

import anthropic
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from ..config import get_settings
from ..models.schemas import ExtractedLabelData

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """The extraction service could not produce label data."""


class UnsupportedImageError(ExtractionError):
    """The image format is not accepted by the extraction service."""


# Pillow format name -> media type accepted by the vision API
PIL_FORMAT_MEDIA_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}

MEDIA_TYPE_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}

SUPPORTED_MEDIA_TYPES = frozenset(PIL_FORMAT_MEDIA_TYPES.values())


def normalize_media_type(media_type: str) -> str:
    """
    Canonicalize a media type and check it is supported.

    Raises:
        UnsupportedImageError: If the media type is not a supported image type
    """
    media_type = media_type.strip().lower()
    media_type = MEDIA_TYPE_ALIASES.get(media_type, media_type)
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise UnsupportedImageError(
            f"Unsupported image format '{media_type}'. Accepted: JPEG, PNG, WebP, GIF"
        )
    return media_type


def detect_media_type(image_bytes: bytes) -> str:
    """
    Detect the media type of an image from its contents.

    Raises:
        UnsupportedImageError: If the bytes are not a readable, supported image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedImageError(f"Unable to read image: {e}") from e

    media_type = PIL_FORMAT_MEDIA_TYPES.get(image_format or "")
    if media_type is None:
        raise UnsupportedImageError(
            f"Unsupported image format '{image_format}'. Accepted: JPEG, PNG, WebP, GIF"
        )
    return media_type


EXTRACTION_SYSTEM_PROMPT = """You are a TTB (Alcohol and Tobacco Tax and Trade Bureau) label compliance expert. You are examining a photograph of an alcohol beverage label.

Extract ALL visible text from the label and organize it into the structured fields provided. Pay special attention to:

1. GOVERNMENT WARNING: Look for the mandatory health warning statement. Assess whether "GOVERNMENT WARNING:" appears in ALL CAPITALS and whether it appears BOLD (heavier weight than surrounding text). Assess whether the body text of the warning is NOT bold. Assess whether the warning appears visually separate from other label text.

2. Brand name: The primary commercial brand name, typically the largest or most prominent text. Do NOT include sub-brand names, line names, or fanciful names. Do NOT include "Reserve", "Estate", "Select", etc. unless they are part of the core brand name.

3. Class/type: The TTB class or type designation (e.g., "Kentucky Straight Bourbon Whiskey", "Cabernet Sauvignon", "India Pale Ale"). Extract ONLY the regulatory class/type, not fanciful names or marketing terms.

4. Alcohol content: The alcohol by volume statement exactly as printed, including any "Alc.", "by Vol.", "Proof" text (e.g., "40% ALC/VOL", "Alc. 14.1% by Vol.").

5. Net contents: Volume statement (e.g., "750 mL", "12 FL OZ"). Set to null ONLY if genuinely not visible anywhere on the label.

6. Producer/bottler: Name and address of the responsible party ("Produced by", "Bottled by", "Vinted by", etc.). On wine labels without a prefix, the vineyard or estate name is the producer name and the city/region below it is the producer address.

7. Country of origin: If visible (required for imported products).

8. Appellation of origin: For wines, the geographic designation (e.g., "Napa Valley"). The same text may serve as both appellation and producer address; extract it for BOTH fields.

9. Vintage year: For wines, the harvest year if shown.

10. Sulfites declaration: "Contains Sulfites" if present.

If a field is not visible or readable on the label, set it to null.
Set confidence to 'low' if the image is blurry, partially obscured, or at a severe angle.
Add notes about image quality issues in raw_notes."""

EXTRACTION_TOOL_NAME = "record_label_data"

_NULLABLE_STRING = ["string", "null"]

EXTRACTION_TOOL = {
    "name": EXTRACTION_TOOL_NAME,
    "description": "Record all extracted data from the alcohol beverage label image",
    "input_schema": {
        "type": "object",
        "properties": {
            "brand_name": {
                "type": _NULLABLE_STRING,
                "description": "The primary brand name only. Exclude sub-brands, line names, and terms like 'Reserve' or 'Estate'.",
            },
            "class_type_designation": {
                "type": _NULLABLE_STRING,
                "description": "The TTB class/type designation only (e.g., 'Cabernet Sauvignon', 'Kentucky Straight Bourbon Whiskey').",
            },
            "alcohol_content": {
                "type": _NULLABLE_STRING,
                "description": "The full alcohol content statement exactly as printed (e.g., '40% ALC/VOL', 'Alc. 14.1% by Vol.').",
            },
            "net_contents": {
                "type": _NULLABLE_STRING,
                "description": "The net contents statement (e.g., '750 mL', '12 FL OZ').",
            },
            "producer_name": {
                "type": _NULLABLE_STRING,
                "description": "Name of the producer, bottler, distiller, importer, or estate/vineyard.",
            },
            "producer_address": {
                "type": _NULLABLE_STRING,
                "description": "Address of the producer/bottler (city and region count).",
            },
            "country_of_origin": {
                "type": _NULLABLE_STRING,
                "description": "Country of origin if stated on the label",
            },
            "appellation": {
                "type": _NULLABLE_STRING,
                "description": "Appellation of origin for wines (e.g., 'Napa Valley').",
            },
            "vintage_year": {
                "type": _NULLABLE_STRING,
                "description": "Four-digit vintage/harvest year for wines.",
            },
            "government_warning": {
                "type": "object",
                "description": "Government Health Warning Statement analysis",
                "properties": {
                    "present": {
                        "type": "boolean",
                        "description": "Whether a Government Warning statement is present",
                    },
                    "full_text": {
                        "type": _NULLABLE_STRING,
                        "description": "The complete text of the warning statement as it appears on the label",
                    },
                    "header_in_caps": {
                        "type": "boolean",
                        "description": 'Whether "GOVERNMENT WARNING:" appears in all capital letters',
                    },
                    "header_appears_bold": {
                        "type": "boolean",
                        "description": 'Whether "GOVERNMENT WARNING:" appears in bold/heavier type weight',
                    },
                    "body_text_appears_bold": {
                        "type": "boolean",
                        "description": "Whether the body text after GOVERNMENT WARNING: appears bold",
                    },
                    "separate_from_other_text": {
                        "type": "boolean",
                        "description": "Whether the warning appears visually separate from other label text",
                    },
                },
                "required": [
                    "present",
                    "full_text",
                    "header_in_caps",
                    "header_appears_bold",
                    "body_text_appears_bold",
                    "separate_from_other_text",
                ],
            },
            "sulfites_declaration": {
                "type": _NULLABLE_STRING,
                "description": "'Contains Sulfites' declaration if present",
            },
            "additional_text": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Any other notable text on the label not captured in other fields",
            },
            "confidence": {
                "type": "string",
                "enum": ["high", "medium", "low"],
                "description": "Confidence in the extraction based on image quality",
            },
            "raw_notes": {
                "type": "string",
                "description": "Notes about image quality, readability issues, or other observations",
            },
        },
        "required": [
            "brand_name",
            "class_type_designation",
            "alcohol_content",
            "net_contents",
            "producer_name",
            "producer_address",
            "country_of_origin",
            "appellation",
            "vintage_year",
            "government_warning",
            "sulfites_declaration",
            "additional_text",
            "confidence",
            "raw_notes",
        ],
    },
}


class LabelExtractor(Protocol):
    """Turns a label image into structured label data."""

    async def extract(self, image_bytes: bytes, media_type: str) -> ExtractedLabelData:
        ...


def parse_tool_response(response) -> ExtractedLabelData:
    """
    Pull the record_label_data tool input out of a Messages API response.

    Raises:
        ExtractionError: If there is no tool call or its input is malformed
    """
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "tool_use" and getattr(block, "name", None) == EXTRACTION_TOOL_NAME:
            try:
                return ExtractedLabelData.model_validate(block.input)
            except ValidationError as e:
                raise ExtractionError(f"Malformed extraction returned from AI model: {e}") from e
    raise ExtractionError("No structured extraction returned from AI model")


class AnthropicLabelExtractor:
    """Extracts label data with the Anthropic Messages API."""

    def __init__(self, client: Optional[anthropic.AsyncAnthropic] = None):
        self.settings = get_settings()
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.settings.anthropic_api_key)

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazy-initialize the client so settings can be supplied after import."""
        if self._client is None:
            if not self.settings.anthropic_api_key:
                raise ExtractionError("ANTHROPIC_API_KEY is not set")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                max_retries=0,
                timeout=self.settings.extraction_timeout_seconds,
            )
        return self._client

    async def extract(self, image_bytes: bytes, media_type: str) -> ExtractedLabelData:
        """
        Extract structured label data from an image.

        Args:
            image_bytes: Raw image file contents
            media_type: Image media type (e.g. image/png)

        Returns:
            ExtractedLabelData as recorded by the model

        Raises:
            ExtractionError: On unsupported format, API failure, or malformed output
        """
        media_type = normalize_media_type(media_type)
        client = self._get_client()

        start_time = time.time()
        b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
        logger.info(f"Extracting label data: model={self.settings.extraction_model} payload={len(image_bytes) / 1024:.0f}KB")

        try:
            response = await client.messages.create(
                model=self.settings.extraction_model,
                max_tokens=self.settings.extraction_max_tokens,
                system=EXTRACTION_SYSTEM_PROMPT,
                tools=[EXTRACTION_TOOL],
                tool_choice={"type": "tool", "name": EXTRACTION_TOOL_NAME},
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": b64,
                                },
                            },
                            {
                                "type": "text",
                                "text": "Extract all label data from this alcohol beverage label image. Be thorough and accurate.",
                            },
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            raise ExtractionError(f"Extraction service error: {e}") from e

        extracted = parse_tool_response(response)
        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Extraction complete ({elapsed_ms}ms, confidence={extracted.confidence.value})")
        return extracted
