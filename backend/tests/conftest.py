"""Shared test fixtures."""

import asyncio
import io
from datetime import datetime, timezone

import pytest
from PIL import Image

from labelcheck.models import (
    ApplicationData,
    BeverageType,
    ExtractedLabelData,
    WarningExtraction,
)
from labelcheck.services import REQUIRED_WARNING_TEXT, VerificationService


FIXED_TIME = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


class FakeExtractor:
    """
    Stand-in for the extraction service.

    Returns a copy of ``extraction`` for every image, except images whose
    bytes are in ``failures``, which raise the mapped exception. Records
    start/end events so tests can check how calls overlap.
    """

    def __init__(self, extraction, failures=None, on_extract=None, delay=0.0):
        self.extraction = extraction
        self.failures = failures or {}
        self.on_extract = on_extract
        self.delay = delay
        self.calls = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract(self, image_bytes, media_type):
        self.calls.append((image_bytes, media_type))
        self.events.append(("start", image_bytes))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_extract is not None:
                self.on_extract(image_bytes)
            await asyncio.sleep(self.delay)
            if image_bytes in self.failures:
                raise self.failures[image_bytes]
            return self.extraction.model_copy(deep=True)
        finally:
            self.in_flight -= 1
            self.events.append(("end", image_bytes))


@pytest.fixture
def compliant_warning():
    """Government warning exactly as required."""
    return WarningExtraction(
        present=True,
        full_text=REQUIRED_WARNING_TEXT,
        header_in_caps=True,
        header_appears_bold=True,
        body_text_appears_bold=False,
        separate_from_other_text=True,
    )


@pytest.fixture
def spirits_application():
    """Typical bourbon application."""
    return ApplicationData(
        beverage_type=BeverageType.SPIRITS,
        brand_name="OLD TOM DISTILLERY",
        class_type_designation="Kentucky Straight Bourbon Whiskey",
        alcohol_content="45% Alc./Vol. (90 Proof)",
        net_contents="750 mL",
        producer_name="Old Tom Distillery",
        producer_address="Bardstown, Kentucky",
    )


@pytest.fixture
def make_extraction(compliant_warning):
    """Factory for extraction records; defaults match spirits_application."""
    def _make(**overrides):
        values = {
            "brand_name": "OLD TOM DISTILLERY",
            "class_type_designation": "Kentucky Straight Bourbon Whiskey",
            "alcohol_content": "45% ALC/VOL (90 PROOF)",
            "net_contents": "750 ML",
            "producer_name": "OLD TOM DISTILLERY",
            "producer_address": "Bardstown, Kentucky",
            "government_warning": compliant_warning,
            "confidence": "high",
        }
        values.update(overrides)
        return ExtractedLabelData(**values)
    return _make


@pytest.fixture
def service():
    """Verification service with deterministic ids and timestamps."""
    counter = iter(range(1, 10_000))
    return VerificationService(
        id_factory=lambda: f"verdict-{next(counter)}",
        clock=lambda: FIXED_TIME,
    )


def _image_bytes(image_format, mode="RGB"):
    img = Image.new(mode, (120, 80), color="white")
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return _image_bytes("PNG")


@pytest.fixture
def image_bytes_factory():
    return _image_bytes
