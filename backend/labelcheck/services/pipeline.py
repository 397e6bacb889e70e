"""Single-label pipeline: extract label data from an image, then verify it."""

import time
import logging
from typing import Callable, Optional

from ..models.schemas import ApplicationData, VerificationVerdict
from .extraction import LabelExtractor, detect_media_type, normalize_media_type
from .verification import VerificationService

logger = logging.getLogger(__name__)


class VerificationPipeline:
    """Runs extraction followed by verification for one label image."""

    def __init__(
        self,
        extractor: LabelExtractor,
        verification_service: Optional[VerificationService] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.extractor = extractor
        self.verification_service = verification_service or VerificationService()
        self.timer = timer

    async def verify_image(
        self,
        image_bytes: bytes,
        application: ApplicationData,
        media_type: Optional[str] = None,
        file_name: str = "",
    ) -> VerificationVerdict:
        """
        Verify one label image against application data.

        Args:
            image_bytes: Raw image file contents
            application: Expected values from the application
            media_type: Image media type; detected from the bytes when omitted
            file_name: Name of the image, echoed on the verdict

        Returns:
            VerificationVerdict with processing time filled in

        Raises:
            ExtractionError: If the image cannot be turned into label data
        """
        start = self.timer()

        if media_type:
            media_type = normalize_media_type(media_type)
        else:
            media_type = detect_media_type(image_bytes)

        extracted = await self.extractor.extract(image_bytes, media_type)
        verdict = self.verification_service.verify(extracted, application, image_file_name=file_name)
        verdict.processing_time_ms = int(round((self.timer() - start) * 1000))
        return verdict
