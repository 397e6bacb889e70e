"""API route definitions."""

import asyncio
import json
import time
from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException
from fastapi.responses import StreamingResponse
from typing import Dict, Optional, List, Tuple
import logging

from ..models import (
    ApplicationData,
    BatchProgress,
    BatchVerificationResponse,
    BeverageType,
    ErrorResponse,
    ExtractionResponse,
    HealthResponse,
    OverallStatus,
    VerificationResponse,
    VerificationVerdict,
)
from ..services import (
    AnthropicLabelExtractor,
    BatchItem,
    BatchRun,
    ExtractionError,
    LabelExtractor,
    UnsupportedImageError,
    VerificationHistory,
    VerificationPipeline,
    VerificationService,
    detect_media_type,
)
from ..config import get_settings
from .. import __version__

logger = logging.getLogger(__name__)
router = APIRouter()

# Initialize services
label_extractor = AnthropicLabelExtractor()
verification_service = VerificationService()
verification_history = VerificationHistory()

# Batch runs currently in flight, by run id
active_runs: Dict[str, BatchRun] = {}


def get_extractor() -> LabelExtractor:
    return label_extractor


def get_history() -> VerificationHistory:
    return verification_history


def application_form(
    beverage_type: BeverageType = Form(..., description="spirits, wine, or beer"),
    brand_name: str = Form(..., description="Expected brand name"),
    class_type_designation: Optional[str] = Form(None, description="Expected class/type"),
    alcohol_content: Optional[str] = Form(None, description="Expected alcohol statement, e.g. 45% Alc./Vol."),
    net_contents: Optional[str] = Form(None, description="Expected net contents, e.g. 750 mL"),
    producer_name: Optional[str] = Form(None, description="Expected producer/bottler name"),
    producer_address: Optional[str] = Form(None, description="Expected producer/bottler address"),
    country_of_origin: Optional[str] = Form(None, description="Expected country of origin"),
    appellation: Optional[str] = Form(None, description="Expected appellation (wine)"),
    vintage_year: Optional[str] = Form(None, description="Expected vintage year (wine)"),
) -> ApplicationData:
    """Application data submitted as form fields alongside the image(s)."""
    return ApplicationData(
        beverage_type=beverage_type,
        brand_name=brand_name,
        class_type_designation=class_type_designation,
        alcohol_content=alcohol_content,
        net_contents=net_contents,
        producer_name=producer_name,
        producer_address=producer_address,
        country_of_origin=country_of_origin,
        appellation=appellation,
        vintage_year=vintage_year,
    )


def validate_upload(image_bytes: bytes) -> Tuple[Optional[str], str]:
    """
    Check an uploaded image against size and format limits.

    Returns:
        Tuple of (media_type, error_message); media_type is None when invalid
    """
    settings = get_settings()

    if not image_bytes:
        return None, "Uploaded image is empty"

    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > settings.max_upload_size_mb:
        return None, f"Image exceeds {settings.max_upload_size_mb}MB upload limit. Please resize or compress."

    try:
        media_type = detect_media_type(image_bytes)
    except UnsupportedImageError as e:
        return None, str(e)

    if media_type not in settings.allowed_media_types:
        allowed = ", ".join(sorted(t.split("/")[1].upper() for t in settings.allowed_media_types))
        return None, f"Invalid file type. Allowed formats: {allowed}"

    return media_type, ""


def _batch_response(
    run: BatchRun,
    progress: BatchProgress,
    processing_time_ms: int,
) -> BatchVerificationResponse:
    statuses = [r.overall_status for r in progress.results]
    return BatchVerificationResponse(
        success=True,
        run_id=run.run_id,
        status=run.state.value,
        total=progress.total,
        completed=progress.completed,
        failed=progress.failed,
        approved=statuses.count(OverallStatus.APPROVED),
        needs_review=statuses.count(OverallStatus.NEEDS_REVIEW),
        rejected=statuses.count(OverallStatus.REJECTED),
        results=progress.results,
        errors=progress.errors,
        processing_time_ms=processing_time_ms,
    )


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(extractor: LabelExtractor = Depends(get_extractor)):
    """Check API health and whether the extraction service is configured."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        extractor_configured=getattr(extractor, "is_configured", True),
    )


@router.post(
    "/verify",
    response_model=VerificationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
    },
    tags=["Verification"]
)
async def verify_label(
    image: UploadFile = File(..., description="Label image file"),
    application: ApplicationData = Depends(application_form),
    extractor: LabelExtractor = Depends(get_extractor),
    history: VerificationHistory = Depends(get_history),
):
    """
    Verify a single label image against application data.

    Upload a label image and provide the expected field values.
    Returns a field-by-field comparison, the government warning check,
    and an overall approved / needs_review / rejected status.
    """
    try:
        image_bytes = await image.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded image: {e}")
        raise HTTPException(status_code=400, detail="Failed to read uploaded image")

    media_type, error_msg = validate_upload(image_bytes)
    if media_type is None:
        return VerificationResponse(success=False, error=error_msg)

    pipeline = VerificationPipeline(extractor, verification_service)
    try:
        verdict = await pipeline.verify_image(
            image_bytes,
            application,
            media_type=media_type,
            file_name=image.filename or "unknown",
        )
    except ExtractionError as e:
        logger.error(f"Extraction failed for {image.filename}: {e}")
        return VerificationResponse(success=False, error=str(e))
    except Exception as e:
        logger.exception(f"Error processing image: {e}")
        return VerificationResponse(success=False, error=f"Error processing image: {str(e)}")

    history.add(verdict)
    logger.info(f"Verification {verdict.id}: {verdict.overall_status.value} ({verdict.processing_time_ms}ms)")

    return VerificationResponse(success=True, result=verdict)


@router.post(
    "/extract",
    response_model=ExtractionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
    },
    tags=["Extraction"]
)
async def extract_only(
    image: UploadFile = File(..., description="Label image file"),
    extractor: LabelExtractor = Depends(get_extractor),
):
    """
    Extract label data from an image without verification.

    Useful for checking what the extraction service reads from a label.
    """
    start_time = time.time()

    try:
        image_bytes = await image.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded image: {e}")
        raise HTTPException(status_code=400, detail="Failed to read uploaded image")

    media_type, error_msg = validate_upload(image_bytes)
    if media_type is None:
        return ExtractionResponse(success=False, error=error_msg)

    try:
        extracted = await extractor.extract(image_bytes, media_type)
    except ExtractionError as e:
        logger.error(f"Extraction failed for {image.filename}: {e}")
        return ExtractionResponse(success=False, error=str(e))
    except Exception as e:
        logger.exception(f"Error processing image: {e}")
        return ExtractionResponse(success=False, error=f"Error processing image: {str(e)}")

    return ExtractionResponse(
        success=True,
        extracted=extracted,
        processing_time_ms=int((time.time() - start_time) * 1000),
    )


@router.post(
    "/verify/batch",
    response_model=BatchVerificationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
    },
    tags=["Verification"]
)
async def verify_batch(
    images: List[UploadFile] = File(..., description="Label image files"),
    application: ApplicationData = Depends(application_form),
    concurrency: Optional[int] = Form(None, description="Labels verified at once (defaults to config)"),
    run_id: Optional[str] = Form(None, description="Client-chosen id, usable with the cancel endpoint"),
    stream: bool = Form(False, description="Stream progress snapshots as server-sent events"),
    extractor: LabelExtractor = Depends(get_extractor),
):
    """
    Verify multiple label images against the same application data.

    Labels are processed in chunks of ``concurrency``; a label that fails
    extraction is reported in ``errors`` and the rest of the batch continues.
    With ``stream=true`` the response is an event stream with one
    ``progress`` event per chunk and a final ``done`` event.
    """
    start_time = time.time()
    settings = get_settings()

    if len(images) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files. Maximum batch size is {settings.max_batch_size} files."
        )

    if concurrency is not None and concurrency < 1:
        raise HTTPException(status_code=400, detail="Concurrency must be at least 1")

    if run_id is not None and run_id in active_runs:
        raise HTTPException(status_code=400, detail=f"Batch run '{run_id}' is already in progress")

    items = []
    for upload_file in images:
        filename = upload_file.filename or "unknown"
        try:
            image_bytes = await upload_file.read()
        except Exception as e:
            logger.error(f"Failed to read image {filename}: {e}")
            raise HTTPException(status_code=400, detail=f"Failed to read image '{filename}'")

        size_mb = len(image_bytes) / (1024 * 1024)
        if size_mb > settings.max_upload_size_mb:
            raise HTTPException(
                status_code=400,
                detail=f"Image '{filename}' exceeds {settings.max_upload_size_mb}MB upload limit."
            )
        items.append(BatchItem(file_name=filename, image_bytes=image_bytes))

    pipeline = VerificationPipeline(extractor, verification_service)

    if not stream:
        run = BatchRun(pipeline, run_id=run_id)
        active_runs[run.run_id] = run
        try:
            progress = await run.start(items, application, concurrency)
        finally:
            active_runs.pop(run.run_id, None)

        processing_time = int((time.time() - start_time) * 1000)
        return _batch_response(run, progress, processing_time)

    queue: asyncio.Queue = asyncio.Queue()
    run = BatchRun(pipeline, on_progress=queue.put_nowait, run_id=run_id)

    async def event_stream():
        # Unregistered in the finally below
        active_runs[run.run_id] = run
        task = None
        try:
            yield f"event: meta\ndata: {json.dumps({'run_id': run.run_id, 'total': len(items)})}\n\n"

            task = asyncio.create_task(run.start(items, application, concurrency))
            task.add_done_callback(lambda _: queue.put_nowait(None))
            while True:
                snapshot = await queue.get()
                if snapshot is None:
                    break
                yield f"event: progress\ndata: {snapshot.model_dump_json()}\n\n"

            try:
                progress = task.result()
            except Exception as e:
                logger.exception(f"Batch {run.run_id} failed: {e}")
                yield f"event: error\ndata: {json.dumps({'error': str(e)})}\n\n"
                return

            processing_time = int((time.time() - start_time) * 1000)
            response = _batch_response(run, progress, processing_time)
            yield f"event: done\ndata: {response.model_dump_json()}\n\n"
        finally:
            if task is not None and not task.done():
                # Client went away; stop after the chunk in flight
                run.cancel()
            active_runs.pop(run.run_id, None)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/verify/batch/{run_id}/cancel", tags=["Verification"])
async def cancel_batch(run_id: str):
    """Request cancellation of a running batch. The chunk in flight still completes."""
    run = active_runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"No running batch with id '{run_id}'")

    run.cancel()
    return {"run_id": run_id, "cancel_requested": True, "progress": run.snapshot()}


@router.get("/history", response_model=List[VerificationVerdict], tags=["History"])
async def list_history(history: VerificationHistory = Depends(get_history)):
    """Recent verification verdicts, newest first."""
    return history.list()


@router.get("/history/{verdict_id}", response_model=VerificationVerdict, tags=["History"])
async def get_history_entry(verdict_id: str, history: VerificationHistory = Depends(get_history)):
    """A single verdict from history."""
    verdict = history.get(verdict_id)
    if verdict is None:
        raise HTTPException(status_code=404, detail=f"Verdict '{verdict_id}' not found")
    return verdict


@router.delete("/history", tags=["History"])
async def clear_history(history: VerificationHistory = Depends(get_history)):
    """Remove all verdicts from history."""
    history.clear()
    return {"cleared": True}
