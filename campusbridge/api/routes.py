"""
Material endpoints: processing, rejection and ad-hoc test uploads.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Path, UploadFile
from fastapi.responses import JSONResponse

from .auth import require_admin
from .models import (
    ErrorResponse,
    ProcessResponse,
    RejectRequest,
    RejectResponse,
    UploadTestResponse,
)
from ..exceptions import NotFound, ProcessingFailed
from ..processing.processor import MaterialProcessor

logger = logging.getLogger(__name__)

router = APIRouter()

# Service references (set by the server)
_processor: Optional[MaterialProcessor] = None


def set_services(processor: MaterialProcessor) -> None:
    """Set service references for route handlers."""
    global _processor
    _processor = processor


def get_processor() -> MaterialProcessor:
    """Get the material processor."""
    if _processor is None:
        raise RuntimeError("Material processor not initialized")
    return _processor


@router.post(
    "/process-material/{material_id}",
    response_model=ProcessResponse,
    summary="Process material",
    description="Upload a material to Dropbox and publish its direct-download link.",
    responses={
        400: {"model": ErrorResponse, "description": "Max retries reached"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not an admin"},
        404: {"model": ErrorResponse, "description": "Material not found"},
        500: {"model": ErrorResponse, "description": "Processing failed"},
    },
)
async def process_material(
    material_id: str = Path(..., description="Material ID"),
    user: Dict[str, Any] = Depends(require_admin),
):
    logger.info(f"Process material requested: {material_id} by {user.get('sub')}")
    processor = get_processor()

    try:
        outcome = await processor.process_material(material_id)
    except ProcessingFailed as e:
        return JSONResponse(
            status_code=500,
            content={"error": "Processing failed", "details": e.message},
        )

    return ProcessResponse(dropbox_url=outcome.dropbox_url)


@router.post(
    "/reject-material/{material_id}",
    response_model=RejectResponse,
    summary="Reject material",
    description="Delete a material and its intake file, logging the rejection reason.",
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not an admin"},
        404: {"model": ErrorResponse, "description": "Material not found"},
        500: {"model": ErrorResponse, "description": "Rejection failed"},
    },
)
async def reject_material(
    body: Optional[RejectRequest] = None,
    material_id: str = Path(..., description="Material ID"),
    user: Dict[str, Any] = Depends(require_admin),
):
    processor = get_processor()
    reason = body.reason if body else None

    try:
        await processor.reject_material(material_id, reason, rejected_by=user.get("sub"))
    except NotFound:
        raise
    except Exception as e:
        logger.error(f"Reject error for material {material_id}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to reject material", "details": str(e)},
        )

    return RejectResponse()


@router.post(
    "/test-upload",
    response_model=UploadTestResponse,
    summary="Test upload",
    description="Upload a file straight to Dropbox and return its direct-download link.",
    responses={
        400: {"description": "No file uploaded"},
        500: {"description": "Upload failed"},
    },
)
async def test_upload(file: Optional[UploadFile] = File(None)):
    if file is None:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "No file uploaded"},
        )

    processor = get_processor()
    try:
        content = await file.read()
        outcome = await processor.test_upload(file.filename or "file.pdf", content)
    except Exception as e:
        logger.error(f"Test upload failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return UploadTestResponse(dropbox_path=outcome.dropbox_path, dropbox_url=outcome.dropbox_url)
