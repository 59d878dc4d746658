"""
Files API Router

Provides endpoints for:
- Uploading study documents and extracting their text
- Listing recently uploaded files
- Deleting files
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies.auth import get_current_user
from app.models.models import User
from app.schemas.quiz import UploadResponse, UploadedFileResponse, FileListResponse, MessageResponse
from app.services.file_store import store_upload, get_recent_files, soft_delete_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("/upload", response_model=UploadResponse)
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Upload one or more study documents.

    Text is extracted from each file as it is stored. A file whose text
    cannot be extracted is still stored, with processing_error explaining
    why, and does not affect the other files in the batch.

    Supported file types: PDF, DOCX, TXT
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    logger.info(f"Upload from user {current_user.id}: {len(files)} files")

    uploaded = []
    for upload in files:
        content = await upload.read()
        try:
            record = store_upload(
                db,
                user_id=current_user.id,
                original_name=upload.filename or "unknown",
                content=content,
                mime_type=upload.content_type or "application/octet-stream"
            )
        except Exception as e:
            logger.error(f"Failed to store {upload.filename}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to upload files")
        uploaded.append(record)

    return UploadResponse(
        message="Files uploaded successfully",
        files=[UploadedFileResponse.model_validate(f) for f in uploaded]
    )


@router.get("/recent", response_model=FileListResponse)
async def list_recent_files(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the user's most recently uploaded files."""
    files = get_recent_files(db, current_user.id)
    return FileListResponse(files=[UploadedFileResponse.model_validate(f) for f in files])


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete an uploaded file.

    Quizzes already generated from it keep their own snapshot of the file.
    """
    if not soft_delete_file(db, file_id, current_user.id):
        raise HTTPException(status_code=404, detail="File not found")

    return MessageResponse(message="File deleted successfully")
