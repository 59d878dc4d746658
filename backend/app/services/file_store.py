"""
Uploaded File Store

Writes uploaded bytes to disk, extracts their text once, and persists the
outcome. Each file is handled independently: an extraction failure is
recorded on that file's row and never stops the rest of the batch.
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.models import UploadedFile, generate_uuid
from app.services.text_extraction import extract_text

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_DIR = "./uploads"
RECENT_FILES_LIMIT = 10


def get_upload_dir() -> Path:
    return Path(os.getenv("UPLOAD_DIR", DEFAULT_UPLOAD_DIR))


def store_upload(
    db: Session,
    user_id: str,
    original_name: str,
    content: bytes,
    mime_type: str
) -> UploadedFile:
    """
    Save one uploaded file, extract its text and persist the record.

    Args:
        db: Database session
        user_id: Owner of the file
        original_name: Filename as sent by the client
        content: Raw file bytes
        mime_type: MIME type declared by the client

    Returns:
        The persisted UploadedFile, with extracted_text or processing_error set
    """
    file_type = Path(original_name).suffix.lower()
    filename = f"{generate_uuid()}{file_type}"

    upload_dir = get_upload_dir()
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / filename
    file_path.write_bytes(content)

    result = extract_text(file_path, mime_type)

    record = UploadedFile(
        user_id=user_id,
        original_name=original_name,
        filename=filename,
        file_path=str(file_path),
        file_type=file_type,
        file_size=len(content),
        mime_type=mime_type,
        extracted_text=result.text,
        is_processed=result.is_processed,
        processing_error=result.error,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(
        f"Stored {original_name} as {record.id} "
        f"(processed={record.is_processed}, error={record.processing_error})"
    )
    return record


def get_owned_files(db: Session, user_id: str, file_ids: List[str]) -> List[UploadedFile]:
    """
    Files with the given ids that belong to the user and are not deleted.

    Unknown or foreign ids are silently skipped. Results follow the order
    of file_ids.
    """
    if not file_ids:
        return []

    files = db.query(UploadedFile).filter(
        UploadedFile.id.in_(file_ids),
        UploadedFile.owned_by(user_id)
    ).all()

    position = {file_id: index for index, file_id in enumerate(file_ids)}
    return sorted(files, key=lambda f: position[f.id])


def get_file(db: Session, file_id: str, user_id: str) -> Optional[UploadedFile]:
    return db.query(UploadedFile).filter(
        UploadedFile.id == file_id,
        UploadedFile.owned_by(user_id)
    ).first()


def get_recent_files(db: Session, user_id: str, limit: int = RECENT_FILES_LIMIT) -> List[UploadedFile]:
    """Most recently uploaded files for a user."""
    return db.query(UploadedFile).filter(
        UploadedFile.owned_by(user_id)
    ).order_by(UploadedFile.created_at.desc()).limit(limit).all()


def soft_delete_file(db: Session, file_id: str, user_id: str) -> bool:
    """Soft-delete a file. The stored bytes are kept; quizzes hold a snapshot."""
    record = get_file(db, file_id, user_id)
    if not record:
        return False

    record.soft_delete()
    db.commit()
    return True
