"""
api/attachments.py -- Upload and delete flow shared by audit attachments and
finding evidence.

Upload: every file is read (capped at MAX_UPLOAD_BYTES + 1 bytes) and
validated before any of them is written, so one bad file rejects the whole
request without leaving partial uploads behind.

Delete is two-phase:
  1. TrackerStore.delete_attachment() removes the database row and commits.
  2. LocalFileStorage.delete() removes the file, best effort.
A failure in step 2 is logged by storage and never reaches the response;
the row is not restored. An orphaned file is acceptable, a row pointing at a
missing file is not.
"""

import logging

from fastapi import Request, UploadFile

from auth.models import Claims
from core.errors import ValidationError
from storage.local import LocalFileStorage
from tracker.models import Attachment
from tracker.store import TrackerStore

logger = logging.getLogger("auditmonitor.api")

_SUBDIRS = {"audit": "audits", "finding": "findings"}


async def save_uploads(
    request: Request,
    entity_type: str,
    entity_id: int,
    files: list[UploadFile],
    claims: Claims,
) -> list[Attachment]:
    tracker: TrackerStore = request.app.state.tracker
    storage: LocalFileStorage = request.app.state.storage
    if not files:
        raise ValidationError("No files uploaded.")
    tracker.check_attachment_owner(entity_type, entity_id)

    payloads = []
    for upload in files:
        data = await upload.read(storage.max_bytes + 1)
        storage.validate(upload.filename, len(data))
        payloads.append((upload, data))

    saved = []
    for upload, data in payloads:
        file_path = storage.save(_SUBDIRS[entity_type], upload.filename, data)
        saved.append(
            tracker.add_attachment(
                entity_type=entity_type,
                entity_id=entity_id,
                file_name=upload.filename,
                file_path=file_path,
                file_type=upload.content_type,
                file_size=len(data),
                uploaded_by=claims.user_id,
            )
        )
    logger.info("Stored %d file(s) for %s %s", len(saved), entity_type, entity_id)
    return saved


def remove_attachment(request: Request, entity_type: str, entity_id: int, attachment_id: int) -> bool:
    """Delete the row, then the file. Returns whether the file itself was removed."""
    tracker: TrackerStore = request.app.state.tracker
    storage: LocalFileStorage = request.app.state.storage
    attachment = tracker.delete_attachment(entity_type, entity_id, attachment_id)
    return storage.delete(attachment.file_path)
