# ticketflow/services/attachment_service.py
"""Attachment ledger: upload validation, reconciliation and download links"""
import os
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ticketflow.core.config import (
    MAX_FILE_SIZE_BYTES,
    MAX_FILES_PER_TICKET,
    DOWNLOAD_URL_TTL_SECONDS,
)
from ticketflow.core.logger import get_logger
from ticketflow.models.ticket import Ticket
from ticketflow.models.upload import Upload
from ticketflow.schemas.identity import Identity
from ticketflow.utils.datetime_utils import get_utc_now, to_iso_string
from ticketflow.utils.exceptions import NotFoundError, ValidationError

logger = get_logger(__name__)

# Extension -> accepted MIME types
ALLOWED_FILE_TYPES = {
    ".jpg": {"image/jpeg", "image/jpg"},
    ".jpeg": {"image/jpeg", "image/jpg"},
    ".png": {"image/png"},
    ".gif": {"image/gif"},
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
    ".txt": {"text/plain"},
    ".zip": {"application/zip", "application/x-zip-compressed"},
    ".rar": {"application/x-rar-compressed", "application/vnd.rar"},
}


@dataclass
class IncomingFile:
    """An uploaded file already read into memory."""
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_file(filename: str, content_type: Optional[str], size: int, max_size: int = None) -> Optional[str]:
    """
    Check a file against the extension/MIME allow-list and size limit.

    Returns:
        None when acceptable, otherwise a human readable reason
    """
    max_size = max_size or MAX_FILE_SIZE_BYTES
    extension = os.path.splitext(filename or "")[1].lower()
    allowed_mimes = ALLOWED_FILE_TYPES.get(extension)

    if not allowed_mimes:
        return f"File type {extension or '(none)'} is not allowed"
    if (content_type or "").lower() not in allowed_mimes:
        return f"MIME type {content_type} does not match file extension {extension}"
    if size > max_size:
        return f"File too large. Maximum size is {max_size / (1024 * 1024):g}MB"
    return None


def _same_id(left, right) -> bool:
    return str(left) == str(right)


def check_limit(current_count: int, adding: int):
    if current_count + adding > MAX_FILES_PER_TICKET:
        raise ValidationError(
            f"Maximum {MAX_FILES_PER_TICKET} files allowed per ticket",
            details={
                "currentCount": current_count,
                "uploadCount": adding,
                "maxFiles": MAX_FILES_PER_TICKET,
            },
        )


def _descriptor(upload: Upload) -> Dict[str, Any]:
    return {
        "id": upload.file_id,
        "name": upload.name,
        "size": upload.size,
        "key": upload.key,
        "mimetype": upload.mimetype,
        "uploadedAt": to_iso_string(upload.created_at),
        "uploadedBy": upload.uploaded_by,
    }


class AttachmentService:
    """Operations over a ticket's attachment descriptors."""

    @staticmethod
    def upload_files(
        db: Session,
        storage,
        identity: Identity,
        files: List[IncomingFile],
        current_count: int = 0,
        max_size: int = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Validate and store a batch of files.

        The batch is rejected as a whole if it would push the ticket over
        MAX_FILES_PER_TICKET. Individual bad files are skipped and reported.
        Every stored object is recorded as an upload of the caller.

        Returns:
            {"files": [descriptor, ...], "errors": [{"file", "error"}, ...]}
        """
        if not files:
            raise ValidationError("No files uploaded")

        check_limit(current_count, len(files))

        uploaded = []
        errors = []
        for incoming in files:
            reason = validate_file(incoming.filename, incoming.content_type, incoming.size, max_size)
            if reason:
                errors.append({"file": incoming.filename, "error": reason})
                continue

            try:
                stored = storage.store(incoming.data, incoming.filename, incoming.content_type, identity.id)
            except Exception as e:
                logger.warning(f"Failed to store {incoming.filename}: {e}")
                errors.append({"file": incoming.filename, "error": "Failed to store file"})
                continue

            upload = Upload(
                file_id=uuid.uuid4().hex,
                key=stored.key,
                name=incoming.filename,
                size=stored.size_bytes,
                mimetype=incoming.content_type,
                uploaded_by=identity.id,
                created_at=get_utc_now(),
            )
            db.add(upload)
            uploaded.append(upload)

        if uploaded:
            db.commit()

        logger.info(f"User {identity.id} uploaded {len(uploaded)} file(s), {len(errors)} rejected")
        return {"files": [_descriptor(upload) for upload in uploaded], "errors": errors}

    @staticmethod
    def claim(
        db: Session,
        identity: Identity,
        descriptors: List[Dict[str, Any]],
        ticket: Optional[Ticket] = None,
    ) -> List[Dict[str, Any]]:
        """
        Resolve client supplied descriptors to files the caller may attach.

        A key is accepted when the caller uploaded it and it is not attached
        to another ticket. Keys already on `ticket` are skipped. Accepted
        descriptors are rebuilt from the upload record, so client supplied
        names, sizes and uploaders are never stored.

        Raises:
            ValidationError: listing every rejected descriptor
        """
        ticket_id = ticket.id if ticket is not None else None
        attached = {a.get("key") for a in (ticket.files if ticket is not None else None) or []}
        keys = [d.get("key") for d in descriptors if d.get("key")]
        uploads = {}
        if keys:
            uploads = {upload.key: upload for upload in db.query(Upload).filter(Upload.key.in_(keys))}

        claimed = []
        rejected = []
        seen = set()
        for descriptor in descriptors:
            key = descriptor.get("key")
            if key and key in attached:
                continue

            upload = uploads.get(key)
            if not key or upload is None or upload.uploaded_by != identity.id:
                reason = "File was not uploaded by you"
            elif upload.ticket_id is not None and upload.ticket_id != ticket_id:
                reason = "File is attached to another ticket"
            elif key in seen:
                reason = "Duplicate file"
            else:
                seen.add(key)
                claimed.append(_descriptor(upload))
                continue
            rejected.append({"file": descriptor.get("name"), "error": reason})

        if rejected:
            logger.warning(f"Rejected {len(rejected)} attachment(s) from user {identity.id}")
            raise ValidationError("Invalid attachments", details={"files": rejected})
        return claimed

    @staticmethod
    def link(db: Session, ticket: Ticket):
        """Mark the uploads referenced by a ticket's attachments as taken."""
        keys = [a.get("key") for a in ticket.files or [] if a.get("key")]
        if keys:
            db.query(Upload).filter(Upload.key.in_(keys), Upload.ticket_id.is_(None)).update(
                {Upload.ticket_id: ticket.id}, synchronize_session=False
            )

    @staticmethod
    def forget(db: Session, keys):
        """Drop upload records for objects that were removed from storage."""
        keys = [key for key in keys if key]
        if keys:
            db.query(Upload).filter(Upload.key.in_(keys)).delete(synchronize_session=False)

    @staticmethod
    def reconcile(
        storage,
        current: List[Dict[str, Any]],
        to_delete: List[Any],
        to_add: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """
        Apply deletions and additions to an attachment list.

        The result may hold at most MAX_FILES_PER_TICKET attachments; when it
        would not, nothing is deleted and ValidationError is raised.
        Storage removal is best effort; a descriptor is dropped from the list
        even when its object could not be deleted. Ids not present in
        `current` are ignored.
        """
        retained = []
        removed = []
        for attachment in current or []:
            if any(_same_id(attachment.get("id"), file_id) for file_id in to_delete or []):
                removed.append(attachment)
            else:
                retained.append(attachment)

        check_limit(len(retained), len(to_add or []))

        for attachment in removed:
            key = attachment.get("key")
            if not key:
                continue
            try:
                if not storage.delete(key):
                    logger.warning(f"Storage refused to delete {key}")
            except Exception as e:
                logger.warning(f"Failed to delete {key} from storage: {e}")

        return retained + list(to_add or [])

    @staticmethod
    def find(files: List[Dict[str, Any]], file_id) -> Optional[Dict[str, Any]]:
        for attachment in files or []:
            if _same_id(attachment.get("id"), file_id):
                return attachment
        return None

    @staticmethod
    def issue_download_url(storage, identity: Identity, attachment: Dict[str, Any], ttl: int = None) -> str:
        """Time limited URL for a stored attachment. Visibility is checked by the caller."""
        key = (attachment or {}).get("key")
        if not key:
            raise NotFoundError("File not found in storage")

        url = storage.signed_url(key, ttl or DOWNLOAD_URL_TTL_SECONDS)
        if not url:
            raise NotFoundError("File not found in storage")

        logger.info(f"Issued download URL for {key} to user {identity.id}")
        return url
