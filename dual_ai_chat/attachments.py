"""Image attachments: load from disk and encode for the model backends."""

import base64
import binascii
import mimetypes
from pathlib import Path

from dual_ai_chat.models import Attachment, AttachmentEcho, EncodedAttachment


class AttachmentError(Exception):
    """Raised when an attachment cannot be read or encoded."""


def load_attachment(path: Path) -> Attachment:
    """Read an image file. Raises AttachmentError for unreadable or non-image files."""
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise AttachmentError(f"Unsupported attachment type for {path.name}: {mime_type or 'unknown'}")
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise AttachmentError(f"Cannot read attachment {path}: {exc}") from exc
    return Attachment(data=data, mime_type=mime_type, filename=path.name)


def encode_attachment(attachment: Attachment) -> EncodedAttachment:
    if not attachment.mime_type.startswith("image/"):
        raise AttachmentError(f"Only image attachments are supported, got {attachment.mime_type}")
    if not attachment.data:
        raise AttachmentError(f"Attachment {attachment.filename} is empty")
    try:
        encoded = base64.b64encode(attachment.data).decode("ascii")
    except (TypeError, binascii.Error) as exc:
        raise AttachmentError(f"Cannot encode {attachment.filename}: {exc}") from exc
    return EncodedAttachment(
        mime_type=attachment.mime_type,
        filename=attachment.filename,
        base64_data=encoded,
        data_url=f"data:{attachment.mime_type};base64,{encoded}",
        data=attachment.data,
    )


def echo(encoded: EncodedAttachment) -> AttachmentEcho:
    return AttachmentEcho(
        filename=encoded.filename,
        mime_type=encoded.mime_type,
        data_url=encoded.data_url,
    )
