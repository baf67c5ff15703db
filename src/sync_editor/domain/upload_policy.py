from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

from .errors import ValidationError


class MediaKind(Enum):
    AUDIO = "audio"
    VIDEO = "video"


@dataclass(frozen=True)
class UploadRule:
    extensions: frozenset[str]
    mime_types: frozenset[str]
    max_bytes: int
    type_message: str
    size_message: str


MB = 1024 * 1024

UPLOAD_RULES: dict[MediaKind, UploadRule] = {
    MediaKind.AUDIO: UploadRule(
        extensions=frozenset({"mp3", "wav", "ogg", "m4a", "aac", "webm"}),
        mime_types=frozenset({
            "audio/mp3", "audio/mpeg", "audio/wav", "audio/ogg",
            "audio/m4a", "audio/aac", "audio/webm",
        }),
        max_bytes=50 * MB,
        type_message="Invalid file type. Please upload MP3, WAV, OGG, M4A, AAC, or WEBM.",
        size_message="File is too large. Maximum size is 50MB.",
    ),
    MediaKind.VIDEO: UploadRule(
        extensions=frozenset({"mp4", "mov", "avi", "mkv"}),
        mime_types=frozenset({"video/mp4", "video/quicktime", "video/x-msvideo", "video/x-matroska"}),
        max_bytes=320 * MB,
        type_message="Invalid file type. Please upload MP4, MOV, AVI, or MKV.",
        size_message="File is too large. Maximum size is 320MB.",
    ),
}


def validate_upload(kind: MediaKind, filename: str, size_bytes: int, mime_type: str | None = None) -> None:
    """Raise ValidationError if the file is not an accepted upload of this kind."""
    rule = UPLOAD_RULES[kind]
    extension = PurePath(filename).suffix.lower().lstrip(".")
    if extension not in rule.extensions:
        raise ValidationError(rule.type_message)
    if mime_type is not None and mime_type.lower() not in rule.mime_types:
        raise ValidationError(rule.type_message)
    if size_bytes > rule.max_bytes:
        raise ValidationError(rule.size_message)
