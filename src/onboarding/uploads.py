"""
Onboarding Uploads - pre-flight file checks.

Files are checked here before any call to the upload endpoint; a rejected
file never reaches the network and never touches wizard state.
"""

from dataclasses import dataclass
from enum import Enum

MB = 1024 * 1024


class UploadKind(Enum):
    PROFILE_PHOTO = "profile_photo"
    CERTIFICATE = "certificate"


@dataclass(frozen=True)
class UploadRule:
    max_bytes: int
    content_types: frozenset[str] | None   # None = any image/*
    type_message: str
    size_message: str


UPLOAD_RULES = {
    UploadKind.PROFILE_PHOTO: UploadRule(
        max_bytes=5 * MB,
        content_types=None,
        type_message="Please select an image file",
        size_message="Image size must be less than 5MB",
    ),
    UploadKind.CERTIFICATE: UploadRule(
        max_bytes=10 * MB,
        content_types=frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"}),
        type_message="Please select a PDF or image file (JPG, PNG)",
        size_message="File size must be less than 10MB",
    ),
}


@dataclass
class UploadFile:
    """A file picked by the user, held in memory until uploaded."""
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def check_upload(kind: UploadKind, file: UploadFile) -> str | None:
    """Return a user-facing rejection message, or None if the file is acceptable."""
    rule = UPLOAD_RULES[kind]
    content_type = (file.content_type or "").lower()

    if rule.content_types is None:
        if not content_type.startswith("image/"):
            return rule.type_message
    elif content_type not in rule.content_types:
        return rule.type_message

    if file.size > rule.max_bytes:
        return rule.size_message
    return None
