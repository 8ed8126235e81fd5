"""Encrypted personal notes."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from calcnote.notes.cipher import CipherError, decrypt, encrypt


class NoteKind(str, Enum):
    TEXT = "text"
    PHOTO = "photo"
    VOICE = "voice"


class NotePayload(BaseModel):
    """
    Content of one note.

    Text notes carry ``text``; photo and voice notes reference an uploaded
    file by ``file_id`` and may carry a ``caption``.
    """

    model_config = ConfigDict(frozen=True)

    kind: NoteKind
    text: Optional[str] = Field(default=None, description="Body of a text note")
    file_id: Optional[str] = Field(default=None, description="Identifier of a photo or voice file")
    caption: Optional[str] = Field(default=None, description="Optional caption of a photo")

    @model_validator(mode="after")
    def check_content(self) -> "NotePayload":
        """Ensure the fields required by the note kind are present."""
        if self.kind is NoteKind.TEXT:
            if not self.text or not self.text.strip():
                raise ValueError("Text note cannot be empty")
        elif not self.file_id:
            raise ValueError(f"{self.kind.value.capitalize()} note requires a file_id")
        return self

    def to_json(self) -> bytes:
        """Compact JSON without unset fields."""
        return self.model_dump_json(exclude_none=True).encode()


class NoteVault(BaseModel):
    """Seal and open notes with a single AES key."""

    model_config = ConfigDict(frozen=True)

    key: bytes = Field(..., repr=False, description="16, 24 or 32 byte AES key")

    @field_validator("key")
    def key_must_have_aes_length(cls, v: bytes) -> bytes:
        """Reject keys AES cannot use."""
        if len(v) not in (16, 24, 32):
            raise ValueError(f"AES key must be 16, 24 or 32 bytes, got {len(v)}")
        return v

    def seal(self, payload: NotePayload) -> bytes:
        """
        Encrypt a note.

        :param NotePayload payload: Note to protect

        :return: Sealed note
        :rtype: bytes
        """
        return encrypt(self.key, payload.to_json())

    def open(self, data: bytes) -> NotePayload:
        """
        Decrypt a note sealed by :meth:`seal`.

        :param bytes data: Sealed note

        :return: Original note
        :rtype: NotePayload
        :raises CipherError: If the data cannot be authenticated or does not hold a valid note
        """
        raw = decrypt(self.key, data)
        try:
            return NotePayload.model_validate_json(raw)
        except ValidationError as exc:
            raise CipherError(f"sealed data is not a valid note: {exc}") from exc
