"""Per-user store of sealed notes."""
from datetime import datetime, timezone
import threading
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from calcnote.common.logger import logger
from calcnote.notes.vault import NotePayload, NoteVault

DEFAULT_LIST_LIMIT = 20


class NoteNotFoundError(LookupError):
    """No note with this id belongs to the user."""

    def __init__(self, user_id: int, note_id: int) -> None:
        self.user_id = user_id
        self.note_id = note_id
        super().__init__(f"note {note_id} not found")


class NoteEntry(BaseModel):
    """Listing row: identifies a note without decrypting it."""

    model_config = ConfigDict(frozen=True)

    note_id: int = Field(..., ge=1)
    created_at: datetime


class StoredNote(BaseModel):
    """A sealed note as kept in the store."""

    model_config = ConfigDict(frozen=True)

    note_id: int = Field(..., ge=1)
    user_id: int
    created_at: datetime
    sealed: bytes = Field(..., repr=False)


class NoteStore(BaseModel):
    """
    In-memory note table keyed by ``(user_id, note_id)``.

    Payloads are sealed by the vault before they are stored, so the table
    only ever holds ciphertext. Note ids are unique across users.
    """

    vault: NoteVault

    _notes: Dict[Tuple[int, int], StoredNote] = PrivateAttr(default_factory=dict)
    _next_id: int = PrivateAttr(default=1)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def save(self, user_id: int, payload: NotePayload, created_at: Optional[datetime] = None) -> NoteEntry:
        """
        Seal and store a note.

        :param int user_id: Owner of the note
        :param NotePayload payload: Note content
        :param datetime created_at: Creation time, defaults to now (UTC)

        :return: Id and creation time of the stored note
        :rtype: NoteEntry
        """
        sealed = self.vault.seal(payload)
        created_at = created_at or datetime.now(timezone.utc)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        with self._lock:
            note_id = self._next_id
            self._next_id += 1
            self._notes[(user_id, note_id)] = StoredNote(
                note_id=note_id, user_id=user_id, created_at=created_at, sealed=sealed
            )
        logger.info(f"📝 Saved {payload.kind.value} note {note_id} for user {user_id}")
        return NoteEntry(note_id=note_id, created_at=created_at)

    def list_notes(self, user_id: int, limit: int = DEFAULT_LIST_LIMIT) -> List[NoteEntry]:
        """
        List a user's notes, newest first.

        :param int user_id: Owner of the notes
        :param int limit: Maximum number of entries

        :return: At most ``limit`` entries; later ids win on equal timestamps
        :rtype: List[NoteEntry]
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        with self._lock:
            own = [note for (owner, _), note in self._notes.items() if owner == user_id]
        own.sort(key=lambda note: (note.created_at, note.note_id), reverse=True)
        return [NoteEntry(note_id=note.note_id, created_at=note.created_at) for note in own[:limit]]

    def load(self, user_id: int, note_id: int) -> Tuple[NotePayload, datetime]:
        """
        Open one of the user's notes.

        :param int user_id: User asking for the note
        :param int note_id: Id returned by :meth:`save` or :meth:`list_notes`

        :return: Decrypted payload and its creation time
        :rtype: Tuple[NotePayload, datetime]
        :raises NoteNotFoundError: If the note does not exist or belongs to another user
        :raises CipherError: If the stored data cannot be decrypted
        """
        with self._lock:
            note = self._notes.get((user_id, note_id))
        if note is None:
            raise NoteNotFoundError(user_id, note_id)
        return self.vault.open(note.sealed), note.created_at
