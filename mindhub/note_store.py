"""Storage of users' notes on course entities."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Callable

from .dynamo import ExpressionBuilder, Name, NotFoundError, Storer, UpdateBuilder, Value
from .keys import note_sk, user_pk
from .models import Note, generate_id

USER_TABLE_NAME = "user"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _without_keys(note: Note) -> Note:
    return dataclasses.replace(note, pk="", sk="")


class NoteStore:
    """Reads and writes notes kept under a user's partition."""

    def __init__(
        self,
        db: Storer,
        id_generator: Callable[[], str] = generate_id,
        timer: Callable[[], datetime] = _now,
    ) -> None:
        self._db = db
        self._id_generator = id_generator
        self._timer = timer

    def get(self, note_id: str, user_id: str) -> Note | None:
        """Return the user's note for an entity, or None when there is none."""
        try:
            item = self._db.get(USER_TABLE_NAME, user_pk(user_id), note_sk(note_id))
        except NotFoundError:
            return None
        return Note.from_item(item)

    def create(self, note: Note) -> Note:
        """Store a new note with a fresh id and timestamps, and return it."""
        stored = dataclasses.replace(
            note,
            id=self._id_generator(),
            date_created=self._timer(),
            date_updated=self._timer(),
            pk=user_pk(note.user_id),
            sk=note_sk(note.entity_id),
        )
        self._db.put(USER_TABLE_NAME, stored)
        return _without_keys(stored)

    def update(self, note: Note) -> Note:
        """Set the note's value, creating the record when absent, and return it."""
        update = (
            UpdateBuilder()
            .set("id", Name("id").if_not_exists(self._id_generator()))
            .set("entityID", Name("entityID").if_not_exists(note.entity_id))
            .set("value", Value(note.value))
            .set("dateCreated", Name("dateCreated").if_not_exists(self._timer()))
            .set("dateUpdated", Value(self._timer()))
        )
        expression = ExpressionBuilder().with_update(update).build()
        item = self._db.update(
            USER_TABLE_NAME, user_pk(note.user_id), note_sk(note.entity_id), expression
        )
        return _without_keys(Note.from_item(item))