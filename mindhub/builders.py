"""Builders of sample records filled with random data, for use in tests."""

from __future__ import annotations

import dataclasses
import random
import string
from datetime import datetime

from .models import Note, Progress, Status, Timemap

_CHARACTERS = string.ascii_letters + string.digits
_WORDS = (
    "alpha", "bravo", "calm", "delta", "echo", "field", "garden", "harbour",
    "island", "journey", "kettle", "lantern", "meadow", "night", "orchard",
    "river", "stone", "travel", "valley", "window",
)


def random_characters(n: int) -> str:
    """Return ``n`` random letters and digits."""
    return "".join(random.choices(_CHARACTERS, k=n))


def _random_sentences() -> str:
    sentences = []
    for _ in range(random.randint(1, 3)):
        words = random.choices(_WORDS, k=random.randint(3, 8))
        sentences.append(" ".join(words).capitalize() + ".")
    return " ".join(sentences)


class NoteBuilder:
    """Immutable builder of Note records; each ``with_`` call returns a new builder."""

    def __init__(self, note: Note | None = None) -> None:
        self._note = note if note is not None else Note(
            id=random_characters(10),
            entity_id=random_characters(10),
            user_id=random_characters(10),
            value=_random_sentences(),
        )

    def _with(self, **changes: object) -> NoteBuilder:
        return NoteBuilder(dataclasses.replace(self._note, **changes))

    def with_id(self, id: str) -> NoteBuilder:
        return self._with(id=id)

    def with_pk(self, pk: str) -> NoteBuilder:
        return self._with(pk=pk)

    def with_sk(self, sk: str) -> NoteBuilder:
        return self._with(sk=sk)

    def with_user_id(self, id: str) -> NoteBuilder:
        return self._with(user_id=id)

    def with_entity_id(self, id: str) -> NoteBuilder:
        return self._with(entity_id=id)

    def with_value(self, value: str) -> NoteBuilder:
        return self._with(value=value)

    def with_date_created(self, when: datetime) -> NoteBuilder:
        return self._with(date_created=when)

    def with_date_updated(self, when: datetime) -> NoteBuilder:
        return self._with(date_updated=when)

    def build(self) -> Note:
        return dataclasses.replace(self._note)


class ProgressBuilder:
    """Immutable builder of Progress records; each call returns a new builder."""

    def __init__(self, progress: Progress | None = None) -> None:
        self._progress = progress if progress is not None else Progress(
            id=random_characters(10),
            user_id=random_characters(10),
            entity_id=random_characters(10),
            state=Status.STARTED,
        )

    def _with(self, **changes: object) -> ProgressBuilder:
        return ProgressBuilder(dataclasses.replace(self._progress, **changes))

    def with_id(self, id: str) -> ProgressBuilder:
        return self._with(id=id)

    def with_pk(self, pk: str) -> ProgressBuilder:
        return self._with(pk=pk)

    def with_sk(self, sk: str) -> ProgressBuilder:
        return self._with(sk=sk)

    def with_user_id(self, id: str) -> ProgressBuilder:
        return self._with(user_id=id)

    def with_entity_id(self, id: str) -> ProgressBuilder:
        return self._with(entity_id=id)

    def completed(self) -> ProgressBuilder:
        return self._with(state=Status.COMPLETED)

    def with_date_started(self, when: datetime) -> ProgressBuilder:
        return self._with(date_started=when)

    def build(self) -> Progress:
        return dataclasses.replace(self._progress)


class TimemapBuilder:
    """Immutable builder of Timemap records; each call returns a new builder."""

    def __init__(self, timemap: Timemap | None = None) -> None:
        self._timemap = timemap if timemap is not None else Timemap(
            id=random_characters(10),
            user_id=random_characters(10),
            map=random_characters(10),
        )

    def _with(self, **changes: object) -> TimemapBuilder:
        return TimemapBuilder(dataclasses.replace(self._timemap, **changes))

    def with_id(self, id: str) -> TimemapBuilder:
        return self._with(id=id)

    def with_pk(self, pk: str) -> TimemapBuilder:
        return self._with(pk=pk)

    def with_sk(self, sk: str) -> TimemapBuilder:
        return self._with(sk=sk)

    def with_user_id(self, id: str) -> TimemapBuilder:
        return self._with(user_id=id)

    def with_map(self, value: str) -> TimemapBuilder:
        return self._with(map=value)

    def with_date_updated(self, when: datetime) -> TimemapBuilder:
        return self._with(date_updated=when)

    def with_date_created(self, when: datetime) -> TimemapBuilder:
        return self._with(date_created=when)

    def build(self) -> Timemap:
        return dataclasses.replace(self._timemap)