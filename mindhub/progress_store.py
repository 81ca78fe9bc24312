"""Storage of users' progress through course entities."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Callable

from .dynamo import (
    ExpressionBuilder,
    Name,
    NotFoundError,
    Storer,
    StoreError,
    UpdateBuilder,
    Value,
)
from .keys import progress_sk, user_pk
from .models import Progress, Status, generate_id

USER_TABLE_NAME = "user"

_log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProgressStore:
    """Reads and writes progress records kept under a user's partition."""

    def __init__(
        self,
        db: Storer,
        id_generator: Callable[[], str] = generate_id,
        timer: Callable[[], datetime] = _now,
    ) -> None:
        self._db = db
        self._id_generator = id_generator
        self._timer = timer

    def get(self, entity_id: str, user_id: str) -> Progress | None:
        """Return the user's progress for an entity, or None when there is none."""
        try:
            item = self._db.get(USER_TABLE_NAME, user_pk(user_id), progress_sk(entity_id))
        except NotFoundError:
            return None
        return Progress.from_item(item)

    def get_completed_by_ids(self, user_id: str, *args: str) -> list[Progress]:
        """Return the user's completed progress records among the given entity ids."""
        keys = [progress_sk(entity_id) for entity_id in args]
        try:
            items = self._db.batch_get(USER_TABLE_NAME, user_pk(user_id), keys)
        except NotFoundError:
            return []
        records = (Progress.from_item(item) for item in items)
        return [p for p in records if p.state == Status.COMPLETED]

    def start(self, entity_id: str, user_id: str) -> Progress:
        """Record that the user has started an entity, and return the progress."""
        new_id = self._id_generator()
        record = Progress(
            pk=user_pk(user_id),
            sk=progress_sk(entity_id),
            id=new_id,
            entity_id=entity_id,
            user_id=user_id,
            state=Status.STARTED,
            date_started=self._timer(),
        )
        try:
            self._db.put(USER_TABLE_NAME, record)
        except Exception as err:
            _log.error("error completing progress %s in store: %s", entity_id, err)
            raise
        return Progress(
            id=new_id,
            entity_id=entity_id,
            user_id=user_id,
            state=Status.STARTED,
            date_started=self._timer(),
        )

    def complete(self, entity_id: str, user_id: str) -> Progress:
        """Mark the user's progress on an entity as completed, and return it."""
        update = (
            UpdateBuilder()
            .set("id", Name("id").if_not_exists(self._id_generator()))
            .set("entityID", Name("entityID").if_not_exists(entity_id))
            .set("userID", Name("userID").if_not_exists(user_id))
            .set("state", Value(Status.COMPLETED))
            .set("dateStarted", Name("dateStarted").if_not_exists(self._timer()))
            .set("dateCompleted", Value(self._timer()))
        )
        try:
            expression = ExpressionBuilder().with_update(update).build()
        except ValueError as err:
            raise StoreError(f"error creating complete progress expression {err}") from err
        try:
            item = self._db.update(
                USER_TABLE_NAME, user_pk(user_id), progress_sk(entity_id), expression
            )
        except Exception as err:
            _log.error("error completing progress %s in store: %s", entity_id, err)
            raise
        return dataclasses.replace(Progress.from_item(item), pk="", sk="")