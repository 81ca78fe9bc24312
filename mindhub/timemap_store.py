"""Storage of users' timemaps."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Callable

from .dynamo import ExpressionBuilder, Name, NotFoundError, Storer, UpdateBuilder, Value
from .keys import timemap_sk, user_pk
from .models import Timemap, generate_id

USER_TABLE_NAME = "user"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _without_keys(timemap: Timemap) -> Timemap:
    return dataclasses.replace(timemap, pk="", sk="")


class TimemapStore:
    """Reads and writes the single timemap kept under a user's partition."""

    def __init__(
        self,
        db: Storer,
        id_generator: Callable[[], str] = generate_id,
        timer: Callable[[], datetime] = _now,
    ) -> None:
        self._db = db
        self._id_generator = id_generator
        self._timer = timer

    def get(self, user_id: str) -> Timemap | None:
        """Return the user's timemap, or None when there is none."""
        try:
            item = self._db.get(USER_TABLE_NAME, user_pk(user_id), timemap_sk())
        except NotFoundError:
            return None
        return Timemap.from_item(item)

    def create(self, timemap: Timemap) -> Timemap:
        """Store a new timemap with a fresh id and timestamps, and return it."""
        stored = dataclasses.replace(
            timemap,
            id=self._id_generator(),
            date_created=self._timer(),
            date_updated=self._timer(),
            pk=user_pk(timemap.user_id),
            sk=timemap_sk(),
        )
        self._db.put(USER_TABLE_NAME, stored)
        return _without_keys(stored)

    def update(self, timemap: Timemap) -> Timemap:
        """Set the timemap's map, creating the record when absent, and return it."""
        update = (
            UpdateBuilder()
            .set("id", Name("id").if_not_exists(self._id_generator()))
            .set("userID", Name("userID").if_not_exists(timemap.user_id))
            .set("map", Value(timemap.map))
            .set("dateCreated", Name("dateCreated").if_not_exists(self._timer()))
            .set("dateUpdated", Value(self._timer()))
        )
        expression = ExpressionBuilder().with_update(update).build()
        item = self._db.update(
            USER_TABLE_NAME, user_pk(timemap.user_id), timemap_sk(), expression
        )
        return _without_keys(Timemap.from_item(item))