"""Partition and sort key formats for the single-table user store."""

_USER_KEY = "USER#{}"
_PROGRESS_KEY = "PROGRESS#{}"
_NOTE_KEY = "NOTE#{}"
_TIMEMAP_KEY = "TIMEMAP"


def user_pk(id: str) -> str:
    """Partition key holding every record that belongs to a user."""
    return _USER_KEY.format(id)


def progress_sk(id: str) -> str:
    """Sort key of a user's progress record for an entity."""
    return _PROGRESS_KEY.format(id)


def note_sk(id: str) -> str:
    """Sort key of a user's note for an entity."""
    return _NOTE_KEY.format(id)


def timemap_sk() -> str:
    """Sort key of a user's timemap record."""
    return _TIMEMAP_KEY