# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from typing import Any


SESSION_ATTRIBUTE = "_save_relations_session"


class RelationSyncSession:
    """
    Relation state of one owner record.

    A relation is "armed" (touched) once its old value has been captured. It
    stays armed, with its first captured value, until the post-save phase has
    synchronized it.
    """

    def __init__(self):
        self.old_values: dict[str, Any] = {}
        self.new_values: dict[str, Any] = {}
        self.saved_singles: list[Any] = []
        self.pending_deletions: list[Any] = []
        self.scenarios: dict[str, str] = {}
        self.save_started: bool = False

    @property
    def has_touched(self) -> bool:
        return bool(self.old_values)

    def is_armed(self, name: str) -> bool:
        return name in self.old_values

    def arm(self, name: str, old_value: Any) -> bool:
        """Capture the old value of a relation, once per cycle."""
        if name in self.old_values:
            return False

        self.old_values[name] = _snapshot(old_value)

        return True

    def disarm(self, name: str) -> None:
        self.old_values.pop(name, None)
        self.new_values.pop(name, None)

    def set_new_value(self, name: str, value: Any) -> None:
        self.new_values[name] = value

    def take_saved_singles(self) -> list[Any]:
        records, self.saved_singles = self.saved_singles, []
        return records

    def take_pending_deletions(self) -> list[Any]:
        records, self.pending_deletions = self.pending_deletions, []
        return records


def get_session(owner: Any) -> RelationSyncSession:
    """Return the session stored on an owner record, creating it on first use."""
    session = getattr(owner, SESSION_ATTRIBUTE, None)

    if session is None:
        session = RelationSyncSession()
        setattr(owner, SESSION_ATTRIBUTE, session)

    return session


def _snapshot(value: Any) -> Any:
    # Collections are copied so later in-place changes don't leak into the old value
    if isinstance(value, (list, tuple)):
        return list(value)

    return value


__all__ = [
    "RelationSyncSession",
    "get_session",
    "SESSION_ATTRIBUTE",
]
