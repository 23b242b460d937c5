# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Errors and small helpers shared by the relation sync engine."""

import re

from typing import Any, Iterable, Mapping


class RelationSyncError(Exception):
    """Base error of the relation sync engine."""

    pass


class RelationConfigError(RelationSyncError):
    """Invalid relation configuration, raised at initialization."""

    pass


class RelationArgumentError(RelationSyncError, ValueError):
    """A relation name that is not declared on the owner."""

    pass


class RelationValidationError(RelationSyncError):
    """One of the related records could not be validated."""

    pass


class RelationPersistenceError(RelationSyncError):
    """A related record could not be saved, linked, unlinked or deleted."""

    pass


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def pretty_relation_name(relation_name: str, index: int | None = None) -> str:
    """
    Build a human readable label from a relation name.

    Examples:
        >>> pretty_relation_name("user_profiles")
        'User Profiles'
        >>> pretty_relation_name("projectLinks", 2)
        'Project Links #2'
    """
    words = _CAMEL_BOUNDARY.sub(" ", relation_name).replace("_", " ").split()
    label = " ".join(word[:1].upper() + word[1:] for word in words)

    if index is not None:
        label = f"{label} #{index}"

    return label


def primary_key_token(primary_key: Mapping[str, Any]) -> str:
    """Join primary key values in a stable token usable as a dict key."""
    return "-".join(str(value) for value in primary_key.values())


def compute_pk_diff(
    old_tokens: Iterable[str],
    new_tokens: Iterable[str],
    force: bool = False,
) -> tuple[list[str], list[str]]:
    """
    Compute (added, removed) primary key tokens between two record sets.

    With ``force`` every old token is removed and every new token added, even
    when a record is present on both sides.

    Examples:
        >>> compute_pk_diff(["1", "2", "3"], ["1", "4"])
        (['4'], ['2', '3'])
        >>> compute_pk_diff(["1", "2"], ["1"], force=True)
        (['1'], ['1', '2'])
    """
    old_tokens = list(old_tokens)
    new_tokens = list(new_tokens)

    if force:
        return new_tokens, old_tokens

    identical = set(old_tokens) & set(new_tokens)
    added = [token for token in new_tokens if token not in identical]
    removed = [token for token in old_tokens if token not in identical]

    return added, removed


__all__ = [
    "RelationSyncError",
    "RelationConfigError",
    "RelationArgumentError",
    "RelationValidationError",
    "RelationPersistenceError",
    "pretty_relation_name",
    "primary_key_token",
    "compute_pk_diff",
]
