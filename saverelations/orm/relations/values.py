# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Tagged values accepted when assigning a relation.

A relation can be assigned with:
- RecordValue(record) - an instance of the related type, used as-is
- KeyValue(42) or KeyValue({"id": 42}) - the key of an existing record
- AttributesValue({"name": ...}) - attributes used to find or create a record

Raw input is classified with `classify_value`, tagged values pass through.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping


@dataclass(frozen=True)
class RecordValue:
    record: Any


@dataclass(frozen=True)
class KeyValue:
    key: Any


@dataclass(frozen=True)
class AttributesValue:
    attributes: Mapping[str, Any]


RelationValue = RecordValue | KeyValue | AttributesValue


def classify_value(
    value: Any, is_related_record: Callable[[Any], bool]
) -> RelationValue | None:
    """
    Tag a raw relation value.

    Args:
        value: The raw value
        is_related_record: Predicate telling whether value is a related record

    Returns:
        The tagged value, or None for an empty value

    Examples:
        >>> classify_value(42, lambda v: False)
        KeyValue(key=42)
        >>> classify_value({"name": "Acme"}, lambda v: False)
        AttributesValue(attributes={'name': 'Acme'})
    """
    if isinstance(value, (RecordValue, KeyValue, AttributesValue)):
        return value

    if value is None or value == "":
        return None

    if is_related_record(value):
        return RecordValue(value)

    if isinstance(value, Mapping):
        return AttributesValue(value)

    return KeyValue(value)


def as_entries(value: Any) -> list[Any]:
    """Normalize the value of a collection relation into a list of entries."""
    if value is None or value == "":
        return []

    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)

    return [value]


__all__ = [
    "RecordValue",
    "KeyValue",
    "AttributesValue",
    "RelationValue",
    "classify_value",
    "as_entries",
]
