# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Persistence port used by the relation sync engine."""

from abc import ABC, abstractmethod
from typing import Any, Mapping, TYPE_CHECKING

from saverelations.orm.relations.metadata import RelationInfo
from saverelations.orm.relations.utils import primary_key_token

if TYPE_CHECKING:
    from saverelations.orm.relations.behavior import SaveRelationsBehavior


class RecordAdapter(ABC):
    """
    Capabilities the relation sync engine needs from the data mapper.

    Attribute, error and cache accessors are synchronous, every call that can
    hit the storage is a coroutine.
    """

    # Metadata

    @abstractmethod
    def relation(self, record_type: Any, name: str) -> RelationInfo | None:
        """Return the relation metadata, or None if the type has no such relation."""

    @abstractmethod
    def primary_key_names(self, record_type: Any) -> list[str]:
        pass

    def is_related_record(self, value: Any, relation: RelationInfo) -> bool:
        return isinstance(value, relation.related_type)

    def form_name(self, record_type: Any) -> str:
        return record_type.__name__

    def behavior_for(self, record: Any) -> "SaveRelationsBehavior | None":
        """Return the relation behavior carried by a record, if any."""
        return None

    # Attributes

    @abstractmethod
    def is_new(self, record: Any) -> bool:
        pass

    def primary_key(self, record: Any) -> dict[str, Any]:
        return {
            name: self.get_attribute(record, name)
            for name in self.primary_key_names(type(record))
        }

    def primary_key_token(self, record: Any) -> str:
        return primary_key_token(self.primary_key(record))

    @abstractmethod
    def get_attribute(self, record: Any, name: str) -> Any:
        pass

    @abstractmethod
    def set_attribute(self, record: Any, name: str, value: Any) -> None:
        pass

    @abstractmethod
    def set_attributes(self, record: Any, data: Mapping[str, Any]) -> None:
        """Mass-assign the safe attributes found in data."""

    @abstractmethod
    def dirty_attributes(self, record: Any) -> dict[str, Any]:
        pass

    @abstractmethod
    def safe_attributes(self, record: Any) -> set[str]:
        pass

    @abstractmethod
    def set_scenario(self, record: Any, scenario: str) -> None:
        pass

    def instantiate(self, record_type: Any) -> Any:
        return record_type()

    def create(
        self,
        record_type: Any,
        data: Mapping[str, Any],
        scenario: str | None = None,
    ) -> Any:
        """Construct a new unsaved record, apply the scenario, then the attributes."""
        record = self.instantiate(record_type)

        if scenario is not None:
            self.set_scenario(record, scenario)

        self.set_attributes(record, data)

        return record

    # Errors

    @abstractmethod
    def errors(self, record: Any) -> dict[str, list[str]]:
        pass

    @abstractmethod
    def add_error(self, record: Any, attribute: str, message: str) -> None:
        pass

    @abstractmethod
    def clear_errors(self, record: Any) -> None:
        pass

    def has_errors(self, record: Any) -> bool:
        return any(self.errors(record).values())

    # In-memory relation cache

    @abstractmethod
    def get_related(self, owner: Any, relation: RelationInfo) -> Any:
        """Return the in-memory value of a relation ([] / None when not loaded)."""

    @abstractmethod
    def populate_related(self, owner: Any, relation: RelationInfo, value: Any) -> None:
        pass

    # Storage

    @abstractmethod
    async def fetch_related(self, owner: Any, relation: RelationInfo) -> Any:
        """Return the relation value, loading and caching it when needed."""

    @abstractmethod
    async def find_one(self, record_type: Any, key: Any) -> Any | None:
        """Find a record by primary key value or by a column mapping."""

    @abstractmethod
    async def validate(self, record: Any, clear_errors: bool = True) -> bool:
        pass

    @abstractmethod
    async def save(self, record: Any, run_validation: bool = True) -> bool:
        pass

    @abstractmethod
    async def delete(self, record: Any) -> bool:
        pass

    @abstractmethod
    async def link(
        self,
        owner: Any,
        relation: RelationInfo,
        related: Any,
        extra_columns: Mapping[str, Any] | None = None,
    ) -> None:
        """Persist the connection between owner and related, updating the cache."""

    @abstractmethod
    async def unlink(
        self,
        owner: Any,
        relation: RelationInfo,
        related: Any,
        delete: bool = False,
    ) -> None:
        """
        Remove the persisted connection between owner and related.

        Junction rows are always deleted. For direct relations the foreign key
        is cleared, or the related record deleted when ``delete`` is set.
        """

    @abstractmethod
    async def refresh(self, record: Any) -> None:
        pass


__all__ = [
    "RecordAdapter",
]
