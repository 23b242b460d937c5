# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import logging

from typing import Any, TYPE_CHECKING

from saverelations.orm.relations.adapter import RecordAdapter
from saverelations.orm.relations.config import RelationRegistry
from saverelations.orm.relations.metadata import RelationInfo
from saverelations.orm.relations.session import RelationSyncSession
from saverelations.orm.relations.utils import pretty_relation_name

if TYPE_CHECKING:
    from saverelations.orm.relations.behavior import SaveRelationsBehavior


logger = logging.getLogger("saverelations.relations")


class RelationComponent:
    """Base of the components driven by a SaveRelationsBehavior."""

    def __init__(self, behavior: "SaveRelationsBehavior"):
        self.behavior = behavior

    @property
    def adapter(self) -> RecordAdapter:
        return self.behavior.adapter

    @property
    def registry(self) -> RelationRegistry:
        return self.behavior.registry

    def relation(self, owner: Any, name: str) -> RelationInfo:
        return self.behavior.relation_info(owner, name)

    def scenario_for(self, session: RelationSyncSession, name: str) -> str | None:
        if name in session.scenarios:
            return session.scenarios[name]

        descriptor = self.registry.get(name)

        return descriptor.scenario if descriptor else None

    def label(self, relation: RelationInfo, index: int | None = None) -> str:
        if relation.label:
            return relation.label if index is None else f"{relation.label} #{index}"

        return pretty_relation_name(relation.name, index)

    def add_related_errors(
        self, owner: Any, relation: RelationInfo, record: Any, label: str
    ) -> None:
        """Copy the errors of a related record onto the owner relation attribute."""
        for messages in self.adapter.errors(record).values():
            for message in messages:
                self.adapter.add_error(owner, relation.name, f"{label}: {message}")

    async def validate_related(self, record: Any) -> bool:
        nested = self.adapter.behavior_for(record)

        if nested is not None:
            return await nested.validate(record)

        return await self.adapter.validate(record)

    async def save_related(self, record: Any) -> bool:
        nested = self.adapter.behavior_for(record)

        if nested is not None:
            return await nested.save(record)

        return await self.adapter.save(record)

    async def delete_related(self, record: Any) -> bool:
        nested = self.adapter.behavior_for(record)

        if nested is not None:
            return await nested.delete(record)

        return await self.adapter.delete(record)

    async def rollback_saved_singles(self, session: RelationSyncSession) -> None:
        """Delete the single relation records saved during pre-validation."""
        for record in session.take_saved_singles():
            logger.debug(f"Rolling back saved {type(record).__name__} record")

            try:
                await self.delete_related(record)
            except Exception as e:
                logger.error(
                    f"Could not roll back {type(record).__name__}"
                    f"({self.adapter.primary_key(record)!r}): {e}"
                )


__all__ = [
    "RelationComponent",
    "logger",
]
