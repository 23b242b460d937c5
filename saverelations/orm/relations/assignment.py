# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Assignment of relation values on an owner record."""

from typing import Any, Mapping

from saverelations.orm.relations.base import RelationComponent, logger
from saverelations.orm.relations.metadata import RelationInfo
from saverelations.orm.relations.session import RelationSyncSession, get_session
from saverelations.orm.relations.values import (
    AttributesValue,
    KeyValue,
    RecordValue,
    RelationValue,
    as_entries,
    classify_value,
)


class AssignmentEngine(RelationComponent):
    async def assign(self, owner: Any, name: str, value: Any) -> bool:
        """
        Assign a relation value on the owner.

        The value becomes the pending value of the relation and is visible
        right away through the owner's relation cache.

        Returns:
            False when the assignment is ignored because the relation is not
            a safe attribute of the owner.

        Raises:
            RelationArgumentError: If the relation is not declared
        """
        relation = self.relation(owner, name)

        if (
            self.behavior.only_safe_attributes
            and name not in self.adapter.safe_attributes(owner)
        ):
            logger.debug(f"Ignoring unsafe {name} relation assignment")
            return False

        logger.debug(f"Setting {name} relation value")
        session = get_session(owner)

        if not session.is_armed(name):
            session.arm(name, await self.initial_value(owner, relation))

        if relation.multiple:
            new_value: Any = await self._resolve_many(owner, relation, session, value)
        else:
            new_value = await self._resolve(
                owner, relation, session, self._classify(relation, value)
            )

        session.set_new_value(name, new_value)
        self.adapter.populate_related(owner, relation, new_value)

        return True

    async def initial_value(self, owner: Any, relation: RelationInfo) -> Any:
        if self.adapter.is_new(owner):
            return [] if relation.multiple else None

        return await self.adapter.fetch_related(owner, relation)

    def _classify(self, relation: RelationInfo, value: Any) -> RelationValue | None:
        return classify_value(
            value, lambda candidate: self.adapter.is_related_record(candidate, relation)
        )

    async def _resolve_many(
        self,
        owner: Any,
        relation: RelationInfo,
        session: RelationSyncSession,
        value: Any,
    ) -> list[Any]:
        records = []

        for entry in as_entries(value):
            record = await self._resolve(
                owner, relation, session, self._classify(relation, entry)
            )

            if record is None:
                logger.warning(f"Dropping unresolved {relation.name} entry: {entry!r}")
                continue

            records.append(record)

        return records

    async def _resolve(
        self,
        owner: Any,
        relation: RelationInfo,
        session: RelationSyncSession,
        value: RelationValue | None,
    ) -> Any:
        if value is None:
            return None

        if isinstance(value, RecordValue):
            return value.record

        data: Mapping[str, Any] | None = None

        if isinstance(value, KeyValue):
            keys = value.key
        else:
            data = value.attributes
            keys = self._derive_keys(owner, relation, data)

        record = None

        if _has_keys(keys):
            record = await self.adapter.find_one(relation.related_type, keys)

        scenario = self.scenario_for(session, relation.name)

        if record is None:
            if not data:
                if isinstance(value, KeyValue):
                    logger.warning(
                        f"No {relation.related_type.__name__} record found for {keys!r}"
                    )
                return None

            record = self.adapter.create(relation.related_type, data, scenario)
        else:
            if scenario is not None:
                self.adapter.set_scenario(record, scenario)

            if data:
                self.adapter.set_attributes(record, data)

        if data:
            nested = self.adapter.behavior_for(record)

            if nested is not None:
                await nested.load_relations_for_save(record, data)

        return record

    def _derive_keys(
        self, owner: Any, relation: RelationInfo, data: Mapping[str, Any]
    ) -> dict[str, Any]:
        """
        Find the keys identifying an existing related record in an attribute map.

        Primary key columns are read from the map; for direct collections the
        ones paired with an owner column are taken from the owner. Failing
        that, the map entries named after the link owner columns are used.
        """
        primary_keys = self.adapter.primary_key_names(relation.related_type)
        link = relation.key_link()
        keys: dict[str, Any] = {}

        for column in primary_keys:
            if data.get(column) is not None:
                keys[column] = data[column]

            elif relation.multiple and not relation.uses_junction:
                for related_column, owner_column in link.items():
                    if data.get(related_column) is None and related_column in primary_keys:
                        owner_value = self.adapter.get_attribute(owner, owner_column)

                        if owner_value is not None:
                            keys[related_column] = owner_value

            else:
                keys = {}
                break

        if not keys:
            for owner_column in link.values():
                if data.get(owner_column) is not None:
                    keys[owner_column] = data[owner_column]

        return keys


def _has_keys(keys: Any) -> bool:
    if isinstance(keys, Mapping):
        return bool(keys)

    return keys is not None


__all__ = [
    "AssignmentEngine",
]
