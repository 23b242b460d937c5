# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Validation of related records before the owner is validated."""

from typing import Any

from saverelations.orm.relations.base import RelationComponent, logger
from saverelations.orm.relations.metadata import RelationInfo
from saverelations.orm.relations.session import RelationSyncSession
from saverelations.orm.relations.utils import (
    RelationConfigError,
    RelationPersistenceError,
    RelationValidationError,
)


class ValidationCoordinator(RelationComponent):
    async def before_validate(self, session: RelationSyncSession, owner: Any) -> bool:
        """
        Validate the touched related records and prepare single relations.

        New single records the owner points to are saved here, so that their
        key can be copied on the owner before its own validation. On failure
        those records are deleted again and an error is added on the owner.
        """
        if session.save_started or not session.has_touched:
            return True

        try:
            await self._prepare_related(session, owner)

            for name in self.registry.names:
                if session.is_armed(name):
                    await self._set_foreign_keys(owner, self.relation(owner, name))

        except RelationConfigError:
            raise

        except Exception as e:
            logger.warning(
                f"{type(e).__name__} was thrown while saving related records "
                f"before validation: {e}"
            )
            await self.rollback_saved_singles(session)
            self.adapter.add_error(owner, self.adapter.form_name(type(owner)), str(e))

            return False

        return True

    async def after_validate(self, session: RelationSyncSession, owner: Any) -> bool:
        if session.saved_singles and self.adapter.has_errors(owner):
            await self.rollback_saved_singles(session)

        return True

    async def _prepare_related(self, session: RelationSyncSession, owner: Any) -> None:
        valid = True

        for name in self.registry.names:
            if not session.is_armed(name):
                continue

            relation = self.relation(owner, name)
            value = self.adapter.get_related(owner, relation)

            if relation.multiple:
                for index, record in enumerate(value or []):
                    valid = await self._validate_record(owner, relation, record, index) and valid

            elif value is not None:
                valid = await self._prepare_single(session, owner, relation, value, valid)

        if not valid:
            raise RelationValidationError("One of the related records could not be validated")

    async def _prepare_single(
        self,
        session: RelationSyncSession,
        owner: Any,
        relation: RelationInfo,
        record: Any,
        valid: bool,
    ) -> bool:
        logger.debug(f"Preparing {relation.name} single relation")
        valid = await self._validate_record(owner, relation, record) and valid

        if not (relation.foreign_key_on_owner and self.adapter.is_new(record)):
            return valid

        if valid and (self.adapter.dirty_attributes(owner) or self.adapter.is_new(record)):
            logger.debug(f"Saving {self.label(relation)} relation record")

            if not await self.save_related(record):
                self.add_related_errors(owner, relation, record, self.label(relation))
                return False

            session.saved_singles.append(record)

        return valid

    async def _validate_record(
        self,
        owner: Any,
        relation: RelationInfo,
        record: Any,
        index: int | None = None,
    ) -> bool:
        if not (self.adapter.is_new(record) or self.adapter.dirty_attributes(record)):
            return True

        label = self.label(relation, index)
        logger.debug(f"Validating {label} relation record")

        if await self.validate_related(record):
            return True

        self.add_related_errors(owner, relation, record, label)

        return False

    async def _set_foreign_keys(self, owner: Any, relation: RelationInfo) -> None:
        """Copy the key of a single related record on the owner foreign key."""
        if relation.multiple or not relation.foreign_key_on_owner:
            return

        related = self.adapter.get_related(owner, relation)

        if related is None:
            return

        logger.debug(f"Setting foreign keys for {relation.name}")

        for related_column, owner_column in relation.link.items():
            value = self.adapter.get_attribute(related, related_column)

            if self.adapter.get_attribute(owner, owner_column) == value and value is not None:
                continue

            if self.adapter.is_new(related):
                if not await self.save_related(related):
                    raise RelationPersistenceError(
                        f"Related record {self.label(relation)} could not be saved."
                    )

                value = self.adapter.get_attribute(related, related_column)

            self.adapter.set_attribute(owner, owner_column, value)


__all__ = [
    "ValidationCoordinator",
]
