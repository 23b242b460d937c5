# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Synchronization of the touched relations once the owner is saved."""

from typing import Any

from saverelations.orm.relations.base import RelationComponent, logger
from saverelations.orm.relations.metadata import RelationInfo
from saverelations.orm.relations.session import RelationSyncSession
from saverelations.orm.relations.utils import (
    RelationPersistenceError,
    RelationSyncError,
    compute_pk_diff,
)


class PostSaveSynchronizer(RelationComponent):
    async def after_save(self, session: RelationSyncSession, owner: Any) -> bool:
        """
        Link, unlink and save the related records of every touched relation.

        The owner is already persisted at this point: any failure is raised
        to the caller after the pre-saved single records are rolled back.
        """
        if session.save_started:
            return True

        session.save_started = True

        try:
            for name, value in session.new_values.items():
                self.adapter.populate_related(owner, self.relation(owner, name), value)

            for name in self.registry.names:
                if not session.is_armed(name):
                    continue

                logger.debug(f"Linking {name} relation")
                relation = self.relation(owner, name)

                if relation.multiple:
                    await self._sync_multiple(session, owner, relation)
                else:
                    await self._sync_single(session, owner, relation)

                session.disarm(name)

            await self.adapter.refresh(owner)

        except Exception as e:
            logger.warning(
                f"{type(e).__name__} was thrown while saving related records "
                f"after save: {e}"
            )
            await self.rollback_saved_singles(session)

            if isinstance(e, RelationSyncError):
                raise

            raise RelationPersistenceError(
                f"Error while saving the relations of {type(owner).__name__}: {e}"
            ) from e

        finally:
            session.save_started = False

        session.saved_singles.clear()

        return True

    async def _sync_multiple(
        self, session: RelationSyncSession, owner: Any, relation: RelationInfo
    ) -> None:
        descriptor = self.registry.get(relation.name)
        reassigned = relation.name in session.new_values
        existing = []

        for index, record in enumerate(list(self.adapter.get_related(owner, relation) or [])):
            if self.adapter.is_new(record):
                if relation.uses_junction:
                    await self._save_or_fail(owner, relation, record, index)

                await self.adapter.link(
                    owner, relation, record, descriptor.junction_columns(record)
                )
            else:
                existing.append(record)

            if self.adapter.dirty_attributes(record) or reassigned:
                await self._save_or_fail(owner, relation, record, index)

        old_records = {
            self.adapter.primary_key_token(record): record
            for record in session.old_values[relation.name] or []
        }
        current_records = {
            self.adapter.primary_key_token(record): record for record in existing
        }
        added, removed = compute_pk_diff(
            old_records, current_records, force=descriptor.has_extra_columns
        )

        for token in removed:
            logger.debug(f"Unlinking {relation.name} record {token}")
            await self.adapter.unlink(owner, relation, old_records[token])

        for token in added:
            logger.debug(f"Linking {relation.name} record {token}")
            record = current_records[token]
            await self.adapter.link(
                owner, relation, record, descriptor.junction_columns(record)
            )

    async def _sync_single(
        self, session: RelationSyncSession, owner: Any, relation: RelationInfo
    ) -> None:
        old_record = session.old_values[relation.name]
        record = self.adapter.get_related(owner, relation)

        if old_record is not record:
            if record is not None:
                await self.adapter.link(owner, relation, record)
            elif old_record is not None:
                await self.adapter.unlink(owner, relation, old_record)

        if record is not None:
            await self._save_or_fail(owner, relation, record)

    async def _save_or_fail(
        self, owner: Any, relation: RelationInfo, record: Any, index: int | None = None
    ) -> None:
        if await self.save_related(record):
            return

        label = self.label(relation, index)
        self.add_related_errors(owner, relation, record, label)

        raise RelationPersistenceError(f"Related record {label} could not be saved.")


__all__ = [
    "PostSaveSynchronizer",
]
