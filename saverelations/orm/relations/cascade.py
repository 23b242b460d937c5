# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from typing import Any

from saverelations.orm.relations.base import RelationComponent, logger
from saverelations.orm.relations.session import RelationSyncSession
from saverelations.orm.relations.utils import RelationPersistenceError


class CascadeDeletionCoordinator(RelationComponent):
    """Delete the related records of cascade relations after the owner."""

    async def before_delete(self, session: RelationSyncSession, owner: Any) -> bool:
        for name in self.registry.cascade_delete:
            relation = self.relation(owner, name)
            value = await self.adapter.fetch_related(owner, relation)

            if relation.multiple:
                session.pending_deletions.extend(value or [])
            elif value is not None:
                session.pending_deletions.append(value)

        return True

    async def after_delete(self, session: RelationSyncSession, owner: Any) -> bool:
        for record in session.take_pending_deletions():
            try:
                if not await self.delete_related(record):
                    raise RelationPersistenceError(
                        f"Could not delete the related record: {type(record).__name__}"
                        f"({self.adapter.primary_key(record)!r})"
                    )

            except Exception as e:
                logger.warning(
                    f"{type(e).__name__} was thrown while deleting related records "
                    f"after delete: {e}"
                )
                await self.rollback_saved_singles(session)
                raise

        return True


__all__ = [
    "CascadeDeletionCoordinator",
]
