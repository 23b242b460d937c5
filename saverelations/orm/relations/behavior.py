# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Save the relations of a record together with the record itself.

Declare the handled relations once per owner type:

    behavior = SaveRelationsBehavior(
        [
            "company",
            ("users", {"extra_columns": lambda user: {"role": user.role}}),
            {"links": {"cascade_delete": True}},
        ],
        adapter,
    )

then assign relations and save the owner through the behavior:

    await behavior.set_relation(project, "company", {"name": "Acme"})
    await behavior.set_relation(project, "users", [1, 2, {"username": "new"}])
    await behavior.save(project)
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping

from saverelations.config import RelationKeyName, get_settings
from saverelations.orm.relations.adapter import RecordAdapter
from saverelations.orm.relations.assignment import AssignmentEngine
from saverelations.orm.relations.base import logger
from saverelations.orm.relations.cascade import CascadeDeletionCoordinator
from saverelations.orm.relations.config import RelationEntry, RelationRegistry
from saverelations.orm.relations.metadata import RelationInfo
from saverelations.orm.relations.session import RelationSyncSession, get_session
from saverelations.orm.relations.synchronizer import PostSaveSynchronizer
from saverelations.orm.relations.utils import RelationArgumentError, RelationConfigError
from saverelations.orm.relations.validation import ValidationCoordinator


class Phase(str, Enum):
    BEFORE_VALIDATE = "before_validate"
    AFTER_VALIDATE = "after_validate"
    AFTER_SAVE = "after_save"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"


PhaseHandler = Callable[[RelationSyncSession, Any], Awaitable[bool]]


class SaveRelationsBehavior:
    """Relation sync engine of one owner record type."""

    def __init__(
        self,
        relations: Iterable[RelationEntry],
        adapter: RecordAdapter,
        *,
        relation_key_name: RelationKeyName | str | None = None,
        only_safe_attributes: bool | None = None,
    ):
        settings = get_settings()

        self.registry = RelationRegistry(relations)
        self.adapter = adapter
        self.relation_key_name = _parse_key_name(
            settings.relation_key_name if relation_key_name is None else relation_key_name
        )
        self.only_safe_attributes = (
            settings.only_safe_attributes
            if only_safe_attributes is None
            else only_safe_attributes
        )

        self.assignment = AssignmentEngine(self)
        self.validation = ValidationCoordinator(self)
        self.synchronizer = PostSaveSynchronizer(self)
        self.cascade = CascadeDeletionCoordinator(self)

        self._phases: dict[Phase, list[tuple[int, PhaseHandler]]] = {
            phase: [] for phase in Phase
        }
        self.add_phase_handler(Phase.BEFORE_VALIDATE, self.validation.before_validate)
        self.add_phase_handler(Phase.AFTER_VALIDATE, self.validation.after_validate)
        self.add_phase_handler(Phase.AFTER_SAVE, self.synchronizer.after_save)
        self.add_phase_handler(Phase.BEFORE_DELETE, self.cascade.before_delete)
        self.add_phase_handler(Phase.AFTER_DELETE, self.cascade.after_delete)

    # Pipeline

    def add_phase_handler(
        self, phase: Phase, handler: PhaseHandler, priority: int = 100
    ) -> None:
        """
        Register a handler for a pipeline phase.

        Args:
            phase: The phase
            handler: Coroutine taking (session, owner), returning False to abort
            priority: Priority (lower = executed first, default: 100)
        """
        self._phases[phase].append((priority, handler))
        self._phases[phase].sort(key=lambda x: x[0])

    async def run_phase(self, phase: Phase, owner: Any) -> bool:
        session = get_session(owner)

        for _, handler in self._phases[phase]:
            if not await handler(session, owner):
                logger.debug(f"{phase.value} aborted for {type(owner).__name__}")
                return False

        return True

    async def validate(self, owner: Any) -> bool:
        """Validate the touched relations, then the owner itself."""
        self.adapter.clear_errors(owner)

        if not await self.run_phase(Phase.BEFORE_VALIDATE, owner):
            return False

        await self.adapter.validate(owner, clear_errors=False)
        await self.run_phase(Phase.AFTER_VALIDATE, owner)

        return not self.adapter.has_errors(owner)

    async def save(self, owner: Any, run_validation: bool = True) -> bool:
        """
        Save the owner and synchronize its touched relations.

        Returns:
            False when the owner or one of its related records is invalid

        Raises:
            RelationSyncError: If relations fail after the owner was persisted
        """
        session = get_session(owner)

        if session.save_started:
            # Nested save of an owner whose relations are being synchronized
            return await self.adapter.save(owner, run_validation=False)

        if run_validation and not await self.validate(owner):
            logger.debug(f"{type(owner).__name__} not saved, validation failed")
            return False

        if not await self.adapter.save(owner, run_validation=False):
            await self.validation.rollback_saved_singles(session)
            return False

        return await self.run_phase(Phase.AFTER_SAVE, owner)

    async def delete(self, owner: Any) -> bool:
        """Delete the owner, then the related records of cascade relations."""
        session = get_session(owner)

        if not await self.run_phase(Phase.BEFORE_DELETE, owner):
            return False

        if not await self.adapter.delete(owner):
            session.pending_deletions.clear()
            return False

        return await self.run_phase(Phase.AFTER_DELETE, owner)

    # Assignment

    def relation_info(self, owner: Any, name: str) -> RelationInfo:
        """
        Raises:
            RelationArgumentError: If the relation is not declared or unknown to the adapter
        """
        if name not in self.registry:
            raise RelationArgumentError(f"Unknown {name} relation")

        relation = self.adapter.relation(type(owner), name)

        if relation is None:
            raise RelationArgumentError(
                f"Relation {name} is not defined on {type(owner).__name__}"
            )

        return relation

    async def set_relation(self, owner: Any, name: str, value: Any) -> bool:
        return await self.assignment.assign(owner, name, value)

    async def load_relations_for_save(self, owner: Any, data: Mapping[str, Any]) -> None:
        """Assign every declared relation found in data."""
        for name in self.registry.names:
            key = self.relation_key(self.relation_info(owner, name))

            if key in data:
                await self.set_relation(owner, name, data[key])

    async def load(
        self, owner: Any, data: Mapping[str, Any], form_name: str | None = None
    ) -> bool:
        """
        Load owner attributes and relations from form shaped data.

        Owner data is read under its form name (or ``form_name``, "" for the
        top level); relation entries nested there are loaded like the ones
        given under the relation key.

        Example:
            await behavior.load(project, {"Project": {"name": "X", "users": [1, 2]}})
        """
        scope = self.adapter.form_name(type(owner)) if form_name is None else form_name
        payload = dict(data)

        if scope:
            if not isinstance(payload.get(scope), Mapping):
                return False
            scoped = dict(payload[scope])
        else:
            scoped = payload

        nested = {}

        for name in self.registry.names:
            if name in scoped:
                nested[self.relation_key(self.relation_info(owner, name))] = scoped.pop(name)

        self.adapter.set_attributes(owner, scoped)
        payload.update(nested)
        await self.load_relations_for_save(owner, payload)

        return True

    def relation_key(self, relation: RelationInfo) -> str:
        if self.relation_key_name is RelationKeyName.RELATION_NAME:
            return relation.name

        return self.adapter.form_name(relation.related_type)

    def set_relation_scenario(self, owner: Any, name: str, scenario: str) -> None:
        """
        Raises:
            RelationArgumentError: If the relation is not declared
        """
        self.relation_info(owner, name)
        get_session(owner).scenarios[name] = scenario

    # State

    async def get_old_relations(self, owner: Any) -> dict[str, Any]:
        return {name: await self.get_old_relation(owner, name) for name in self.registry.names}

    async def get_old_relation(self, owner: Any, name: str) -> Any:
        relation = self.relation_info(owner, name)
        session = get_session(owner)

        if session.is_armed(name):
            return session.old_values[name]

        return await self.adapter.fetch_related(owner, relation)

    def get_dirty_relations(self, owner: Any) -> dict[str, Any]:
        session = get_session(owner)

        return {
            name: self.adapter.get_related(owner, self.relation_info(owner, name))
            for name in self.registry.names
            if session.is_armed(name)
        }

    async def mark_relation_dirty(self, owner: Any, name: str) -> bool:
        session = get_session(owner)

        if name not in self.registry or session.is_armed(name):
            return False

        value = await self.adapter.fetch_related(owner, self.relation_info(owner, name))

        return session.arm(name, value)


def _parse_key_name(value: RelationKeyName | str) -> RelationKeyName:
    try:
        return RelationKeyName(value)
    except ValueError as e:
        raise RelationConfigError(f"Unknown relation key name: {value!r}") from e


__all__ = [
    "Phase",
    "PhaseHandler",
    "SaveRelationsBehavior",
]
