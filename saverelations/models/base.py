# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from typing import Any, ClassVar, Mapping

from saverelations.orm import Model
from saverelations.orm.relations import (
    EdgyRecordAdapter,
    RelationEntry,
    SaveRelationsBehavior,
)
from saverelations.orm.relations.edgy_adapter import is_relation_field
from saverelations.orm.transaction import transaction


DEFAULT_SCENARIO = "default"


_behaviors: dict[type, SaveRelationsBehavior] = {}


class SaveRelationsModel(Model):
    """
    Abstract edgy model saving its declared relations with itself.

    Example:

    ```python
    class Project(SaveRelationsModel):
        class Meta:
            registry = models

        save_relations: ClassVar[list] = [
            "company",
            ("users", {"extra_columns": {"role": "member"}}),
            {"links": {"cascade_delete": True}},
        ]

        name: str = fields.CharField(max_length=255)
        company = fields.ForeignKey("Company", null=True, related_name="projects")
        users = fields.ManyToMany("User", through="ProjectUser")


    project = Project(name="Website")
    await project.set_relation("company", {"name": "Acme"})
    await project.set_relation("users", [1, 2])

    if not await project.save_with_relations():
        print(project.get_errors())
    ```

    The scenario set on related records (see `set_relation_scenario`) is read
    by `scenario_attributes` for mass assignment and can be read by
    `validate_attributes` through `get_scenario()`.
    """

    class Meta:
        abstract = True

    save_relations: ClassVar[list[RelationEntry]] = []
    save_relations_key_name: ClassVar[str | None] = None
    save_relations_only_safe: ClassVar[bool | None] = None

    @classmethod
    def relation_behavior(cls) -> SaveRelationsBehavior:
        behavior = _behaviors.get(cls)

        if behavior is None:
            behavior = SaveRelationsBehavior(
                cls.save_relations,
                EdgyRecordAdapter(),
                relation_key_name=cls.save_relations_key_name,
                only_safe_attributes=cls.save_relations_only_safe,
            )
            _behaviors[cls] = behavior

        return behavior

    @classmethod
    def form_name(cls) -> str:
        return cls.__name__

    # Scenario and safe attributes

    def get_scenario(self) -> str:
        return getattr(self, "_sr_scenario", None) or DEFAULT_SCENARIO

    def set_scenario(self, scenario: str) -> None:
        self._sr_scenario = scenario

    @classmethod
    def scenario_attributes(cls, scenario: str = DEFAULT_SCENARIO) -> set[str]:
        """
        Attributes (and relations) accepted by mass assignment in a scenario.

        Override this to restrict a scenario, it is also used to filter the
        data of records created for a relation before they exist:

        ```python
        @classmethod
        def scenario_attributes(cls, scenario="default"):
            if scenario == "import":
                return {"username"}

            return super().scenario_attributes(scenario)
        ```
        """
        return {
            name
            for name, field in cls.meta.fields.items()
            if not getattr(field, "primary_key", False)
        }

    def safe_attributes(self) -> set[str]:
        return self.scenario_attributes(self.get_scenario())

    # Errors

    def get_errors(self) -> dict[str, list[str]]:
        errors = getattr(self, "_sr_errors", None)

        if errors is None:
            errors = {}
            self._sr_errors = errors

        return errors

    def add_error(self, attribute: str, message: str) -> None:
        self.get_errors().setdefault(attribute, []).append(message)

    def clear_errors(self) -> None:
        self._sr_errors = {}

    def has_errors(self) -> bool:
        return any(self.get_errors().values())

    async def validate_record(self, clear_errors: bool = True) -> bool:
        """
        Check required fields, then run `validate_attributes`.

        Foreign keys are left to the database. Rules depending on the
        scenario read `get_scenario()` in `validate_attributes`.
        """
        if clear_errors:
            self.clear_errors()

        for name, field in self.meta.fields.items():
            if (
                is_relation_field(field)
                or hasattr(field, "target")
                or getattr(field, "primary_key", False)
                or getattr(field, "null", False)
            ):
                continue

            is_required = getattr(field, "is_required", None)

            if callable(is_required) and is_required() and getattr(self, name, None) in (None, ""):
                label = getattr(field, "label", None) or name
                self.add_error(name, f"{label} cannot be blank.")

        await self.validate_attributes()

        return not self.has_errors()

    async def validate_attributes(self) -> None:
        """
        Hook for model rules, errors are added with `add_error`.

        ```python
        async def validate_attributes(self):
            if self.get_scenario() == "import" and not self.code:
                self.add_error("code", "Code cannot be blank.")
        ```
        """
        pass

    # Relations

    async def set_relation(self, name: str, value: Any) -> bool:
        return await self.relation_behavior().set_relation(self, name, value)

    def set_relation_scenario(self, name: str, scenario: str) -> None:
        self.relation_behavior().set_relation_scenario(self, name, scenario)

    async def load_form(self, data: Mapping[str, Any], form_name: str | None = None) -> bool:
        """Load attributes and relations from form shaped data."""
        return await self.relation_behavior().load(self, data, form_name)

    async def load_relations_for_save(self, data: Mapping[str, Any]) -> None:
        await self.relation_behavior().load_relations_for_save(self, data)

    async def get_old_relations(self) -> dict[str, Any]:
        return await self.relation_behavior().get_old_relations(self)

    async def get_old_relation(self, name: str) -> Any:
        return await self.relation_behavior().get_old_relation(self, name)

    def get_dirty_relations(self) -> dict[str, Any]:
        return self.relation_behavior().get_dirty_relations(self)

    async def mark_relation_dirty(self, name: str) -> bool:
        return await self.relation_behavior().mark_relation_dirty(self, name)

    # Persistence

    async def save_with_relations(
        self, run_validation: bool = True, transactional: bool = False
    ) -> bool:
        """
        Validate and save the record with its touched relations.

        With ``transactional`` the whole pipeline runs in a database
        transaction, so a relation failure also rolls back the record write.
        """
        if transactional:
            return await self._save_with_relations_in_transaction(run_validation)

        return await self.relation_behavior().save(self, run_validation)

    async def delete_with_relations(self, transactional: bool = False) -> bool:
        if transactional:
            return await self._delete_with_relations_in_transaction()

        return await self.relation_behavior().delete(self)

    @transaction
    async def _save_with_relations_in_transaction(self, run_validation: bool) -> bool:
        return await self.relation_behavior().save(self, run_validation)

    @transaction
    async def _delete_with_relations_in_transaction(self) -> bool:
        return await self.relation_behavior().delete(self)


__all__ = [
    "SaveRelationsModel",
    "DEFAULT_SCENARIO",
]
