# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""RecordAdapter implementation over edgy models."""

from typing import Any, Mapping, TYPE_CHECKING

from edgy import Model
from edgy.core.db.relationships.related_field import RelatedField

from saverelations.orm.relations.adapter import RecordAdapter
from saverelations.orm.relations.metadata import Junction, RelationInfo

if TYPE_CHECKING:
    from saverelations.orm.relations.behavior import SaveRelationsBehavior


CACHE_ATTRIBUTE = "_sr_relation_cache"
SNAPSHOT_ATTRIBUTE = "_sr_snapshot"


def is_relation_field(field: Any) -> bool:
    """Check if a field is a collection relation (M2M or reverse relation)."""
    return getattr(field, "is_m2m", False) is True or isinstance(field, RelatedField)


class EdgyRecordAdapter(RecordAdapter):
    """
    Persistence adapter for edgy models.

    Supported relations:
    - ForeignKey / OneToOne declared on the owner (single, owner holds the key)
    - reverse ForeignKey / OneToOne, through related_name (multiple / single)
    - ManyToMany with its through model (multiple, junction)

    Errors, scenarios and record validation are delegated to the record
    when it provides them (see SaveRelationsModel).
    """

    # Metadata

    def relation(self, record_type: Any, name: str) -> RelationInfo | None:
        field = record_type.meta.fields.get(name)

        if field is None:
            return None

        label = _label(field)

        if getattr(field, "is_m2m", False):
            target = field.target
            return RelationInfo(
                name=name,
                related_type=target,
                multiple=True,
                link={self.primary_key_names(target)[0]: field.to_foreign_key},
                via=Junction(
                    record_type=field.through,
                    link={field.from_foreign_key: self.primary_key_names(record_type)[0]},
                ),
                label=label,
            )

        if isinstance(field, RelatedField):
            related = field.related_from
            foreign_key = related.meta.fields.get(field.foreign_key_name)
            # OneToOne fields are unique foreign keys
            single = bool(getattr(foreign_key, "unique", False))
            return RelationInfo(
                name=name,
                related_type=related,
                multiple=not single,
                link={field.foreign_key_name: self.primary_key_names(record_type)[0]},
                label=label,
            )

        if hasattr(field, "target"):
            target = field.target
            return RelationInfo(
                name=name,
                related_type=target,
                multiple=False,
                link={self.primary_key_names(target)[0]: name},
                foreign_key_on_owner=True,
                label=label,
            )

        return None

    def primary_key_names(self, record_type: Any) -> list[str]:
        return [
            name
            for name, field in record_type.meta.fields.items()
            if getattr(field, "primary_key", False)
        ]

    def form_name(self, record_type: Any) -> str:
        form_name = getattr(record_type, "form_name", None)

        if callable(form_name):
            return form_name()

        return record_type.__name__

    def behavior_for(self, record: Any) -> "SaveRelationsBehavior | None":
        relation_behavior = getattr(type(record), "relation_behavior", None)

        if callable(relation_behavior):
            return relation_behavior()

        return None

    # Attributes

    def is_new(self, record: Any) -> bool:
        return all(value is None for value in self.primary_key(record).values())

    def get_attribute(self, record: Any, name: str) -> Any:
        value = getattr(record, name, None)

        if isinstance(value, Model):
            return value.pk

        return value

    def set_attribute(self, record: Any, name: str, value: Any) -> None:
        setattr(record, name, value)

    def set_attributes(self, record: Any, data: Mapping[str, Any]) -> None:
        allowed = self.safe_attributes(record) & set(_column_names(type(record)))

        for name, value in data.items():
            if name in allowed:
                setattr(record, name, value)

    def dirty_attributes(self, record: Any) -> dict[str, Any]:
        values = self._column_values(record)

        if self.is_new(record):
            return values

        snapshot = getattr(record, SNAPSHOT_ATTRIBUTE, None)

        # records loaded outside the adapter carry no snapshot
        if snapshot is None:
            return values

        return {
            name: value
            for name, value in values.items()
            if name not in snapshot or snapshot[name] != value
        }

    def safe_attributes(self, record: Any) -> set[str]:
        safe_attributes = getattr(record, "safe_attributes", None)

        if callable(safe_attributes):
            return set(safe_attributes())

        return set(_column_names(type(record)))

    def _scenario_attributes(self, record_type: Any, scenario: str | None) -> set[str]:
        scenario_attributes = getattr(record_type, "scenario_attributes", None)

        if not callable(scenario_attributes):
            return set(_column_names(record_type))

        if scenario is None:
            return set(scenario_attributes())

        return set(scenario_attributes(scenario))

    def set_scenario(self, record: Any, scenario: str) -> None:
        set_scenario = getattr(record, "set_scenario", None)

        if callable(set_scenario):
            set_scenario(scenario)

    def create(
        self,
        record_type: Any,
        data: Mapping[str, Any],
        scenario: str | None = None,
    ) -> Any:
        # edgy validates required fields on construction
        columns = set(_column_names(record_type)) - set(self.primary_key_names(record_type))
        allowed = columns & self._scenario_attributes(record_type, scenario)
        record = record_type(**{k: v for k, v in data.items() if k in allowed})

        if scenario is not None:
            self.set_scenario(record, scenario)

        return record

    # Errors

    def errors(self, record: Any) -> dict[str, list[str]]:
        get_errors = getattr(record, "get_errors", None)

        return get_errors() if callable(get_errors) else {}

    def add_error(self, record: Any, attribute: str, message: str) -> None:
        add_error = getattr(record, "add_error", None)

        if callable(add_error):
            add_error(attribute, message)

    def clear_errors(self, record: Any) -> None:
        clear_errors = getattr(record, "clear_errors", None)

        if callable(clear_errors):
            clear_errors()

    # In-memory relation cache

    def get_related(self, owner: Any, relation: RelationInfo) -> Any:
        cache = getattr(owner, CACHE_ATTRIBUTE, None) or {}

        if relation.name in cache:
            return cache[relation.name]

        return [] if relation.multiple else None

    def populate_related(self, owner: Any, relation: RelationInfo, value: Any) -> None:
        cache = getattr(owner, CACHE_ATTRIBUTE, None)

        if cache is None:
            cache = {}
            setattr(owner, CACHE_ATTRIBUTE, cache)

        cache[relation.name] = list(value) if relation.multiple else value

    # Storage

    async def fetch_related(self, owner: Any, relation: RelationInfo) -> Any:
        cache = getattr(owner, CACHE_ATTRIBUTE, None) or {}

        if relation.name in cache:
            return cache[relation.name]

        if self.is_new(owner):
            return [] if relation.multiple else None

        if relation.multiple:
            value: Any = await getattr(owner, relation.name).all()
            for record in value:
                self._mark_clean(record)

        elif relation.foreign_key_on_owner:
            value = getattr(owner, relation.name, None)
            if value is not None:
                await value.load()
                self._mark_clean(value)

        else:
            ((foreign_key, _),) = relation.link.items()
            value = await relation.related_type.query.filter(**{foreign_key: owner}).first()
            if value is not None:
                self._mark_clean(value)

        self.populate_related(owner, relation, value)

        return value

    async def find_one(self, record_type: Any, key: Any) -> Any | None:
        if not isinstance(key, Mapping):
            key = {self.primary_key_names(record_type)[0]: key}

        record = await record_type.query.filter(**key).first()

        if record is not None:
            self._mark_clean(record)

        return record

    async def validate(self, record: Any, clear_errors: bool = True) -> bool:
        validate_record = getattr(record, "validate_record", None)

        if callable(validate_record):
            return await validate_record(clear_errors=clear_errors)

        return True

    async def save(self, record: Any, run_validation: bool = True) -> bool:
        if run_validation and not await self.validate(record):
            return False

        await record.save()
        self._mark_clean(record)

        return True

    async def delete(self, record: Any) -> bool:
        await record.delete()

        return True

    async def link(
        self,
        owner: Any,
        relation: RelationInfo,
        related: Any,
        extra_columns: Mapping[str, Any] | None = None,
    ) -> None:
        if relation.via is not None:
            ((owner_key, _),) = relation.via.link.items()
            ((_, related_key),) = relation.link.items()
            await relation.via.record_type.query.create(
                **{owner_key: owner, related_key: related, **(extra_columns or {})}
            )

        elif relation.foreign_key_on_owner:
            setattr(owner, relation.name, related)
            await owner.save()
            self._mark_clean(owner)

        elif relation.multiple:
            await getattr(owner, relation.name).add(related)
            self._mark_clean(related)

        else:
            ((foreign_key, _),) = relation.link.items()
            setattr(related, foreign_key, owner)
            await related.save()
            self._mark_clean(related)

        if relation.multiple:
            records = self.get_related(owner, relation)
            if not any(record is related for record in records):
                self.populate_related(owner, relation, [*records, related])
        else:
            self.populate_related(owner, relation, related)

    async def unlink(
        self,
        owner: Any,
        relation: RelationInfo,
        related: Any,
        delete: bool = False,
    ) -> None:
        if relation.via is not None:
            ((owner_key, _),) = relation.via.link.items()
            ((_, related_key),) = relation.link.items()
            await relation.via.record_type.query.filter(
                **{owner_key: owner, related_key: related}
            ).delete()

        elif relation.foreign_key_on_owner:
            setattr(owner, relation.name, None)
            await owner.save()
            self._mark_clean(owner)

        else:
            ((foreign_key, _),) = relation.link.items()
            foreign_key_field = relation.related_type.meta.fields.get(foreign_key)

            # NOT NULL foreign keys can't be cleared: delete the record instead
            if delete or not getattr(foreign_key_field, "null", True):
                await related.delete()
            elif relation.multiple:
                await getattr(owner, relation.name).remove(related)
            else:
                setattr(related, foreign_key, None)
                await related.save()

        if relation.multiple:
            token = self.primary_key_token(related)
            self.populate_related(
                owner,
                relation,
                [r for r in self.get_related(owner, relation) if self.primary_key_token(r) != token],
            )
        else:
            self.populate_related(owner, relation, None)

    async def refresh(self, record: Any) -> None:
        await record.load()

        if hasattr(record, CACHE_ATTRIBUTE):
            setattr(record, CACHE_ATTRIBUTE, {})

        self._mark_clean(record)

    def _column_values(self, record: Any) -> dict[str, Any]:
        return {name: self.get_attribute(record, name) for name in _column_names(type(record))}

    def _mark_clean(self, record: Any) -> None:
        setattr(record, SNAPSHOT_ATTRIBUTE, self._column_values(record))


def _column_names(record_type: Any) -> list[str]:
    return [
        name
        for name, field in record_type.meta.fields.items()
        if not is_relation_field(field) and not getattr(field, "exclude", False)
    ]


def _label(field: Any) -> str | None:
    label = getattr(field, "label", None)

    return str(label) if label else None


__all__ = [
    "EdgyRecordAdapter",
    "is_relation_field",
]
