# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Declarative relation configuration."""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from saverelations.orm.relations.utils import RelationConfigError


ExtraColumns = Mapping[str, Any] | Callable[[Any], Any]

RelationEntry = str | tuple[str, Mapping[str, Any]] | Mapping[str, Mapping[str, Any]]


class RelationOptions(BaseModel):
    """
    Options of one declared relation.

    Example:
        {"scenario": "import", "extra_columns": {"role": "member"}, "cascade_delete": True}
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        frozen=True,
    )

    scenario: str | None = None
    extra_columns: dict[str, Any] | Callable[[Any], Any] | None = Field(
        default=None, alias="extraColumns"
    )
    cascade_delete: bool = Field(default=False, alias="cascadeDelete")


@dataclass(frozen=True)
class RelationDescriptor:
    name: str
    scenario: str | None = None
    extra_columns: ExtraColumns | None = None
    cascade_delete: bool = False

    @property
    def has_extra_columns(self) -> bool:
        return self.extra_columns is not None

    def junction_columns(self, record: Any) -> dict[str, Any]:
        """
        Resolve the extra columns written in the junction table for a record.

        Raises:
            RelationConfigError: If the provider does not produce a mapping
        """
        if self.extra_columns is None:
            return {}

        columns = (
            self.extra_columns(record)
            if callable(self.extra_columns)
            else self.extra_columns
        )

        if not isinstance(columns, Mapping):
            raise RelationConfigError(
                f"Junction table columns definition of '{self.name}' must return "
                f"a mapping, got {type(columns).__name__}"
            )

        return dict(columns)


class RelationRegistry:
    """
    Parsed relation configuration of an owner record type.

    Accepted entries, in declaration order:
        "users"
        ("users", {"cascade_delete": True})
        {"tags": {"extra_columns": lambda tag: {"order": tag.position}}}
    """

    def __init__(self, relations: Iterable[RelationEntry] = ()):
        self._descriptors: dict[str, RelationDescriptor] = {}

        for entry in relations:
            for name, options in _iter_entry(entry):
                if name in self._descriptors:
                    raise RelationConfigError(f"The relation '{name}' is declared twice")

                self._descriptors[name] = _build_descriptor(name, options)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[RelationDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    @property
    def names(self) -> list[str]:
        return list(self._descriptors)

    def get(self, name: str) -> RelationDescriptor | None:
        return self._descriptors.get(name)

    @property
    def scenarios(self) -> dict[str, str]:
        return {d.name: d.scenario for d in self if d.scenario is not None}

    @property
    def extra_columns(self) -> dict[str, ExtraColumns]:
        return {d.name: d.extra_columns for d in self if d.extra_columns is not None}

    @property
    def cascade_delete(self) -> dict[str, bool]:
        return {d.name: True for d in self if d.cascade_delete}


def _iter_entry(entry: Any) -> Iterator[tuple[str, Mapping[str, Any]]]:
    if isinstance(entry, str):
        yield entry, {}

    elif isinstance(entry, (tuple, list)):
        if len(entry) != 2 or not isinstance(entry[0], str):
            raise RelationConfigError(
                f"Invalid relation entry: {entry!r}. Expected (name, options)."
            )
        yield entry[0], entry[1] or {}

    elif isinstance(entry, Mapping):
        for name, options in entry.items():
            if not isinstance(name, str):
                raise RelationConfigError(f"Invalid relation name: {name!r}")
            yield name, options or {}

    else:
        raise RelationConfigError(
            f"Invalid relation entry type: {type(entry).__name__}"
        )


def _build_descriptor(name: str, options: Any) -> RelationDescriptor:
    if not isinstance(options, Mapping):
        raise RelationConfigError(
            f"Options of relation '{name}' must be a mapping, got {type(options).__name__}"
        )

    try:
        parsed = RelationOptions.model_validate(dict(options))
    except ValidationError as e:
        for error in e.errors():
            if error["type"] == "extra_forbidden":
                raise RelationConfigError(
                    f"The relation property named {error['loc'][0]} is not supported"
                ) from e

        raise RelationConfigError(f"Invalid options for relation '{name}': {e}") from e

    return RelationDescriptor(
        name=name,
        scenario=parsed.scenario,
        extra_columns=parsed.extra_columns,
        cascade_delete=parsed.cascade_delete,
    )


__all__ = [
    "RelationOptions",
    "RelationDescriptor",
    "RelationRegistry",
    "RelationEntry",
    "ExtraColumns",
]
