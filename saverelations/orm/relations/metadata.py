# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""Relation metadata returned by the persistence adapter."""

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class Junction:
    """
    Junction table of a many-to-many relation.

    Attributes:
        record_type: The junction (through) record type
        link: Junction column -> owner column
    """

    record_type: Any
    link: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RelationInfo:
    """
    Shape of one relation of an owner record type.

    ``link`` maps a column of the related record to the column it is paired
    with: an owner column for direct relations, a junction column when
    ``via`` is set.

    Examples:
        Project.company (project.company_id -> company.id):
            RelationInfo("company", Company, False, {"id": "company_id"},
                         foreign_key_on_owner=True)
        Company.users (user.company_id -> company.id):
            RelationInfo("users", User, True, {"company_id": "id"})
        Project.users through project_user:
            RelationInfo("users", User, True, {"id": "user_id"},
                         via=Junction(ProjectUser, {"project_id": "id"}))
    """

    name: str
    related_type: Any
    multiple: bool
    link: Mapping[str, str] = field(default_factory=dict)
    via: Junction | None = None
    foreign_key_on_owner: bool = False
    label: str | None = None

    @property
    def uses_junction(self) -> bool:
        return self.via is not None

    def key_link(self) -> Mapping[str, str]:
        """Link used to derive keys from attribute maps."""
        if self.via is not None:
            return self.via.link

        return self.link


__all__ = [
    "Junction",
    "RelationInfo",
]
