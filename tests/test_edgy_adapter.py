# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from types import SimpleNamespace

import pytest

from saverelations.orm.relations import EdgyRecordAdapter
from saverelations.orm.relations.edgy_adapter import is_relation_field


def field(**kwargs):
    kwargs.setdefault("primary_key", False)
    return SimpleNamespace(**kwargs)


class StubRecord:
    """Plain object shaped like an edgy model instance."""

    def __init__(self, **values):
        for name in self.meta.fields:
            setattr(self, name, None)
        for name, value in values.items():
            setattr(self, name, value)


class Company(StubRecord):
    meta = SimpleNamespace(fields={"id": field(primary_key=True), "name": field()})


class Member(StubRecord):
    meta = SimpleNamespace(fields={"id": field(primary_key=True), "username": field()})


class LimitedMember(StubRecord):
    meta = SimpleNamespace(
        fields={"id": field(primary_key=True), "username": field(), "role": field()}
    )

    def __init__(self, **values):
        super().__init__(**values)
        self.scenario = "default"

    @classmethod
    def scenario_attributes(cls, scenario="default"):
        if scenario == "limited":
            return {"username"}

        return {"username", "role"}

    def safe_attributes(self):
        return self.scenario_attributes(self.scenario)

    def set_scenario(self, scenario):
        self.scenario = scenario


class ProjectMember(StubRecord):
    meta = SimpleNamespace(fields={"id": field(primary_key=True)})


class Project(StubRecord):
    meta = SimpleNamespace(
        fields={
            "id": field(primary_key=True),
            "name": field(),
            "company": field(target=Company, label="Owner company"),
            "members": field(
                is_m2m=True,
                target=Member,
                through=ProjectMember,
                from_foreign_key="project",
                to_foreign_key="member",
            ),
        }
    )

    def __init__(self, **values):
        super().__init__(**values)
        self.errors = {}
        self.scenario = None

    def safe_attributes(self):
        return {"name", "members"}

    def set_scenario(self, scenario):
        self.scenario = scenario

    def get_errors(self):
        return self.errors

    def add_error(self, attribute, message):
        self.errors.setdefault(attribute, []).append(message)

    def clear_errors(self):
        self.errors = {}

    @classmethod
    def form_name(cls):
        return "project"

    @classmethod
    def relation_behavior(cls):
        return "project-behavior"


@pytest.fixture
def adapter():
    return EdgyRecordAdapter()


def test_is_relation_field():
    assert is_relation_field(Project.meta.fields["members"])
    assert not is_relation_field(Project.meta.fields["company"])
    assert not is_relation_field(Project.meta.fields["name"])


def test_foreign_key_relation(adapter):
    relation = adapter.relation(Project, "company")

    assert relation.related_type is Company
    assert relation.multiple is False
    assert relation.foreign_key_on_owner is True
    assert relation.link == {"id": "company"}
    assert relation.label == "Owner company"


def test_many_to_many_relation(adapter):
    relation = adapter.relation(Project, "members")

    assert relation.related_type is Member
    assert relation.multiple is True
    assert relation.uses_junction
    assert relation.link == {"id": "member"}
    assert relation.via.record_type is ProjectMember
    assert relation.via.link == {"project": "id"}


def test_unknown_relation(adapter):
    assert adapter.relation(Project, "name") is None
    assert adapter.relation(Project, "missing") is None


def test_primary_key(adapter):
    assert adapter.primary_key_names(Project) == ["id"]
    assert adapter.is_new(Project())
    assert not adapter.is_new(Project(id=3))
    assert adapter.primary_key_token(Project(id=3)) == "3"


def test_dirty_attributes(adapter):
    project = Project(id=1, name="Website")

    assert adapter.dirty_attributes(project)["name"] == "Website"

    adapter._mark_clean(project)

    assert adapter.dirty_attributes(project) == {}

    adapter._mark_clean(project)
    project.name = "Renamed"

    assert adapter.dirty_attributes(project) == {"name": "Renamed"}
    assert "company" in adapter.dirty_attributes(Project(name="New"))


def test_create_and_mass_assignment(adapter):
    project = adapter.create(
        Project, {"id": 9, "name": "Website", "unknown": 1}, scenario="import"
    )

    assert project.id is None
    assert project.name == "Website"
    assert project.scenario == "import"

    adapter.set_attributes(project, {"name": "Renamed", "company": 4})

    assert project.name == "Renamed"
    assert project.company is None


def test_errors_are_delegated_to_the_record(adapter):
    project = Project()

    adapter.add_error(project, "name", "Name cannot be blank.")

    assert adapter.errors(project) == {"name": ["Name cannot be blank."]}
    assert adapter.has_errors(project)

    adapter.clear_errors(project)

    assert not adapter.has_errors(project)
    assert adapter.errors(Company()) == {}


def test_record_hooks(adapter):
    assert adapter.form_name(Project) == "project"
    assert adapter.form_name(Company) == "Company"
    assert adapter.behavior_for(Project()) == "project-behavior"
    assert adapter.behavior_for(Company()) is None


@pytest.mark.asyncio
async def test_relation_cache(adapter):
    project = Project()
    members = adapter.relation(Project, "members")
    company = adapter.relation(Project, "company")

    assert await adapter.fetch_related(project, members) == []
    assert await adapter.fetch_related(project, company) is None

    member = Member(username="ann")
    adapter.populate_related(project, members, [member])

    assert adapter.get_related(project, members) == [member]
    assert await adapter.fetch_related(project, members) == [member]


def test_create_filters_data_with_the_scenario(adapter):
    limited = adapter.create(
        LimitedMember, {"username": "ann", "role": "admin"}, scenario="limited"
    )
    default = adapter.create(LimitedMember, {"username": "bob", "role": "admin"})

    assert limited.username == "ann"
    assert limited.role is None
    assert limited.scenario == "limited"
    assert default.role == "admin"


def test_found_and_created_records_share_the_scenario_rules(adapter):
    found = LimitedMember(id=1, username="ann", role="user")
    adapter.set_scenario(found, "limited")
    adapter.set_attributes(found, {"username": "anna", "role": "admin"})

    created = adapter.create(
        LimitedMember, {"username": "bob", "role": "admin"}, scenario="limited"
    )

    assert (found.username, found.role) == ("anna", "user")
    assert (created.username, created.role) == ("bob", None)
