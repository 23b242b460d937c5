# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import pytest

from saverelations.orm.relations import (
    Phase,
    RelationPersistenceError,
    get_session,
)

from tests.fakes import Company, Project, ProjectLink, ProjectUser, User


@pytest.fixture
def project(store):
    """Project 1 with users 1, 2, 3 linked and user 4 unlinked."""
    project = store.seed(Project, name="Website")

    for index in range(1, 5):
        user = store.seed(User, username=f"u{index}")

        if index < 4:
            store.seed(ProjectUser, project_id=project.id, user_id=user.id)

    return project


def linked_users(store, project_id=1):
    return sorted(
        row["user_id"] for row in store.rows(ProjectUser) if row["project_id"] == project_id
    )


@pytest.mark.asyncio
async def test_save_new_owner_with_new_related_records(make_behavior, store):
    behavior = make_behavior(["users"])
    project = Project(name="Website")

    await behavior.set_relation(project, "users", [{"username": "ann"}, {"username": "bob"}])

    assert await behavior.save(project) is True

    assert project.id == 1
    assert store.ops("link") == [("link", "users", 1), ("link", "users", 2)]
    assert linked_users(store) == [1, 2]
    assert [row["username"] for row in store.rows(User)] == ["ann", "bob"]
    assert not get_session(project).has_touched


@pytest.mark.asyncio
async def test_save_links_and_unlinks_the_difference(make_behavior, store, project):
    behavior = make_behavior(["users"])

    await behavior.set_relation(project, "users", [1, 4])

    assert await behavior.save(project) is True

    assert store.ops("link", "unlink") == [
        ("unlink", "users", 2),
        ("unlink", "users", 3),
        ("link", "users", 4),
    ]
    assert linked_users(store) == [1, 4]


@pytest.mark.asyncio
async def test_save_relinks_everything_with_extra_columns(make_behavior, store, project):
    behavior = make_behavior(
        [("users", {"extra_columns": lambda user: {"role": user.attributes["username"]}})]
    )

    await behavior.set_relation(project, "users", [1, 4])
    await behavior.save(project)

    assert store.ops("link", "unlink") == [
        ("unlink", "users", 1),
        ("unlink", "users", 2),
        ("unlink", "users", 3),
        ("link", "users", 1),
        ("link", "users", 4),
    ]
    assert sorted(row["role"] for row in store.rows(ProjectUser)) == ["u1", "u4"]


@pytest.mark.asyncio
async def test_save_writes_static_extra_columns_on_new_links(make_behavior, store):
    behavior = make_behavior([("users", {"extraColumns": {"role": "member"}})])
    project = Project(name="Website")

    await behavior.set_relation(project, "users", [{"username": "ann"}])
    await behavior.save(project)

    assert [row["role"] for row in store.rows(ProjectUser)] == ["member"]


@pytest.mark.asyncio
async def test_save_related_attribute_changes(make_behavior, store, project):
    behavior = make_behavior(["users"])

    await behavior.set_relation(project, "users", [{"id": 1, "username": "renamed"}, 2, 3])
    await behavior.save(project)

    assert store.tables["User"][1]["username"] == "renamed"
    assert store.ops("link", "unlink") == []


@pytest.mark.asyncio
async def test_has_one_record_is_saved_before_the_owner(make_behavior, store):
    behavior = make_behavior([("company", {"scenario": "import"})])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", {"name": "Acme"})
    company = project.related["company"]

    assert await behavior.save(project) is True

    inserts = store.ops("insert")
    assert inserts.index(("insert", "Company", 1)) < inserts.index(("insert", "Project", 1))
    assert company.scenario == "import"
    assert store.tables["Project"][1]["company_id"] == 1
    assert project.attributes["company_id"] == 1
    assert get_session(project).saved_singles == []


@pytest.mark.asyncio
async def test_existing_has_one_key_is_copied_on_the_owner(make_behavior, store):
    company = store.seed(Company, name="Acme")
    behavior = make_behavior(["company"])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", company.id)
    await behavior.save(project)

    assert store.tables["Project"][1]["company_id"] == company.id
    assert ("insert", "Company", company.id) not in store.ops()


@pytest.mark.asyncio
async def test_clearing_has_one_relation_unlinks_it(make_behavior, store):
    company = store.seed(Company, name="Acme")
    project = store.seed(Project, name="Website", company_id=company.id)
    behavior = make_behavior(["company"])

    await behavior.set_relation(project, "company", None)
    await behavior.save(project)

    assert ("unlink", "company", company.id) in store.ops()
    assert store.tables["Project"][project.id]["company_id"] is None
    assert company.id in store.tables["Company"]


@pytest.mark.asyncio
async def test_has_many_records_receive_the_owner_key(make_behavior, store):
    behavior = make_behavior(["links"])
    project = Project(name="Website")

    await behavior.set_relation(project, "links", [{"url": "https://a"}, {"url": "https://b"}])
    await behavior.save(project)

    assert [row["project_id"] for row in store.rows(ProjectLink)] == [1, 1]
    assert store.ops("link") == [("link", "links", 1), ("link", "links", 2)]


@pytest.mark.asyncio
async def test_removed_has_many_record_is_detached(make_behavior, store):
    project = store.seed(Project, name="Website")
    store.seed(ProjectLink, project_id=project.id, url="https://a")
    store.seed(ProjectLink, project_id=project.id, url="https://b")
    behavior = make_behavior(["links"])

    await behavior.set_relation(project, "links", [1])
    await behavior.save(project)

    assert store.tables["ProjectLink"][1]["project_id"] == project.id
    assert store.tables["ProjectLink"][2]["project_id"] is None


@pytest.mark.asyncio
async def test_invalid_related_record_prevents_the_save(make_behavior, store):
    behavior = make_behavior(["users"])
    project = Project(name="Website")

    await behavior.set_relation(project, "users", [{"username": ""}])

    assert await behavior.save(project) is False

    assert project.errors == {
        "users": ["Users #0: username cannot be blank."],
        "Project": ["One of the related records could not be validated"],
    }
    assert store.ops() == []
    assert get_session(project).is_armed("users")


@pytest.mark.asyncio
async def test_invalid_owner_rolls_back_saved_has_one(make_behavior, store):
    behavior = make_behavior(["company"])
    project = Project()

    await behavior.set_relation(project, "company", {"name": "Acme"})

    assert await behavior.save(project) is False

    assert store.ops() == [("insert", "Company", 1), ("delete", "Company", 1)]
    assert project.errors == {"name": ["name cannot be blank."]}
    assert get_session(project).saved_singles == []


@pytest.mark.asyncio
async def test_failed_has_one_save_marks_validation_failed(make_behavior, store):
    store.fail("save", Company)
    behavior = make_behavior(["company"])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", {"name": "Acme"})

    assert await behavior.save(project) is False

    assert project.errors == {
        "Project": ["One of the related records could not be validated"]
    }
    assert store.ops() == []


@pytest.mark.asyncio
async def test_failed_owner_save_rolls_back_saved_has_one(make_behavior, store):
    store.fail("save", Project)
    behavior = make_behavior(["company"])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", {"name": "Acme"})

    assert await behavior.save(project) is False

    assert store.ops() == [("insert", "Company", 1), ("delete", "Company", 1)]


@pytest.mark.asyncio
async def test_failure_after_save_is_raised_and_rolled_back(make_behavior, store):
    store.fail("save", ProjectLink)
    behavior = make_behavior(["company", "links"])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", {"name": "Acme"})
    await behavior.set_relation(project, "links", [{"url": "https://a"}])

    with pytest.raises(RelationPersistenceError) as exc_info:
        await behavior.save(project)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert ("insert", "Project", 1) in store.ops()
    assert ("delete", "Company", 1) in store.ops()

    session = get_session(project)
    assert session.save_started is False
    assert session.saved_singles == []
    assert session.is_armed("links")
    assert not session.is_armed("company")


@pytest.mark.asyncio
async def test_save_without_validation_fails_on_invalid_related_record(make_behavior, store):
    behavior = make_behavior(["users"])
    project = Project(name="Website")

    await behavior.set_relation(project, "users", [{"username": ""}])

    with pytest.raises(RelationPersistenceError, match="Related record Users #0 could not be saved."):
        await behavior.save(project, run_validation=False)

    assert project.errors == {"users": ["Users #0: username cannot be blank."]}
    assert store.ops("insert") == [("insert", "Project", 1)]


@pytest.mark.asyncio
async def test_invalid_collection_entry_rolls_back_saved_has_one(make_behavior, store):
    behavior = make_behavior(["company", "users"])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", {"name": "Acme"})
    await behavior.set_relation(project, "users", [{"username": ""}])

    assert await behavior.save(project) is False

    assert store.ops() == [("insert", "Company", 1), ("delete", "Company", 1)]
    assert project.errors == {
        "users": ["Users #0: username cannot be blank."],
        "Project": ["One of the related records could not be validated"],
    }
    assert get_session(project).saved_singles == []


@pytest.mark.asyncio
async def test_unsaved_has_one_after_owner_save_is_raised(make_behavior, store, monkeypatch):
    monkeypatch.setattr(Company, "required", ("name",))
    store.seed(Company, name="Acme")
    behavior = make_behavior(["company"])
    project = Project(name="Website")

    await behavior.set_relation(project, "company", {"id": 1, "name": ""})

    with pytest.raises(RelationPersistenceError, match="Related record Company could not be saved."):
        await behavior.save(project, run_validation=False)

    assert project.errors == {"company": ["Company: name cannot be blank."]}
    assert store.tables["Company"][1]["name"] == "Acme"


@pytest.mark.asyncio
async def test_nested_save_is_a_plain_save(make_behavior, store):
    behavior = make_behavior(["users"])
    project = Project(name="Website")

    await behavior.set_relation(project, "users", [{"username": "ann"}])
    get_session(project).save_started = True

    assert await behavior.save(project) is True

    assert store.ops() == [("insert", "Project", 1)]


@pytest.mark.asyncio
async def test_related_records_are_saved_with_their_own_relations(make_behavior, store):
    make_behavior(["company"], User)
    behavior = make_behavior(["users"], Project)
    project = Project(name="Website")

    await behavior.set_relation(
        project, "users", [{"username": "ann", "Company": {"name": "Acme"}}]
    )

    assert await behavior.save(project) is True

    (company,) = store.rows(Company)
    (user,) = store.rows(User)
    assert user["company_id"] == company["id"]
    assert linked_users(store) == [user["id"]]


@pytest.mark.asyncio
async def test_phase_handlers_run_by_priority(make_behavior, store):
    behavior = make_behavior(["users"])
    calls = []

    async def first(session, owner):
        calls.append("first")
        return True

    async def veto(session, owner):
        calls.append("veto")
        return False

    behavior.add_phase_handler(Phase.BEFORE_VALIDATE, veto, priority=200)
    behavior.add_phase_handler(Phase.BEFORE_VALIDATE, first, priority=10)

    assert await behavior.save(Project(name="Website")) is False

    assert calls == ["first", "veto"]
    assert store.ops() == []
