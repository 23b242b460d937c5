# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import pytest

from saverelations import dependencies
from saverelations.orm.relations import SaveRelationsBehavior

from tests.fakes import MemoryAdapter, MemoryStore


@pytest.fixture(autouse=True)
def services(monkeypatch, tmp_path):
    """Run each test with an empty service registry and no .env file."""
    monkeypatch.chdir(tmp_path)
    dependencies._services_registry.clear()
    yield
    dependencies._services_registry.clear()


@pytest.fixture(scope="function")
def store():
    return MemoryStore()


@pytest.fixture(scope="function")
def adapter(store):
    return MemoryAdapter(store)


@pytest.fixture(scope="function")
def make_behavior(adapter):
    """
    Build a behavior on the memory adapter.

    When a record type is given, the behavior is also used for records of
    that type saved as related records.
    """

    def factory(relations, record_type=None, **kwargs):
        behavior = SaveRelationsBehavior(relations, adapter, **kwargs)

        if record_type is not None:
            adapter.behaviors[record_type] = behavior

        return behavior

    return factory
