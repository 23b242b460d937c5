# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from saverelations.config import RelationKeyName, Settings, get_settings, init_settings
from saverelations.orm.relations import (
    Phase,
    RecordAdapter,
    RelationArgumentError,
    RelationConfigError,
    RelationPersistenceError,
    RelationSyncError,
    RelationValidationError,
    SaveRelationsBehavior,
)


__version__ = "0.1.0"


__all__ = [
    "RelationKeyName",
    "Settings",
    "get_settings",
    "init_settings",
    "Phase",
    "RecordAdapter",
    "RelationArgumentError",
    "RelationConfigError",
    "RelationPersistenceError",
    "RelationSyncError",
    "RelationValidationError",
    "SaveRelationsBehavior",
]
