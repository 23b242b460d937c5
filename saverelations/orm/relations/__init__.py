# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from saverelations.orm.relations.utils import (
    RelationSyncError,
    RelationConfigError,
    RelationArgumentError,
    RelationValidationError,
    RelationPersistenceError,
    pretty_relation_name,
    primary_key_token,
    compute_pk_diff,
)
from saverelations.orm.relations.metadata import Junction, RelationInfo
from saverelations.orm.relations.config import (
    ExtraColumns,
    RelationDescriptor,
    RelationEntry,
    RelationOptions,
    RelationRegistry,
)
from saverelations.orm.relations.values import (
    AttributesValue,
    KeyValue,
    RecordValue,
    RelationValue,
    classify_value,
)
from saverelations.orm.relations.adapter import RecordAdapter
from saverelations.orm.relations.session import RelationSyncSession, get_session
from saverelations.orm.relations.behavior import (
    Phase,
    PhaseHandler,
    SaveRelationsBehavior,
)
from saverelations.orm.relations.edgy_adapter import EdgyRecordAdapter


__all__ = [
    "RelationSyncError",
    "RelationConfigError",
    "RelationArgumentError",
    "RelationValidationError",
    "RelationPersistenceError",
    "pretty_relation_name",
    "primary_key_token",
    "compute_pk_diff",
    "Junction",
    "RelationInfo",
    "ExtraColumns",
    "RelationDescriptor",
    "RelationEntry",
    "RelationOptions",
    "RelationRegistry",
    "AttributesValue",
    "KeyValue",
    "RecordValue",
    "RelationValue",
    "classify_value",
    "RecordAdapter",
    "RelationSyncSession",
    "get_session",
    "Phase",
    "PhaseHandler",
    "SaveRelationsBehavior",
    "EdgyRecordAdapter",
]
