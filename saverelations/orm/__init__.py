# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from edgy import (
    Database,
    Registry,
    Model,
)
from saverelations.orm.transaction import transaction


__all__ = [
    "Database",
    "Registry",
    "Model",
    "transaction",
]
