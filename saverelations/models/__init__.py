# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from saverelations.models.base import DEFAULT_SCENARIO, SaveRelationsModel


__all__ = [
    "DEFAULT_SCENARIO",
    "SaveRelationsModel",
]
