# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from functools import wraps
from typing import TypeVar, Callable, Any, Coroutine

T = TypeVar("T")


def transaction(
    func: Callable[..., Coroutine[Any, Any, T]],
) -> Callable[..., Coroutine[Any, Any, T]]:
    """
    Decorator to wrap a record coroutine method in a database transaction.

    The database is the one of the record's registry. The transaction will:
    - COMMIT if the method completes successfully
    - ROLLBACK if an exception is raised

    Example:
        class Project(SaveRelationsModel):
            @transaction
            async def archive(self):
                await self.set_relation("users", [])
                await self.save_with_relations()
    """

    @wraps(func)
    async def wrapper(record: Any, *args: Any, **kwargs: Any) -> T:
        db = record.meta.registry.database

        async with db.transaction():
            return await func(record, *args, **kwargs)

    return wrapper


__all__ = [
    "transaction",
]
