# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from typing import (
    Any,
    Dict,
    Generic,
    Type,
    TypeVar,
    Union,
    cast,
)


T = TypeVar("T")


class Token(Generic[T]):
    """Token for service registration using string names or class types."""

    def __init__(self, key: Union[str, Type[Any]]):
        self.key = key
        self.name = key if isinstance(key, str) else key.__name__

    def __repr__(self):
        return f"Token({self.name!r})"

    def __hash__(self):
        return hash(("__token__", self.key))

    def __eq__(self, other):
        return isinstance(other, Token) and other.key == self.key


ServiceKey = Union[Type[Any], Token[Any], str]


_services_registry: Dict[Token[Any], Any] = {}


def register_service(
    instance: Any,
    key: ServiceKey | None = None,
    force: bool = False,
) -> None:
    """
    Register a service instance (singleton) in the registry.

    The instance is registered under its own type, and under ``key`` when given.
    """
    keys = {_normalize_key(type(instance))}

    if key is not None:
        keys.add(_normalize_key(key))

    for normalized_key in keys:
        if force or normalized_key not in _services_registry:
            _services_registry[normalized_key] = instance


def unregister_service(key: ServiceKey) -> None:
    """Unregister a service from the registry."""
    _services_registry.pop(_normalize_key(key), None)


def has_service(key: ServiceKey) -> bool:
    """Check if a service is registered."""
    return _normalize_key(key) in _services_registry


def get_service(key: Union[Type[T], Token[T], str]) -> T:
    """
    Get a service instance from the registry.
    Classes without registered instance are instantiated and registered.
    """
    normalized_key = _normalize_key(key)

    if normalized_key not in _services_registry:
        if not isinstance(key, type):
            raise LookupError(f"Service {key!r} is not registered")

        register_service(key(), key)

    return cast(T, _services_registry[normalized_key])


def _normalize_key(key: ServiceKey) -> Token[Any]:
    if isinstance(key, Token):
        return key

    return Token(key)


__all__ = [
    "register_service",
    "unregister_service",
    "has_service",
    "get_service",
    "Token",
    "ServiceKey",
]
