"""Result type used across every layer instead of raised exceptions.

Stages, adapters and config loaders return ``Ok(value)`` or ``Err(error)``;
callers branch with ``isinstance`` and return the ``Err`` unchanged when
they cannot handle it:

    package = manifest.read_package()
    if isinstance(package, Err):
        return package
    bumped = package.value.version.bump_patch()

``match`` works too, since both variants are dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeGuard, TypeVar

__all__ = ["Err", "Ok", "Result", "is_err", "is_ok"]

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E


Result: TypeAlias = Ok[T] | Err[E]


def is_ok(result: Result[T, E]) -> TypeGuard[Ok[T]]:
    return isinstance(result, Ok)


def is_err(result: Result[T, E]) -> TypeGuard[Err[E]]:
    return isinstance(result, Err)
