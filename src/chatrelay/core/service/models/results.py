"""Explicit outcomes for fallible-but-degradable steps.

Prompt, tool and retrieval resolution return ``Resolved`` or
``Degraded`` instead of raising.  Both carry a usable value, so the
orchestrator can always proceed; ``Degraded`` additionally records
why the fallback was used.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """The step produced its intended value."""

    value: T


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """The step failed and ``value`` is the documented fallback."""

    value: T
    reason: str
    error: BaseException | None = None


Outcome = Union[Resolved[T], Degraded[T]]

__all__ = ["Resolved", "Degraded", "Outcome"]
