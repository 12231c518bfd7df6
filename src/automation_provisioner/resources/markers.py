"""Declarative field markers for resource models.

Markers attach to Pydantic fields via ``Annotated``:

- ``ForceNew`` - changing the field cannot be done in place; the engine plans
  a replace (delete, then create) instead of an update.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

M = TypeVar("M")


@dataclass(frozen=True, slots=True)
class ForceNew:
    """Field is immutable once the remote object exists."""


def _find_marker(field_info: FieldInfo, marker_type: type[M]) -> M | None:
    return next((m for m in field_info.metadata if isinstance(m, marker_type)), None)


def _marked_fields(model_or_cls: Any, marker_type: type[M]) -> list[str]:
    cls = model_or_cls if isinstance(model_or_cls, type) else type(model_or_cls)
    return [
        name
        for name, fi in cls.model_fields.items()
        if _find_marker(fi, marker_type) is not None
    ]


def collect_force_new(model_or_cls: Any) -> frozenset[str]:
    """Names of fields marked ``ForceNew``."""
    return frozenset(_marked_fields(model_or_cls, ForceNew))
