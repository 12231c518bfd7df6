"""Automation variable resource models.

One model per value kind; together they form a tagged variant discriminated by
``type``. The model is the desired state of a single variable: its key fields,
description, encryption flag and typed value.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, ClassVar, Literal

from pydantic import Field, StrictBool, StrictInt, field_validator

from automation_provisioner.core.codec import (
    INT64_MAX,
    INT64_MIN,
    ValueKind,
    format_timestamp,
    parse_rfc3339,
)
from automation_provisioner.core.errors import InvalidTimeFormatError
from automation_provisioner.core.identity import VariableIdentity, resolve_for_write
from automation_provisioner.resources.base import Resource
from automation_provisioner.resources.markers import ForceNew


class AutomationVariableResource(Resource):
    """Base for automation variables.

    ``resource_group_name`` and ``automation_account_name`` cannot change in
    place; changing either replaces the variable. Renaming a variable changes
    its address, which also means destroy + create.

    When ``encrypted`` is true the service never returns the value, so a
    refresh cannot detect drift on ``value``.
    """

    namespace: ClassVar[str] = "variable"
    value_kind: ClassVar[ValueKind]

    type: str
    resource_group_name: Annotated[str, ForceNew()] = Field(min_length=1)
    automation_account_name: Annotated[str, ForceNew()] = Field(min_length=1)
    encrypted: bool = False
    value: Any

    def identity(self, subscription_id: str) -> VariableIdentity:
        return resolve_for_write(
            subscription_id,
            self.resource_group_name,
            self.automation_account_name,
            self.name,
        )


class IntVariableResource(AutomationVariableResource):
    """Integer variable (signed 64-bit)."""

    resource_type: ClassVar[str] = "automation_int_variable"
    value_kind: ClassVar[ValueKind] = ValueKind.INT

    type: Literal["int"] = "int"
    value: StrictInt = Field(ge=INT64_MIN, le=INT64_MAX)


class BoolVariableResource(AutomationVariableResource):
    resource_type: ClassVar[str] = "automation_bool_variable"
    value_kind: ClassVar[ValueKind] = ValueKind.BOOL

    type: Literal["bool"] = "bool"
    value: StrictBool


class DateTimeVariableResource(AutomationVariableResource):
    """Datetime variable.

    ``value`` is an RFC 3339 timestamp (``2023-01-02T15:04:05Z``). The service
    keeps millisecond precision and reads back as ``2023-01-02T15:04:05.000Z``.
    """

    resource_type: ClassVar[str] = "automation_datetime_variable"
    value_kind: ClassVar[ValueKind] = ValueKind.DATETIME

    type: Literal["datetime"] = "datetime"
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _normalize_timestamp(cls, v: Any) -> Any:
        # Compare in the read-back form; invalid strings are reported by validation.
        if isinstance(v, datetime):
            # YAML loaders turn unquoted timestamps into naive UTC datetimes.
            return format_timestamp(v if v.tzinfo is not None else v.replace(tzinfo=UTC))
        if isinstance(v, str):
            try:
                return format_timestamp(parse_rfc3339(v))
            except InvalidTimeFormatError:
                return v
        return v


class StringVariableResource(AutomationVariableResource):
    resource_type: ClassVar[str] = "automation_string_variable"
    value_kind: ClassVar[ValueKind] = ValueKind.STRING

    type: Literal["string"] = "string"
    value: str


VARIABLE_MODELS: tuple[type[AutomationVariableResource], ...] = (
    IntVariableResource,
    BoolVariableResource,
    DateTimeVariableResource,
    StringVariableResource,
)
