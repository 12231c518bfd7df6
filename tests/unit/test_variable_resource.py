from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from automation_provisioner.core.codec import INT64_MAX
from automation_provisioner.resources import (
    BoolVariableResource,
    DateTimeVariableResource,
    IntVariableResource,
    StringVariableResource,
)
from automation_provisioner.resources.markers import collect_force_new

_LOC = {"resource_group_name": "rg", "automation_account_name": "acct"}


class TestAddress:
    def test_address_includes_type(self) -> None:
        r = IntVariableResource(name="retries", **_LOC, value=3)
        assert r.address == "automation_int_variable.retries"

    def test_type_discriminator_defaults(self) -> None:
        assert BoolVariableResource(name="b", **_LOC, value=True).type == "bool"
        assert StringVariableResource(name="s", **_LOC, value="x").type == "string"


class TestFieldValidation:
    @pytest.mark.parametrize("name", ["", "a.b", "a/b", "a:b", "x" * 129])
    def test_bad_names(self, name: str) -> None:
        with pytest.raises(ValidationError):
            IntVariableResource(name=name, **_LOC, value=1)

    def test_missing_account_rejected(self) -> None:
        with pytest.raises(ValidationError):
            IntVariableResource(name="x", resource_group_name="rg", value=1)  # type: ignore

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            IntVariableResource(name="x", **_LOC, value=1, colour="red")  # type: ignore[call-arg]

    def test_int_is_strict(self) -> None:
        with pytest.raises(ValidationError):
            IntVariableResource(name="x", **_LOC, value="1")
        with pytest.raises(ValidationError):
            IntVariableResource(name="x", **_LOC, value=True)

    def test_int_range(self) -> None:
        IntVariableResource(name="x", **_LOC, value=INT64_MAX)
        with pytest.raises(ValidationError):
            IntVariableResource(name="x", **_LOC, value=INT64_MAX + 1)

    def test_bool_is_strict(self) -> None:
        with pytest.raises(ValidationError):
            BoolVariableResource(name="x", **_LOC, value="true")

    def test_wrong_type_literal(self) -> None:
        with pytest.raises(ValidationError):
            IntVariableResource(name="x", **_LOC, value=1, type="string")


class TestDateTimeNormalization:
    def test_rfc3339_normalized_to_millis(self) -> None:
        r = DateTimeVariableResource(name="d", **_LOC, value="2023-01-02T17:04:05+02:00")
        assert r.value == "2023-01-02T15:04:05.000Z"

    def test_naive_datetime_treated_as_utc(self) -> None:
        r = DateTimeVariableResource(name="d", **_LOC, value=datetime(2023, 1, 2, 15, 4, 5))
        assert r.value == "2023-01-02T15:04:05.000Z"

    def test_aware_datetime(self) -> None:
        moment = datetime(2023, 1, 2, 15, 4, 5, 250000, tzinfo=UTC)
        r = DateTimeVariableResource(name="d", **_LOC, value=moment)
        assert r.value == "2023-01-02T15:04:05.250Z"

    def test_invalid_string_kept_for_validation(self) -> None:
        r = DateTimeVariableResource(name="d", **_LOC, value="tomorrow")
        assert r.value == "tomorrow"


class TestForceNew:
    def test_location_fields_force_replacement(self) -> None:
        assert collect_force_new(IntVariableResource) == frozenset(
            {"resource_group_name", "automation_account_name"}
        )

    def test_works_on_instances(self) -> None:
        r = StringVariableResource(name="s", **_LOC, value="x")
        assert "resource_group_name" in collect_force_new(r)


def test_identity_uses_subscription() -> None:
    r = IntVariableResource(name="retries", **_LOC, value=3)
    identity = r.identity("sub-1")
    assert (identity.subscription_id, identity.resource_group, identity.account_name) == (
        "sub-1",
        "rg",
        "acct",
    )
    assert identity.name == "retries"
