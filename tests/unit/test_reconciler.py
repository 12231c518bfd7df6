from __future__ import annotations

import pytest
from azure.core.exceptions import HttpResponseError, ServiceRequestError

from automation_provisioner.core import AutomationProvider, ValueKind, VariableIdentity
from automation_provisioner.core.errors import (
    AlreadyExistsError,
    DeleteFailedError,
    IncompleteWriteError,
    InvalidIdentityError,
    InvalidTimeFormatError,
    MalformedIdentifierError,
    ValueDecodeError,
)
from automation_provisioner.engine.reconciler import VariableReconciler
from automation_provisioner.resources import (
    BoolVariableResource,
    DateTimeVariableResource,
    IntVariableResource,
    StringVariableResource,
)
from tests.unit.conftest import SUBSCRIPTION_ID, FakeVariableOperations, variable_id


_LOC = {"resource_group_name": "rg", "automation_account_name": "acct"}


def _int_var(value: int = 1234, **kw: object) -> IntVariableResource:
    return IntVariableResource(
        name="v1", **_LOC, value=value, **kw  # type: ignore[arg-type]
    )


def _identity(name: str = "v1") -> VariableIdentity:
    return VariableIdentity(SUBSCRIPTION_ID, "rg", "acct", name)


@pytest.fixture
def reconciler(provider: AutomationProvider) -> VariableReconciler:
    return VariableReconciler(provider.variables, SUBSCRIPTION_ID)


class TestCreateOrUpdate:
    def test_create_then_read(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        created = reconciler.create_or_update(_int_var())

        assert created.resource_id == variable_id("rg", "acct", "v1")
        assert created.value == 1234
        assert fake_ops.store[("rg", "acct", "v1")].value == "1234"

        read = reconciler.read(_identity(), ValueKind.INT)
        assert read is not None
        assert read.value == 1234
        assert read.kind == ValueKind.INT

    def test_update_and_revert_description(self, reconciler: VariableReconciler) -> None:
        reconciler.create_or_update(_int_var())
        reconciler.create_or_update(_int_var(12345, description="d"))

        read = reconciler.read(_identity(), ValueKind.INT)
        assert read is not None
        assert (read.value, read.description) == (12345, "d")

        reconciler.create_or_update(_int_var())
        read = reconciler.read(_identity(), ValueKind.INT)
        assert read is not None
        assert (read.value, read.description) == (1234, "")

    @pytest.mark.parametrize(
        ("desired", "expected"),
        [
            (BoolVariableResource(name="flag", **_LOC, value=True), True),
            (StringVariableResource(name="greeting", **_LOC, value='say "hi"'), 'say "hi"'),
            (
                DateTimeVariableResource(name="when", **_LOC, value="2023-01-02T15:04:05Z"),
                "2023-01-02T15:04:05.000Z",
            ),
        ],
    )
    def test_each_kind_reads_back(
        self, reconciler: VariableReconciler, desired: object, expected: object
    ) -> None:
        state = reconciler.create_or_update(desired)  # type: ignore[arg-type]
        assert state.value == expected

    def test_datetime_is_stored_as_date_token(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        desired = DateTimeVariableResource(
            name="when",
            resource_group_name="rg",
            automation_account_name="acct",
            value="2023-01-02T15:04:05Z",
        )
        reconciler.create_or_update(desired)
        assert fake_ops.store[("rg", "acct", "when")].value == '"\\/Date(1672671845000)\\/"'

    def test_invalid_datetime_never_reaches_service(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        desired = DateTimeVariableResource(
            name="when", resource_group_name="rg", automation_account_name="acct", value="today"
        )
        with pytest.raises(InvalidTimeFormatError):
            reconciler.create_or_update(desired)
        assert fake_ops.call_names("create_or_update") == []

    def test_import_guard_rejects_existing(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", "1")

        with pytest.raises(AlreadyExistsError) as exc_info:
            reconciler.create_or_update(_int_var(), import_guard=True)

        assert exc_info.value.resource_id == variable_id("rg", "acct", "v1")
        assert "import automation_int_variable.v1" in str(exc_info.value)
        assert fake_ops.store[("rg", "acct", "v1")].value == "1"

    def test_import_guard_allows_new(self, reconciler: VariableReconciler) -> None:
        state = reconciler.create_or_update(_int_var(), import_guard=True)
        assert state.value == 1234

    def test_without_guard_existing_is_overwritten(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", "1")
        reconciler.create_or_update(_int_var())
        assert fake_ops.store[("rg", "acct", "v1")].value == "1234"

    def test_missing_id_is_incomplete_write(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.hide_ids.add("v1")
        with pytest.raises(IncompleteWriteError) as exc_info:
            reconciler.create_or_update(_int_var())
        assert exc_info.value.identity == _identity()
        assert exc_info.value.operation == "create_or_update"

    def test_call_options_reach_every_sdk_call(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        reconciler.create_or_update(_int_var(), import_guard=True, timeout=5)
        assert [kw for _, _, kw in fake_ops.calls] == [{"timeout": 5}] * 3

    def test_transport_error_propagates_unchanged(
        self,
        reconciler: VariableReconciler,
        fake_ops: FakeVariableOperations,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def boom(*_args: object, **_kw: object) -> None:
            raise ServiceRequestError("connection reset")

        monkeypatch.setattr(fake_ops, "create_or_update", boom)
        with pytest.raises(ServiceRequestError):
            reconciler.create_or_update(_int_var())

    def test_empty_key_field_rejected(self, reconciler: VariableReconciler) -> None:
        desired = _int_var().model_copy(update={"resource_group_name": " "})
        with pytest.raises(InvalidIdentityError):
            reconciler.create_or_update(desired)


class TestEncrypted:
    def test_value_is_never_exposed(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        state = reconciler.create_or_update(_int_var(encrypted=True))
        assert state.encrypted is True
        assert state.value is None
        assert fake_ops.store[("rg", "acct", "v1")].value == "1234"

        read = reconciler.read(_identity(), ValueKind.INT)
        assert read is not None
        assert read.value is None

    def test_kind_mismatch_is_not_detectable(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", '"text"', encrypted=True)
        read = reconciler.read(_identity(), ValueKind.INT)
        assert read is not None
        assert read.value is None


class TestRead:
    def test_absent_returns_none(self, reconciler: VariableReconciler) -> None:
        assert reconciler.read(_identity(), ValueKind.INT) is None

    def test_kind_mismatch(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", '"text"')
        with pytest.raises(ValueDecodeError) as exc_info:
            reconciler.read(_identity(), ValueKind.INT)
        err = exc_info.value
        assert (err.expected, err.actual) == ("int", "string")
        assert err.identity == _identity()
        assert err.operation == "read"

    def test_null_value_is_decode_error(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", None)
        with pytest.raises(ValueDecodeError):
            reconciler.read(_identity(), ValueKind.STRING)


class TestDelete:
    def test_idempotent(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", "1")
        assert reconciler.delete(_identity()) is True
        assert reconciler.delete(_identity()) is False
        assert fake_ops.store == {}

    def test_service_error_becomes_delete_failed(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        cause = HttpResponseError("conflict")
        fake_ops.delete_error = cause
        with pytest.raises(DeleteFailedError) as exc_info:
            reconciler.delete(_identity())
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.operation == "delete"
        assert "'v1'" in str(exc_info.value)


class TestImport:
    def test_reads_by_canonical_id(
        self, reconciler: VariableReconciler, fake_ops: FakeVariableOperations
    ) -> None:
        fake_ops.seed("rg", "acct", "v1", "true", description="imported")
        state = reconciler.import_(variable_id("rg", "acct", "v1"), ValueKind.BOOL)
        assert state is not None
        assert state.identity == _identity()
        assert state.value is True
        assert state.description == "imported"

    def test_absent_returns_none(self, reconciler: VariableReconciler) -> None:
        assert reconciler.import_(variable_id("rg", "acct", "v1"), ValueKind.INT) is None

    def test_malformed_id(self, reconciler: VariableReconciler) -> None:
        with pytest.raises(MalformedIdentifierError):
            reconciler.import_("/subscriptions/x/resourceGroups/rg", ValueKind.INT)

    def test_other_subscription_rejected(self, reconciler: VariableReconciler) -> None:
        rid = variable_id("rg", "acct", "v1", sub="11111111-1111-1111-1111-111111111111")
        with pytest.raises(InvalidIdentityError, match="subscription"):
            reconciler.import_(rid, ValueKind.INT)
