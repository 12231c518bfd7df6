"""Plan, change and apply-result models shared by the engine and the CLI."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable

# (resource group, account, name), lowercased: the service matches variables
# case-insensitively on all three.
RemoteKey = tuple[str, str, str]


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "no-op"


def remote_key(attrs: dict[str, Any]) -> RemoteKey:
    """Remote variable slot addressed by a set of variable attributes."""
    return (
        str(attrs["resource_group_name"]).lower(),
        str(attrs["automation_account_name"]).lower(),
        str(attrs["name"]).lower(),
    )


def tally(changes: Iterable[ResourceChange]) -> dict[str, int]:
    """Changes per action; every action is present, zero or not."""
    counts = Counter(c.action for c in changes)
    return {action.value: counts[action] for action in Action}


class PlanMetadata(BaseModel):
    """What a plan was computed against. Apply refuses a plan whose state moved on."""

    subscription_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    destroy: bool
    refresh: bool
    state_lineage: str
    state_serial: int
    state_digest: str
    engine_version: str


class ResourceChange(BaseModel):
    """One planned action on one variable address.

    ``desired`` and ``planned`` hold the configured attributes, ``prior`` the
    tracked ones as of the last refresh. ``supersedes`` names another tracked
    address whose remote variable this change writes to (a type change or a
    rename that only changes case); that address is deleted before this change
    runs.
    """

    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None
    replace_fields: list[str] = Field(default_factory=list)
    supersedes: str | None = None

    @property
    def vacates(self) -> RemoteKey | None:
        """Remote slot this change removes a variable from, if any."""
        if self.action in (Action.DELETE, Action.REPLACE) and self.prior:
            return remote_key(self.prior)
        return None

    @property
    def target(self) -> RemoteKey | None:
        """Remote slot this change creates a variable in, if any."""
        if self.action in (Action.CREATE, Action.REPLACE) and self.planned:
            return remote_key(self.planned)
        return None


class Plan(BaseModel):
    metadata: PlanMetadata
    changes: list[ResourceChange]

    def summary(self) -> dict[str, int]:
        return tally(self.changes)

    def execution_order(self) -> list[ResourceChange]:
        """Changes to run, in order.

        Superseded addresses go first so their remote variable is gone before
        it is written again. Writes follow in plan order, then the remaining
        deletes.
        """
        superseded = {c.supersedes for c in self.changes if c.supersedes}
        return sorted(
            (c for c in self.changes if c.action != Action.NOOP),
            key=lambda c: (c.address not in superseded, c.action == Action.DELETE),
        )

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Plan:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


class ApplyResult(BaseModel):
    applied: list[ResourceChange] = Field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return tally(self.applied)
