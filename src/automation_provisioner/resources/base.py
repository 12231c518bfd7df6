"""Base resource class."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Resource(BaseModel):
    """Base class for all resources.

    Resources are pure data - they define the desired state.
    Handlers know how to CRUD resources.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]
    namespace: ClassVar[str]

    # Automation rejects <>*%&:\?.+/ in names; "." is also reserved for addresses.
    name: str = Field(min_length=1, max_length=128, pattern=r"^[^<>*%&:\\?.+/]+$")
    description: str = ""

    @computed_field
    @property
    def address(self) -> str:
        """Unique address for this resource (e.g. 'automation_int_variable.retries')."""
        return f"{self.resource_type}.{self.name}"
