"""Result types returned by repositories, batch operations and API handlers."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass
class SheetCheck:
    """Outcome of checking which required sheets exist in a workbook."""

    success: bool
    missing: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class OperationResult:
    """Structured outcome of an operation that reports instead of raising."""

    success: bool
    message: str = ""
    data: Any = None


@dataclass
class BatchFailure:
    """One failed item of a batch, identified by its id or its input index."""

    error: str
    id: str | None = None
    index: int | None = None
    data: Any = None


@dataclass
class BatchResult:
    """Itemized tallies of a batch operation.

    A batch never aborts on a single failing item, so failures are part of a
    normal result and not an error state.
    """

    success_count: int = 0
    fail_count: int = 0
    items: list[Any] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)

    def add_success(self, item: Any = None) -> None:
        self.success_count += 1
        if item is not None:
            self.items.append(item)

    def add_failure(self, failure: BatchFailure) -> None:
        self.fail_count += 1
        self.failures.append(failure)


class ApiResponse(BaseModel):
    """Uniform success/error envelope of the API handlers."""

    success: bool
    data: Any = None
    count: int | None = None
    message: str | None = None
    error: str | None = None
    errors: list[str] | None = None
    success_count: int | None = None
    fail_count: int | None = None
    failed: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
