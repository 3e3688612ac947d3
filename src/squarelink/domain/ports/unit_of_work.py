"""Unit-of-work abstraction for one customer import transaction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from squarelink.domain.ports.persistence import ClientSnapshotSource, DecisionApplier


@dataclass(slots=True)
class ImportRepositories:
    """Collaborators bound to the same session."""

    snapshots: ClientSnapshotSource
    applier: DecisionApplier


@runtime_checkable
class ImportUnitOfWork(Protocol):
    @property
    def repositories(self) -> ImportRepositories: ...

    def __enter__(self) -> ImportUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
