"""Port interfaces (Protocols) the lifecycle engine and API depend on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from wasteflow.models.process import Process, ProcessCreate
    from wasteflow.models.user import Role, User


@runtime_checkable
class ProcessStorePort(Protocol):
    """Durable CRUD for process records.

    Any record store with an equivalent id/timestamp model can stand in for
    the SQLite-backed ``Database``. Lookups return None for unknown ids;
    persistence failures surface as ``StorageError``.
    """

    def list_processes(self) -> list[Process]: ...
    def get_process(self, process_id: str) -> Process | None: ...
    def create_process(self, data: ProcessCreate) -> Process: ...
    def update_process(self, process_id: str, changes: Mapping[str, Any]) -> Process | None: ...
    def delete_process(self, process_id: str) -> bool: ...


@runtime_checkable
class UserStorePort(Protocol):
    """Lookup of caller accounts and their roles."""

    def get_user(self, user_id: str) -> User | None: ...
    def upsert_user(self, user: User) -> User: ...
    def register_user(self, user_id: str) -> User: ...
    def set_user_role(self, user_id: str, role: Role) -> User | None: ...
