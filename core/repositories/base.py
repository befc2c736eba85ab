"""
Base Repository - Generic repository interfaces using Protocol.

Implements the Repository pattern for clean separation between
UI logic and the hosted table/view API.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol, Sequence, TypeVar

from supabase import Client

T = TypeVar("T", covariant=True)


class ReadOnlyRepository(Protocol[T]):
    """Read-only repository interface."""

    @abstractmethod
    def list_all(self) -> Sequence[T]:
        """List all entities visible to the current session."""
        ...


class SupabaseRepository:
    """
    Shared plumbing for repositories backed by a Supabase table or view.

    Row-level security is enforced by the backend: every query runs with the
    session of the client passed in, so two users never share a repository.
    """

    table_name: str = ""

    def __init__(self, client: Client):
        if not self.table_name:
            raise RuntimeError(f"{type(self).__name__} must define table_name")
        self._client = client

    @property
    def client(self) -> Client:
        return self._client

    def _table(self) -> Any:
        return self._client.table(self.table_name)
