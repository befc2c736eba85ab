"""
User Repository - Role lookup on the app_users table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from core.data_repository import query_one

from .base import SupabaseRepository


@dataclass
class AppUser:
    """Application user as mirrored from app_users."""

    user_id: str
    role: str | None = None


class UserRepository(Protocol):
    """User repository interface."""

    def get_by_user_id(self, user_id: str) -> AppUser | None:
        ...

    def get_role(self, user_id: str) -> str | None:
        ...


class SupabaseUserRepository(SupabaseRepository):
    """Supabase implementation of UserRepository."""

    table_name = "app_users"

    def get_by_user_id(self, user_id: str) -> AppUser | None:
        row = query_one(
            self._table().select("role").eq("user_id", user_id).maybe_single()
        )
        if row is None:
            return None
        return AppUser(user_id=user_id, role=row.get("role"))

    def get_role(self, user_id: str) -> str | None:
        user = self.get_by_user_id(user_id)
        return user.role if user else None
