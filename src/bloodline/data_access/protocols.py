"""Storage contracts the services depend on.

The services only ever see these protocols; ``dynamodb`` provides the
production implementation. ``filters`` are plain equality matches on model
field names, and listings are always sorted newest first by ``created_at``.
"""

from typing import Any, Protocol

from bloodline.models.account import Account
from bloodline.models.donation_request import DonationRequest


class AccountStore(Protocol):
    def find_by_email(self, email: str) -> Account | None:
        """Case-insensitive lookup."""
        ...

    def insert(self, account: Account) -> bool:
        """False when an account with the same normalized email exists."""
        ...

    def update(self, email: str, patch: dict[str, Any]) -> bool:
        """False when no such account exists."""
        ...

    def find(self, filters: dict[str, Any] | None = None) -> list[Account]: ...

    def count(self, filters: dict[str, Any] | None = None) -> int: ...


class RequestStore(Protocol):
    def find_by_id(self, request_id: str) -> DonationRequest | None: ...

    def insert(self, request: DonationRequest) -> None: ...

    def update_conditional(
        self, request_id: str, expected_status: str, patch: dict[str, Any]
    ) -> bool:
        """Apply ``patch`` only if the stored status still equals ``expected_status``."""
        ...

    def update(self, request_id: str, patch: dict[str, Any]) -> bool:
        """False when the request no longer exists."""
        ...

    def delete(self, request_id: str) -> bool: ...

    def find(
        self,
        filters: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[DonationRequest]: ...

    def count(self, filters: dict[str, Any] | None = None) -> int: ...
