"""Root conftest: fake settings plus in-memory stores that honour the store contracts."""

import os
import threading
from typing import Any

import pytest

# Settings are read when the app module is imported; never touch real AWS
os.environ.setdefault("DYNAMODB_TABLE_NAME", "bloodline-test")
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("COGNITO_USER_POOL_CLIENT_ID", "test-client-id")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from bloodline.core.errors import Unauthenticated  # noqa: E402
from bloodline.models.account import Account, SessionClaim, normalize_email  # noqa: E402
from bloodline.models.donation_request import DonationRequest  # noqa: E402
from bloodline.services.account_service import AccountService  # noqa: E402
from bloodline.services.donation_request_service import DonationRequestService  # noqa: E402
from bloodline.services.identity import IdentityResolver  # noqa: E402

TEST_SECRET = "test-secret-not-for-production"


def _matches(model, filters: dict[str, Any] | None) -> bool:
    return all(getattr(model, field) == value for field, value in (filters or {}).items())


class InMemoryAccountStore:
    def __init__(self):
        self._items: dict[str, Account] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Account | None:
        item = self._items.get(normalize_email(email))
        return item.model_copy(deep=True) if item else None

    def insert(self, account: Account) -> bool:
        with self._lock:
            key = normalize_email(account.email)
            if key in self._items:
                return False
            self._items[key] = account.model_copy(deep=True)
            return True

    def update(self, email: str, patch: dict[str, Any]) -> bool:
        with self._lock:
            key = normalize_email(email)
            if key not in self._items:
                return False
            self._items[key] = self._items[key].model_copy(update=patch)
            return True

    def find(self, filters: dict[str, Any] | None = None) -> list[Account]:
        matched = [a for a in self._items.values() if _matches(a, filters)]
        return sorted(matched, key=lambda a: a.created_at, reverse=True)

    def count(self, filters: dict[str, Any] | None = None) -> int:
        return len(self.find(filters))


class InMemoryRequestStore:
    def __init__(self):
        self._items: dict[str, DonationRequest] = {}
        self._lock = threading.Lock()

    def find_by_id(self, request_id: str) -> DonationRequest | None:
        item = self._items.get(request_id)
        return item.model_copy(deep=True) if item else None

    def insert(self, request: DonationRequest) -> None:
        with self._lock:
            self._items[request.request_id] = request.model_copy(deep=True)

    def update_conditional(self, request_id: str, expected_status: str,
                           patch: dict[str, Any]) -> bool:
        with self._lock:
            current = self._items.get(request_id)
            if current is None or current.donation_status != expected_status:
                return False
            self._items[request_id] = current.model_copy(update=patch)
            return True

    def update(self, request_id: str, patch: dict[str, Any]) -> bool:
        with self._lock:
            current = self._items.get(request_id)
            if current is None:
                return False
            self._items[request_id] = current.model_copy(update=patch)
            return True

    def delete(self, request_id: str) -> bool:
        with self._lock:
            return self._items.pop(request_id, None) is not None

    def find(self, filters: dict[str, Any] | None = None,
             skip: int = 0, limit: int | None = None) -> list[DonationRequest]:
        matched = sorted(
            (r for r in self._items.values() if _matches(r, filters)),
            key=lambda r: r.created_at,
            reverse=True,
        )
        stop = None if limit is None else skip + limit
        return matched[skip:stop]

    def count(self, filters: dict[str, Any] | None = None) -> int:
        return len(self.find(filters))


class FakeCredentialVerifier:
    """Stands in for the identity provider: a fixed email -> password map."""

    def __init__(self, passwords: dict[str, str]):
        self.passwords = {normalize_email(email): pw for email, pw in passwords.items()}

    def verify(self, email: str, password: str) -> SessionClaim:
        if self.passwords.get(normalize_email(email)) != password:
            raise Unauthenticated("Invalid email or password")
        return SessionClaim(email=normalize_email(email))


@pytest.fixture
def account_store():
    store = InMemoryAccountStore()
    for account in (
        Account(email="requester@example.com", name="Rahim Requester"),
        Account(email="donor@example.com", name="Dina Donor"),
        Account(email="donor2@example.com", name="Dev Donor"),
        Account(email="volunteer@example.com", name="Vera Volunteer", role="volunteer"),
        Account(email="admin@example.com", name="Ada Admin", role="admin"),
        Account(email="blocked@example.com", name="Bo Blocked", status="blocked"),
    ):
        store.insert(account)
    return store


@pytest.fixture
def request_store():
    return InMemoryRequestStore()


@pytest.fixture
def identity(account_store):
    return IdentityResolver(accounts=account_store, secret=TEST_SECRET)


@pytest.fixture
def service(request_store, identity):
    return DonationRequestService(requests=request_store, identity=identity)


@pytest.fixture
def account_service(account_store, request_store, identity):
    return AccountService(accounts=account_store, requests=request_store, identity=identity)


@pytest.fixture
def credentials():
    return FakeCredentialVerifier({
        "donor@example.com": "donor-pass",
        "blocked@example.com": "blocked-pass",
        "new@example.com": "new-pass",
        "orphan@example.com": "orphan-pass",
    })


@pytest.fixture
def claim_for(account_store):
    """Claim for a seeded account, the way a verified token would carry it."""
    def _claim(email: str) -> SessionClaim:
        account = account_store.find_by_email(email)
        return SessionClaim(email=account.email, name=account.name)
    return _claim


@pytest.fixture
def request_payload():
    return {
        "recipient_name": "Karim Uddin",
        "recipient_district": "Dhaka",
        "recipient_upazila": "Dhanmondi",
        "hospital_name": "Dhaka Medical College Hospital",
        "full_address": "Secretariat Rd, Dhaka 1000",
        "blood_group": "A+",
        "donation_date": "2026-11-02",
        "donation_time": "10:30",
        "request_message": "Surgery scheduled, two bags needed.",
    }


@pytest.fixture
def pending_request(service, claim_for, request_payload):
    """Id of a pending request filed by requester@example.com."""
    return service.create(claim_for("requester@example.com"), request_payload)
