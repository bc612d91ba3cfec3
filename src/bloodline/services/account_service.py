import logging
from datetime import datetime, timezone
from typing import Any

from bloodline.core.errors import (
    AccountNotFound,
    Conflict,
    Forbidden,
    InvalidInput,
    Unauthenticated,
)
from bloodline.data_access.protocols import AccountStore, RequestStore
from bloodline.models.account import (
    ACCOUNT_STATUSES,
    ROLES,
    Account,
    ProfileUpdate,
    Registration,
    SessionClaim,
    default_avatar,
)
from bloodline.services.authorization import (
    Action,
    Decision,
    check_self_block,
    decide,
    denial_reason,
)
from bloodline.services.credentials import CredentialVerifier
from bloodline.services.identity import IdentityResolver
from bloodline.services.payloads import parse_payload

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, accounts: AccountStore, requests: RequestStore,
                 identity: IdentityResolver):
        self.accounts = accounts
        self.requests = requests
        self.identity = identity

    def _require(self, action: Action, claim: SessionClaim) -> Account:
        caller = self.identity.load_account(claim.email)
        if decide(action, caller) is Decision.DENY:
            logger.warning(
                f"Denied {action.value} for {caller.email} (role={caller.role})",
                extra={"action": action.value, "actor": caller.email},
            )
            raise Forbidden(denial_reason(action))
        return caller

    def register(self, payload: Registration | dict[str, Any]) -> Account:
        """New accounts always start as active donors."""
        registration = parse_payload(Registration, payload)
        account = Account(
            email=registration.email,
            name=registration.name,
            role="donor",
            status="active",
            avatar=registration.avatar or default_avatar(registration.name),
            blood_group=registration.blood_group,
            district=registration.district,
            upazila=registration.upazila,
        )
        if not self.accounts.insert(account):
            raise Conflict("User already exists with this email")

        logger.info(f"Registered account {account.email}", extra={"action": "register"})
        return account

    def login(self, verifier: CredentialVerifier, email: str, password: str) -> Account:
        """Verified pair in, current account out. Blocked accounts never get a session."""
        claim = verifier.verify(email, password)
        try:
            account = self.identity.load_account(claim.email)
        except AccountNotFound:
            raise Unauthenticated("Invalid email or password")

        if account.is_blocked:
            logger.warning(
                f"Blocked account {account.email} attempted to sign in",
                extra={"action": "login", "actor": account.email},
            )
            raise Forbidden("Your account has been blocked. Please contact admin.")

        logger.info(f"Account {account.email} signed in", extra={"action": "login", "actor": account.email})
        return account

    def get_profile(self, claim: SessionClaim) -> Account:
        return self.identity.load_account(claim.email)

    def update_profile(self, claim: SessionClaim,
                       payload: ProfileUpdate | dict[str, Any]) -> Account:
        account = self.identity.load_account(claim.email)
        update = parse_payload(ProfileUpdate, payload)

        patch = update.model_dump(exclude_none=True)
        patch["updated_at"] = datetime.now(timezone.utc)
        if not self.accounts.update(account.email, patch):
            raise AccountNotFound(account.email)

        return account.model_copy(update=patch)

    def list_accounts(self, claim: SessionClaim, status: str | None = None) -> list[Account]:
        self._require(Action.MANAGE_ACCOUNTS, claim)
        if status is None:
            return self.accounts.find()
        if status not in ACCOUNT_STATUSES:
            raise InvalidInput(f"Invalid status '{status}'", ["status"])
        return self.accounts.find({"status": status})

    def set_account_status(self, claim: SessionClaim, target_email: str, status: str) -> None:
        caller = self._require(Action.MANAGE_ACCOUNTS, claim)
        if status not in ACCOUNT_STATUSES:
            raise InvalidInput(f"Invalid status '{status}'", ["status"])
        if check_self_block(caller, target_email, status) is Decision.DENY:
            raise Forbidden("You cannot block yourself")

        patch = {"status": status, "updated_at": datetime.now(timezone.utc)}
        if not self.accounts.update(target_email, patch):
            raise AccountNotFound(target_email)

        logger.info(
            f"Account {target_email} set to {status} by {caller.email}",
            extra={"action": "set_account_status", "actor": caller.email},
        )

    def set_account_role(self, claim: SessionClaim, target_email: str, role: str) -> None:
        caller = self._require(Action.MANAGE_ACCOUNTS, claim)
        if role not in ROLES:
            raise InvalidInput(f"Invalid role '{role}'", ["role"])

        patch = {"role": role, "updated_at": datetime.now(timezone.utc)}
        if not self.accounts.update(target_email, patch):
            raise AccountNotFound(target_email)

        logger.info(
            f"Account {target_email} role updated to {role} by {caller.email}",
            extra={"action": "set_account_role", "actor": caller.email},
        )

    def stats(self, claim: SessionClaim) -> dict[str, int]:
        self._require(Action.VIEW_STATS, claim)
        return {
            "total_donors": self.accounts.count({"role": "donor", "status": "active"}),
            "total_requests": self.requests.count(),
        }
