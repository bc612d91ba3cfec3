"""Authorization decisions for donation requests and account administration.

Invariants:
    - decide() is PURE: no IO, no clock, no logging
    - Every rule lives in ``POLICIES``; there is exactly one row per action
    - Ownership compares emails case-insensitively
    - Role and status come from the freshly loaded Account, never from the token

Rows mirror current production behaviour, including its gaps: blocked
accounts are refused only for CREATE and DONATE, and DONATE does not exclude
the requester.
"""

from dataclasses import dataclass
from enum import Enum

from bloodline.models.account import Account
from bloodline.models.donation_request import CLOSING_STATUSES, DonationRequest


class Action(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    DONATE = "donate"
    SET_STATUS = "set_status"
    CLOSE_IN_PROGRESS = "close_in_progress"
    DELETE = "delete"
    MANAGE_ACCOUNTS = "manage_accounts"
    VIEW_STATS = "view_stats"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Policy:
    admits_blocked: bool
    owner_allowed: bool
    roles: frozenset[str]
    denial: str


ALL_ROLES = frozenset({"donor", "volunteer", "admin"})
STAFF = frozenset({"volunteer", "admin"})

POLICIES: dict[Action, Policy] = {
    Action.CREATE: Policy(
        admits_blocked=False, owner_allowed=False, roles=ALL_ROLES,
        denial="Blocked users cannot create donation requests",
    ),
    Action.EDIT: Policy(
        admits_blocked=True, owner_allowed=True, roles=STAFF,
        denial="Not authorized to update this request",
    ),
    Action.DONATE: Policy(
        admits_blocked=False, owner_allowed=False, roles=ALL_ROLES,
        denial="Blocked users cannot donate",
    ),
    Action.SET_STATUS: Policy(
        admits_blocked=True, owner_allowed=True, roles=STAFF,
        denial="Not authorized to update status",
    ),
    # inprogress -> done/canceled: only the requester can confirm the outcome
    Action.CLOSE_IN_PROGRESS: Policy(
        admits_blocked=True, owner_allowed=True, roles=frozenset(),
        denial="Only request owner can mark as done/canceled",
    ),
    Action.DELETE: Policy(
        admits_blocked=True, owner_allowed=True, roles=frozenset({"admin"}),
        denial="Not authorized to delete this request",
    ),
    Action.MANAGE_ACCOUNTS: Policy(
        admits_blocked=True, owner_allowed=False, roles=frozenset({"admin"}),
        denial="Access denied. Admin only.",
    ),
    Action.VIEW_STATS: Policy(
        admits_blocked=True, owner_allowed=False, roles=STAFF,
        denial="Access denied",
    ),
}


def effective_action(
    action: Action,
    request: DonationRequest | None,
    target_status: str | None,
) -> Action:
    """Narrow SET_STATUS to CLOSE_IN_PROGRESS when it closes an active donation."""
    if (
        action is Action.SET_STATUS
        and request is not None
        and request.donation_status == "inprogress"
        and target_status in CLOSING_STATUSES
    ):
        return Action.CLOSE_IN_PROGRESS
    return action


def is_owner(account: Account, request: DonationRequest | None) -> bool:
    return request is not None and account.same_email(request.requester_email)


def decide(
    action: Action,
    account: Account,
    request: DonationRequest | None = None,
    target_status: str | None = None,
) -> Decision:
    policy = POLICIES[effective_action(action, request, target_status)]

    if account.is_blocked and not policy.admits_blocked:
        return Decision.DENY
    if policy.owner_allowed and is_owner(account, request):
        return Decision.ALLOW
    if account.role in policy.roles:
        return Decision.ALLOW
    return Decision.DENY


def denial_reason(
    action: Action,
    request: DonationRequest | None = None,
    target_status: str | None = None,
) -> str:
    return POLICIES[effective_action(action, request, target_status)].denial


def check_self_block(caller: Account, target_email: str, new_status: str) -> Decision:
    """An admin may never block their own account."""
    if new_status == "blocked" and caller.same_email(target_email):
        return Decision.DENY
    return Decision.ALLOW
