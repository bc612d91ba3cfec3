"""Account registration, sign-in, profile updates and admin-only role/status changes."""

import pytest

from bloodline.core.errors import (
    AccountNotFound,
    Conflict,
    Forbidden,
    InvalidInput,
    Unauthenticated,
)


def _registration(**overrides):
    return {
        "email": "new.donor@example.com",
        "name": "Nadia Noor",
        "blood_group": "B+",
        "district": "Chattogram",
        "upazila": "Pahartali",
        **overrides,
    }


# ─── register ────────────────────────────────────────────────────

def test_register_creates_active_donor(account_service, account_store):
    account = account_service.register(_registration(role="admin", status="blocked"))
    assert account.role == "donor"
    assert account.status == "active"
    assert "Nadia+Noor" in account.avatar
    assert account_store.find_by_email("new.donor@example.com") is not None


def test_register_keeps_supplied_avatar(account_service):
    account = account_service.register(_registration(avatar="https://cdn.example.com/me.png"))
    assert account.avatar == "https://cdn.example.com/me.png"


def test_register_rejects_duplicate_email_in_any_case(account_service):
    with pytest.raises(Conflict):
        account_service.register(_registration(email="Donor@Example.com"))


def test_register_requires_fields(account_service):
    with pytest.raises(InvalidInput) as excinfo:
        account_service.register(_registration(district=""))
    assert "district" in excinfo.value.fields


# ─── login ───────────────────────────────────────────────────────

def test_login_returns_current_account(account_service, credentials):
    account = account_service.login(credentials, "Donor@Example.com", "donor-pass")
    assert account.email == "donor@example.com"
    assert account.name == "Dina Donor"


def test_login_with_wrong_password(account_service, credentials):
    with pytest.raises(Unauthenticated):
        account_service.login(credentials, "donor@example.com", "guess")


def test_blocked_account_cannot_login(account_service, credentials):
    with pytest.raises(Forbidden):
        account_service.login(credentials, "blocked@example.com", "blocked-pass")


def test_verified_identity_without_account_is_unauthenticated(account_service, credentials):
    with pytest.raises(Unauthenticated):
        account_service.login(credentials, "orphan@example.com", "orphan-pass")


def test_registered_account_can_login(account_service, credentials):
    account_service.register(_registration(email="new@example.com"))
    assert account_service.login(credentials, "new@example.com", "new-pass").role == "donor"


# ─── profile ─────────────────────────────────────────────────────

def test_update_profile_never_changes_role_or_status(account_service, claim_for, account_store):
    updated = account_service.update_profile(claim_for("donor@example.com"), {
        "name": "Dina D.",
        "blood_group": "O+",
        "district": "Sylhet",
        "upazila": "Beanibazar",
        "role": "admin",
        "status": "active",
    })
    assert updated.name == "Dina D."
    stored = account_store.find_by_email("donor@example.com")
    assert stored.role == "donor"
    assert stored.district == "Sylhet"


def test_update_profile_requires_fields(account_service, claim_for):
    with pytest.raises(InvalidInput):
        account_service.update_profile(claim_for("donor@example.com"), {"name": "Only name"})


def test_get_profile(account_service, claim_for):
    assert account_service.get_profile(claim_for("volunteer@example.com")).role == "volunteer"


# ─── admin operations ────────────────────────────────────────────

def test_admin_blocks_and_unblocks(account_service, claim_for, account_store):
    admin = claim_for("admin@example.com")
    account_service.set_account_status(admin, "donor@example.com", "blocked")
    assert account_store.find_by_email("donor@example.com").status == "blocked"
    account_service.set_account_status(admin, "DONOR@example.com", "active")
    assert account_store.find_by_email("donor@example.com").status == "active"


def test_admin_cannot_block_self(account_service, claim_for, account_store):
    with pytest.raises(Forbidden):
        account_service.set_account_status(claim_for("admin@example.com"), "Admin@Example.com", "blocked")
    assert account_store.find_by_email("admin@example.com").status == "active"


@pytest.mark.parametrize("caller", ["volunteer@example.com", "donor@example.com"])
def test_non_admins_cannot_manage_accounts(account_service, claim_for, account_store, caller):
    with pytest.raises(Forbidden):
        account_service.set_account_status(claim_for(caller), "donor2@example.com", "blocked")
    with pytest.raises(Forbidden):
        account_service.set_account_role(claim_for(caller), caller, "admin")
    with pytest.raises(Forbidden):
        account_service.list_accounts(claim_for(caller))
    assert account_store.find_by_email(caller).role != "admin"


def test_admin_changes_role(account_service, claim_for, account_store):
    account_service.set_account_role(claim_for("admin@example.com"), "donor2@example.com", "volunteer")
    assert account_store.find_by_email("donor2@example.com").role == "volunteer"


def test_admin_ops_validate_values(account_service, claim_for):
    admin = claim_for("admin@example.com")
    with pytest.raises(InvalidInput):
        account_service.set_account_status(admin, "donor@example.com", "suspended")
    with pytest.raises(InvalidInput):
        account_service.set_account_role(admin, "donor@example.com", "superuser")


def test_admin_ops_on_unknown_account(account_service, claim_for):
    admin = claim_for("admin@example.com")
    with pytest.raises(AccountNotFound):
        account_service.set_account_status(admin, "ghost@example.com", "blocked")
    with pytest.raises(AccountNotFound):
        account_service.set_account_role(admin, "ghost@example.com", "volunteer")


def test_list_accounts_filters_by_status(account_service, claim_for):
    admin = claim_for("admin@example.com")
    assert len(account_service.list_accounts(admin)) == 6
    blocked = account_service.list_accounts(admin, "blocked")
    assert [a.email for a in blocked] == ["blocked@example.com"]


def test_role_change_takes_effect_without_new_token(account_service, service, claim_for, pending_request):
    """Authorization reads the account at decision time, not the token."""
    donor_claim = claim_for("donor2@example.com")
    with pytest.raises(Forbidden):
        service.delete(donor_claim, pending_request)

    account_service.set_account_role(claim_for("admin@example.com"), "donor2@example.com", "admin")
    service.delete(donor_claim, pending_request)


# ─── stats ───────────────────────────────────────────────────────

def test_stats_for_staff(account_service, claim_for, pending_request):
    stats = account_service.stats(claim_for("volunteer@example.com"))
    # requester, donor, donor2 are active donors; blocked one is excluded
    assert stats == {"total_donors": 3, "total_requests": 1}


def test_stats_denied_for_donors(account_service, claim_for):
    with pytest.raises(Forbidden):
        account_service.stats(claim_for("donor@example.com"))
