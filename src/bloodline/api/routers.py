from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from typing import Optional

from bloodline.api.schemas import (
    AccountResponse,
    AccountStatusChange,
    CreatedRequestResponse,
    LoginRequest,
    MessageResponse,
    RoleChange,
    StatsResponse,
    StatusChange,
)
from bloodline.core.config import get_settings
from bloodline.core.dependencies import (
    get_account_service,
    get_credential_verifier,
    get_donation_request_service,
    get_identity_resolver,
)
from bloodline.models.account import ProfileUpdate, Registration, SessionClaim
from bloodline.models.donation_request import (
    DonationRequest,
    RequestDetails,
    RequestDetailsPatch,
    RequestPage,
)
from bloodline.services.account_service import AccountService
from bloodline.services.credentials import CredentialVerifier
from bloodline.services.donation_request_service import DonationRequestService
from bloodline.services.identity import IdentityResolver

auth_router = APIRouter()
users_router = APIRouter()
requests_router = APIRouter()

security = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "token"


def get_current_claim(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityResolver = Depends(get_identity_resolver),
) -> SessionClaim:
    """Bearer header first, then the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(TOKEN_COOKIE)
    return identity.resolve(token)


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.TOKEN_TTL_SECONDS,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="none" if settings.COOKIE_SECURE else "strict",
        path="/",
    )


# ---------- Auth ----------

@auth_router.post(
    "/register",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED
)
def register(
    body: Registration,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    identity: IdentityResolver = Depends(get_identity_resolver),
):
    account = accounts.register(body)
    _set_session_cookie(response, identity.create_token(account.email, account.name))
    return account


@auth_router.post("/login", response_model=AccountResponse)
def login(
    body: LoginRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    identity: IdentityResolver = Depends(get_identity_resolver),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
):
    account = accounts.login(verifier, body.email, body.password)
    _set_session_cookie(response, identity.create_token(account.email, account.name))
    return account


@auth_router.post("/logout", response_model=MessageResponse)
def logout(response: Response):
    settings = get_settings()
    response.delete_cookie(
        TOKEN_COOKIE,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="none" if settings.COOKIE_SECURE else "strict",
    )
    return MessageResponse(message="Logout successful")


@auth_router.get("/me", response_model=AccountResponse)
def me(
    claim: SessionClaim = Depends(get_current_claim),
    identity: IdentityResolver = Depends(get_identity_resolver),
):
    return identity.load_account(claim.email)


# ---------- Users ----------

@users_router.get("/stats", response_model=StatsResponse)
def get_stats(
    claim: SessionClaim = Depends(get_current_claim),
    accounts: AccountService = Depends(get_account_service),
):
    return accounts.stats(claim)


@users_router.get("/profile", response_model=AccountResponse)
def get_profile(
    claim: SessionClaim = Depends(get_current_claim),
    accounts: AccountService = Depends(get_account_service),
):
    return accounts.get_profile(claim)


@users_router.patch("/profile", response_model=AccountResponse)
def update_profile(
    body: ProfileUpdate,
    claim: SessionClaim = Depends(get_current_claim),
    accounts: AccountService = Depends(get_account_service),
):
    return accounts.update_profile(claim, body)


@users_router.get("", response_model=list[AccountResponse])
def list_users(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    claim: SessionClaim = Depends(get_current_claim),
    accounts: AccountService = Depends(get_account_service),
):
    return accounts.list_accounts(claim, status_filter)


@users_router.patch("/{email}/status", response_model=MessageResponse)
def update_user_status(
    email: str,
    body: AccountStatusChange,
    claim: SessionClaim = Depends(get_current_claim),
    accounts: AccountService = Depends(get_account_service),
):
    accounts.set_account_status(claim, email, body.status)
    verb = "blocked" if body.status == "blocked" else "unblocked"
    return MessageResponse(message=f"User {verb} successfully")


@users_router.patch("/{email}/role", response_model=MessageResponse)
def update_user_role(
    email: str,
    body: RoleChange,
    claim: SessionClaim = Depends(get_current_claim),
    accounts: AccountService = Depends(get_account_service),
):
    accounts.set_account_role(claim, email, body.role)
    return MessageResponse(message=f"User role updated to {body.role} successfully")


# ---------- Donation requests ----------

@requests_router.post(
    "",
    response_model=CreatedRequestResponse,
    status_code=status.HTTP_201_CREATED
)
def create_request(
    body: RequestDetails,
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    request_id = service.create(claim, body)
    return CreatedRequestResponse(request_id=request_id)


@requests_router.get("", response_model=RequestPage)
def list_requests(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    page: int = 1,
    limit: int = 10,
    service: DonationRequestService = Depends(get_donation_request_service),
):
    return service.list_requests(status_filter, page, limit)


@requests_router.get("/pending", response_model=list[DonationRequest])
def list_pending(service: DonationRequestService = Depends(get_donation_request_service)):
    return service.list_pending()


@requests_router.get("/mine", response_model=RequestPage)
def list_my_requests(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    page: int = 1,
    limit: int = 10,
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    return service.list_mine(claim, status_filter, page, limit)


@requests_router.get("/recent", response_model=list[DonationRequest])
def list_recent(
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    return service.recent(claim)


@requests_router.get("/{request_id}", response_model=DonationRequest)
def get_request(
    request_id: str,
    service: DonationRequestService = Depends(get_donation_request_service),
):
    return service.get(request_id)


@requests_router.patch("/{request_id}", response_model=MessageResponse)
def edit_request(
    request_id: str,
    body: RequestDetailsPatch,
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    service.edit(claim, request_id, body)
    return MessageResponse(message="Donation request updated successfully")


@requests_router.patch("/{request_id}/status", response_model=MessageResponse)
def update_request_status(
    request_id: str,
    body: StatusChange,
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    service.set_status(claim, request_id, body.status)
    return MessageResponse(message="Status updated successfully")


@requests_router.post("/{request_id}/donate", response_model=MessageResponse)
def donate(
    request_id: str,
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    service.donate(claim, request_id)
    return MessageResponse(message="Thank you for agreeing to donate!")


@requests_router.delete("/{request_id}", response_model=MessageResponse)
def delete_request(
    request_id: str,
    claim: SessionClaim = Depends(get_current_claim),
    service: DonationRequestService = Depends(get_donation_request_service),
):
    service.delete(claim, request_id)
    return MessageResponse(message="Donation request deleted successfully")
