import logging
import math
from datetime import datetime, timezone
from typing import Any

from bloodline.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from bloodline.data_access.protocols import RequestStore
from bloodline.models.account import Account, SessionClaim
from bloodline.models.donation_request import (
    DONATION_STATUSES,
    DonationRequest,
    DonorInfo,
    RequestDetails,
    RequestDetailsPatch,
    RequestPage,
)
from bloodline.services.authorization import Action, Decision, decide, denial_reason
from bloodline.services.identity import IdentityResolver
from bloodline.services.payloads import check_paging, parse_payload

logger = logging.getLogger(__name__)

RECENT_LIMIT = 3


class DonationRequestService:
    """Runs every donation-request operation: load, authorize, transition, commit.

    Only ``donate`` relies on a conditional write; the other mutations are
    last-writer-wins single-document updates.
    """

    def __init__(self, requests: RequestStore, identity: IdentityResolver):
        self.requests = requests
        self.identity = identity

    def _load_request(self, request_id: str) -> DonationRequest:
        request = self.requests.find_by_id(request_id)
        if request is None:
            raise NotFound("Donation request", request_id)
        return request

    def _authorize(self, action: Action, account: Account,
                   request: DonationRequest | None = None,
                   target_status: str | None = None) -> None:
        if decide(action, account, request, target_status) is Decision.ALLOW:
            return
        logger.warning(
            f"Denied {action.value} for {account.email} (role={account.role}, status={account.status})",
            extra={
                "action": action.value,
                "actor": account.email,
                "request_id": request.request_id if request else None,
            },
        )
        raise Forbidden(denial_reason(action, request, target_status))

    def create(self, claim: SessionClaim, payload: RequestDetails | dict[str, Any]) -> str:
        account = self.identity.load_account(claim.email)
        self._authorize(Action.CREATE, account)

        details = parse_payload(RequestDetails, payload)
        # requester identity always comes from the stored account, never the body
        request = DonationRequest(
            **details.model_dump(),
            requester_email=account.email,
            requester_name=account.name,
        )
        self.requests.insert(request)

        logger.info(
            f"Donation request {request.request_id} created by {account.email}",
            extra={"action": "create", "actor": account.email, "request_id": request.request_id},
        )
        return request.request_id

    def edit(self, claim: SessionClaim, request_id: str,
             payload: RequestDetailsPatch | dict[str, Any]) -> None:
        request = self._load_request(request_id)
        account = self.identity.load_account(claim.email)
        self._authorize(Action.EDIT, account, request)

        patch = parse_payload(RequestDetailsPatch, payload).model_dump(exclude_unset=True)
        patch["updated_at"] = datetime.now(timezone.utc)

        if not self.requests.update(request_id, patch):
            raise NotFound("Donation request", request_id)

        logger.info(
            f"Donation request {request_id} edited by {account.email}: {sorted(patch)}",
            extra={"action": "edit", "actor": account.email, "request_id": request_id},
        )

    def donate(self, claim: SessionClaim, request_id: str) -> None:
        request = self._load_request(request_id)
        if request.donation_status != "pending":
            raise Conflict("This request is not available for donation")

        account = self.identity.load_account(claim.email)
        self._authorize(Action.DONATE, account, request)

        patch = {
            "donation_status": "inprogress",
            "donor_info": DonorInfo(name=account.name, email=account.email),
            "updated_at": datetime.now(timezone.utc),
        }
        if not self.requests.update_conditional(request_id, "pending", patch):
            logger.info(
                f"Donation request {request_id} was claimed by another donor first",
                extra={"action": "donate", "actor": account.email, "request_id": request_id},
            )
            raise Conflict("This request is not available for donation")

        logger.info(
            f"Donor {account.email} committed to donation request {request_id}",
            extra={"action": "donate", "actor": account.email, "request_id": request_id},
        )

    def set_status(self, claim: SessionClaim, request_id: str, target_status: str) -> None:
        if target_status not in DONATION_STATUSES:
            raise InvalidInput(f"Invalid status '{target_status}'", ["status"])

        request = self._load_request(request_id)
        account = self.identity.load_account(claim.email)
        self._authorize(Action.SET_STATUS, account, request, target_status)

        patch = {"donation_status": target_status, "updated_at": datetime.now(timezone.utc)}
        if not self.requests.update(request_id, patch):
            raise NotFound("Donation request", request_id)

        logger.info(
            f"Donation request {request_id}: {request.donation_status} -> {target_status} by {account.email}",
            extra={"action": "set_status", "actor": account.email, "request_id": request_id},
        )

    def delete(self, claim: SessionClaim, request_id: str) -> None:
        request = self._load_request(request_id)
        account = self.identity.load_account(claim.email)
        self._authorize(Action.DELETE, account, request)

        if not self.requests.delete(request_id):
            raise NotFound("Donation request", request_id)

        logger.info(
            f"Donation request {request_id} deleted by {account.email}",
            extra={"action": "delete", "actor": account.email, "request_id": request_id},
        )

    def get(self, request_id: str) -> DonationRequest:
        return self._load_request(request_id)

    def _page(self, filters: dict[str, Any], page: int, limit: int) -> RequestPage:
        check_paging(page, limit)
        total = self.requests.count(filters)
        requests = self.requests.find(filters, skip=(page - 1) * limit, limit=limit)
        return RequestPage(
            requests=requests,
            total_pages=math.ceil(total / limit),
            current_page=page,
            total_requests=total,
        )

    @staticmethod
    def _status_filter(status: str | None) -> dict[str, Any]:
        if status is None:
            return {}
        if status not in DONATION_STATUSES:
            raise InvalidInput(f"Invalid status '{status}'", ["status"])
        return {"donation_status": status}

    def list_requests(self, status: str | None = None,
                      page: int = 1, limit: int = 10) -> RequestPage:
        return self._page(self._status_filter(status), page, limit)

    def list_pending(self) -> list[DonationRequest]:
        return self.requests.find({"donation_status": "pending"})

    def list_mine(self, claim: SessionClaim, status: str | None = None,
                  page: int = 1, limit: int = 10) -> RequestPage:
        account = self.identity.load_account(claim.email)
        filters = {"requester_email": account.email, **self._status_filter(status)}
        return self._page(filters, page, limit)

    def recent(self, claim: SessionClaim) -> list[DonationRequest]:
        account = self.identity.load_account(claim.email)
        return self.requests.find({"requester_email": account.email}, limit=RECENT_LIMIT)
