"""Session credential verification and account resolution.

``resolve`` only proves who is acting: it checks the token's signature,
expiry and shape and never touches the account store. Role and status are
always read fresh through ``load_account``, because either may have changed
since the token was issued.
"""

import logging
import time

from jose import JWTError, jwt
from pydantic import ValidationError

from bloodline.core.errors import AccountNotFound, Unauthenticated
from bloodline.data_access.protocols import AccountStore
from bloodline.models.account import Account, SessionClaim

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(
        self,
        accounts: AccountStore,
        secret: str,
        algorithm: str = "HS256",
        token_ttl_seconds: int = 7 * 24 * 60 * 60,
    ):
        self.accounts = accounts
        self.secret = secret
        self.algorithm = algorithm
        self.token_ttl_seconds = token_ttl_seconds

    def create_token(self, email: str, name: str | None) -> str:
        """Sign a session token for an already-verified identity."""
        now = int(time.time())
        payload = {
            "email": email,
            "name": name,
            "iat": now,
            "exp": now + self.token_ttl_seconds,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def resolve(self, credential: str | None) -> SessionClaim:
        if not credential:
            raise Unauthenticated("No session token provided")

        try:
            payload = jwt.decode(
                credential,
                self.secret,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except JWTError as e:
            logger.info(f"Rejected session token: {e}")
            raise Unauthenticated("Invalid or expired session token")

        try:
            return SessionClaim(email=payload.get("email"), name=payload.get("name"))
        except ValidationError:
            raise Unauthenticated("Session token does not carry a valid email")

    def load_account(self, email: str) -> Account:
        account = self.accounts.find_by_email(email)
        if account is None:
            raise AccountNotFound(email)
        return account
