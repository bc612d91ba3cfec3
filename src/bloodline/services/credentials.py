"""Password sign-in against an external identity provider.

This service never stores or compares passwords itself. A verifier proves an
email/password pair and hands back the identity it vouches for; the session
token minted afterwards is ours.
"""

import logging
from typing import Protocol

from botocore.exceptions import ClientError

from bloodline.core.errors import Unauthenticated
from bloodline.models.account import SessionClaim

logger = logging.getLogger(__name__)

REJECTED_SIGN_IN_CODES = {
    "NotAuthorizedException",
    "UserNotFoundException",
    "UserNotConfirmedException",
    "PasswordResetRequiredException",
}


class CredentialVerifier(Protocol):
    def verify(self, email: str, password: str) -> SessionClaim:
        """Raise Unauthenticated unless the pair is valid."""
        ...


class CognitoCredentialVerifier:
    def __init__(self, client, client_id: str):
        self.client = client
        self.client_id = client_id

    def verify(self, email: str, password: str) -> SessionClaim:
        try:
            auth = self.client.initiate_auth(
                ClientId=self.client_id,
                AuthFlow="USER_PASSWORD_AUTH",
                AuthParameters={"USERNAME": email, "PASSWORD": password},
            )
            access_token = auth["AuthenticationResult"]["AccessToken"]
            user = self.client.get_user(AccessToken=access_token)
        except ClientError as e:
            if e.response["Error"]["Code"] in REJECTED_SIGN_IN_CODES:
                logger.info(f"Sign-in rejected for {email}: {e.response['Error']['Code']}")
                raise Unauthenticated("Invalid email or password")
            logger.error(f"Cognito sign-in failed for {email}: {e}")
            raise
        except KeyError:
            # a challenge (MFA, NEW_PASSWORD_REQUIRED) instead of tokens
            raise Unauthenticated("Additional sign-in steps are required")

        attributes = {a["Name"]: a["Value"] for a in user.get("UserAttributes", [])}
        return SessionClaim(email=attributes.get("email", email), name=attributes.get("name"))
