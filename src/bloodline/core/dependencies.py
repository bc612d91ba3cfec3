import boto3
from functools import lru_cache

from bloodline.core.config import get_settings
from bloodline.data_access.dynamodb import DynamoAccountStore, DynamoRequestStore
from bloodline.services.account_service import AccountService
from bloodline.services.credentials import CognitoCredentialVerifier
from bloodline.services.donation_request_service import DonationRequestService
from bloodline.services.identity import IdentityResolver


@lru_cache()
def get_boto_session() -> boto3.Session:
    settings = get_settings()
    return boto3.Session(
        region_name=settings.AWS_REGION,
        profile_name=settings.AWS_PROFILE
    )

@lru_cache()
def get_dynamo_table():
    settings = get_settings()
    session = get_boto_session()
    dynamo_resource = session.resource('dynamodb', endpoint_url=settings.DYNAMODB_ENDPOINT_URL)
    return dynamo_resource.Table(settings.DYNAMODB_TABLE_NAME)

@lru_cache()
def get_account_store() -> DynamoAccountStore:
    return DynamoAccountStore(table=get_dynamo_table())

@lru_cache()
def get_request_store() -> DynamoRequestStore:
    return DynamoRequestStore(table=get_dynamo_table())

@lru_cache()
def get_identity_resolver() -> IdentityResolver:
    settings = get_settings()
    return IdentityResolver(
        accounts=get_account_store(),
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        token_ttl_seconds=settings.TOKEN_TTL_SECONDS
    )

@lru_cache()
def get_donation_request_service() -> DonationRequestService:
    return DonationRequestService(
        requests=get_request_store(),
        identity=get_identity_resolver()
    )

@lru_cache()
def get_account_service() -> AccountService:
    return AccountService(
        accounts=get_account_store(),
        requests=get_request_store(),
        identity=get_identity_resolver()
    )

@lru_cache()
def get_credential_verifier() -> CognitoCredentialVerifier:
    settings = get_settings()
    return CognitoCredentialVerifier(
        client=get_boto_session().client('cognito-idp'),
        client_id=settings.COGNITO_USER_POOL_CLIENT_ID
    )
