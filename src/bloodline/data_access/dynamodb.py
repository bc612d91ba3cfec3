import logging
from datetime import datetime
from functools import reduce
from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from pydantic import BaseModel

from bloodline.core.errors import Conflict
from bloodline.models.account import Account, normalize_email
from bloodline.models.donation_request import DonationRequest

logger = logging.getLogger(__name__)

ACCOUNT_PREFIX = "ACCOUNT#"
REQUEST_PREFIX = "REQUEST#"
PROFILE_SK = "PROFILE"
REQUEST_SK = "REQUEST"
ACCOUNT_ENTITY = "ACCOUNT"
REQUEST_ENTITY = "REQUEST"
ENTITY_INDEX = "EntityIndex"


def _is_condition_failure(error: ClientError) -> bool:
    return error.response['Error']['Code'] == 'ConditionalCheckFailedException'


def _to_attribute(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _build_update(patch: dict[str, Any]) -> tuple[str, dict, dict]:
    names, values, assignments = {}, {}, []
    for i, (field, value) in enumerate(patch.items()):
        names[f"#f{i}"] = field
        values[f":v{i}"] = _to_attribute(value)
        assignments.append(f"#f{i} = :v{i}")
    return "SET " + ", ".join(assignments), names, values


def _build_filter(filters: dict[str, Any] | None):
    if not filters:
        return None
    return reduce(
        lambda acc, cond: acc & cond,
        [Attr(field).eq(_to_attribute(value)) for field, value in filters.items()],
    )


class _DynamoCollection:
    """One entity type within the single table, listed through ``EntityIndex``."""

    entity_type: str

    def __init__(self, table):
        self.table = table

    def _key(self, identifier: str) -> dict:
        raise NotImplementedError

    def _put_new(self, key: dict, attributes: dict) -> bool:
        item = {**key, "entity_type": self.entity_type, **attributes}
        try:
            self.table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(PK)"
            )
            return True
        except ClientError as e:
            if _is_condition_failure(e):
                return False
            logger.error(f"Error inserting {self.entity_type} {key['PK']}: {e}")
            raise

    def _update(self, identifier: str, patch: dict[str, Any],
                condition: str = "attribute_exists(PK)",
                extra_names: dict | None = None,
                extra_values: dict | None = None) -> bool:
        expression, names, values = _build_update(patch)
        try:
            self.table.update_item(
                Key=self._key(identifier),
                UpdateExpression=expression,
                ConditionExpression=condition,
                ExpressionAttributeNames={**names, **(extra_names or {})},
                ExpressionAttributeValues={**values, **(extra_values or {})},
            )
            return True
        except ClientError as e:
            if _is_condition_failure(e):
                return False
            logger.error(f"Error updating {self.entity_type} {identifier}: {e}")
            raise

    def _get(self, identifier: str) -> dict | None:
        response = self.table.get_item(Key=self._key(identifier))
        return response.get("Item")

    def _query_pages(self, filters: dict[str, Any] | None, **kwargs):
        params = {
            "IndexName": ENTITY_INDEX,
            "KeyConditionExpression": Key("entity_type").eq(self.entity_type),
            "ScanIndexForward": False,
            **kwargs,
        }
        filter_expression = _build_filter(filters)
        if filter_expression is not None:
            params["FilterExpression"] = filter_expression

        try:
            while True:
                response = self.table.query(**params)
                yield response
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                params["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error(f"Error querying {self.entity_type} records: {e}")
            raise

    def _find_items(self, filters: dict[str, Any] | None,
                    skip: int = 0, limit: int | None = None) -> list[dict]:
        items: list[dict] = []
        stop = None if limit is None else skip + limit
        for page in self._query_pages(filters):
            items.extend(page.get("Items", []))
            if stop is not None and len(items) >= stop:
                break
        return items[skip:stop]

    def count(self, filters: dict[str, Any] | None = None) -> int:
        return sum(page.get("Count", 0) for page in self._query_pages(filters, Select="COUNT"))


class DynamoAccountStore(_DynamoCollection):
    entity_type = ACCOUNT_ENTITY

    def _key(self, email: str) -> dict:
        return {"PK": f"{ACCOUNT_PREFIX}{normalize_email(email)}", "SK": PROFILE_SK}

    def find_by_email(self, email: str) -> Account | None:
        item = self._get(email)
        return Account.model_validate(item) if item else None

    def insert(self, account: Account) -> bool:
        created = self._put_new(self._key(account.email), account.model_dump(mode="json"))
        if not created:
            logger.info(f"Account already exists for {account.email}")
        return created

    def update(self, email: str, patch: dict[str, Any]) -> bool:
        return self._update(email, patch)

    def find(self, filters: dict[str, Any] | None = None) -> list[Account]:
        return [Account.model_validate(item) for item in self._find_items(filters)]


class DynamoRequestStore(_DynamoCollection):
    entity_type = REQUEST_ENTITY

    def _key(self, request_id: str) -> dict:
        return {"PK": f"{REQUEST_PREFIX}{request_id}", "SK": REQUEST_SK}

    def find_by_id(self, request_id: str) -> DonationRequest | None:
        item = self._get(request_id)
        return DonationRequest.model_validate(item) if item else None

    def insert(self, request: DonationRequest) -> None:
        if not self._put_new(self._key(request.request_id), request.model_dump(mode="json")):
            raise Conflict(f"Donation request {request.request_id} already exists")

    def update_conditional(self, request_id: str, expected_status: str,
                           patch: dict[str, Any]) -> bool:
        applied = self._update(
            request_id,
            patch,
            condition="attribute_exists(PK) AND #expected_field = :expected",
            extra_names={"#expected_field": "donation_status"},
            extra_values={":expected": expected_status},
        )
        if not applied:
            logger.info(f"Conditional update skipped: request {request_id} is no longer {expected_status}.")
        return applied

    def update(self, request_id: str, patch: dict[str, Any]) -> bool:
        return self._update(request_id, patch)

    def delete(self, request_id: str) -> bool:
        try:
            self.table.delete_item(
                Key=self._key(request_id),
                ConditionExpression="attribute_exists(PK)"
            )
            return True
        except ClientError as e:
            if _is_condition_failure(e):
                return False
            logger.error(f"Error deleting donation request {request_id}: {e}")
            raise

    def find(self, filters: dict[str, Any] | None = None,
             skip: int = 0, limit: int | None = None) -> list[DonationRequest]:
        return [DonationRequest.model_validate(item)
                for item in self._find_items(filters, skip, limit)]
