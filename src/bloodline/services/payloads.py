from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from bloodline.core.errors import InvalidInput

M = TypeVar("M", bound=BaseModel)


def parse_payload(model: type[M], payload: M | dict[str, Any]) -> M:
    """Validate a caller payload, reporting every offending field as InvalidInput."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise InvalidInput(f"Invalid or missing fields: {', '.join(fields)}", fields)


def check_paging(page: int, limit: int) -> None:
    if page < 1 or limit < 1:
        raise InvalidInput("page and limit must be positive integers", ["page", "limit"])
