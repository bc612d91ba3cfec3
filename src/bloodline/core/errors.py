"""Error taxonomy for request lifecycle and account operations.

Every error carries a stable ``code`` and the HTTP status the API layer
renders it with. None of them are retried by the service layer.
"""


class BloodlineError(Exception):
    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class Unauthenticated(BloodlineError):
    """No credential, or one that fails signature/expiry/shape checks."""
    code = "UNAUTHENTICATED"
    http_status = 401


class Forbidden(BloodlineError):
    """Authenticated, but role, ownership or account status forbids the action."""
    code = "FORBIDDEN"
    http_status = 403


class NotFound(BloodlineError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} '{resource_id}' not found")
        self.resource_type = resource_type
        self.resource_id = resource_id


class AccountNotFound(NotFound):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, email: str):
        super().__init__("Account", email)


class InvalidInput(BloodlineError):
    code = "INVALID_INPUT"
    http_status = 400

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []

    def to_response(self) -> dict:
        body = super().to_response()
        if self.fields:
            body["error"]["fields"] = self.fields
        return body


class Conflict(BloodlineError):
    """The record is not in the state the operation requires."""
    code = "CONFLICT"
    http_status = 409
