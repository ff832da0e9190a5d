"""
Error taxonomy for the engine.

Every failure carries a stable ``kind`` string and the HTTP status the API
layer answers with. Callers branch on ``kind``, never on the message text.
"""


class EngineError(Exception):
    kind = "error"
    status = 400
    default_message = "The request could not be completed."

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def as_dict(self):
        payload = {"kind": self.kind, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(EngineError):
    kind = "validation"
    status = 400
    default_message = "Invalid input."


class InvalidTransitionError(EngineError):
    kind = "invalid_transition"
    status = 400
    default_message = "That status change is not allowed."


class ForbiddenError(EngineError):
    kind = "forbidden"
    status = 403
    default_message = "You are not allowed to do that."


class NotFoundError(EngineError):
    kind = "not_found"
    status = 404
    default_message = "Not found."


class ConflictError(EngineError):
    kind = "conflict"
    status = 409
    default_message = "The record was changed by someone else."


class StoreUnavailable(EngineError):
    kind = "store_unavailable"
    status = 503
    default_message = "Storage is temporarily unavailable. Try again shortly."
