"""Exceptional planner outcomes. Infeasible plans and missing input are response data, not errors."""

from typing import Any


class PlannerError(Exception):
    status_code = 500
    error_code = "INTERNAL_ERROR"
    default_message: str | None = None

    def __init__(
        self,
        message: str | None = None,
        request_id: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.message = message or self.default_message
        self.request_id = request_id
        self.errors = errors
        super().__init__(self.message or self.error_code)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"errorCode": self.error_code}
        if self.message:
            body["message"] = self.message
        if self.request_id:
            body["requestId"] = self.request_id
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class MissingSessionError(PlannerError):
    status_code = 400
    error_code = "MISSING_SESSION"
    default_message = "Missing onboarding session"


class SavePlanValidationError(PlannerError):
    status_code = 400
    error_code = "SAVE_PLAN_VALIDATION_FAILED"
    default_message = "Save plan request is invalid"


class SessionNotFoundError(PlannerError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Invalid onboarding session"


class SavedPlanNotFoundError(PlannerError):
    status_code = 404
    error_code = "SAVED_PLAN_NOT_FOUND"
    default_message = "Saved plan not found"


class DataIntegrityError(PlannerError):
    status_code = 500
    error_code = "DATA_INTEGRITY_ERROR"
    default_message = "Saved plan data is invalid"
