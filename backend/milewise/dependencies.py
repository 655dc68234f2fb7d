import uuid

from fastapi import Header, Request

from milewise.services.planner.errors import MissingSessionError

SESSION_HEADER = "X-Onboarding-Session"
REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id(request: Request) -> str:
    """Request id assigned by the request-id middleware, or a new one outside it."""
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


def get_optional_session_id(
    x_onboarding_session: str | None = Header(default=None),
) -> str | None:
    return x_onboarding_session or None


def get_session_id(
    request: Request,
    x_onboarding_session: str | None = Header(default=None),
) -> str:
    if not x_onboarding_session:
        raise MissingSessionError(request_id=get_request_id(request))
    return x_onboarding_session
