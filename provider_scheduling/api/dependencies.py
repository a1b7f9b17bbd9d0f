"""FastAPI dependencies: the wired service, the notification dispatcher, and the caller.

Auth failures raise the same ``SchedulingError`` subclasses as the service,
so every error response shares the ``{success, error, message}`` shape.
"""

from typing import Callable, Optional

from fastapi import Depends, Header, Request

from provider_scheduling.booking_service import BookingService, Caller, CallerRole
from provider_scheduling.errors import AuthenticationError, PermissionDeniedError
from provider_scheduling.notifications import NotificationDispatcher


def get_service(request: Request) -> BookingService:
    return request.app.state.service


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Caller:
    """Identity set by the upstream auth gateway.

    Token verification happens before requests reach this service; only the
    resolved user id and role are forwarded.
    """
    if not x_user_id:
        raise AuthenticationError("Not authenticated.")
    try:
        role = CallerRole((x_user_role or CallerRole.CUSTOMER.value).strip().lower())
    except ValueError:
        raise AuthenticationError(f"Unknown role {x_user_role!r}.", field="X-User-Role") from None
    return Caller(user_id=x_user_id, role=role)


def require_role(*roles: CallerRole) -> Callable[..., Caller]:
    """Dependency factory restricting a route to the given roles."""

    def _dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise PermissionDeniedError(
                f"Role {caller.role.value} is not authorized for this route (requires {allowed})."
            )
        return caller

    return _dependency
