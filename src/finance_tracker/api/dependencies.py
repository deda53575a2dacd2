from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from finance_tracker.core.errors import AuthError
from finance_tracker.models import Principal
from finance_tracker.services.auth import AuthService
from finance_tracker.services.reports import ReportService
from finance_tracker.services.transactions import TransactionService

bearer_scheme = HTTPBearer(auto_error=False)


def _get_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return value


def get_auth_service(request: Request) -> AuthService:
    return _get_state(request, "auth_service")


def get_transaction_service(request: Request) -> TransactionService:
    return _get_state(request, "transaction_service")


def get_report_service(request: Request) -> ReportService:
    return _get_state(request, "report_service")


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise AuthError("Auth required")
    return await auth_service.authenticate(credentials.credentials)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
