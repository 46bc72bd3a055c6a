from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from billing.core.database import get_db
from billing.core.security import jwt_manager
from billing.schemas.account import AuthResponse, CredentialsRequest
from billing.services.account import AccountService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
def register(
    request: CredentialsRequest, db: Session = Depends(get_db)
) -> AuthResponse:
    """Create an account with a zero balance and return an access token"""
    account = AccountService(db).register(request.username, request.password)
    return AuthResponse(
        token=jwt_manager.create_access_token(account), roles=account.roles
    )


@router.post("/login", response_model=AuthResponse)
def login(request: CredentialsRequest, db: Session = Depends(get_db)) -> AuthResponse:
    account = AccountService(db).authenticate(request.username, request.password)
    return AuthResponse(
        token=jwt_manager.create_access_token(account), roles=account.roles
    )
