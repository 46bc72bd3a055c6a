# billing/routers/users.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from billing.core.database import get_db
from billing.core.dependencies import get_current_account
from billing.models.account import Account
from billing.schemas.account import CurrentAccountResponse
from billing.schemas.transaction import DepositRequest, DepositResponse
from billing.services.payment import PaymentService

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={401: {"description": "Not authenticated"}},
)


@router.get("/current", response_model=CurrentAccountResponse)
def get_current_user_profile(current_account: Account = Depends(get_current_account)):
    """
    Get the caller's email, roles and balance.
    """
    return CurrentAccountResponse(
        username=current_account.email,
        roles=current_account.roles,
        balance=current_account.balance,
    )


@router.post("/current/deposit", response_model=DepositResponse)
def deposit(
    request: DepositRequest,
    current_account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """
    Add funds to the caller's balance.
    """
    transaction = PaymentService(db).deposit(current_account.id, request.amount)
    return DepositResponse(
        transaction_id=transaction.id,
        amount=transaction.amount,
        balance=transaction.account.balance,
    )
