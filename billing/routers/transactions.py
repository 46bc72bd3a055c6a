# billing/routers/transactions.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from billing.core.database import get_db
from billing.core.dependencies import get_current_account
from billing.models.account import Account
from billing.models.transaction import TransactionType
from billing.schemas.transaction import TransactionFilter, TransactionView
from billing.services.transaction import TransactionService

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
    responses={401: {"description": "Not authenticated"}},
)


@router.get("", response_model=List[TransactionView])
def list_transactions(
    type: Optional[TransactionType] = Query(None, description="deposit or payment"),
    course_code: Optional[str] = Query(None, description="Filter by course code"),
    skip_expired: bool = Query(False, description="Hide rentals that already ended"),
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_account),
):
    """
    The caller's deposits and payments, oldest first.
    """
    filters = TransactionFilter(
        type=type, course_code=course_code, skip_expired=skip_expired
    )
    return TransactionService(db).list_transactions(current_account.email, filters)
