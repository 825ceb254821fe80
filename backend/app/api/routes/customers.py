"""Customer balance (derived from transactions on every read)."""
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id
from app.db.session import get_db
from app.services.balance import get_customer_balance

router = APIRouter()


@router.get("/{customer_id}/balance")
def customer_balance(
    customer_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    return {"success": True, "data": get_customer_balance(db, user_id, customer_id)}
