from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from chatbridge.config.settings import get_settings
from chatbridge.errors import NotFoundError, ValidationError
from chatbridge.persistence.database import get_db
from chatbridge.schemas.account import AccountLoginIn
from chatbridge.services.account_service import AccountService, account_to_dict

router = APIRouter(prefix="/account", tags=["account"])

_COOKIE_MAX_AGE = 7 * 24 * 60 * 60


@router.post("")
def record_login(payload: AccountLoginIn, response: Response, db: Session = Depends(get_db)) -> dict:
    """Create the account on first login, refresh lastLogin and profile afterwards."""
    if not payload.user_id:
        raise ValidationError("Missing required field: userId")

    account, created = AccountService.record_login(
        db, payload.user_id, email=payload.email, name=payload.name, picture=payload.picture
    )
    secure = get_settings().is_production
    for key, value in (("user_id", account.user_id), ("account_id", account.account_id)):
        response.set_cookie(
            key, value, max_age=_COOKIE_MAX_AGE, path="/", secure=secure, httponly=True, samesite="lax"
        )
    return {"success": True, "created": created, "account": account_to_dict(account)}


@router.get("")
def get_account(
    user_id: str | None = Query(default=None, alias="userId"),
    email: str | None = None,
    all_accounts: bool = Query(default=False, alias="all"),
    page: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    include_totals: bool = False,
    db: Session = Depends(get_db),
) -> dict:
    if all_accounts:
        result = AccountService.paginate(db, page, limit)
        if not include_totals:
            return {"accounts": result["accounts"]}
        return result

    if user_id:
        account = AccountService.get_by_user_id(db, user_id)
    elif email:
        account = AccountService.get_by_email(db, email)
    else:
        raise ValidationError("Provide userId or email")
    if account is None:
        raise NotFoundError("Account not found")
    return {"account": account_to_dict(account)}
