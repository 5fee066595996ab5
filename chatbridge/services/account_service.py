"""
AccountService: the platform's record of authenticated end users.

Account ids are derived from the identity provider subject so that
repeated logins with the same subject always resolve to one row.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chatbridge.errors import PersistenceError, ValidationError
from chatbridge.persistence.models import Account, now_utc

logger = logging.getLogger(__name__)


def generate_account_id(subject: str) -> str:
    digest = hashlib.sha256(subject.encode("utf-8")).hexdigest()
    return f"acc_{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"


def placeholder_email(user_id: str) -> str:
    return f"{user_id}@example.com"


def account_to_dict(account: Account) -> dict[str, Any]:
    return {
        "accountId": account.account_id,
        "userId": account.user_id,
        "email": account.email,
        "name": account.name,
        "picture": account.picture,
        "createdAt": account.created_at.isoformat() if account.created_at else None,
        "lastLogin": account.last_login.isoformat() if account.last_login else None,
        "metadata": account.metadata_json or {},
    }


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("Email already belongs to another account") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Account %s failed: %s", action, exc)
        raise PersistenceError(f"Failed to {action} account") from exc


class AccountService:
    @staticmethod
    def get_by_user_id(db: Session, user_id: str) -> Account | None:
        return db.query(Account).filter(Account.user_id == user_id).one_or_none()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Account | None:
        return db.query(Account).filter(Account.email == email).one_or_none()

    @staticmethod
    def record_login(
        db: Session,
        user_id: str,
        *,
        email: str | None = None,
        name: str | None = None,
        picture: str | None = None,
    ) -> tuple[Account, bool]:
        """Create the account on first login, otherwise refresh it. Returns (account, created)."""
        account = AccountService.get_by_user_id(db, user_id)
        if account is not None:
            account.last_login = now_utc()
            if email:
                account.email = email
            if name:
                account.name = name
            if picture:
                account.picture = picture
            _commit(db, "update")
            db.refresh(account)
            return account, False

        email = email or placeholder_email(user_id)
        account = Account(
            account_id=generate_account_id(user_id),
            user_id=user_id,
            email=email,
            name=name or email.split("@")[0],
            picture=picture,
            metadata_json={},
        )
        db.add(account)
        _commit(db, "create")
        db.refresh(account)
        logger.info("Created account %s", account.account_id, extra={"user_id": user_id})
        return account, True

    @staticmethod
    def paginate(db: Session, page: int = 0, limit: int = 50) -> dict[str, Any]:
        page = max(page, 0)
        limit = min(max(limit, 1), 100)
        start = page * limit
        total = db.query(func.count(Account.account_id)).scalar() or 0
        rows = db.query(Account).order_by(Account.created_at, Account.account_id).offset(start).limit(limit).all()
        return {
            "accounts": [account_to_dict(a) for a in rows],
            "total": total,
            "start": start,
            "limit": limit,
            "length": len(rows),
        }

    @staticmethod
    def merge_metadata(db: Session, account: Account, updates: dict[str, Any]) -> Account:
        # Reassign so SQLAlchemy sees the JSON column change
        account.metadata_json = {**(account.metadata_json or {}), **updates}
        _commit(db, "update")
        db.refresh(account)
        return account
