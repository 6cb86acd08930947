from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from bookstore.models.address import Address


def get_default_address(session: Session, user_id: int) -> Optional[Address]:
    return session.exec(
        select(Address).where(Address.user_id == user_id, Address.is_default == True)  # noqa: E712
    ).first()


def create_address(session: Session, user_id: int, data: dict) -> Address:
    address = Address(user_id=user_id, **data)

    # a user has at most one default address
    if address.is_default:
        session.execute(
            update(Address)
            .where(Address.user_id == user_id)
            .values(is_default=False)
        )

    session.add(address)
    session.commit()
    session.refresh(address)
    return address
