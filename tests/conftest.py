import os

# must be set before bookstore.config builds its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from bookstore import models  # noqa: E402,F401
from bookstore.constants.order_status import DiscountType  # noqa: E402
from bookstore.models import Address, Book, Discount, User  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """Real file database so several threads can hold their own connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bookstore.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    def _make(role="user", email=None):
        user = User(
            first_name="Test",
            last_name="Reader",
            email=email or f"reader{datetime.utcnow().timestamp()}@example.com",
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_book(session):
    def _make(price=100.0, available=10, stock=None, discount_price=None, title="Dune", cover_image=None):
        book = Book(
            title=title,
            author="Frank Herbert",
            price=price,
            discount_price=discount_price,
            available_quantity=available,
            stock=available if stock is None else stock,
            cover_image=cover_image,
        )
        session.add(book)
        session.commit()
        session.refresh(book)
        return book
    return _make


@pytest.fixture
def book(make_book):
    return make_book()


@pytest.fixture
def make_address(session):
    def _make(user_id, distance_km=0, is_default=True, city_name="Hanoi"):
        address = Address(
            user_id=user_id,
            name="Test Reader",
            phone="0900000000",
            description="12 Library Street",
            city_name=city_name,
            province_name="Hanoi",
            distance_km=distance_km,
            is_default=is_default,
        )
        session.add(address)
        session.commit()
        session.refresh(address)
        return address
    return _make


@pytest.fixture
def make_discount(session):
    def _make(
        code="SAVE10",
        type=DiscountType.percentage,
        value=10,
        min_required_value=100,
        max_discount_value=None,
        quantity=5,
        is_active=True,
        start_date=None,
        end_date=None,
    ):
        now = datetime.utcnow()
        discount = Discount(
            code=code,
            type=type,
            value=value,
            min_required_value=min_required_value,
            max_discount_value=max_discount_value,
            quantity=quantity,
            is_active=is_active,
            start_date=start_date or now - timedelta(days=1),
            end_date=end_date or now + timedelta(days=1),
        )
        session.add(discount)
        session.commit()
        session.refresh(discount)
        return discount
    return _make
