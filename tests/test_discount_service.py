from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

from sqlmodel import Session, select

from bookstore.constants.order_status import DiscountType
from bookstore.models import Discount
from bookstore.services import discount_service


class TestDiscountAmount:

    def test_percentage(self):
        discount = Discount(code="P", type=DiscountType.percentage, value=10,
                            start_date=datetime.utcnow(), end_date=datetime.utcnow())
        assert discount_service.calculate_discount_amount(discount, 200) == 20

    def test_percentage_is_capped(self):
        discount = Discount(code="P", type=DiscountType.percentage, value=50, max_discount_value=30,
                            start_date=datetime.utcnow(), end_date=datetime.utcnow())
        assert discount_service.calculate_discount_amount(discount, 200) == 30

    def test_fixed_never_exceeds_subtotal(self):
        discount = Discount(code="F", type=DiscountType.fixed, value=80,
                            start_date=datetime.utcnow(), end_date=datetime.utcnow())
        assert discount_service.calculate_discount_amount(discount, 50) == 50
        assert discount_service.calculate_discount_amount(discount, 200) == 80


class TestResolve:

    def test_applies_and_consumes_one_unit(self, session, make_discount):
        discount = make_discount()

        redemption = discount_service.resolve(session, "SAVE10", 200, commit=True)

        assert redemption.amount == 20
        assert redemption.discount_id == discount.id
        session.refresh(discount)
        assert discount.quantity == 4

    def test_below_minimum_is_silently_skipped(self, session, make_discount):
        discount = make_discount(min_required_value=500)

        assert discount_service.resolve(session, "SAVE10", 200, commit=True) is None
        session.refresh(discount)
        assert discount.quantity == 5

    def test_unknown_or_empty_code(self, session):
        assert discount_service.resolve(session, "NOPE", 200) is None
        assert discount_service.resolve(session, None, 200) is None
        assert discount_service.resolve(session, "", 200) is None

    def test_inactive(self, session, make_discount):
        make_discount(is_active=False)
        assert discount_service.resolve(session, "SAVE10", 200) is None

    def test_outside_date_window(self, session, make_discount):
        now = datetime.utcnow()
        make_discount(code="OLD", start_date=now - timedelta(days=10), end_date=now - timedelta(days=5))
        make_discount(code="SOON", start_date=now + timedelta(days=5), end_date=now + timedelta(days=10))

        assert discount_service.resolve(session, "OLD", 200) is None
        assert discount_service.resolve(session, "SOON", 200) is None

    def test_exhausted(self, session, make_discount):
        make_discount(quantity=0)
        assert discount_service.resolve(session, "SAVE10", 200) is None

    def test_quote_does_not_consume(self, session, make_discount):
        discount = make_discount()

        quoted = discount_service.quote(session, "SAVE10", 300)

        assert quoted.amount == 30
        session.refresh(discount)
        assert discount.quantity == 5

    def test_lost_race_reports_not_applied(self, session, make_discount):
        discount = make_discount(quantity=1)
        discount_service.consume(session, discount.id)
        session.commit()

        assert discount_service.consume(session, discount.id) is False
        session.refresh(discount)
        assert discount.quantity == 0


def test_concurrent_redemptions_never_go_below_zero(file_engine):
    now = datetime.utcnow()
    with Session(file_engine) as session:
        session.add(Discount(
            code="RUSH", type=DiscountType.fixed, value=5, min_required_value=0, quantity=3,
            is_active=True, start_date=now - timedelta(days=1), end_date=now + timedelta(days=1),
        ))
        session.commit()

    def attempt(_):
        with Session(file_engine) as worker_session:
            try:
                return discount_service.resolve(worker_session, "RUSH", 100, commit=True) is not None
            except Exception:
                return False

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(attempt, range(12)))

    with Session(file_engine) as session:
        discount = session.exec(select(Discount).where(Discount.code == "RUSH")).one()

    applied = sum(results)
    assert discount.quantity >= 0
    assert applied <= 3
    assert discount.quantity == 3 - applied
