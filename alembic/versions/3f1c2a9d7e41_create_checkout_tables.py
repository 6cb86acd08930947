"""create cart, discount, order, shipping and payment tables

Revision ID: 3f1c2a9d7e41
Revises:
Create Date: 2026-10-17 10:12:03.511207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="user"),
        sa.Column("can_login", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_user_email", "user", ["email"])

    op.create_table(
        "book",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("cover_image", sa.String(), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("discount_price", sa.Float(), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("available_quantity >= 0", name="ck_book_available_quantity"),
        sa.CheckConstraint("stock >= 0", name="ck_book_stock"),
    )

    op.create_table(
        "address",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("city_name", sa.String(), nullable=False),
        sa.Column("province_name", sa.String(), nullable=False),
        sa.Column("distance_km", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_address_user_id", "address", ["user_id"])

    op.create_table(
        "cart",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cart_user_id", "cart", ["user_id"], unique=True)

    op.create_table(
        "cartitem",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("cart.id"), nullable=False),
        sa.Column("book_id", sa.Integer(), sa.ForeignKey("book.id"), nullable=False),
        sa.Column("book_title", sa.String(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("price_discount", sa.Float(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("is_checked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("cart_id", "book_id"),
        sa.CheckConstraint("quantity >= 1", name="ck_cartitem_quantity"),
    )
    op.create_index("ix_cartitem_cart_id", "cartitem", ["cart_id"])

    op.create_table(
        "discount",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("type", sa.Enum("percentage", "fixed", name="discounttype"), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("min_required_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_discount_value", sa.Float(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_discount_quantity"),
    )
    op.create_index("ix_discount_code", "discount", ["code"], unique=True)

    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("subtotal", sa.Float(), nullable=False),
        sa.Column("discount_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("shipping_cost", sa.Float(), nullable=False),
        sa.Column("total_payment", sa.Float(), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("discount_id", sa.Integer(), sa.ForeignKey("discount.id"), nullable=True),
        sa.Column("shipping_id", sa.Integer(), nullable=True),
        sa.Column("payment_id", sa.Integer(), nullable=True),
        sa.Column("shipping_address", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_order_user_id", "order", ["user_id"])
    op.create_index("ix_order_status", "order", ["status"])

    op.create_table(
        "orderitem",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("book_id", sa.Integer(), sa.ForeignKey("book.id"), nullable=False),
        sa.Column("book_title", sa.String(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("price_discount", sa.Float(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
    )
    op.create_index("ix_orderitem_order_id", "orderitem", ["order_id"])

    op.create_table(
        "shipping",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("cost", sa.Float(), nullable=False),
        sa.Column("tracking_number", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("shipped_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_shipping_order_id", "shipping", ["order_id"], unique=True)
    op.create_index("ix_shipping_tracking_number", "shipping", ["tracking_number"], unique=True)

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("method", sa.String(), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_payment_order_id", "payment", ["order_id"], unique=True)
    op.create_index("ix_payment_user_id", "payment", ["user_id"])
    op.create_index("ix_payment_is_paid", "payment", ["is_paid"])

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("recipient_role", sa.Enum("admin", "customer", name="recipientrole"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("trigger_source", sa.String(), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table("notification")
    op.drop_table("payment")
    op.drop_table("shipping")
    op.drop_table("orderitem")
    op.drop_table("order")
    op.drop_table("discount")
    op.drop_table("cartitem")
    op.drop_table("cart")
    op.drop_table("address")
    op.drop_table("book")
    op.drop_table("user")
    sa.Enum(name="discounttype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="recipientrole").drop(op.get_bind(), checkfirst=True)
