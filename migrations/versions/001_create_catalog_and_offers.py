"""Create products, reviews, offers and negotiation_entries tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_offer_status = postgresql.ENUM(
    "pending", "counter-offered", "approved", "rejected", "completed",
    name="offerstatus", create_type=False,
)
_party = postgresql.ENUM("buyer", "seller", name="party", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    _offer_status.create(bind, checkfirst=True)
    _party.create(bind, checkfirst=True)

    op.create_table(
        "products",
        sa.Column("product_id", sa.Uuid(), primary_key=True),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("price_tiers", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_products_seller_id", "products", ["seller_id"])

    op.create_table(
        "reviews",
        sa.Column("review_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "product_id", sa.Uuid(),
            sa.ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("author", sa.String(128), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
    )
    op.create_index("ix_reviews_product_id", "reviews", ["product_id"])

    op.create_table(
        "offers",
        sa.Column("offer_id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("product_name", sa.String(256), nullable=False),
        sa.Column("buyer_address", sa.String(64), nullable=False),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("offer_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            _offer_status,
            nullable=False,
            server_default="pending",
        ),
        sa.Column("counter_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("counter_from", _party, nullable=True),
        sa.Column("counter_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settlement_tx_hash", sa.String(128), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_offers_product_id", "offers", ["product_id"])
    op.create_index("ix_offers_buyer_address", "offers", ["buyer_address"])
    op.create_index("ix_offers_seller_id", "offers", ["seller_id"])

    op.create_table(
        "negotiation_entries",
        sa.Column("entry_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "offer_id", sa.Uuid(),
            sa.ForeignKey("offers.offer_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("party", _party, nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("offer_id", "sequence", name="uq_negotiation_entries_offer_sequence"),
    )
    op.create_index("ix_negotiation_entries_offer_id", "negotiation_entries", ["offer_id"])


def downgrade() -> None:
    op.drop_table("negotiation_entries")
    op.drop_table("offers")
    op.drop_table("reviews")
    op.drop_table("products")
    op.execute("DROP TYPE IF EXISTS party")
    op.execute("DROP TYPE IF EXISTS offerstatus")
