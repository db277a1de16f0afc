"""Create item scheduling state and review log tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "item_states",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("collection_name", sa.String(length=255), nullable=False),
        sa.Column("front_text", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("interval", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("lapses", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_rating", sa.String(length=8), nullable=True),
        sa.Column("consecutive_easy_streak", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("collection_name", "front_text", name="uq_item_states_item_key"),
    )
    op.create_index(
        "ix_item_states_status_due_date",
        "item_states",
        ("status", "due_date"),
    )

    op.create_table(
        "review_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("collection_name", sa.String(length=255), nullable=False),
        sa.Column("front_text", sa.Text(), nullable=False),
        sa.Column("rating", sa.String(length=8), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_review_log_reviewed_at", "review_log", ("reviewed_at",))


def downgrade() -> None:
    op.drop_index("ix_review_log_reviewed_at", table_name="review_log")
    op.drop_table("review_log")
    op.drop_index("ix_item_states_status_due_date", table_name="item_states")
    op.drop_table("item_states")
