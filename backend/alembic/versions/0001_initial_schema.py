"""Initial schema: append-only analysis log.

Revision ID: 0001
Revises:
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── legal_analysis_logs ──────────────────────────────────────────
    op.create_table(
        "legal_analysis_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("source", sa.String(64), nullable=False),
        sa.Column("legal_category", sa.String(255), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_legal_analysis_logs_created_at", "legal_analysis_logs", ["created_at"])
    op.create_index("ix_legal_analysis_logs_category", "legal_analysis_logs", ["legal_category"])


def downgrade() -> None:
    op.drop_index("ix_legal_analysis_logs_category", table_name="legal_analysis_logs")
    op.drop_index("ix_legal_analysis_logs_created_at", table_name="legal_analysis_logs")
    op.drop_table("legal_analysis_logs")
