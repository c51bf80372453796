"""FanCard schema: codes + scan history

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Changes:
  - Create codes table (one row per physical card, registered at most once)
  - Create scan_history table (append-only gate scanner log)
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── codes ─────────────────────────────────────────────────────────────────
    op.create_table(
        "codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "is_registered",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fan_name", sa.String(255), nullable=True),
        sa.Column("fan_email", sa.String(255), nullable=True),
    )
    op.create_index("ix_codes_code", "codes", ["code"], unique=True)

    # ── scan_history ──────────────────────────────────────────────────────────
    op.create_table(
        "scan_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(512), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("fan_name", sa.String(255), nullable=True),
        sa.Column(
            "scanned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_scan_history_code", "scan_history", ["code"])


def downgrade() -> None:
    op.drop_index("ix_scan_history_code", table_name="scan_history")
    op.drop_table("scan_history")
    op.drop_index("ix_codes_code", table_name="codes")
    op.drop_table("codes")
