"""init

Revision ID: 4f1c9a7e2b3d
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4f1c9a7e2b3d"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tokens",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("access_token", sa.String(1024), nullable=False),
        sa.Column("token_type", sa.String(64), nullable=True),
        sa.Column("expires_in", sa.Integer, nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ad_accounts", sa.JSON, nullable=False),
        sa.Column("ad_accounts_count", sa.Integer, nullable=False),
        sa.Column("client_info", sa.JSON, nullable=False),
        sa.Column("client_id", sa.String(512), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
    )
    op.create_index(
        "idx_tokens_issued_at", "tokens", [sa.text("issued_at DESC")]
    )
    op.create_index("idx_tokens_client_id", "tokens", ["client_id"])


def downgrade() -> None:
    op.drop_index("idx_tokens_client_id", table_name="tokens")
    op.drop_index("idx_tokens_issued_at", table_name="tokens")
    op.drop_table("tokens")
