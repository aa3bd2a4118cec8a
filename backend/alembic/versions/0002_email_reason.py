"""email_reason

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Adds the approver's rejection reason to email_logs and indexes sent_at
for the monthly history query.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("email_logs") as batch_op:
        batch_op.add_column(sa.Column("reason", sa.Text, nullable=True))
    op.create_index("ix_email_logs_sent_at", "email_logs", ["sent_at"])


def downgrade() -> None:
    op.drop_index("ix_email_logs_sent_at", table_name="email_logs")
    with op.batch_alter_table("email_logs") as batch_op:
        batch_op.drop_column("reason")
