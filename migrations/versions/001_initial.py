"""Initial migration - baseline.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

Establishes the migration history in the alembic_version table; tables
are created by the following revisions.
"""

from collections.abc import Sequence

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    pass


def downgrade() -> None:
    pass
