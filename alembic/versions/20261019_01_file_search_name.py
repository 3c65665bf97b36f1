"""casefolded file name for search

Revision ID: 20261019_01
Revises: 20261018_01
Create Date: 2026-10-19 10:04:31.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_01'
down_revision: Union[str, Sequence[str], None] = '20261018_01'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column('files', sa.Column('search_name', sa.String(), nullable=True))

    files = sa.table(
        'files',
        sa.column('id', sa.String()),
        sa.column('name', sa.String()),
        sa.column('search_name', sa.String()),
    )
    conn = op.get_bind()
    for row in conn.execute(sa.select(files.c.id, files.c.name)).fetchall():
        conn.execute(
            files.update()
            .where(files.c.id == row.id)
            .values(search_name=(row.name or '').casefold())
        )

    with op.batch_alter_table('files') as batch_op:
        batch_op.alter_column('search_name', existing_type=sa.String(), nullable=False)


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('files') as batch_op:
        batch_op.drop_column('search_name')
