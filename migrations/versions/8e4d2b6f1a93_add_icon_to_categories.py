"""add icon to categories

Revision ID: 8e4d2b6f1a93
Revises: 1f3a9c2e7b40
Create Date: 2025-06-09 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '8e4d2b6f1a93'
down_revision = '1f3a9c2e7b40'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    cols = {c["name"] for c in inspector.get_columns("categories")}
    if "icon" not in cols:
        with op.batch_alter_table('categories', schema=None) as batch_op:
            batch_op.add_column(sa.Column('icon', sa.String(length=50), server_default='bi-tag', nullable=True))
        op.execute("UPDATE categories SET icon = 'bi-tag' WHERE icon IS NULL")


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    cols = {c["name"] for c in inspector.get_columns("categories")}
    if "icon" in cols:
        with op.batch_alter_table('categories', schema=None) as batch_op:
            batch_op.drop_column('icon')
