# mypy: ignore-errors
"""
Migration Alembic pour créer la table content_packs.

Cette migration crée la table content_packs qui stocke les révisions immuables des content packs,
avec l'unicité du couple (pack_id, revision).
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20251101_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Applique la migration pour créer la table content_packs.

    Crée la table, la contrainte d'unicité (pack_id, revision) et l'index sur pack_id.
    """
    op.create_table(
        "content_packs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pack_id", sa.String(length=255), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("pack_id", "revision", name="uq_content_pack_id_revision"),
    )
    op.create_index("ix_content_packs_pack_id", "content_packs", ["pack_id"])


def downgrade() -> None:
    """
    Annule la migration en supprimant la table content_packs.
    """
    op.drop_index("ix_content_packs_pack_id", table_name="content_packs")
    op.drop_table("content_packs")
