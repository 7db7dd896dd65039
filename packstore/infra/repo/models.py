"""SQLAlchemy models for persistence layer (ContentPack)."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class ContentPackORM(Base):
    """Modèle ORM pour les révisions de content packs."""

    __tablename__ = "content_packs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pack_id = Column(String(255), nullable=False, index=True)
    revision = Column(Integer, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("pack_id", "revision", name="uq_content_pack_id_revision"),
    )
