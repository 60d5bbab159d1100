"""ORM models for the image catalog: images, labels and per-user collections."""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from shareai.models.base import Base, new_id, utcnow

# Org id used for images created under the "public" organization.
PUBLIC_ORG_ID = "00000000-0000-0000-0000-000000000000"

image_labels = Table(
    "image_labels",
    Base.metadata,
    Column("image_id", String(36), ForeignKey("images.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", String(36), ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)


class Label(Base):
    """Classification label; created on first use, never deleted with images."""

    __tablename__ = "labels"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Image(Base):
    """
    A packaged container image published to the catalog.

    stars mirrors the number of Collection rows for the image and is only
    changed with in-database increments.
    """

    __tablename__ = "images"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), nullable=False, index=True, default=PUBLIC_ORG_ID)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    author = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # "registry" is reserved on declarative classes; the column keeps its name.
    image_registry = Column("registry", String(255), nullable=False)
    namespace = Column(String(255), nullable=False, default="")
    repository = Column(String(255), nullable=False)
    tag = Column(String(128), nullable=False)
    digest = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    readme_path = Column(String(255), nullable=False, default="")
    stars = Column(Integer, nullable=False, default=0)
    visibility = Column(String(10), nullable=False, default="public")
    platform = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    labels = relationship("Label", secondary=image_labels, lazy="selectin", order_by=Label.name)


class Collection(Base):
    """A user's favorite (starred) image; one row per (user, image)."""

    __tablename__ = "collections"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    image_id = Column(String(36), ForeignKey("images.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
