"""ORM models for deploy providers and per-image provider parameters."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from shareai.models.base import Base, new_id, utcnow


class Provider(Base):
    """A deployment target (e.g. a hosted inference service)."""

    __tablename__ = "providers"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True)
    api_url = Column(String(1024), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class ImageProvider(Base):
    """Deployment parameters for one image on one provider, stored as JSON text."""

    __tablename__ = "image_providers"

    image_id = Column(String(36), ForeignKey("images.id", ondelete="CASCADE"), primary_key=True)
    provider_id = Column(
        String(36), ForeignKey("providers.id", ondelete="CASCADE"), primary_key=True
    )
    params = Column(Text, nullable=False, default="{}")
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
