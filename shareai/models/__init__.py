"""SQLAlchemy ORM models."""

from shareai.models.base import Base
from shareai.models.image import PUBLIC_ORG_ID, Collection, Image, Label, image_labels
from shareai.models.provider import ImageProvider, Provider
from shareai.models.user import Role, User

__all__ = [
    "Base",
    "Collection",
    "Image",
    "ImageProvider",
    "Label",
    "Provider",
    "PUBLIC_ORG_ID",
    "Role",
    "User",
    "image_labels",
]
