"""Image catalog: cached listing, detail, author-only mutations and collections."""

import json
import logging

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import distinct, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from shareai.core.cache import CacheStore
from shareai.core.errors import (
    AlreadyCollectedError,
    NotFoundError,
    NotInCollectionError,
    ValidationError,
)
from shareai.models.image import PUBLIC_ORG_ID, Collection, Image, Label, image_labels
from shareai.models.provider import ImageProvider
from shareai.schemas.image import ImageCreate, ImageResponse, ImageUpdate
from shareai.services.labels import LABEL_NAME_MAX_LEN, clean_label_names, ensure_labels
from shareai.services.pagination import contains_pattern, normalize_page
from shareai.services.storage import READMES, FileStorage, UploadedFile

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "stars": Image.stars,
    "created_at": Image.created_at,
    "updated_at": Image.updated_at,
}
DEFAULT_SORT = "created_at"
DEFAULT_LIST_CACHE_TTL_SEC = 300
VISIBILITIES = ("public", "private")

# Schema field -> model attribute for plain string columns an update may replace;
# None or "" keeps the current value.
UPDATABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "registry": "image_registry",
    "namespace": "namespace",
    "repository": "repository",
    "tag": "tag",
    "visibility": "visibility",
    "platform": "platform",
}


def resolve_org_id(org_id: str | None) -> str:
    """Map an unspecified org or the literal 'public' to the public org sentinel."""
    if not org_id or org_id == "public":
        return PUBLIC_ORG_ID
    return org_id


def list_cache_key(
    page: int, page_size: int, search: str, labels: list[str], sort: str
) -> str:
    """Cache key for one listing query; JSON keeps separators inside values unambiguous."""
    return "images:" + json.dumps([page, page_size, search, labels, sort], separators=(",", ":"))


def _validate_labels(labels: list[str]) -> None:
    for name in labels:
        if len(name) > LABEL_NAME_MAX_LEN:
            raise ValidationError(f"label must be at most {LABEL_NAME_MAX_LEN} characters")


class ImageService:
    def __init__(
        self,
        db: Session,
        cache: CacheStore,
        storage: FileStorage,
        list_cache_ttl: int = DEFAULT_LIST_CACHE_TTL_SEC,
    ) -> None:
        self.db = db
        self.cache = cache
        self.storage = storage
        self.list_cache_ttl = list_cache_ttl

    # -- serialization -------------------------------------------------

    def _to_response(self, image: Image, is_starred: bool = False) -> ImageResponse:
        return ImageResponse(
            id=image.id,
            org_id=image.org_id,
            name=image.name,
            description=image.description or "",
            author=image.author,
            registry=image.image_registry,
            namespace=image.namespace or "",
            repository=image.repository,
            tag=image.tag,
            digest=image.digest,
            size=image.size or 0,
            readme_path=image.readme_path or "",
            readme_url=self.storage.url(image.readme_path or ""),
            stars=image.stars or 0,
            visibility=image.visibility,
            platform=image.platform,
            labels=[label.name for label in image.labels],
            is_starred=is_starred,
            created_at=image.created_at,
            updated_at=image.updated_at,
        )

    def _starred_ids(self, caller_id: str | None, image_ids: list[str]) -> set[str]:
        if not caller_id or not image_ids:
            return set()
        rows = (
            self.db.query(Collection.image_id)
            .filter(Collection.user_id == caller_id, Collection.image_id.in_(image_ids))
            .all()
        )
        return {row[0] for row in rows}

    # -- queries -------------------------------------------------------

    def _filtered_query(
        self, search: str, labels: list[str], favorites_of: str | None = None
    ) -> Query:
        query = self.db.query(Image)
        if favorites_of is not None:
            query = query.join(Collection, Collection.image_id == Image.id).filter(
                Collection.user_id == favorites_of
            )
        if search:
            pattern = contains_pattern(search)
            query = query.filter(
                or_(
                    Image.name.ilike(pattern, escape="\\"),
                    Image.description.ilike(pattern, escape="\\"),
                )
            )
        if labels:
            # Images carrying every requested label: matched distinct names == requested count.
            matching = (
                select(image_labels.c.image_id)
                .join(Label, Label.id == image_labels.c.label_id)
                .where(Label.name.in_(labels))
                .group_by(image_labels.c.image_id)
                .having(func.count(distinct(Label.name)) == len(labels))
            )
            query = query.filter(Image.id.in_(matching))
        return query

    def _page(
        self, query: Query, page: int, page_size: int, sort: str
    ) -> tuple[list[Image], int]:
        total = query.count()
        images = (
            query.order_by(SORT_COLUMNS[sort].desc(), Image.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return images, total

    @staticmethod
    def _normalize_list_args(
        page: int | None,
        page_size: int | None,
        search: str | None,
        labels: list[str] | None,
        sort: str | None,
    ) -> tuple[int, int, str, list[str], str]:
        page, page_size = normalize_page(page, page_size)
        sort = sort or DEFAULT_SORT
        if sort not in SORT_COLUMNS:
            raise ValidationError("sort must be one of: stars, created_at, updated_at")
        return page, page_size, (search or "").strip(), clean_label_names(labels), sort

    def _read_list_cache(self, key: str) -> tuple[list[ImageResponse], int] | None:
        cached = self.cache.get_json(key)
        if not isinstance(cached, dict):
            return None
        try:
            items = [ImageResponse.model_validate(item) for item in cached["items"]]
            total = int(cached["total"])
        except (KeyError, TypeError, ValueError, SchemaValidationError):
            logger.warning("Ignoring malformed image list cache entry %s", key)
            return None
        return items, total

    def list_images(
        self,
        page: int | None = None,
        page_size: int | None = None,
        search: str | None = None,
        labels: list[str] | None = None,
        sort: str | None = None,
        caller_id: str | None = None,
    ) -> tuple[list[ImageResponse], int]:
        """
        Page through the catalog, newest first unless sort says otherwise.

        Results are cached per (page, page_size, search, labels, sort) without the
        caller-specific is_starred flag, which is applied after every read.
        """
        page, page_size, search, labels, sort = self._normalize_list_args(
            page, page_size, search, labels, sort
        )
        key = list_cache_key(page, page_size, search, labels, sort)

        hit = self._read_list_cache(key)
        if hit is not None:
            items, total = hit
        else:
            images, total = self._page(self._filtered_query(search, labels), page, page_size, sort)
            items = [self._to_response(image) for image in images]
            if items:
                self.cache.set_json(
                    key,
                    {"items": [item.model_dump(mode="json") for item in items], "total": total},
                    self.list_cache_ttl,
                )

        starred = self._starred_ids(caller_id, [item.id for item in items])
        for item in items:
            item.is_starred = item.id in starred
        return items, total

    def list_favorites(
        self,
        caller_id: str,
        page: int | None = None,
        page_size: int | None = None,
        search: str | None = None,
        labels: list[str] | None = None,
        sort: str | None = None,
    ) -> tuple[list[ImageResponse], int]:
        """Same filters and ordering as list_images, restricted to the caller's collection."""
        page, page_size, search, labels, sort = self._normalize_list_args(
            page, page_size, search, labels, sort
        )
        query = self._filtered_query(search, labels, favorites_of=caller_id)
        images, total = self._page(query, page, page_size, sort)
        return [self._to_response(image, is_starred=True) for image in images], total

    def _get(self, image_id: str) -> Image:
        image = self.db.get(Image, image_id)
        if image is None:
            raise NotFoundError("image not found")
        return image

    def _get_owned(self, image_id: str, caller_id: str) -> Image:
        image = (
            self.db.query(Image)
            .filter(Image.id == image_id, Image.author == caller_id)
            .first()
        )
        if image is None:
            raise NotFoundError("image not found or not authorized")
        return image

    def get_image(self, image_id: str, caller_id: str | None = None) -> ImageResponse:
        image = self._get(image_id)
        return self._to_response(image, is_starred=bool(self._starred_ids(caller_id, [image.id])))

    # -- mutations -----------------------------------------------------

    def create_image(
        self,
        data: ImageCreate,
        author_id: str,
        org_id: str | None = None,
        readme: UploadedFile | None = None,
    ) -> ImageResponse:
        """Insert the image and link its labels in one transaction."""
        labels = clean_label_names(data.labels)
        _validate_labels(labels)

        readme_path = self.storage.save(readme, READMES) if readme is not None else ""
        image = Image(
            org_id=resolve_org_id(org_id),
            name=data.name,
            description=data.description,
            author=author_id,
            image_registry=data.registry,
            namespace=data.namespace,
            repository=data.repository,
            tag=data.tag,
            digest=data.digest,
            size=data.size,
            readme_path=readme_path,
            visibility=data.visibility,
            platform=data.platform,
        )
        try:
            self.db.add(image)
            self.db.flush()
            if labels:
                image.labels = ensure_labels(self.db, labels)
            self.db.commit()
        except Exception:
            self.db.rollback()
            if readme_path:
                self.storage.delete(readme_path)
            raise
        logger.info("Created image_id=%s author=%s org_id=%s", image.id, author_id, image.org_id)
        return self.get_image(image.id, author_id)

    def update_image(
        self,
        image_id: str,
        data: ImageUpdate,
        caller_id: str,
        readme: UploadedFile | None = None,
    ) -> ImageResponse:
        """Author-only partial update; a non-empty label list replaces the current set."""
        image = self._get_owned(image_id, caller_id)
        labels = clean_label_names(data.labels)
        _validate_labels(labels)
        if data.visibility and data.visibility not in VISIBILITIES:
            raise ValidationError("visibility must be 'public' or 'private'")

        new_readme = self.storage.save(readme, READMES) if readme is not None else ""
        old_readme = image.readme_path if new_readme else ""
        try:
            for field_name, attr in UPDATABLE_FIELDS.items():
                value = getattr(data, field_name)
                if value:
                    setattr(image, attr, value)
            if new_readme:
                image.readme_path = new_readme
            if labels:
                image.labels.clear()
                self.db.flush()
                image.labels.extend(ensure_labels(self.db, labels))
            self.db.commit()
        except Exception:
            self.db.rollback()
            if new_readme:
                self.storage.delete(new_readme)
            raise
        if old_readme:
            self.storage.delete(old_readme)
        logger.info("Updated image_id=%s by user_id=%s", image_id, caller_id)
        return self.get_image(image_id, caller_id)

    def delete_image(self, image_id: str, caller_id: str) -> None:
        """Author-only delete: collections, label links and deploy params go with the row."""
        image = self._get_owned(image_id, caller_id)
        readme_path = image.readme_path
        try:
            self.db.query(Collection).filter(Collection.image_id == image_id).delete(
                synchronize_session=False
            )
            self.db.query(ImageProvider).filter(ImageProvider.image_id == image_id).delete(
                synchronize_session=False
            )
            image.labels.clear()
            self.db.flush()
            self.db.delete(image)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if readme_path:
            self.storage.delete(readme_path)
        logger.info("Deleted image_id=%s by user_id=%s", image_id, caller_id)

    def collect(self, caller_id: str, image_id: str) -> None:
        """Star an image: insert the collection row and bump stars in the same transaction."""
        self._get(image_id)
        exists = (
            self.db.query(Collection)
            .filter(Collection.user_id == caller_id, Collection.image_id == image_id)
            .first()
        )
        if exists is not None:
            raise AlreadyCollectedError()
        try:
            self.db.add(Collection(user_id=caller_id, image_id=image_id))
            self.db.flush()
            self.db.query(Image).filter(Image.id == image_id).update(
                {Image.stars: Image.stars + 1}, synchronize_session=False
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyCollectedError()
        except Exception:
            self.db.rollback()
            raise

    def uncollect(self, caller_id: str, image_id: str) -> None:
        """Unstar an image: delete the collection row and decrement stars atomically."""
        self._get(image_id)
        try:
            removed = (
                self.db.query(Collection)
                .filter(Collection.user_id == caller_id, Collection.image_id == image_id)
                .delete(synchronize_session=False)
            )
            if removed == 0:
                self.db.rollback()
                raise NotInCollectionError()
            self.db.query(Image).filter(Image.id == image_id, Image.stars > 0).update(
                {Image.stars: Image.stars - 1}, synchronize_session=False
            )
            self.db.commit()
        except NotInCollectionError:
            raise
        except Exception:
            self.db.rollback()
            raise
