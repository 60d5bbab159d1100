"""Tests for ImageService: filtering, paging, the list cache, stars and author-only mutations."""

import tempfile
import unittest
from datetime import UTC, datetime, timedelta

from shareai.core.errors import (
    AlreadyCollectedError,
    NotFoundError,
    NotInCollectionError,
    ValidationError,
)
from shareai.models import Base, Collection, Image, Label, image_labels
from shareai.models.image import PUBLIC_ORG_ID
from shareai.models.provider import ImageProvider, Provider
from shareai.schemas.image import ImageCreate, ImageUpdate
from shareai.services.images import ImageService, list_cache_key, resolve_org_id
from shareai.services.storage import FileStorage, UploadedFile
from tests.helpers import add_image, add_user, make_cache, make_session_factory, make_settings


def image_create(name: str = "redis", labels: list[str] | None = None) -> ImageCreate:
    return ImageCreate(
        name=name,
        description=f"{name} server",
        registry="docker.io",
        namespace="library",
        repository=name,
        tag="7.2",
        digest=f"sha256:{name}",
        size=1024,
        platform="linux/amd64",
        labels=labels or [],
    )


class ImageServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.settings = make_settings(upload_dir=self.tmp.name)
        self.db = make_session_factory(self.settings)()
        self.cache, self.redis = make_cache()
        self.storage = FileStorage.from_settings(self.settings)
        self.images = ImageService(self.db, self.cache, self.storage, list_cache_ttl=300)
        self.author = add_user(self.db, "alice")
        self.other = add_user(self.db, "bob")

    def tearDown(self) -> None:
        self.db.close()
        self.tmp.cleanup()

    def fresh_stars(self, image_id: str) -> int:
        self.db.expire_all()
        return self.db.get(Image, image_id).stars


class TestHelpers(unittest.TestCase):
    def test_resolve_org_id(self) -> None:
        self.assertEqual(resolve_org_id("public"), PUBLIC_ORG_ID)
        self.assertEqual(resolve_org_id(None), PUBLIC_ORG_ID)
        self.assertEqual(resolve_org_id("org-1"), "org-1")

    def test_cache_key_includes_every_filter(self) -> None:
        self.assertEqual(
            list_cache_key(2, 20, "web", ["a", "b"], "stars"),
            'images:[2,20,"web",["a","b"],"stars"]',
        )

    def test_cache_key_separators_inside_values_do_not_collide(self) -> None:
        self.assertNotEqual(
            list_cache_key(1, 10, "", ["x", "y"], "stars"),
            list_cache_key(1, 10, "", ["x,y"], "stars"),
        )
        self.assertNotEqual(
            list_cache_key(1, 10, "a:b", [], "stars"),
            list_cache_key(1, 10, "a", ["b"], "stars"),
        )


class TestImageModel(unittest.TestCase):
    def test_registry_column_leaves_declarative_registry_alone(self) -> None:
        self.assertIs(Image.registry, Base.registry)
        self.assertIn("registry", Image.__table__.c)
        self.assertIs(Image.__table__.c.registry, Image.image_registry.property.columns[0])


class TestCreateImage(ImageServiceTestCase):
    def test_creates_with_labels_under_public_org(self) -> None:
        created = self.images.create_image(
            image_create(labels=["db", "cache", "db"]), self.author.id, "public"
        )
        self.assertEqual(created.org_id, PUBLIC_ORG_ID)
        self.assertEqual(created.author, self.author.id)
        self.assertEqual(created.stars, 0)
        self.assertEqual(sorted(created.labels), ["cache", "db"])

    def test_labels_shared_between_images(self) -> None:
        self.images.create_image(image_create("redis", ["db"]), self.author.id, "public")
        self.images.create_image(image_create("postgres", ["db"]), self.author.id, "public")
        self.assertEqual(self.db.query(Label).filter(Label.name == "db").count(), 1)

    def test_readme_is_stored(self) -> None:
        created = self.images.create_image(
            image_create(),
            self.author.id,
            "public",
            readme=UploadedFile("README.md", "text/markdown", b"# redis"),
        )
        self.assertTrue(created.readme_path.startswith("readme/"))
        self.assertEqual(created.readme_url, f"http://testserver/uploads/{created.readme_path}")
        self.assertTrue((self.storage.root / created.readme_path).exists())

    def test_overlong_label_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.images.create_image(image_create(labels=["x" * 101]), self.author.id, "public")


class TestListImages(ImageServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        base = datetime(2025, 1, 1, tzinfo=UTC)
        self.ids = {}
        for i, name in enumerate(("nginx", "redis", "postgres", "node", "python")):
            image = add_image(
                self.db, self.author, name, created_at=base + timedelta(days=i), stars=i % 3
            )
            self.ids[name] = image.id
        db_label, web_label, cache_label = Label(name="db"), Label(name="web"), Label(name="cache")
        self.db.get(Image, self.ids["redis"]).labels = [db_label, cache_label]
        self.db.get(Image, self.ids["postgres"]).labels = [db_label]
        self.db.get(Image, self.ids["nginx"]).labels = [web_label, cache_label]
        self.db.commit()

    def test_default_order_newest_first(self) -> None:
        items, total = self.images.list_images()
        self.assertEqual(total, 5)
        self.assertEqual([i.name for i in items], ["python", "node", "postgres", "redis", "nginx"])

    def test_pages_partition_result(self) -> None:
        seen: list[str] = []
        for page in (1, 2, 3):
            items, total = self.images.list_images(page=page, page_size=2)
            self.assertEqual(total, 5)
            seen.extend(i.id for i in items)
        self.assertEqual(len(seen), 5)
        self.assertEqual(set(seen), set(self.ids.values()))

    def test_invalid_paging_falls_back_to_defaults(self) -> None:
        items, total = self.images.list_images(page=0, page_size=500)
        self.assertEqual(len(items), 5)
        self.assertEqual(total, 5)

    def test_search_name_or_description(self) -> None:
        items, total = self.images.list_images(search="post")
        self.assertEqual(total, 1)
        self.assertEqual(items[0].name, "postgres")

    def test_labels_require_every_label(self) -> None:
        items, _ = self.images.list_images(labels=["db"])
        self.assertEqual({i.name for i in items}, {"redis", "postgres"})

        items, total = self.images.list_images(labels=["db", "cache"])
        self.assertEqual(total, 1)
        self.assertEqual(items[0].name, "redis")

        _, total = self.images.list_images(labels=["db", "web"])
        self.assertEqual(total, 0)

    def test_sort_by_stars(self) -> None:
        items, _ = self.images.list_images(sort="stars")
        stars = [i.stars for i in items]
        self.assertEqual(stars, sorted(stars, reverse=True))

    def test_unknown_sort_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.images.list_images(sort="name")

    def test_result_cached_with_total(self) -> None:
        self.images.list_images(page=1, page_size=2)
        key = list_cache_key(1, 2, "", [], "created_at")
        self.assertEqual(self.redis.ttls[key], 300)

        # A new image is not visible until the cached page expires.
        add_image(self.db, self.author, "golang", created_at=datetime(2030, 1, 1, tzinfo=UTC))
        items, total = self.images.list_images(page=1, page_size=2)
        self.assertEqual(total, 5)
        self.assertEqual([i.name for i in items], ["python", "node"])

    def test_empty_result_not_cached(self) -> None:
        self.images.list_images(search="nothing-matches")
        self.assertFalse(any(k.startswith("images:") for k in self.redis.data))

    def test_label_containing_comma_gets_its_own_cache_entry(self) -> None:
        pair = add_image(self.db, self.author, "pair")
        joined = add_image(self.db, self.author, "joined")
        pair.labels = [Label(name="x"), Label(name="y")]
        joined.labels = [Label(name="x,y")]
        self.db.commit()

        items, _ = self.images.list_images(labels=["x", "y"])
        self.assertEqual([i.name for i in items], ["pair"])
        items, _ = self.images.list_images(labels=["x,y"])
        self.assertEqual([i.name for i in items], ["joined"])

    def test_is_starred_is_per_caller_on_cache_hit(self) -> None:
        self.images.collect(self.other.id, self.ids["python"])
        anonymous, _ = self.images.list_images(page_size=1)
        self.assertFalse(anonymous[0].is_starred)

        starred, _ = self.images.list_images(page_size=1, caller_id=self.other.id)
        self.assertTrue(starred[0].is_starred)

        author_view, _ = self.images.list_images(page_size=1, caller_id=self.author.id)
        self.assertFalse(author_view[0].is_starred)

    def test_favorites(self) -> None:
        self.images.collect(self.other.id, self.ids["redis"])
        self.images.collect(self.other.id, self.ids["nginx"])
        items, total = self.images.list_favorites(self.other.id)
        self.assertEqual(total, 2)
        self.assertTrue(all(i.is_starred for i in items))
        self.assertEqual({i.name for i in items}, {"redis", "nginx"})

        items, total = self.images.list_favorites(self.other.id, labels=["db"])
        self.assertEqual(total, 1)


class TestCollect(ImageServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.image = add_image(self.db, self.author)

    def test_collect_and_uncollect_track_stars(self) -> None:
        self.images.collect(self.other.id, self.image.id)
        self.assertEqual(self.fresh_stars(self.image.id), 1)
        self.images.collect(self.author.id, self.image.id)
        self.assertEqual(self.fresh_stars(self.image.id), 2)

        self.images.uncollect(self.other.id, self.image.id)
        self.assertEqual(self.fresh_stars(self.image.id), 1)
        self.assertEqual(self.db.query(Collection).count(), 1)

    def test_collect_twice(self) -> None:
        self.images.collect(self.other.id, self.image.id)
        with self.assertRaises(AlreadyCollectedError) as ctx:
            self.images.collect(self.other.id, self.image.id)
        self.assertEqual(ctx.exception.message, "image already collected")
        self.assertEqual(self.fresh_stars(self.image.id), 1)

    def test_uncollect_without_collect(self) -> None:
        with self.assertRaises(NotInCollectionError) as ctx:
            self.images.uncollect(self.other.id, self.image.id)
        self.assertEqual(ctx.exception.message, "image not in collection")
        self.assertEqual(self.fresh_stars(self.image.id), 0)

    def test_collect_unknown_image(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.images.collect(self.other.id, "missing")
        self.assertEqual(ctx.exception.message, "image not found")

    def test_detail_reports_is_starred(self) -> None:
        self.images.collect(self.other.id, self.image.id)
        self.assertTrue(self.images.get_image(self.image.id, self.other.id).is_starred)
        self.assertFalse(self.images.get_image(self.image.id, self.author.id).is_starred)
        self.assertFalse(self.images.get_image(self.image.id).is_starred)


class TestUpdateAndDelete(ImageServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.created = self.images.create_image(
            image_create(labels=["db", "cache"]), self.author.id, "public"
        )

    def test_partial_update_keeps_unset_fields(self) -> None:
        updated = self.images.update_image(
            self.created.id, ImageUpdate(tag="7.4", description=""), self.author.id
        )
        self.assertEqual(updated.tag, "7.4")
        self.assertEqual(updated.description, "redis server")
        self.assertEqual(sorted(updated.labels), ["cache", "db"])

    def test_labels_replaced(self) -> None:
        updated = self.images.update_image(
            self.created.id, ImageUpdate(labels=["kv"]), self.author.id
        )
        self.assertEqual(updated.labels, ["kv"])

    def test_non_author_cannot_update(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.images.update_image(self.created.id, ImageUpdate(tag="x"), self.other.id)
        self.assertEqual(ctx.exception.message, "image not found or not authorized")

    def test_new_readme_replaces_old_file(self) -> None:
        first = self.images.update_image(
            self.created.id,
            ImageUpdate(),
            self.author.id,
            readme=UploadedFile("a.md", "text/markdown", b"one"),
        ).readme_path
        second = self.images.update_image(
            self.created.id,
            ImageUpdate(),
            self.author.id,
            readme=UploadedFile("b.md", "text/markdown", b"two"),
        ).readme_path
        self.assertFalse((self.storage.root / first).exists())
        self.assertTrue((self.storage.root / second).exists())

    def test_delete_removes_dependents(self) -> None:
        readme_path = self.images.update_image(
            self.created.id,
            ImageUpdate(),
            self.author.id,
            readme=UploadedFile("README.md", "text/markdown", b"# redis"),
        ).readme_path
        self.assertTrue((self.storage.root / readme_path).exists())
        provider = Provider(name="hf", api_url="https://api.example.com")
        self.db.add(provider)
        self.db.commit()
        self.db.add(ImageProvider(image_id=self.created.id, provider_id=provider.id, params="{}"))
        self.db.commit()
        self.images.collect(self.other.id, self.created.id)

        self.images.delete_image(self.created.id, self.author.id)

        self.db.expire_all()
        with self.assertRaises(NotFoundError):
            self.images.get_image(self.created.id)
        self.assertFalse((self.storage.root / readme_path).exists())
        self.assertEqual(self.db.query(Collection).count(), 0)
        self.assertEqual(self.db.query(ImageProvider).count(), 0)
        links = self.db.execute(
            image_labels.select().where(image_labels.c.image_id == self.created.id)
        ).all()
        self.assertEqual(links, [])
        # Labels outlive the images that used them.
        self.assertEqual(self.db.query(Label).count(), 2)

    def test_non_author_cannot_delete(self) -> None:
        with self.assertRaises(NotFoundError):
            self.images.delete_image(self.created.id, self.other.id)
        self.assertIsNotNone(self.db.get(Image, self.created.id))


if __name__ == "__main__":
    unittest.main()
