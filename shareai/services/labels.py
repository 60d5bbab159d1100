"""Idempotent label creation backed by the unique index on labels.name."""

from collections.abc import Iterable

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from shareai.models.base import new_id, utcnow
from shareai.models.image import Label

LABEL_NAME_MAX_LEN = 100


def clean_label_names(names: Iterable[str] | None) -> list[str]:
    """Strip, drop empties and de-duplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for name in names or ():
        name = (name or "").strip()
        if name and name not in seen:
            seen[name] = None
    return list(seen)


def _insert_for(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"unsupported database dialect for label upsert: {dialect}")


def ensure_label(session: Session, name: str) -> Label:
    """
    Return the Label called name, creating it if needed.

    Concurrent callers racing on the same name both end up with the single row
    the unique constraint allows; neither sees an IntegrityError.
    """
    now = utcnow()
    insert = _insert_for(session)
    stmt = (
        insert(Label)
        .values(id=new_id(), name=name, created_at=now, updated_at=now)
        .on_conflict_do_nothing(index_elements=["name"])
    )
    session.execute(stmt)
    return session.query(Label).filter(Label.name == name).one()


def ensure_labels(session: Session, names: Iterable[str]) -> list[Label]:
    return [ensure_label(session, name) for name in names]
