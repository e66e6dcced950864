import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class ConstraintViolation(Exception):
    """A write broke a unique or foreign key constraint."""

    def __init__(self, model: str, detail: str = None):
        self.model = model
        self.detail = detail
        super().__init__(f"Constraint violated on {model}: {detail}")


class Store:
    """
    Thin persistence layer over a SQLAlchemy session.

    Reads go straight to the session. Writes only flush; they become durable
    when the surrounding ``atomic()`` block exits cleanly, so a group of
    writes either commits together or is rolled back together.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def atomic(self):
        """Run the enclosed writes as one transaction."""
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def get(self, model, record_id: int, for_update: bool = False) -> Optional[Any]:
        """Fetch a record by primary key, optionally row-locked."""
        query = select(model).where(model.id == record_id)
        if for_update:
            # Rendered as FOR UPDATE where the dialect has row locks; the row
            # replaces any stale copy held in the identity map
            query = query.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(query).scalar_one_or_none()

    def find(self, model, **filters) -> Optional[Any]:
        return self.session.execute(
            select(model).filter_by(**filters).limit(1)
        ).scalar_one_or_none()

    def list(self, model, *order_by, **filters) -> List[Any]:
        query = select(model).filter_by(**filters)
        if order_by:
            query = query.order_by(*order_by)
        return list(self.session.execute(query).scalars().all())

    def insert(self, model, **fields) -> int:
        """Add a record and return its generated id."""
        record = model(**fields)
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as e:
            logger.debug(f"Insert into {model.__tablename__} rejected: {e.orig}")
            raise ConstraintViolation(model.__tablename__, str(e.orig)) from e
        return record.id

    def add(self, record) -> Any:
        """Add an already built record; same semantics as insert()."""
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise ConstraintViolation(record.__tablename__, str(e.orig)) from e
        return record

    def update(
        self,
        model,
        record_id: int,
        deltas: Dict[str, Any] = None,
        values: Dict[str, Any] = None,
        where: Iterable = ()
    ) -> bool:
        """
        Apply relative increments and absolute values to one row.

        ``deltas`` become ``column = column + delta`` in the UPDATE itself,
        so they act on the committed value rather than one read earlier.
        ``where`` adds guard conditions; the update is skipped when they do
        not hold. Returns True when exactly one row changed.
        """
        changes = {}
        for name, delta in (deltas or {}).items():
            changes[name] = getattr(model, name) + delta
        changes.update(values or {})
        if not changes:
            raise ValueError("update() needs at least one delta or value")

        stmt = (
            update(model)
            .where(model.id == record_id, *where)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def refresh(self, record) -> Any:
        self.session.refresh(record)
        return record
