"""Transactional persistence for the cluster aggregate.

This module wraps an SQLAlchemy engine behind a small store contract:
``AggregateStore.begin()`` hands out a ``Transaction`` whose writes flush
immediately, so a failing step surfaces where it happens. Database errors
are classified here and surface as ``ConflictError`` or ``StoreError``.
"""

from typing import TypeVar

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from cluster_lifecycle.config import LifecycleConfig
from cluster_lifecycle.exceptions import ConflictError, NotFoundError, StoreError
from cluster_lifecycle.logging_config import get_logger
from cluster_lifecycle.models.base import Base

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


def _is_unique_violation(error: IntegrityError) -> bool:
    """Tell unique-constraint violations apart from other integrity errors."""
    orig = error.orig
    if getattr(orig, "pgcode", None) == "23505":
        return True
    message = str(orig).lower()
    return "unique" in message or "duplicate" in message


def _translate(error: SQLAlchemyError, action: str, name: str) -> StoreError:
    if isinstance(error, IntegrityError) and _is_unique_violation(error):
        return ConflictError(
            f"Cannot {action} {name}: a record with the same unique value already exists",
            str(error.orig),
            original=error,
        )
    return StoreError(f"Cannot {action} {name}", str(error), original=error)


class Transaction:
    """A single unit of work against the datastore.

    Every lifecycle step receives the transaction explicitly; nothing is
    held in module state.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, entity: ModelType) -> ModelType:
        """Insert a new record and flush it."""
        try:
            self.session.add(entity)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Create failed for {type(entity).__name__}: {e}")
            raise _translate(e, "create", type(entity).__name__) from e
        return entity

    def save(self, entity: ModelType) -> ModelType:
        """Persist changes to an existing record."""
        try:
            self.session.add(entity)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Save failed for {type(entity).__name__}: {e}")
            raise _translate(e, "save", type(entity).__name__) from e
        return entity

    def delete(self, entity: ModelType) -> None:
        """Delete a record."""
        try:
            self.session.delete(entity)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Delete failed for {type(entity).__name__}: {e}")
            raise _translate(e, "delete", type(entity).__name__) from e

    def find(self, model: type[ModelType], ident: str, eager: list[str] | None = None) -> ModelType:
        """Load a record by primary key.

        Args:
            model: Mapped class to load
            ident: Primary key value
            eager: Relationship paths to load with it, e.g. ``"nodes.host"``

        Raises:
            NotFoundError: If no record has that key
        """
        stmt = select(model).where(model.id == ident)
        entity = self._one_or_none(stmt, model, eager)
        if entity is None:
            raise NotFoundError(f"{model.__name__} '{ident}' not found")
        return entity

    def find_by(
        self, model: type[ModelType], eager: list[str] | None = None, **filters
    ) -> ModelType | None:
        """Load the first record matching column filters, or None."""
        stmt = select(model).filter_by(**filters)
        return self._one_or_none(stmt, model, eager)

    def find_all(
        self, model: type[ModelType], order_by=None, eager: list[str] | None = None, **filters
    ) -> list[ModelType]:
        """Load every record matching column filters."""
        stmt = select(model).filter_by(**filters)
        for path in eager or []:
            stmt = stmt.options(_loader(model, path))
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        try:
            return list(self.session.scalars(stmt))
        except SQLAlchemyError as e:
            raise _translate(e, "load", model.__name__) from e

    def _one_or_none(self, stmt, model, eager):
        for path in eager or []:
            stmt = stmt.options(_loader(model, path))
        try:
            return self.session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise _translate(e, "load", model.__name__) from e

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            raise _translate(e, "commit", "transaction") from e

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            raise StoreError("Rollback failed", str(e), original=e) from e

    def close(self) -> None:
        self.session.close()


def _loader(model, path: str):
    """Build a chained selectinload option for a dotted relationship path."""
    current = model
    option = None
    for attr_name in path.split("."):
        attr = getattr(current, attr_name)
        option = selectinload(attr) if option is None else option.selectinload(attr)
        current = attr.property.mapper.class_
    return option


class AggregateStore:
    """Factory for transactions over one database."""

    def __init__(self, engine: Engine, transaction_cls: type[Transaction] = Transaction):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine to bind sessions to
            transaction_cls: Transaction implementation handed out by begin()
        """
        self.engine = engine
        self.transaction_cls = transaction_cls
        self._sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_config(cls, config: LifecycleConfig, **kwargs) -> "AggregateStore":
        """Create a store for the configured database URL."""
        return cls(create_store_engine(config.database_url, echo=config.echo), **kwargs)

    def begin(self) -> Transaction:
        """Open a new transaction."""
        return self.transaction_cls(self._sessions())

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        logger.info(f"Creating schema on {self.engine.url.render_as_string(hide_password=True)}")
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError("Failed to create database schema", str(e), original=e) from e


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine, sharing one connection for in-memory SQLite."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=echo)
