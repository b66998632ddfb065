"""
Generic persistence store used by the booking pipeline.

The services never talk to the ORM session directly; they go through ``DataStore`` so that
unique-constraint violations surface as ``UniqueViolationError`` (distinguishable from a
plain "not found" ``None``) and every other database failure becomes an ``ExternalError``
whose detail stays in the server log.
"""

from typing import Any, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shuttle.exceptions import ConflictError, ExternalError, UniqueViolationError
from shuttle.observability import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")

# PostgreSQL SQLSTATE for unique_violation
_PG_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == _PG_UNIQUE_VIOLATION:
        return True
    return "unique" in str(orig).lower()


class DataStore:
    """find_one / find_all / create / update / delete over one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def find_one(self, model: Type[ModelT], **predicate: Any) -> Optional[ModelT]:
        try:
            return self.db.query(model).filter_by(**predicate).first()
        except SQLAlchemyError as e:
            raise self._external_failure("find_one", model, e)

    def find_all(self, model: Type[ModelT], *criteria: Any, order_by: Any = None) -> List[ModelT]:
        try:
            query = self.db.query(model)
            if criteria:
                query = query.filter(*criteria)
            if order_by is not None:
                query = query.order_by(order_by)
            return query.all()
        except SQLAlchemyError as e:
            raise self._external_failure("find_all", model, e)

    def create(self, model: Type[ModelT], **fields: Any) -> ModelT:
        instance = model(**fields)
        self.db.add(instance)
        return self._commit(instance, "create")

    def update(self, instance: ModelT, **fields: Any) -> ModelT:
        for field, value in fields.items():
            setattr(instance, field, value)
        return self._commit(instance, "update")

    def delete(self, instance: Any) -> None:
        try:
            self.db.delete(instance)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise self._integrity_failure(type(instance), e)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._external_failure("delete", type(instance), e)

    def rollback(self) -> None:
        """Discard whatever the current unit of work left pending"""
        self.db.rollback()

    def _commit(self, instance: ModelT, operation: str) -> ModelT:
        try:
            self.db.commit()
            self.db.refresh(instance)
            return instance
        except IntegrityError as e:
            self.db.rollback()
            raise self._integrity_failure(type(instance), e)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._external_failure(operation, type(instance), e)

    def _integrity_failure(self, model: type, exc: IntegrityError) -> Exception:
        if _is_unique_violation(exc):
            return UniqueViolationError(f"{model.__name__} already exists")
        logger.warning("Integrity constraint failed", entity=model.__name__, error=str(exc.orig))
        return ConflictError(f"{model.__name__} conflicts with existing records")

    def _external_failure(self, operation: str, model: type, exc: Exception) -> ExternalError:
        logger.error(
            "Persistence operation failed",
            operation=operation,
            entity=model.__name__,
            error=str(exc),
            exc_info=exc,
        )
        return ExternalError(f"{operation} {model.__name__} failed: {exc}")
