import logging
import random
import time
from typing import Callable, Tuple, Type, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import Session

from bookstore.config import settings
from bookstore.exceptions import BookstoreError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrentUpdate(Exception):
    """A compare-and-set matched no row: someone changed it first."""


def run_in_transaction(
    session: Session,
    work: Callable[[], T],
    *,
    label: str = "transaction",
    attempts: int | None = None,
    retry_on: Tuple[Type[Exception], ...] = (OperationalError, ConcurrentUpdate),
) -> T:
    """
    Run ``work`` and commit it as one unit.

    - BookstoreError: rollback, re-raised untouched
    - ``retry_on`` errors (locked rows, lost compare-and-set): rollback, retried
    - any other SQLAlchemyError: rollback, wrapped into StorageError
    - anything else: rollback, re-raised
    """
    attempts = attempts or settings.db_retry_attempts
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            result = work()
            session.commit()
            return result

        except BookstoreError:
            session.rollback()
            raise

        except retry_on as e:
            session.rollback()
            last_error = e
            logger.warning(f"{label}: contention on attempt {attempt}: {e!r}")
            if attempt < attempts:
                time.sleep(settings.db_retry_backoff * attempt + random.random() / 100)

        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"{label}: storage failure: {e}")
            raise StorageError(f"{label} failed") from e

        except Exception:
            session.rollback()
            raise

    logger.error(f"{label}: giving up after {attempts} attempts")
    raise StorageError(f"{label} failed after {attempts} attempts") from last_error
