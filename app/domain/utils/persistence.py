from collections.abc import Iterator
from contextlib import contextmanager

from pymongo.errors import DuplicateKeyError, PyMongoError

from app.utils.app_errors import AppErrorCode, ConflictError, PersistenceError


@contextmanager
def persistence_guard(
    action: str,
    *,
    conflict_message: str | None = None,
    conflict_errcode: AppErrorCode | None = None,
) -> Iterator[None]:
    """Translate driver errors raised inside the block into AppErrors.

    Unique index collisions become ConflictError, everything else from the
    driver becomes PersistenceError.
    """
    try:
        yield
    except DuplicateKeyError as e:
        raise ConflictError(
            conflict_message or f"{action}: record already exists",
            errcode=conflict_errcode,
        ) from e
    except PyMongoError as e:
        raise PersistenceError(f"{action} failed: {e}") from e
