from functools import wraps

from sqlalchemy.exc import IntegrityError

from billing.core.exceptions import ConflictError


def db_exception(message: str = "Duplicate entry: already exists"):
    """Turn unique-key violations raised by the wrapped service method into ConflictError."""

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except IntegrityError:
                self.db.rollback()
                raise ConflictError(message)

        return wrapper

    return decorator
