"""Base repository class with common functionality."""

from sqlalchemy.orm import Session


class BaseRepository:
    """Base repository class operating on a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.session.flush()

    def _add_if_absent(self, existing, row) -> bool:
        """
        Add ``row`` unless ``existing`` already holds its key.

        Returns:
            False for a duplicate, which callers treat as success
        """
        if existing is not None:
            return False
        self.session.add(row)
        self.session.flush()
        return True
