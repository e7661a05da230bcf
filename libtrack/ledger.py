import logging
import os
import struct
from typing import List

from libtrack.book import Book, BorrowRecord
from libtrack.errors import InvalidInputError, PersistenceError
from libtrack.records import decode_ledger, encode_ledger, pack_borrow_record

logger = logging.getLogger(__name__)


class BorrowLedger:
    """Per-user files listing the books each user currently holds.

    A missing ledger file is an empty ledger, never an error.
    """

    FILENAME_TEMPLATE = "user_{user_id}_books.dat"

    def __init__(self, data_dir: str) -> None:
        self.data_dir = data_dir

    def path_for(self, user_id: int) -> str:
        return os.path.join(self.data_dir, self.FILENAME_TEMPLATE.format(user_id=user_id))

    @staticmethod
    def _check_user(user_id: int) -> None:
        if user_id <= 0:
            raise InvalidInputError(f"Invalid user ID: {user_id}")

    def append(self, user_id: int, book: Book) -> None:
        self._check_user(user_id)
        path = self.path_for(user_id)
        try:
            data = pack_borrow_record(BorrowRecord.from_book(book))
            with open(path, "ab") as f:
                f.write(data)
        except (OSError, struct.error) as exc:
            logger.error(f"Failed to append to ledger {path}: {exc}")
            raise PersistenceError(f"Could not update borrowing record for user {user_id}: {exc}") from exc

    def load_all(self, user_id: int) -> List[BorrowRecord]:
        self._check_user(user_id)
        path = self.path_for(user_id)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as exc:
            raise PersistenceError(f"Could not read borrowing record for user {user_id}: {exc}") from exc
        return decode_ledger(data)

    def remove_by_book_id(self, user_id: int, book_id: int) -> None:
        """Drop every record for book_id by rewriting the whole ledger."""
        self._check_user(user_id)
        path = self.path_for(user_id)
        if not os.path.exists(path):
            return
        remaining = [r for r in self.load_all(user_id) if r.book_id != book_id]
        try:
            data = encode_ledger(remaining)
            with open(path, "wb") as f:
                f.write(data)
        except (OSError, struct.error) as exc:
            logger.error(f"Failed to rewrite ledger {path}: {exc}")
            raise PersistenceError(f"Could not update borrowing record for user {user_id}: {exc}") from exc
