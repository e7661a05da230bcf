"""Borrow/return transitions over the catalog and the borrow ledgers.

A book is either AVAILABLE (borrower_id == 0) or BORROWED by a user. The
ledger is always the side written first:

* borrow marks the book, appends the ledger record, and rolls the book back
  if the append fails;
* return removes the ledger record and only then marks the book available.

Persisting the catalog afterwards is the caller's job.
"""

import logging

from libtrack.book import Book
from libtrack.catalog import Catalog
from libtrack.errors import (
    AlreadyAvailableError,
    AlreadyBorrowedError,
    InvalidInputError,
    LedgerWriteError,
    NotFoundError,
    NotYourBookError,
    PersistenceError,
)
from libtrack.ledger import BorrowLedger

logger = logging.getLogger(__name__)


class BorrowingService:

    def __init__(self, catalog: Catalog, ledger: BorrowLedger) -> None:
        self.catalog = catalog
        self.ledger = ledger

    def _get_book(self, book_id: int, user_id: int) -> Book:
        if user_id <= 0:
            raise InvalidInputError(f"Invalid user ID: {user_id}")
        book = self.catalog.find_by_id(book_id)
        if book is None:
            raise NotFoundError(f"Book with ID {book_id} not found.")
        return book

    def borrow(self, book_id: int, user_id: int) -> Book:
        book = self._get_book(book_id, user_id)
        if not book.is_available:
            logger.warning(f"Borrow rejected: book {book_id} already held by user {book.borrower_id}")
            raise AlreadyBorrowedError(f"Book {book_id} is already borrowed by another user.")

        book.mark_borrowed(user_id)
        try:
            self.ledger.append(user_id, book)
        except PersistenceError as exc:
            book.mark_available()
            logger.error(f"Borrow of book {book_id} by user {user_id} rolled back: {exc}")
            raise LedgerWriteError("Failed to update user borrowing record.") from exc

        logger.info(f"Book {book_id} borrowed by user {user_id}")
        return book

    def return_book(self, book_id: int, user_id: int) -> Book:
        book = self._get_book(book_id, user_id)
        if book.is_available:
            raise AlreadyAvailableError(f"Book {book_id} is already available.")
        if book.borrower_id != user_id:
            logger.warning(f"Return rejected: book {book_id} is held by user {book.borrower_id}, not {user_id}")
            raise NotYourBookError(f"Book {book_id} is not borrowed by you.")

        try:
            self.ledger.remove_by_book_id(user_id, book_id)
        except PersistenceError as exc:
            logger.error(f"Return of book {book_id} by user {user_id} aborted: {exc}")
            raise LedgerWriteError("Failed to update user borrowing record.") from exc

        book.mark_available()
        logger.info(f"Book {book_id} returned by user {user_id}")
        return book
