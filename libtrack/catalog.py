import logging
import os
import struct
from typing import Callable, Iterator, List, Optional

from libtrack.book import Book
from libtrack.errors import DuplicateError, InvalidInputError, NotFoundError, PersistenceError
from libtrack.records import decode_catalog, encode_catalog
from libtrack.validators import (
    MAX_AUTHOR_LEN,
    MAX_TITLE_LEN,
    truncate_utf8,
    validate_isbn,
    validate_record_id,
    validate_string,
    validate_year,
)

logger = logging.getLogger(__name__)


def _check_book_fields(title: str, author: str, isbn: str, year: int) -> None:
    if not validate_string(title, MAX_TITLE_LEN):
        raise InvalidInputError(f"Title must be non-empty and shorter than {MAX_TITLE_LEN} bytes.")
    if not validate_string(author, MAX_AUTHOR_LEN):
        raise InvalidInputError(f"Author must be non-empty and shorter than {MAX_AUTHOR_LEN} bytes.")
    if not validate_isbn(isbn):
        raise InvalidInputError("ISBN must be non-empty and within the allowed length.")
    if not validate_year(year):
        raise InvalidInputError("Year must be between 0 and 9999.")


class Catalog:
    """Ordered, in-memory collection of books with binary file persistence."""

    def __init__(self, books: Optional[List[Book]] = None) -> None:
        self.books: List[Book] = list(books or [])

    def __len__(self) -> int:
        return len(self.books)

    def __iter__(self) -> Iterator[Book]:
        return iter(self.books)

    # ------------------------- Core operations ------------------------- #
    def next_id(self) -> int:
        """1 for an empty catalog, otherwise one past the largest id ever kept."""
        if not self.books:
            return 1
        return max(book.id for book in self.books) + 1

    def add(self, title: str, author: str, isbn: str, year: int) -> int:
        """Validate and append a new available book. Returns its id."""
        _check_book_fields(title, author, isbn, year)
        if self.find_by_isbn(isbn):
            raise DuplicateError(f"Book with ISBN {isbn} already exists.")

        book = Book(id=self.next_id(), title=title, author=author, isbn=isbn, year=year)
        self.books.append(book)
        logger.info(f"Book added: id={book.id}, isbn={book.isbn}")
        return book.id

    def remove(self, book_id: int) -> bool:
        for index, book in enumerate(self.books):
            if book.id == book_id:
                del self.books[index]
                logger.info(f"Book removed: id={book_id}")
                return True
        return False

    def update(self, book_id: int, title: str, author: str, isbn: str, year: int) -> Book:
        book = self.find_by_id(book_id)
        if book is None:
            raise NotFoundError(f"Book with ID {book_id} not found.")
        _check_book_fields(title, author, isbn, year)

        existing = self.find_by_isbn(isbn)
        if existing is not None and existing.id != book_id:
            raise DuplicateError(f"ISBN {isbn} already exists for another book.")

        book.title = title
        book.author = author
        book.isbn = isbn
        book.year = year
        logger.info(f"Book updated: id={book_id}")
        return book

    # ------------------------- Lookups ------------------------- #
    def _first(self, predicate: Callable[[Book], bool]) -> Optional[Book]:
        for book in self.books:
            if predicate(book):
                return book
        return None

    def find_by_id(self, book_id: int) -> Optional[Book]:
        return self._first(lambda b: b.id == book_id)

    def find_by_title(self, title: str) -> Optional[Book]:
        return self._first(lambda b: b.title == title)

    def find_by_author(self, author: str) -> Optional[Book]:
        return self._first(lambda b: b.author == author)

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        return self._first(lambda b: b.isbn == isbn)

    def list_books(self) -> List[Book]:
        return list(self.books)

    def available(self) -> List[Book]:
        return [b for b in self.books if b.is_available]

    def borrowed(self) -> List[Book]:
        return [b for b in self.books if not b.is_available]

    def search(self, query: str) -> List[Book]:
        """Case-insensitive substring search over title and author."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [b for b in self.books if needle in b.title.lower() or needle in b.author.lower()]

    # ------------------------- Persistence ------------------------- #
    def save(self, path: str) -> None:
        try:
            data = encode_catalog(self.books)
            with open(path, "wb") as f:
                f.write(data)
        except (OSError, struct.error) as exc:
            logger.error(f"Failed to save catalog to {path}: {exc}")
            raise PersistenceError(f"Could not write catalog file {path}: {exc}") from exc

    def load(self, path: str) -> bool:
        """Replace the contents from a binary catalog file. Returns False if it does not exist."""
        if not os.path.exists(path):
            return False
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as exc:
            raise PersistenceError(f"Could not read catalog file {path}: {exc}") from exc

        self.books = decode_catalog(data)
        logger.info(f"Catalog loaded from {path}: {len(self.books)} books")
        return True

    def load_seed_txt(self, path: str) -> int:
        """Import a legacy id;title;author text file. Returns the number of books added.

        Blank lines, ids already in the catalog, ids outside 1..2**31-1 and rows
        with an empty title or author are skipped. Titles and authors longer
        than their record slot are truncated. Imported books get a generated
        ``ISBN-%04d`` ISBN and year 0.
        """
        if not os.path.exists(path):
            return 0
        loaded = 0
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    line = line.rstrip("\r\n")
                    if not line:
                        continue
                    parts = line.split(";", 2)
                    if len(parts) != 3:
                        logger.warning(f"Skipping malformed line {line_no} in {path}")
                        continue
                    try:
                        book_id = int(parts[0].strip())
                    except ValueError:
                        logger.warning(f"Skipping malformed line {line_no} in {path}")
                        continue
                    title = truncate_utf8(parts[1], MAX_TITLE_LEN)
                    author = truncate_utf8(parts[2], MAX_AUTHOR_LEN)
                    if not validate_record_id(book_id) or not title or not author:
                        logger.warning(f"Skipping invalid book on line {line_no} in {path}")
                        continue
                    if self.find_by_id(book_id) is not None:
                        continue
                    self.books.append(Book(
                        id=book_id,
                        title=title,
                        author=author,
                        isbn="ISBN-%04d" % book_id,
                        year=0,
                    ))
                    loaded += 1
        except OSError as exc:
            raise PersistenceError(f"Could not read seed file {path}: {exc}") from exc
        logger.info(f"Imported {loaded} books from {path}")
        return loaded
