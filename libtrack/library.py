import logging
import os
from typing import Any, Dict, List, Optional, Union

from libtrack import auth
from libtrack.book import Book, BorrowRecord
from libtrack.borrowing import BorrowingService
from libtrack.catalog import Catalog
from libtrack.config import Settings, settings as default_settings
from libtrack.errors import InvalidInputError, PersistenceError
from libtrack.ledger import BorrowLedger
from libtrack.roster import Roster
from libtrack.user import Role, User

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("id", "title", "author", "isbn")


class Library:
    """Owns the catalog, the roster and the borrow ledgers of one data directory.

    Every successful mutation is written to disk before returning, so the
    files never lag the in-memory state by more than one operation. There is
    no atomicity across files: a failed save after an in-memory change is
    reported as PersistenceError and the change stays in memory.
    """

    def __init__(self, data_dir: Optional[str] = None, cfg: Optional[Settings] = None) -> None:
        self.settings = cfg or default_settings
        self.data_dir = data_dir or self.settings.data_dir
        os.makedirs(self.data_dir, exist_ok=True)

        self.catalog_path = os.path.join(self.data_dir, self.settings.catalog_file)
        self.users_path = os.path.join(self.data_dir, self.settings.users_file)
        self.seed_path = os.path.join(self.data_dir, self.settings.seed_file)

        self.catalog = Catalog()
        self.roster = Roster()
        self.ledger = BorrowLedger(self.data_dir)
        self.borrowing = BorrowingService(self.catalog, self.ledger)

        self._load_catalog()
        self._load_roster()

    # ------------------------- Startup ------------------------- #
    def _load_catalog(self) -> None:
        try:
            if self.catalog.load(self.catalog_path):
                return
        except PersistenceError as exc:
            logger.error(f"Catalog file unreadable, starting with an empty library: {exc}")
            self.catalog.books = []
            return

        loaded = self.catalog.load_seed_txt(self.seed_path)
        if loaded > 0:
            logger.info(f"Loaded {loaded} books from {self.seed_path}")
            self.catalog.save(self.catalog_path)

    def _load_roster(self) -> None:
        if not self.roster.load(self.users_path):
            logger.info("No users file found, starting with no users")

    # ------------------------- Persistence ------------------------- #
    def save_catalog(self) -> None:
        self.catalog.save(self.catalog_path)

    def save_roster(self) -> None:
        self.roster.save(self.users_path)

    def save_all(self) -> None:
        """Catalog first, then roster. Not atomic across the two files."""
        self.save_catalog()
        self.save_roster()

    # ------------------------- Catalog operations ------------------------- #
    def add_book(self, title: str, author: str, isbn: str, year: int) -> Book:
        book_id = self.catalog.add(title, author, isbn, year)
        self.save_catalog()
        return self.catalog.find_by_id(book_id)

    def update_book(self, book_id: int, *, title: Optional[str] = None, author: Optional[str] = None,
                    isbn: Optional[str] = None, year: Optional[int] = None) -> Book:
        """Update a book; fields left as None keep their current value."""
        current = self.catalog.find_by_id(book_id)
        new_title = title if title is not None and title.strip() else (current.title if current else title)
        new_author = author if author is not None and author.strip() else (current.author if current else author)
        new_isbn = isbn if isbn is not None and isbn.strip() else (current.isbn if current else isbn)
        new_year = year if year is not None else (current.year if current else year)

        book = self.catalog.update(book_id, new_title, new_author, new_isbn, new_year)
        self.save_catalog()
        return book

    def remove_book(self, book_id: int) -> bool:
        book = self.catalog.find_by_id(book_id)
        if book is not None and not book.is_available:
            # The borrower's ledger entry is left in place.
            logger.warning(f"Removing book {book_id} while borrowed by user {book.borrower_id}")
        if not self.catalog.remove(book_id):
            return False
        self.save_catalog()
        return True

    def find_book(self, by: str, key: Union[int, str]) -> Optional[Book]:
        if by == "id":
            try:
                return self.catalog.find_by_id(int(key))
            except (TypeError, ValueError) as exc:
                raise InvalidInputError(f"Invalid book ID: {key}") from exc
        if by == "title":
            return self.catalog.find_by_title(key)
        if by == "author":
            return self.catalog.find_by_author(key)
        if by == "isbn":
            return self.catalog.find_by_isbn(key)
        raise InvalidInputError(f"Unknown search field: {by}. Use one of {', '.join(SEARCH_FIELDS)}.")

    def list_books(self) -> List[Book]:
        return self.catalog.list_books()

    def list_available(self) -> List[Book]:
        return self.catalog.available()

    def list_borrowed(self) -> List[Book]:
        return self.catalog.borrowed()

    def search_books(self, query: str) -> List[Book]:
        return self.catalog.search(query)

    # ------------------------- Borrowing ------------------------- #
    def borrow_book(self, book_id: int, user_id: int) -> Book:
        book = self.borrowing.borrow(book_id, user_id)
        self.save_catalog()
        return book

    def return_book(self, book_id: int, user_id: int) -> Book:
        book = self.borrowing.return_book(book_id, user_id)
        self.save_catalog()
        return book

    def borrowed_by(self, user_id: int) -> List[BorrowRecord]:
        return self.ledger.load_all(user_id)

    # ------------------------- Users ------------------------- #
    def login(self, username: str, password: str) -> User:
        return auth.login(self.roster, username, password, self.settings)

    def login_admin(self, username: str, password: str) -> User:
        return auth.login_admin(self.roster, username, password, self.settings)

    def register_user(self, username: str, name: str, password: str) -> int:
        user_id = auth.register(self.roster, username, name, password, self.settings)
        self.save_roster()
        return user_id

    def add_user(self, username: str, name: str, password: str, role: Role = Role.USER) -> int:
        if username == self.settings.admin_username:
            raise InvalidInputError("Cannot register as admin.")
        user_id = self.roster.add(username, name, password, role)
        self.save_roster()
        return user_id

    def list_users(self) -> List[User]:
        return self.roster.list_users()

    def get_statistics(self) -> Dict[str, Any]:
        books = self.catalog.list_books()
        borrowed = sum(1 for b in books if not b.is_available)
        return {
            "total_books": len(books),
            "available_books": len(books) - borrowed,
            "borrowed_books": borrowed,
            "unique_authors": len({b.author for b in books}),
            "total_users": len(self.roster),
        }
