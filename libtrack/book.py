from __future__ import annotations


class Book:
    """Represents a single book in the catalog."""

    def __init__(self, id: int, title: str, author: str, isbn: str, year: int = 0,
                 is_available: bool = True, borrower_id: int = 0) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.year = year
        self.is_available = is_available
        self.borrower_id = borrower_id

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    def __repr__(self) -> str:
        return (f"Book(id={self.id!r}, title={self.title!r}, author={self.author!r}, "
                f"isbn={self.isbn!r}, year={self.year!r}, is_available={self.is_available!r}, "
                f"borrower_id={self.borrower_id!r})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def status(self) -> str:
        return "Available" if self.is_available else "Borrowed"

    def mark_borrowed(self, user_id: int) -> None:
        self.is_available = False
        self.borrower_id = user_id

    def mark_available(self) -> None:
        self.is_available = True
        self.borrower_id = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "year": self.year,
            "is_available": self.is_available,
            "borrower_id": self.borrower_id,
        }


class BorrowRecord:
    """Snapshot of a book kept in the borrower's ledger while they hold it."""

    def __init__(self, book_id: int, title: str, author: str, isbn: str, year: int = 0) -> None:
        self.book_id = book_id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.year = year

    def __repr__(self) -> str:
        return (f"BorrowRecord(book_id={self.book_id!r}, title={self.title!r}, "
                f"author={self.author!r}, isbn={self.isbn!r}, year={self.year!r})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BorrowRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @classmethod
    def from_book(cls, book: Book) -> "BorrowRecord":
        return cls(book.id, book.title, book.author, book.isbn, book.year)

    def to_dict(self) -> dict:
        return {
            "book_id": self.book_id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "year": self.year,
        }
