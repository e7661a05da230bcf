"""Fixed-layout binary codec for catalog and ledger records.

Byte layout (little-endian, no padding):

    book record    (233 bytes)  <i100s100s20si?i
        id, title, author, isbn, year, is_available, borrower_id
    borrow record  (228 bytes)  <i100s100s20si
        book_id, title, author, isbn, year

Strings are UTF-8, NUL-padded to their slot. The catalog file is an int32
count followed by that many book records; a ledger file is a bare sequence
of borrow records.
"""

import struct
from typing import List

from libtrack.book import Book, BorrowRecord
from libtrack.errors import PersistenceError
from libtrack.validators import MAX_AUTHOR_LEN, MAX_ISBN_LEN, MAX_TITLE_LEN, truncate_utf8

BOOK_FORMAT = f"<i{MAX_TITLE_LEN}s{MAX_AUTHOR_LEN}s{MAX_ISBN_LEN}si?i"
BORROW_FORMAT = f"<i{MAX_TITLE_LEN}s{MAX_AUTHOR_LEN}s{MAX_ISBN_LEN}si"
COUNT_FORMAT = "<i"

BOOK_SIZE = struct.calcsize(BOOK_FORMAT)
BORROW_SIZE = struct.calcsize(BORROW_FORMAT)
COUNT_SIZE = struct.calcsize(COUNT_FORMAT)

# Upper bound on the catalog count header; anything larger is treated as corruption.
MAX_CATALOG_COUNT = 100000


def pack_str(value: str, size: int) -> bytes:
    # keep at least one terminating NUL
    raw = truncate_utf8(value or "", size).encode("utf-8")
    return raw + b"\x00" * (size - len(raw))


def unpack_str(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", "replace")


def pack_book(book: Book) -> bytes:
    return struct.pack(
        BOOK_FORMAT,
        book.id,
        pack_str(book.title, MAX_TITLE_LEN),
        pack_str(book.author, MAX_AUTHOR_LEN),
        pack_str(book.isbn, MAX_ISBN_LEN),
        book.year,
        book.is_available,
        book.borrower_id,
    )


def unpack_book(data: bytes) -> Book:
    book_id, title, author, isbn, year, is_available, borrower_id = struct.unpack(BOOK_FORMAT, data)
    return Book(
        id=book_id,
        title=unpack_str(title),
        author=unpack_str(author),
        isbn=unpack_str(isbn),
        year=year,
        is_available=is_available,
        borrower_id=borrower_id,
    )


def pack_borrow_record(record: BorrowRecord) -> bytes:
    return struct.pack(
        BORROW_FORMAT,
        record.book_id,
        pack_str(record.title, MAX_TITLE_LEN),
        pack_str(record.author, MAX_AUTHOR_LEN),
        pack_str(record.isbn, MAX_ISBN_LEN),
        record.year,
    )


def unpack_borrow_record(data: bytes) -> BorrowRecord:
    book_id, title, author, isbn, year = struct.unpack(BORROW_FORMAT, data)
    return BorrowRecord(book_id, unpack_str(title), unpack_str(author), unpack_str(isbn), year)


def encode_catalog(books: List[Book]) -> bytes:
    return struct.pack(COUNT_FORMAT, len(books)) + b"".join(pack_book(b) for b in books)


def decode_catalog(data: bytes) -> List[Book]:
    """Decode a whole catalog file. Raises PersistenceError on a bad header or short read."""
    if len(data) < COUNT_SIZE:
        raise PersistenceError("Catalog file is missing its record count.")
    (count,) = struct.unpack_from(COUNT_FORMAT, data, 0)
    if count < 0 or count > MAX_CATALOG_COUNT:
        raise PersistenceError(f"Catalog record count out of range: {count}")
    expected = COUNT_SIZE + count * BOOK_SIZE
    if len(data) < expected:
        raise PersistenceError(
            f"Catalog file truncated: expected {expected} bytes for {count} books, got {len(data)}")
    books = []
    for i in range(count):
        offset = COUNT_SIZE + i * BOOK_SIZE
        books.append(unpack_book(data[offset:offset + BOOK_SIZE]))
    return books


def encode_ledger(records: List[BorrowRecord]) -> bytes:
    return b"".join(pack_borrow_record(r) for r in records)


def decode_ledger(data: bytes) -> List[BorrowRecord]:
    """Decode a ledger file. The record count is the file size divided by the record size."""
    if len(data) % BORROW_SIZE:
        raise PersistenceError(
            f"Ledger size {len(data)} is not a multiple of the {BORROW_SIZE}-byte record size")
    return [
        unpack_borrow_record(data[offset:offset + BORROW_SIZE])
        for offset in range(0, len(data), BORROW_SIZE)
    ]
