from typing import Optional

# Field bounds in UTF-8 bytes. A valid value is strictly shorter so that it
# always fits its fixed-width record slot with a terminating NUL.
MAX_TITLE_LEN = 100
MAX_AUTHOR_LEN = 100
MAX_ISBN_LEN = 20
MAX_USERNAME_LEN = 50
MAX_NAME_LEN = 100
MAX_PASSWORD_LEN = 50

MIN_YEAR = 0
MAX_YEAR = 9999

# Ids are stored as int32
MAX_RECORD_ID = 2 ** 31 - 1

# Characters that would break the id|username|name|password|role line format
_ROSTER_FORBIDDEN = ("|", "\n", "\r")


def validate_string(value: Optional[str], max_len: int) -> bool:
    """Non-empty and shorter than max_len bytes once encoded."""
    if value is None or not isinstance(value, str):
        return False
    size = len(value.encode("utf-8"))
    return 0 < size < max_len


def validate_year(year) -> bool:
    if isinstance(year, bool) or not isinstance(year, int):
        return False
    return MIN_YEAR <= year <= MAX_YEAR


def validate_isbn(isbn: Optional[str]) -> bool:
    return validate_string(isbn, MAX_ISBN_LEN)


def validate_roster_field(value: Optional[str], max_len: int) -> bool:
    if not validate_string(value, max_len):
        return False
    return not any(ch in value for ch in _ROSTER_FORBIDDEN)


def validate_record_id(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 < value <= MAX_RECORD_ID


def truncate_utf8(value: str, max_len: int) -> str:
    """Cut value to fewer than max_len bytes without splitting a character."""
    return value.encode("utf-8")[:max_len - 1].decode("utf-8", "ignore")
