"""Exception hierarchy shared by the stores, the borrowing state machine and the CLI."""


class LibraryError(Exception):
    pass


class InvalidInputError(LibraryError, ValueError):
    """Empty or oversized field, out-of-range year, or non-positive user id."""


class NotFoundError(LibraryError, LookupError):
    pass


class DuplicateError(LibraryError, ValueError):
    """ISBN or username already taken."""


class StateConflictError(LibraryError):
    """The requested transition is not allowed from the book's current state."""


class AlreadyBorrowedError(StateConflictError):
    pass


class AlreadyAvailableError(StateConflictError):
    pass


class NotYourBookError(StateConflictError):
    pass


class PersistenceError(LibraryError):
    """A data file could not be opened, read, written or parsed."""


class LedgerWriteError(PersistenceError):
    pass


class AuthenticationError(LibraryError):
    pass
