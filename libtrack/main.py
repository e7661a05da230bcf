import logging
import os
import sys
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from libtrack.config import settings
from libtrack.errors import (
    AlreadyAvailableError,
    AlreadyBorrowedError,
    AuthenticationError,
    DuplicateError,
    InvalidInputError,
    LedgerWriteError,
    LibraryError,
    NotYourBookError,
    PersistenceError,
)
from libtrack.library import Library, SEARCH_FIELDS
from libtrack.ui_helpers import (
    book_table,
    ledger_table,
    print_book_result,
    print_ledger_result,
    print_list_result,
    print_stats_result,
    print_users_result,
    set_output_mode,
    users_table,
)
from libtrack.user import User

DATA_DIR_ENV = "LIBRARY_DATA_DIR"

console = Console()
logger = logging.getLogger(__name__)


def configure_logging() -> None:
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


# Single Library instance per data directory
class LibraryManager:
    _instance: Optional[Library] = None
    _data_dir_snapshot: Optional[str] = None

    @classmethod
    def current_data_dir(cls) -> str:
        return os.environ.get(DATA_DIR_ENV) or settings.data_dir

    @classmethod
    def get_instance(cls) -> Library:
        """Get or create the Library; a changed data directory (e.g. per test) gets a fresh one."""
        data_dir = cls.current_data_dir()
        if cls._instance is None or data_dir != cls._data_dir_snapshot:
            cls._instance = Library(data_dir=data_dir)
            cls._data_dir_snapshot = data_dir
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
        cls._data_dir_snapshot = None


def describe_error(exc: LibraryError) -> str:
    """Menu-facing message for a failed operation."""
    if isinstance(exc, AlreadyBorrowedError):
        return "Book is already borrowed by another user."
    if isinstance(exc, AlreadyAvailableError):
        return "Book is already available."
    if isinstance(exc, NotYourBookError):
        return "This book is not borrowed by you."
    if isinstance(exc, LedgerWriteError):
        return "Failed to update user borrowing record."
    if isinstance(exc, PersistenceError):
        return f"Could not save data: {exc}"
    return str(exc)


# --- Typer CLI application ---
app = typer.Typer(help="Library catalog and borrowing tracker")


def _fail(exc: LibraryError) -> None:
    print(f"Error: {describe_error(exc)}")
    raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    data_dir: Optional[str] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding the catalog, users and ledger files",
    ),
):
    """Global CLI options (output mode, data directory)."""
    if output:
        set_output_mode(output)
    if data_dir:
        os.environ[DATA_DIR_ENV] = data_dir


@app.command("list")
def cli_list():
    """List all books."""
    print_list_result(LibraryManager.get_instance().list_books())


@app.command("available")
def cli_available():
    """List books that can be borrowed."""
    print_list_result(LibraryManager.get_instance().list_available(), "No available books.")


@app.command("borrowed")
def cli_borrowed():
    """List books currently on loan."""
    print_list_result(LibraryManager.get_instance().list_borrowed(), "No borrowed books.")


@app.command("find")
def cli_find(
    key: str = typer.Argument(..., help="Value to look up"),
    by: str = typer.Option("isbn", "--by", "-b", help="Field: id | title | author | isbn"),
):
    """Find the first book whose field exactly matches KEY."""
    lib = LibraryManager.get_instance()
    try:
        book = lib.find_book(by, key)
    except InvalidInputError as e:
        _fail(e)
    print_book_result(book)
    if book is None:
        raise typer.Exit(code=1)


@app.command("search")
def cli_search(query: str = typer.Argument(..., help="Text to look for in titles and authors")):
    """Case-insensitive search over titles and authors."""
    books = LibraryManager.get_instance().search_books(query)
    print_list_result(books, f"No books matching '{query}'.")


@app.command("add")
def cli_add(title: str, author: str, isbn: str, year: int):
    """Add a book to the catalog."""
    lib = LibraryManager.get_instance()
    try:
        book = lib.add_book(title, author, isbn, year)
    except LibraryError as e:
        _fail(e)
    print(f"Book added successfully with ID: {book.id}")


@app.command("update")
def cli_update(
    book_id: int,
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    author: Optional[str] = typer.Option(None, "--author", help="New author"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="New ISBN"),
    year: Optional[int] = typer.Option(None, "--year", help="New publication year"),
):
    """Update a book; omitted fields keep their current value."""
    lib = LibraryManager.get_instance()
    try:
        lib.update_book(book_id, title=title, author=author, isbn=isbn, year=year)
    except LibraryError as e:
        _fail(e)
    print("Book updated successfully.")


@app.command("remove")
def cli_remove(book_id: int):
    """Delete a book by ID."""
    lib = LibraryManager.get_instance()
    try:
        removed = lib.remove_book(book_id)
    except LibraryError as e:
        _fail(e)
    if removed:
        print(f"Book with ID {book_id} has been removed.")
    else:
        print(f"Book with ID {book_id} not found.")
        raise typer.Exit(code=1)


@app.command("users")
def cli_users():
    """List registered users."""
    print_users_result(LibraryManager.get_instance().list_users())


@app.command("add-user")
def cli_add_user(username: str, name: str, password: str):
    """Register a regular user."""
    lib = LibraryManager.get_instance()
    try:
        user_id = lib.add_user(username, name, password)
    except LibraryError as e:
        _fail(e)
    print(f"User added successfully with ID: {user_id}")


def _authenticate(lib: Library, username: str, password: str) -> User:
    try:
        return lib.login(username, password)
    except AuthenticationError as e:
        _fail(e)


@app.command("borrow")
def cli_borrow(
    book_id: int,
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
    """Borrow a book as the given user."""
    lib = LibraryManager.get_instance()
    user = _authenticate(lib, username, password)
    try:
        lib.borrow_book(book_id, user.id)
    except LibraryError as e:
        _fail(e)
    print(f"Book borrowed successfully by {user.name} (ID: {user.id}).")


@app.command("return")
def cli_return(
    book_id: int,
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
    """Return a book held by the given user."""
    lib = LibraryManager.get_instance()
    user = _authenticate(lib, username, password)
    try:
        lib.return_book(book_id, user.id)
    except LibraryError as e:
        _fail(e)
    print(f"Book returned successfully by {user.name} (ID: {user.id}).")


@app.command("ledger")
def cli_ledger(user_id: int):
    """Show the books a user currently holds."""
    lib = LibraryManager.get_instance()
    try:
        records = lib.borrowed_by(user_id)
    except LibraryError as e:
        _fail(e)
    print_ledger_result(user_id, records)


@app.command("stats")
def cli_stats():
    """Show library statistics."""
    print_stats_result(LibraryManager.get_instance().get_statistics())


# --- Interactive menu ---
def ask_text(label: str) -> Optional[str]:
    """Prompt for a line; blank input yields None."""
    value = Prompt.ask(label, default="", show_default=False).strip()
    return value or None


def ask_int(label: str) -> Optional[int]:
    raw = ask_text(label)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def show_books(books, title: str, empty_message: str) -> None:
    if not books:
        console.print(f"[yellow]{empty_message}[/]")
        return
    console.print(book_table(books, title=title))
    console.print(f"[dim]📊 {len(books)} book(s)[/]")


def show_ledger(lib: Library, user_id: int) -> None:
    try:
        records = lib.borrowed_by(user_id)
    except LibraryError as e:
        console.print(f"[bold red]Error loading borrowing records:[/] {escape(describe_error(e))}")
        return
    if not records:
        console.print("[yellow]No borrowed books for this user.[/]")
        return
    console.print(ledger_table(user_id, records))


def menu_add_book(lib: Library) -> None:
    console.print("\n[bold]=== ADD NEW BOOK ===[/]")
    title = ask_text("Enter title")
    author = ask_text("Enter author")
    isbn = ask_text("Enter ISBN")
    year = ask_int("Enter publication year")
    if None in (title, author, isbn, year):
        console.print("[bold red]Error:[/] All fields are required and the year must be a number.")
        return
    try:
        book = lib.add_book(title, author, isbn, year)
        console.print(f"[green]Book added successfully with ID: {book.id}[/]")
    except DuplicateError:
        console.print("[bold red]Error:[/] ISBN already exists.")
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")


def menu_search_book(lib: Library) -> None:
    console.print("\n[bold]=== SEARCH BOOK ===[/]")
    for index, field in enumerate(SEARCH_FIELDS, 1):
        console.print(f"{index}. Search by {field.upper() if field in ('id', 'isbn') else field.title()}")
    choice = ask_int("Enter choice")
    if choice is None or not 1 <= choice <= len(SEARCH_FIELDS):
        console.print("[yellow]Invalid choice.[/]")
        return
    field = SEARCH_FIELDS[choice - 1]
    key = ask_text(f"Enter {field}")
    if key is None:
        console.print(f"[yellow]Invalid {field}.[/]")
        return
    try:
        book = lib.find_book(field, key)
    except InvalidInputError as e:
        console.print(f"[yellow]{escape(str(e))}[/]")
        return
    if book is None:
        console.print("[yellow]Book not found.[/]")
    else:
        show_books([book], "🔍 Book Found", "")


def menu_update_book(lib: Library) -> None:
    console.print("\n[bold]=== UPDATE BOOK ===[/]")
    book_id = ask_int("Enter book ID to update")
    if book_id is None:
        console.print("[yellow]Invalid ID.[/]")
        return
    book = lib.find_book("id", book_id)
    if book is None:
        console.print("[yellow]Book not found.[/]")
        return
    show_books([book], "Current book information", "")
    console.print("Enter new information (press Enter to keep current value):")
    title = ask_text("Enter new title")
    author = ask_text("Enter new author")
    isbn = ask_text("Enter new ISBN")
    year = ask_int("Enter new year")
    try:
        lib.update_book(book_id, title=title, author=author, isbn=isbn, year=year)
        console.print("[green]Book updated successfully.[/]")
    except DuplicateError:
        console.print("[bold red]Error:[/] ISBN already exists for another book.")
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")


def menu_delete_book(lib: Library) -> None:
    console.print("\n[bold]=== DELETE BOOK ===[/]")
    book_id = ask_int("Enter book ID to delete")
    if book_id is None:
        console.print("[yellow]Invalid ID.[/]")
        return
    book = lib.find_book("id", book_id)
    if book is None:
        console.print("[yellow]Book not found.[/]")
        return
    show_books([book], "Book to delete", "")
    if not book.is_available:
        console.print(f"[yellow]⚠️ This book is currently borrowed by user {book.borrower_id}; "
                      f"their borrowing record will not be cleared.[/]")
    if not Confirm.ask("Are you sure you want to delete this book?", default=False):
        console.print("[blue]Deletion cancelled.[/]")
        return
    try:
        if lib.remove_book(book_id):
            console.print("[green]Book deleted successfully.[/]")
        else:
            console.print("[red]Error: Failed to delete book.[/]")
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")


def menu_borrow_book(lib: Library, user: User) -> None:
    console.print("\n[bold]=== BORROW BOOK ===[/]")
    show_books(lib.list_available(), "Available Books", "No available books.")
    book_id = ask_int("Enter book ID to borrow")
    if book_id is None:
        console.print("[yellow]Invalid book ID.[/]")
        return
    try:
        lib.borrow_book(book_id, user.id)
        console.print(f"[green]Book borrowed successfully by {escape(user.name)} (ID: {user.id}).[/]")
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")


def menu_return_book(lib: Library, user: User) -> None:
    console.print("\n[bold]=== RETURN BOOK ===[/]")
    show_ledger(lib, user.id)
    book_id = ask_int("Enter book ID to return")
    if book_id is None:
        console.print("[yellow]Invalid book ID.[/]")
        return
    try:
        lib.return_book(book_id, user.id)
        console.print(f"[green]Book returned successfully by {escape(user.name)} (ID: {user.id}).[/]")
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")


def menu_add_user(lib: Library) -> None:
    console.print("\n[bold]=== ADD NEW USER ===[/]")
    username = ask_text("Enter username")
    name = ask_text("Enter full name")
    password = ask_text("Enter password")
    if None in (username, name, password):
        console.print("[bold red]Error:[/] All fields are required.")
        return
    try:
        user_id = lib.add_user(username, name, password)
        console.print(f"[green]User added successfully with ID: {user_id}[/]")
    except DuplicateError:
        console.print("[bold red]Error:[/] Username already exists.")
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")


def menu_display_users(lib: Library) -> None:
    users = lib.list_users()
    if not users:
        console.print("[yellow]No users registered.[/]")
        return
    console.print(users_table(users, title="👥 All Users"))


def menu_display_user_books(lib: Library, user: User) -> None:
    console.print("\n[bold]=== VIEW BORROWED BOOKS ===[/]")
    user_id = user.id
    if user.is_admin:
        user_id = ask_int("Enter user ID (0 for your own)")
        if user_id is None:
            console.print("[yellow]Invalid user ID.[/]")
            return
        if user_id == 0:
            user_id = user.id
    console.print(f"User ID: {user_id}")
    if user_id <= 0:
        # The built-in admin never borrows, so it has no ledger.
        console.print("[yellow]No borrowed books for this user.[/]")
        return
    show_ledger(lib, user_id)


def render_menu(title: str, items) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, label, icon in items:
        table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")
    console.print(Panel(table, title=escape(title), border_style="cyan", box=box.HEAVY, padding=(1, 2)))


LOGIN_ITEMS = [
    ("1", "Login", "🔑"),
    ("2", "Register", "📝"),
    ("3", "Admin Login", "🛡️"),
    ("4", "Exit", "🚪"),
]

ADMIN_ITEMS = [
    ("1", "Add book", "➕"),
    ("2", "Search book", "🔎"),
    ("3", "Update book", "✏️"),
    ("4", "Delete book", "🗑️"),
    ("5", "List all books", "📚"),
    ("6", "List available books", "✅"),
    ("7", "List borrowed books", "📕"),
    ("8", "Add user", "👤"),
    ("9", "List users", "👥"),
    ("10", "View user's borrowed books", "📖"),
    ("11", "Logout", "↩️"),
    ("12", "Exit", "🚪"),
]

USER_ITEMS = [
    ("1", "Search book", "🔎"),
    ("2", "List all books", "📚"),
    ("3", "List available books", "✅"),
    ("4", "Borrow book", "📥"),
    ("5", "Return book", "📤"),
    ("6", "View my borrowed books", "📖"),
    ("7", "Logout", "↩️"),
    ("8", "Exit", "🚪"),
]


def login_screen(lib: Library) -> Optional[User]:
    """Loop until someone logs in (returns the user) or chooses Exit (returns None)."""
    while True:
        render_menu(f"{settings.app_name} - Login / Register", LOGIN_ITEMS)
        choice = Prompt.ask("Enter your choice", choices=[k for k, _, _ in LOGIN_ITEMS], default="1")

        if choice == "1":
            username = ask_text("Username")
            password = ask_text("Password")
            if username is None or password is None:
                console.print("[yellow]Invalid username or password.[/]")
                continue
            try:
                user = lib.login(username, password)
            except AuthenticationError as e:
                console.print(f"[red]{escape(str(e))}[/]")
                continue
            console.print(f"[green]Login successful! Welcome {escape(user.name)}.[/]")
            return user
        elif choice == "2":
            username = ask_text("Username")
            name = ask_text("Full Name")
            password = ask_text("Password")
            if None in (username, name, password):
                console.print("[yellow]All fields are required.[/]")
                continue
            try:
                user_id = lib.register_user(username, name, password)
            except DuplicateError:
                console.print("[bold red]Error:[/] Username already exists.")
                continue
            except LibraryError as e:
                console.print(f"[bold red]Error:[/] {escape(describe_error(e))}")
                continue
            console.print(f"[green]Registration successful! Your user ID is: {user_id}[/]")
            console.print("Please login to continue.")
        elif choice == "3":
            username = ask_text("Admin Username")
            password = ask_text("Admin Password")
            if username is None or password is None:
                console.print("[yellow]Invalid admin credentials.[/]")
                continue
            try:
                user = lib.login_admin(username, password)
            except AuthenticationError as e:
                console.print(f"[red]{escape(str(e))}[/]")
                continue
            console.print(f"[green]Admin login successful! Welcome {escape(user.name)}.[/]")
            return user
        else:
            return None


def admin_session(lib: Library, user: User) -> bool:
    """Run the admin menu. Returns True when the whole program should exit."""
    actions = {
        "1": lambda: menu_add_book(lib),
        "2": lambda: menu_search_book(lib),
        "3": lambda: menu_update_book(lib),
        "4": lambda: menu_delete_book(lib),
        "5": lambda: show_books(lib.list_books(), "📚 All Books", "No books in library."),
        "6": lambda: show_books(lib.list_available(), "✅ Available Books", "No available books."),
        "7": lambda: show_books(lib.list_borrowed(), "📕 Borrowed Books", "No borrowed books."),
        "8": lambda: menu_add_user(lib),
        "9": lambda: menu_display_users(lib),
        "10": lambda: menu_display_user_books(lib, user),
    }
    return _session_loop(f"{settings.app_name} - Admin: {user.name}", ADMIN_ITEMS, actions, logout="11", exit_key="12")


def user_session(lib: Library, user: User) -> bool:
    """Run the regular user menu. Returns True when the whole program should exit."""
    actions = {
        "1": lambda: menu_search_book(lib),
        "2": lambda: show_books(lib.list_books(), "📚 All Books", "No books in library."),
        "3": lambda: show_books(lib.list_available(), "✅ Available Books", "No available books."),
        "4": lambda: menu_borrow_book(lib, user),
        "5": lambda: menu_return_book(lib, user),
        "6": lambda: menu_display_user_books(lib, user),
    }
    return _session_loop(f"{settings.app_name} - {user.name} (ID: {user.id})", USER_ITEMS, actions, logout="7", exit_key="8")


def _session_loop(title: str, items, actions, logout: str, exit_key: str) -> bool:
    while True:
        render_menu(title, items)
        choice = Prompt.ask("Enter your choice", choices=[k for k, _, _ in items], show_choices=False)
        if choice == logout:
            console.print("Logging out...")
            return False
        if choice == exit_key:
            return True
        actions[choice]()
        console.print()


def run_menu() -> None:
    """Interactive menu: login, then the role-specific menu until exit."""
    try:
        lib = LibraryManager.get_instance()
    except LibraryError as e:
        console.print(f"[bold red]Failed to start library: {escape(str(e))}[/]")
        raise SystemExit(1)

    console.print(f"[dim]📚 {len(lib.list_books())} books and {len(lib.list_users())} users loaded[/]")
    while True:
        user = login_screen(lib)
        if user is None:
            break
        session = admin_session if user.is_admin else user_session
        if session(lib, user):
            break

    console.print("Saving data and exiting...")
    try:
        lib.save_all()
    except PersistenceError as e:
        console.print(f"[bold red]Error saving data:[/] {escape(str(e))}")
    console.print(f"[green]Thank you for using {escape(settings.app_name)}![/]")


def run() -> None:
    configure_logging()
    if len(sys.argv) > 1:
        app()
    else:
        run_menu()


if __name__ == "__main__":
    run()
