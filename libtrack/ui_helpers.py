import os
import json
from typing import List, Any, Dict, Optional
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

# Titles, names and ISBNs are user data and may contain '[': every such
# cell goes through escape() before reaching rich.

def book_table(books: List[Any], title: str = "📚 Books") -> Table:
    table = Table(title=title, show_lines=True, header_style="bold cyan")
    table.add_column("ID", style="magenta", justify="right", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("Author", style="white")
    table.add_column("ISBN", style="magenta", no_wrap=True)
    table.add_column("Year", justify="right")
    table.add_column("Status")
    for b in books:
        status = "[green]Available[/]" if b.is_available else f"[yellow]Borrowed (user {b.borrower_id})[/]"
        table.add_row(str(b.id), escape(b.title), escape(b.author), escape(b.isbn), str(b.year), status)
    return table

def ledger_table(user_id: int, records: List[Any]) -> Table:
    table = Table(title=f"📖 Borrowed Books (User ID: {user_id})", show_lines=True, header_style="bold cyan")
    table.add_column("ID", style="magenta", justify="right")
    table.add_column("Title", style="white")
    table.add_column("Author", style="white")
    table.add_column("ISBN", style="magenta")
    table.add_column("Year", justify="right")
    for r in records:
        table.add_row(str(r.book_id), escape(r.title), escape(r.author), escape(r.isbn), str(r.year))
    return table

def users_table(users: List[Any], title: str = "👥 Users") -> Table:
    table = Table(title=title, show_lines=True, header_style="bold cyan")
    table.add_column("ID", style="magenta", justify="right")
    table.add_column("Username", style="white")
    table.add_column("Name", style="white")
    table.add_column("Role", style="white")
    for u in users:
        table.add_row(str(u.id), escape(u.username), escape(u.name), u.role.name)
    return table

def print_list_result(books: List[Any], empty_message: str = "No books in library.") -> None:
    """Print a list of books in the current output mode.
    - plain: 'ID - Title by Author (ISBN, Year) [Status]' lines, or the empty message
    - json: JSON array of book dicts
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        _console.print(book_table(books))
    else:
        for b in books:
            status = "Available" if b.is_available else f"Borrowed by user {b.borrower_id}"
            print(f"{b.id} - {b.title} by {b.author} (ISBN: {b.isbn}, Year: {b.year}) [{status}]")

def print_book_result(book: Optional[Any]) -> None:
    mode = get_output_mode()
    if book is None:
        print("Book not found.")
        return
    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        _console.print(Panel.fit(
            f"[bold]ID:[/] {book.id}\n"
            f"[bold]Title:[/] {escape(book.title)}\n"
            f"[bold]Author:[/] {escape(book.author)}\n"
            f"[bold]ISBN:[/] {escape(book.isbn)}\n"
            f"[bold]Year:[/] {book.year}\n"
            f"[bold]Status:[/] {book.status}",
            title="🔍 Book Found",
            border_style="green",
        ))
    else:
        print("Book Found")
        print(f"ID: {book.id}")
        print(f"Title: {book.title}")
        print(f"Author: {book.author}")
        print(f"ISBN: {book.isbn}")
        print(f"Year: {book.year}")
        if book.is_available:
            print("Status: Available")
        else:
            print(f"Status: Borrowed (User ID: {book.borrower_id})")

def print_users_result(users: List[Any]) -> None:
    mode = get_output_mode()

    if not users:
        print("No users registered.")
        return

    if mode == "json":
        print(json.dumps([u.to_dict() for u in users], ensure_ascii=False))
    elif mode == "rich":
        _console.print(users_table(users))
    else:
        for u in users:
            print(f"{u.id} - {u.username} ({u.name}) [{u.role.name}]")

def print_ledger_result(user_id: int, records: List[Any]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps({"user_id": user_id, "books": [r.to_dict() for r in records]}, ensure_ascii=False))
        return

    if not records:
        print("No borrowed books for this user.")
        return

    if mode == "rich":
        _console.print(ledger_table(user_id, records))
    else:
        print(f"Borrowed books (User ID: {user_id}):")
        for r in records:
            print(f"{r.book_id} - {r.title} by {r.author} (ISBN: {r.isbn}, Year: {r.year})")

def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: one 'Label: value' line per metric
    - json: JSON object
    - rich: Panel with the main metrics
    """
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = [
        ("total_books", "Total Books"),
        ("available_books", "Available Books"),
        ("borrowed_books", "Borrowed Books"),
        ("unique_authors", "Unique Authors"),
        ("total_users", "Registered Users"),
    ]

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in labels)
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, label in labels:
            print(f"{label}: {stats.get(key, 0)}")
