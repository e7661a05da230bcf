import io
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from libtrack import main
from libtrack.library import Library


@pytest.fixture
def screen(monkeypatch):
    console = Console(file=io.StringIO(), width=200)
    monkeypatch.setattr(main, "console", console)
    return console


def _answers(monkeypatch, *values):
    ask = MagicMock(side_effect=list(values))
    monkeypatch.setattr(main.Prompt, "ask", ask)
    return ask


def _confirm(monkeypatch, answer):
    confirm = MagicMock(return_value=answer)
    monkeypatch.setattr(main.Confirm, "ask", confirm)
    return confirm


def _seed_with_loan(data_dir):
    lib = Library(data_dir=str(data_dir))
    lib.add_book("Dune", "Frank Herbert", "ISBN-1", 1965)
    lib.add_book("Emma", "Jane Austen", "ISBN-2", 1815)
    lib.add_user("alice", "Alice Smith", "pw")
    lib.borrow_book(1, 1)
    return lib


def test_exit_saves_both_files(data_dir, screen, monkeypatch):
    _answers(monkeypatch, "4")
    main.run_menu()

    assert (data_dir / "library.dat").exists()
    assert (data_dir / "users.txt").exists()
    assert "Thank you for using" in screen.file.getvalue()


def test_register_login_borrow_return(data_dir, screen, monkeypatch):
    Library(data_dir=str(data_dir)).add_book("Dune", "Frank Herbert", "ISBN-1", 1965)
    ask = _answers(
        monkeypatch,
        "2", "bob", "Bob Stone", "pw",  # register
        "1", "bob", "pw",               # login
        "4", "1",                       # borrow
        "5", "1",                       # return
        "4", "1",                       # borrow again
        "6",                            # my books
        "8",                            # exit
    )
    main.run_menu()

    assert ask.call_count == 15
    out = screen.file.getvalue()
    assert "Registration successful! Your user ID is: 1" in out
    assert "Login successful! Welcome Bob Stone." in out
    assert "Book returned successfully by Bob Stone (ID: 1)." in out
    assert "Borrowed Books (User ID: 1)" in out

    assert (data_dir / "users.txt").read_text(encoding="utf-8") == "1|bob|Bob Stone|pw|0\n"
    fresh = Library(data_dir=str(data_dir))
    assert fresh.find_book("id", 1).borrower_id == 1
    assert [r.book_id for r in fresh.borrowed_by(1)] == [1]


def test_bad_logins(data_dir, screen, monkeypatch):
    _seed_with_loan(data_dir)
    _answers(
        monkeypatch,
        "1", "alice", "wrong",
        "3", "alice", "pw",
        "4",
    )
    main.run_menu()

    out = screen.file.getvalue()
    assert "Invalid username or password." in out
    assert "Access denied. Not an admin account." in out


def test_admin_delete_borrowed_book_with_confirmation(data_dir, screen, monkeypatch):
    _seed_with_loan(data_dir)
    _answers(monkeypatch, "3", "admin", "admin123", "4", "1", "12")
    confirm = _confirm(monkeypatch, True)
    main.run_menu()

    confirm.assert_called_once()
    out = screen.file.getvalue()
    assert "currently borrowed by user 1" in out
    assert "Book deleted successfully." in out

    fresh = Library(data_dir=str(data_dir))
    assert [b.id for b in fresh.list_books()] == [2]
    # the borrower's ledger entry is left behind
    assert [r.book_id for r in fresh.borrowed_by(1)] == [1]


def test_admin_delete_cancelled(data_dir, screen, monkeypatch):
    _seed_with_loan(data_dir)
    _answers(monkeypatch, "3", "admin", "admin123", "4", "2", "12")
    _confirm(monkeypatch, False)
    main.run_menu()

    assert "Deletion cancelled." in screen.file.getvalue()
    assert [b.id for b in Library(data_dir=str(data_dir)).list_books()] == [1, 2]


def test_admin_update_blank_keeps_values(data_dir, screen, monkeypatch):
    _seed_with_loan(data_dir)
    _answers(monkeypatch, "3", "admin", "admin123", "3", "1", "", "", "ISBN-9", "", "12")
    main.run_menu()

    assert "Book updated successfully." in screen.file.getvalue()
    book = Library(data_dir=str(data_dir)).find_book("id", 1)
    assert (book.title, book.author, book.isbn, book.year) == ("Dune", "Frank Herbert", "ISBN-9", 1965)


def test_admin_views_ledgers(data_dir, screen, monkeypatch):
    _seed_with_loan(data_dir)
    _answers(monkeypatch, "3", "admin", "admin123", "10", "0", "10", "1", "12")
    main.run_menu()

    out = screen.file.getvalue()
    assert "No borrowed books for this user." in out
    assert "Borrowed Books (User ID: 1)" in out
    assert "Dune" in out


def test_menu_shows_bracketed_titles_and_names(data_dir, screen, monkeypatch):
    lib = Library(data_dir=str(data_dir))
    lib.add_book("Notes [/] vol 1", "Anon", "ISBN-1", 2000)
    lib.add_user("alice", "Alice [/] Smith", "pw")
    _answers(
        monkeypatch,
        "1", "alice", "pw",
        "2",                            # list all books
        "1", "2", "Notes [/] vol 1",    # search by title
        "8",
    )
    main.run_menu()

    out = screen.file.getvalue()
    assert "Welcome Alice [/] Smith." in out
    assert out.count("Notes [/] vol 1") >= 2
    assert "Thank you for using" in out


def test_banner_uses_configured_app_name(data_dir, screen, monkeypatch):
    monkeypatch.setattr(main.settings, "app_name", "Town Library")
    _answers(monkeypatch, "4")
    main.run_menu()

    out = screen.file.getvalue()
    assert "Town Library - Login / Register" in out
    assert "Thank you for using Town Library!" in out
