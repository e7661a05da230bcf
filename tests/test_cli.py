import json
from unittest.mock import MagicMock

from typer.testing import CliRunner

from libtrack.library import Library
from libtrack.main import app, LibraryManager

runner = CliRunner()


def _seed(data_dir):
    lib = Library(data_dir=str(data_dir))
    lib.add_book("Dune", "Frank Herbert", "ISBN-1", 1965)
    lib.add_book("Emma", "Jane Austen", "ISBN-2", 1815)
    lib.add_user("alice", "Alice Smith", "pw")
    return lib


def test_list_no_books(data_dir):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_add_and_list(data_dir):
    result = runner.invoke(app, ["add", "Dune", "Frank Herbert", "ISBN-1", "1965"])
    assert result.exit_code == 0
    assert "Book added successfully with ID: 1" in result.stdout

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "1 - Dune by Frank Herbert (ISBN: ISBN-1, Year: 1965) [Available]" in result.stdout


def test_add_duplicate_isbn(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["add", "Other", "Someone", "ISBN-1", "2000"])
    assert result.exit_code == 1
    assert "Error: Book with ISBN ISBN-1 already exists." in result.stdout


def test_add_invalid_year(data_dir):
    result = runner.invoke(app, ["add", "Dune", "Herbert", "ISBN-1", "12000"])
    assert result.exit_code == 1
    assert "Year must be between 0 and 9999." in result.stdout


def test_find_by_id_and_missing(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["find", "--by", "id", "2"])
    assert result.exit_code == 0
    assert "Book Found" in result.stdout
    assert "Title: Emma" in result.stdout

    result = runner.invoke(app, ["find", "ISBN-9"])
    assert result.exit_code == 1
    assert "Book not found." in result.stdout


def test_update_and_remove(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["update", "1", "--title", "Dune Messiah", "--year", "1969"])
    assert result.exit_code == 0
    assert "Book updated successfully." in result.stdout

    result = runner.invoke(app, ["remove", "2"])
    assert result.exit_code == 0
    assert "Book with ID 2 has been removed." in result.stdout

    result = runner.invoke(app, ["remove", "2"])
    assert result.exit_code == 1
    assert "Book with ID 2 not found." in result.stdout

    books = LibraryManager.get_instance().list_books()
    assert [(b.id, b.title, b.year) for b in books] == [(1, "Dune Messiah", 1969)]


def test_borrow_return_flow(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["borrow", "1", "--username", "alice", "--password", "pw"])
    assert result.exit_code == 0
    assert "Book borrowed successfully by Alice Smith (ID: 1)." in result.stdout

    result = runner.invoke(app, ["borrow", "1", "-u", "alice", "-p", "pw"])
    assert result.exit_code == 1
    assert "Book is already borrowed by another user." in result.stdout

    result = runner.invoke(app, ["borrowed"])
    assert "[Borrowed by user 1]" in result.stdout

    result = runner.invoke(app, ["ledger", "1"])
    assert result.exit_code == 0
    assert "1 - Dune by Frank Herbert" in result.stdout

    result = runner.invoke(app, ["return", "1", "-u", "alice", "-p", "pw"])
    assert result.exit_code == 0
    assert "Book returned successfully" in result.stdout

    result = runner.invoke(app, ["ledger", "1"])
    assert "No borrowed books for this user." in result.stdout


def test_borrow_bad_password(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["borrow", "1", "-u", "alice", "-p", "nope"])
    assert result.exit_code == 1
    assert "Invalid username or password." in result.stdout


def test_return_not_your_book(data_dir):
    lib = _seed(data_dir)
    lib.add_user("bob", "Bob Jones", "pw2")
    lib.borrow_book(1, 1)
    result = runner.invoke(app, ["return", "1", "-u", "bob", "-p", "pw2"])
    assert result.exit_code == 1
    assert "This book is not borrowed by you." in result.stdout


def test_users_and_add_user(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["add-user", "bob", "Bob Jones", "secret"])
    assert result.exit_code == 0
    assert "User added successfully with ID: 2" in result.stdout

    result = runner.invoke(app, ["add-user", "bob", "Bob Again", "secret"])
    assert result.exit_code == 1

    result = runner.invoke(app, ["users"])
    assert "1 - alice (Alice Smith) [USER]" in result.stdout
    assert "2 - bob (Bob Jones) [USER]" in result.stdout
    assert "secret" not in result.stdout


def test_json_output(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["--output", "json", "available"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [b["isbn"] for b in payload] == ["ISBN-1", "ISBN-2"]


def test_stats(data_dir):
    _seed(data_dir)
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Books: 2" in result.stdout
    assert "Registered Users: 1" in result.stdout


def test_search(data_dir, monkeypatch):
    _seed(data_dir)
    result = runner.invoke(app, ["search", "austen"])
    assert "Emma" in result.stdout
    assert "Dune" not in result.stdout

    search_mock = MagicMock(return_value=[])
    monkeypatch.setattr(Library, "search_books", search_mock)
    result = runner.invoke(app, ["search", "nothing"])
    assert "No books matching 'nothing'." in result.stdout
    search_mock.assert_called_once_with("nothing")
