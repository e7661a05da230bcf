import pytest

from libtrack.errors import DuplicateError, InvalidInputError
from libtrack.roster import Roster
from libtrack.user import Role, User


@pytest.fixture
def roster():
    return Roster()


def test_add_and_find(roster):
    assert roster.add("alice", "Alice Smith", "pw1") == 1
    assert roster.add("bob", "Bob Jones", "pw2", Role.ADMIN) == 2
    assert roster.find_by_username("alice").id == 1
    assert roster.find_by_id(2).role == Role.ADMIN
    assert roster.find_by_username("carol") is None
    assert roster.find_by_id(3) is None


def test_add_duplicate_username(roster):
    roster.add("alice", "Alice Smith", "pw1")
    with pytest.raises(DuplicateError):
        roster.add("alice", "Another Alice", "pw2")
    assert len(roster) == 1


@pytest.mark.parametrize("username,name,password", [
    ("", "Name", "pw"),
    ("user", "", "pw"),
    ("user", "Name", ""),
    ("u" * 50, "Name", "pw"),
    ("us|er", "Name", "pw"),
    ("user", "Na\nme", "pw"),
])
def test_add_invalid(roster, username, name, password):
    with pytest.raises(InvalidInputError):
        roster.add(username, name, password)
    assert len(roster) == 0


def test_next_id_uses_max(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text("4|dave|Dave|pw|0\n2|bob|Bob|pw|1\n", encoding="utf-8")
    roster = Roster()
    assert roster.load(str(path))
    assert roster.next_id() == 5


def test_save_format_and_round_trip(roster, tmp_path):
    roster.add("alice", "Alice Smith", "secret", Role.USER)
    roster.add("root", "Root User", "toor", Role.ADMIN)
    path = tmp_path / "users.txt"
    roster.save(str(path))

    assert path.read_text(encoding="utf-8") == (
        "1|alice|Alice Smith|secret|0\n"
        "2|root|Root User|toor|1\n"
    )

    loaded = Roster()
    assert loaded.load(str(path)) is True
    assert loaded.list_users() == roster.list_users()


def test_load_skips_malformed_lines(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text(
        "1|alice|Alice|pw|0\n"
        "\n"
        "garbage\n"
        "x|bob|Bob|pw|0\n"
        "3|carol||pw|0\n"
        "4|dave|Dave|pw|9\n"
        "5|erin|Erin|pw|1\n",
        encoding="utf-8",
    )
    roster = Roster()
    assert roster.load(str(path))
    assert [u.username for u in roster] == ["alice", "erin"]


def test_load_replaces_contents(roster, tmp_path):
    roster.add("temp", "Temp", "pw")
    path = tmp_path / "users.txt"
    path.write_text("7|zed|Zed|pw|0\n", encoding="utf-8")
    roster.load(str(path))
    assert [u.id for u in roster] == [7]


def test_load_missing_file(roster, tmp_path):
    assert roster.load(str(tmp_path / "users.txt")) is False


def test_user_from_line():
    user = User.from_line("3|carol|Carol King|pw|1")
    assert user == User(3, "carol", "Carol King", "pw", Role.ADMIN)
    assert user.is_admin
    assert User.from_line("3|carol|Carol King|pw") is None


def test_load_skips_duplicate_users(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text(
        "1|alice|Alice|pw|0\n"
        "2|alice|Alice Again|other|0\n"
        "1|bob|Bob|pw|0\n"
        "3|carol|Carol|pw|0\n",
        encoding="utf-8",
    )
    roster = Roster()
    assert roster.load(str(path))
    assert [(u.id, u.username) for u in roster] == [(1, "alice"), (3, "carol")]
    assert roster.find_by_username("alice").password == "pw"
