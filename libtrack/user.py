from __future__ import annotations

from enum import IntEnum


class Role(IntEnum):
    USER = 0
    ADMIN = 1


class User:
    """A registered library user (or the built-in administrator)."""

    def __init__(self, id: int, username: str, name: str, password: str, role: Role = Role.USER) -> None:
        self.id = id
        self.username = username
        self.name = name
        self.password = password
        self.role = Role(role)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r}, name={self.name!r}, role={self.role.name})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return (self.id, self.username, self.name, self.password, self.role) == (
            other.id, other.username, other.name, other.password, other.role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_line(self) -> str:
        """Serialize as an id|username|name|password|role roster line."""
        return f"{self.id}|{self.username}|{self.name}|{self.password}|{int(self.role)}"

    @staticmethod
    def from_line(line: str) -> "User | None":
        """Parse a roster line; returns None for lines that do not hold a user."""
        parts = line.split("|")
        if len(parts) != 5:
            return None
        raw_id, username, name, password, raw_role = parts
        if not username or not name or not password:
            return None
        try:
            user_id = int(raw_id)
            role = Role(int(raw_role))
        except ValueError:
            return None
        return User(user_id, username, name, password, role)

    def to_dict(self) -> dict:
        # password omitted
        return {"id": self.id, "username": self.username, "name": self.name, "role": self.role.name}
