import logging
import os
from typing import Iterator, List, Optional

from libtrack.errors import DuplicateError, InvalidInputError, PersistenceError
from libtrack.user import Role, User
from libtrack.validators import (
    MAX_NAME_LEN,
    MAX_PASSWORD_LEN,
    MAX_USERNAME_LEN,
    validate_roster_field,
)

logger = logging.getLogger(__name__)


class Roster:
    """Ordered, in-memory collection of users persisted as id|username|name|password|role lines."""

    def __init__(self, users: Optional[List[User]] = None) -> None:
        self.users: List[User] = list(users or [])

    def __len__(self) -> int:
        return len(self.users)

    def __iter__(self) -> Iterator[User]:
        return iter(self.users)

    def next_id(self) -> int:
        if not self.users:
            return 1
        return max(user.id for user in self.users) + 1

    def add(self, username: str, name: str, password: str, role: Role = Role.USER) -> int:
        if not validate_roster_field(username, MAX_USERNAME_LEN):
            raise InvalidInputError("Invalid username.")
        if not validate_roster_field(name, MAX_NAME_LEN):
            raise InvalidInputError("Invalid name.")
        if not validate_roster_field(password, MAX_PASSWORD_LEN):
            raise InvalidInputError("Invalid password.")
        if self.find_by_username(username) is not None:
            raise DuplicateError(f"Username {username} already exists.")

        user = User(self.next_id(), username, name, password, Role(role))
        self.users.append(user)
        logger.info(f"User added: id={user.id}, username={user.username}, role={user.role.name}")
        return user.id

    def find_by_id(self, user_id: int) -> Optional[User]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def find_by_username(self, username: str) -> Optional[User]:
        for user in self.users:
            if user.username == username:
                return user
        return None

    def list_users(self) -> List[User]:
        return list(self.users)

    # ------------------------- Persistence ------------------------- #
    def save(self, path: str) -> None:
        try:
            with open(path, "w", encoding="utf-8", newline="\n") as f:
                for user in self.users:
                    f.write(user.to_line() + "\n")
        except OSError as exc:
            logger.error(f"Failed to save roster to {path}: {exc}")
            raise PersistenceError(f"Could not write users file {path}: {exc}") from exc

    def load(self, path: str) -> bool:
        """Bulk reload from a users file. Lines that do not parse or repeat an earlier id or username are skipped."""
        if not os.path.exists(path):
            return False
        users: List[User] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    line = line.rstrip("\r\n")
                    if not line:
                        continue
                    user = User.from_line(line)
                    if user is None:
                        logger.warning(f"Skipping malformed line {line_no} in {path}")
                        continue
                    if any(u.id == user.id or u.username == user.username for u in users):
                        logger.warning(f"Skipping duplicate user id={user.id}, username={user.username} "
                                       f"on line {line_no} in {path}")
                        continue
                    users.append(user)
        except OSError as exc:
            raise PersistenceError(f"Could not read users file {path}: {exc}") from exc

        self.users = users
        logger.info(f"Roster loaded from {path}: {len(users)} users")
        return True
