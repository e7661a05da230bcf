import logging
from typing import Optional

from libtrack.config import Settings, settings as default_settings
from libtrack.errors import AuthenticationError, InvalidInputError
from libtrack.roster import Roster
from libtrack.user import Role, User

logger = logging.getLogger(__name__)

ADMIN_USER_ID = 0
ADMIN_DISPLAY_NAME = "Administrator"


def _admin_identity(cfg: Settings) -> User:
    # Built fresh per login and never stored in the roster.
    return User(ADMIN_USER_ID, cfg.admin_username, ADMIN_DISPLAY_NAME, "", Role.ADMIN)


def login(roster: Roster, username: str, password: str, cfg: Optional[Settings] = None) -> User:
    """Check the built-in admin first, then the roster. Passwords are compared as plain values."""
    cfg = cfg or default_settings
    if username == cfg.admin_username and password == cfg.admin_password:
        logger.info("Admin login")
        return _admin_identity(cfg)

    user = roster.find_by_username(username)
    if user is not None and user.password == password:
        logger.info(f"User login: id={user.id}, username={user.username}")
        return user

    logger.warning(f"Failed login attempt for username={username!r}")
    raise AuthenticationError("Invalid username or password.")


def login_admin(roster: Roster, username: str, password: str, cfg: Optional[Settings] = None) -> User:
    try:
        user = login(roster, username, password, cfg)
    except AuthenticationError as exc:
        raise AuthenticationError("Invalid admin credentials.") from exc
    if not user.is_admin:
        raise AuthenticationError("Access denied. Not an admin account.")
    return user


def register(roster: Roster, username: str, name: str, password: str, cfg: Optional[Settings] = None) -> int:
    """Add a regular user. The admin username is reserved."""
    cfg = cfg or default_settings
    if username == cfg.admin_username:
        raise InvalidInputError("Cannot register as admin.")
    return roster.add(username, name, password, Role.USER)
