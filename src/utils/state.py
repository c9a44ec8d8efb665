from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from db import database
from db import users as user_repo
from db.database import CURRENT_USER_KEY
from db.errors import CorruptRecordError
from db.models import User
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass
class AuthSession:
    """
    The logged-in user, held explicitly instead of in a global.

    Fields:
      - user: the authenticated User, or None when logged out

    The user is mirrored under the session key so a restarted app can restore().
    """

    user: Optional[User] = None

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role == "admin"

    async def login(self, username: str, password: str) -> Optional[User]:
        """Authenticate and start the session. Returns the user, or None on any failure."""
        user = await user_repo.find_by_credentials(username, password)
        if user is None:
            _logger.info("Login failed")
            return None
        self.user = user
        await database.set(CURRENT_USER_KEY, user.to_dict())
        _logger.info(f"{user.username} logged in as {user.role}")
        return user

    async def logout(self) -> None:
        if self.user is not None:
            _logger.info(f"{self.user.username} logged out")
        self.user = None
        await database.remove(CURRENT_USER_KEY)

    async def restore(self) -> Optional[User]:
        """
        Resume a stored session. The stored user must still exist and be active,
        otherwise the session is discarded.
        """
        doc = await database.get(CURRENT_USER_KEY)
        if doc is None:
            return None
        try:
            stored = User.from_dict(doc)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptRecordError(f"unreadable session record: {e!r}") from e
        current = await user_repo.get(stored.id)
        if current is None or not current.is_active:
            await self.logout()
            return None
        self.user = current
        return current

    def can_modify_user(self, user_id: str) -> bool:
        """Users may not delete or deactivate their own account."""
        return self.user is None or self.user.id != user_id
