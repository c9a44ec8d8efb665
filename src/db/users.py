# src/db/users.py
from __future__ import annotations

import hmac
from typing import List, Optional

from db import collection
from db.database import USERS_KEY, write_lock
from db.models import Role, User, iso_instant, utc_now
from utils.logger import get_logger
from utils.pure import generate_id

_logger = get_logger(__name__)


async def get_all() -> List[User]:
    """Every stored user, in insertion order."""
    return await collection.load(USERS_KEY, User.from_dict)


async def save(users: List[User]) -> None:
    """Overwrite the whole user collection."""
    await collection.store(USERS_KEY, users)


async def get(user_id: str) -> Optional[User]:
    return next((u for u in await get_all() if u.id == user_id), None)


async def get_by_username(username: str) -> Optional[User]:
    return next((u for u in await get_all() if u.username == username), None)


async def username_available(username: str) -> bool:
    """True if no stored user already has the given username."""
    return await get_by_username(username) is None


async def add(
    username: str, password: str, role: Role = "cashier", is_active: bool = True
) -> User:
    """
    Create a user with a fresh id and creation timestamp and return it.
    Raises ValueError if the username is already taken.
    """
    async with write_lock():
        users = await get_all()
        if any(u.username == username for u in users):
            raise ValueError(f"username {username!r} already exists")
        user = User(
            id=generate_id(),
            username=username,
            password=password,
            role=role,
            is_active=is_active,
            created_at=iso_instant(utc_now()),
        )
        users.append(user)
        await save(users)
    _logger.info(f"Added {role} user {username!r} ({user.id})")
    return user


async def update(user_id: str, **changes) -> bool:
    """Patch the named fields of a user. Returns False if the id is unknown."""
    async with write_lock():
        users = await get_all()
        idx = collection.find_index(users, user_id)
        if idx is None:
            return False
        new_name = changes.get("username")
        if new_name is not None and any(
            u.username == new_name and u.id != user_id for u in users
        ):
            raise ValueError(f"username {new_name!r} already exists")
        users[idx] = collection.merge(users[idx], changes)
        await save(users)
    return True


async def delete(user_id: str) -> bool:
    """Remove a user. Returns False if the id is unknown."""
    async with write_lock():
        users = await get_all()
        kept = [u for u in users if u.id != user_id]
        if len(kept) == len(users):
            return False
        await save(kept)
    _logger.info(f"Deleted user {user_id}")
    return True


async def find_by_credentials(username: str, password: str) -> Optional[User]:
    """Return the active user matching username and password, else None.

    Unknown username, wrong password and inactive account all give the same None.
    """
    found = None
    for user in await get_all():
        # compare every candidate so timing does not reveal which usernames exist
        name_ok = hmac.compare_digest(user.username.encode(), username.encode())
        pwd_ok = hmac.compare_digest(user.password.encode(), password.encode())
        if name_ok and pwd_ok and user.is_active and found is None:
            found = user
    return found
