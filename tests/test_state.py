from store_case import StoreTestCase

from db import database as db_database
from db import users
from utils.state import AuthSession


class AuthSessionTestCase(StoreTestCase):
    async def asyncSetUp(self):
        self.admin = await users.add("admin", "admin123", role="admin")
        self.clerk = await users.add("cashier", "cashier123")

    async def test_login_logout(self):
        session = AuthSession()
        self.assertFalse(session.is_logged_in)

        self.assertIsNone(await session.login("admin", "wrong"))
        self.assertFalse(session.is_logged_in)

        user = await session.login("admin", "admin123")
        self.assertEqual(user, self.admin)
        self.assertTrue(session.is_admin)
        self.assertIsNotNone(await db_database.get(db_database.CURRENT_USER_KEY))

        await session.logout()
        self.assertIsNone(session.user)
        self.assertIsNone(await db_database.get(db_database.CURRENT_USER_KEY))

    async def test_restore(self):
        await AuthSession().login("cashier", "cashier123")

        resumed = AuthSession()
        self.assertEqual(await resumed.restore(), self.clerk)
        self.assertFalse(resumed.is_admin)

        # a deactivated account cannot be resumed
        await users.update(self.clerk.id, is_active=False)
        stale = AuthSession()
        self.assertIsNone(await stale.restore())
        self.assertIsNone(await db_database.get(db_database.CURRENT_USER_KEY))

        self.assertIsNone(await AuthSession().restore())

    async def test_cannot_modify_self(self):
        session = AuthSession()
        await session.login("admin", "admin123")
        self.assertFalse(session.can_modify_user(self.admin.id))
        self.assertTrue(session.can_modify_user(self.clerk.id))
