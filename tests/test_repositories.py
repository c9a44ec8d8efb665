from datetime import datetime, timedelta, timezone
from unittest import mock

from store_case import StoreTestCase

from db import database as db_database
from db import products, sales, users
from db.errors import CorruptRecordError, StockUpdate
from db.models import CartItem, ProductVariant


class UsersTestCase(StoreTestCase):
    async def test_add_get_all_and_idempotent_reads(self):
        self.assertEqual(await users.get_all(), [])
        admin = await users.add("admin", "admin123", role="admin")
        clerk = await users.add("cashier", "cashier123")
        self.assertTrue(admin.id)
        self.assertNotEqual(admin.id, clerk.id)
        self.assertTrue(admin.created_at.endswith("Z"))
        self.assertEqual(clerk.role, "cashier")

        first = await users.get_all()
        second = await users.get_all()
        self.assertEqual(first, second)
        self.assertEqual([u.username for u in first], ["admin", "cashier"])

    async def test_duplicate_username_rejected(self):
        await users.add("admin", "pw", role="admin")
        self.assertFalse(await users.username_available("admin"))
        with self.assertRaises(ValueError):
            await users.add("admin", "other")
        other = await users.add("other", "pw")
        with self.assertRaises(ValueError):
            await users.update(other.id, username="admin")

    async def test_update_and_delete(self):
        user = await users.add("jo", "pw")
        self.assertTrue(await users.update(user.id, is_active=False, role="admin"))
        got = await users.get(user.id)
        self.assertFalse(got.is_active)
        self.assertEqual(got.role, "admin")
        self.assertEqual(got.username, "jo")
        self.assertFalse(await users.update("missing", is_active=True))

        self.assertTrue(await users.delete(user.id))
        self.assertFalse(await users.delete(user.id))
        self.assertIsNone(await users.get(user.id))

    async def test_find_by_credentials_is_uniform(self):
        admin = await users.add("admin", "admin123", role="admin")
        sleeper = await users.add("sleeper", "pw", is_active=False)

        self.assertEqual(await users.find_by_credentials("admin", "admin123"), admin)
        wrong_password = await users.find_by_credentials("admin", "wrong")
        no_such_user = await users.find_by_credentials("nosuchuser", "x")
        self.assertIsNone(wrong_password)
        self.assertIsNone(no_such_user)
        self.assertEqual(wrong_password, no_such_user)
        self.assertIsNone(await users.find_by_credentials("sleeper", "pw"))
        self.assertIsNone(await users.find_by_credentials("ADMIN", "admin123"))
        self.assertFalse(sleeper.is_active)


class ProductsTestCase(StoreTestCase):
    async def _catalog(self):
        cola = await products.add("Coca Cola 500ml", "COKE500", "Beverages", 25, 50, 10)
        soap = await products.add("Safeguard Bar Soap", "SG-SOAP", "Personal Care", 45, 5, 5)
        tea = await products.add("C2 Green Tea", "C2-GT", "Beverages", 20, 0, 10)
        old = await products.add("Old Cola", "OLD", "Beverages", 10, 0, 5, is_active=False)
        return cola, soap, tea, old

    async def test_add_sets_timestamps_and_update_refreshes(self):
        cola = await products.add("Cola", "C1", "Drinks", 25.0, 10, 2)
        self.assertEqual(cola.created_at, cola.updated_at)

        later = datetime(2030, 5, 1, 8, 0, tzinfo=timezone.utc)
        with mock.patch("db.products.utc_now", return_value=later):
            self.assertTrue(await products.update(cola.id, price=30.0))
        got = await products.get(cola.id)
        self.assertEqual(got.price, 30.0)
        self.assertEqual(got.updated_at, "2030-05-01T08:00:00.000Z")
        self.assertEqual(got.created_at, cola.created_at)
        self.assertFalse(await products.update("missing", price=1.0))

    async def test_update_rejects_negative_stock(self):
        cola = await products.add("Cola", "C1", "Drinks", 25.0, 10, 2)
        with self.assertRaises(ValueError):
            await products.update(cola.id, stock=-1)
        self.assertEqual((await products.get(cola.id)).stock, 10)

    async def test_update_stock(self):
        cola = await products.add("Cola", "C1", "Drinks", 25.0, 5, 2)

        self.assertIs(await products.update_stock(cola.id, 3), StockUpdate.OK)
        self.assertEqual((await products.get(cola.id)).stock, 2)

        result = await products.update_stock(cola.id, 3, "subtract")
        self.assertIs(result, StockUpdate.INSUFFICIENT_STOCK)
        self.assertFalse(result)
        self.assertEqual((await products.get(cola.id)).stock, 2)

        self.assertTrue(await products.update_stock(cola.id, 10, "add"))
        self.assertEqual((await products.get(cola.id)).stock, 12)

        self.assertIs(await products.update_stock("missing", 1), StockUpdate.NOT_FOUND)
        self.assertIs(
            await products.update_stock(cola.id, -4), StockUpdate.INVALID_QUANTITY
        )
        self.assertEqual((await products.get(cola.id)).stock, 12)

    async def test_update_stock_on_variant(self):
        shirt = await products.add(
            "Shirt",
            "SH",
            "Clothes",
            100,
            10,
            1,
            variants=[ProductVariant("s", "Small", 100, 2), ProductVariant("l", "Large", 120, 8)],
        )
        self.assertTrue(await products.update_stock(shirt.id, 2, variant_id="s"))
        got = await products.get(shirt.id)
        self.assertEqual(got.stock, 8)
        self.assertEqual(got.variant("s").stock, 0)
        self.assertEqual(got.variant("l").stock, 8)

        self.assertIs(
            await products.update_stock(shirt.id, 1, variant_id="s"),
            StockUpdate.INSUFFICIENT_STOCK,
        )
        self.assertIs(
            await products.update_stock(shirt.id, 1, variant_id="xl"),
            StockUpdate.NOT_FOUND,
        )
        self.assertEqual(await products.get(shirt.id), got)

    async def test_low_stock_alerts(self):
        cola, soap, tea, old = await self._catalog()
        found = await products.get_low_stock_alerts()
        self.assertEqual([a.product_id for a in found], [soap.id, tea.id])
        by_id = {a.product_id: a for a in found}
        self.assertEqual(by_id[soap.id].severity, "low")
        self.assertEqual(by_id[tea.id].severity, "critical")
        self.assertEqual(by_id[tea.id].current_stock, 0)
        self.assertEqual(by_id[tea.id].min_stock, 10)

    async def test_search(self):
        cola, soap, tea, old = await self._catalog()
        self.assertEqual(
            [p.id for p in await products.search("BEVERAGES")], [cola.id, tea.id]
        )
        self.assertEqual([p.id for p in await products.search("sg-")], [soap.id])
        self.assertEqual([p.id for p in await products.search("cola")], [cola.id])
        self.assertEqual(len(await products.search("")), 3)
        self.assertEqual(await products.search("nothing"), [])

    async def test_delete(self):
        cola, *_ = await self._catalog()
        self.assertTrue(await products.delete(cola.id))
        self.assertFalse(await products.delete(cola.id))
        self.assertEqual(len(await products.get_all()), 3)


class SalesTestCase(StoreTestCase):
    def _fields(self, total=100.0, **overrides):
        item = CartItem.build("p1", "Thing", total, 1)
        fields = dict(
            items=[item],
            subtotal=total,
            tax=0.0,
            discount=0.0,
            total=total,
            payment_method="cash",
            amount_paid=total,
            change=0.0,
            cashier_id="u1",
            cashier_name="cashier",
        )
        fields.update(overrides)
        return fields

    async def test_add_derives_utc_date(self):
        # 23:30 at UTC-5 is already the next day in UTC
        when = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        sale = await sales.add(**self._fields(when=when))
        self.assertEqual(sale.date, "2024-01-02")
        self.assertEqual(sale.timestamp, "2024-01-02T04:30:00.000Z")
        self.assertFalse(sale.receipt_printed)
        self.assertEqual(await sales.get_all(), [sale])

    async def test_date_range_and_daily_summary(self):
        def at(day):
            return datetime(2024, 1, day, 12, tzinfo=timezone.utc)

        await sales.add(**self._fields(100.0, when=at(1)))
        await sales.add(**self._fields(50.0, when=at(2)))
        await sales.add(**self._fields(25.0, when=at(2)))
        await sales.add(**self._fields(10.0, when=at(4)))

        in_range = await sales.get_by_date_range("2024-01-01", "2024-01-02")
        self.assertEqual([s.total for s in in_range], [100.0, 50.0, 25.0])
        self.assertEqual(len(await sales.get_by_date_range("2024-01-03", "2024-01-03")), 0)

        summary = await sales.get_daily_summary("2024-01-02")
        self.assertEqual(summary.total_sales, 75.0)
        self.assertEqual(summary.total_transactions, 2)
        self.assertEqual(summary.total_items, 2)
        self.assertEqual(summary.average_transaction, 37.5)

        empty = await sales.get_daily_summary("2023-12-31")
        self.assertEqual(empty.total_transactions, 0)
        self.assertEqual(empty.average_transaction, 0)

    async def test_only_receipt_flag_is_mutable(self):
        sale = await sales.add(**self._fields())
        with self.assertRaises(ValueError):
            await sales.update(sale.id, total=1.0)
        self.assertTrue(await sales.mark_receipt_printed(sale.id))
        self.assertTrue((await sales.get(sale.id)).receipt_printed)
        self.assertFalse(await sales.mark_receipt_printed("missing"))

    async def test_malformed_ledger_raises(self):
        await db_database.set(db_database.SALES_KEY, [{"id": "x"}])
        with self.assertRaises(CorruptRecordError):
            await sales.get_all()
        await db_database.set(db_database.SALES_KEY, {"not": "a list"})
        with self.assertRaises(CorruptRecordError):
            await sales.get_all()
