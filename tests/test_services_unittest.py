import asyncio
import os
import unittest
import sys
from decimal import Decimal
from unittest import mock
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import services
from errors import DuplicateItem, LookupFailure, OutOfStock
from models import Cart, StockClamped
from schemas import ProductSnapshot
from services import CartService, ProductService


def snap(pid, name="P", price="1.00", stock=5, vat=None):
    return ProductSnapshot(id=pid, name=name, price=Decimal(price), available_quantity=stock, vat_rate=vat)


class ProductServiceTests(unittest.IsolatedAsyncioTestCase):
    async def test_search_keeps_latest_results(self):
        fake = mock.AsyncMock(return_value=[snap(1, "Cola"), snap(2, "Water")])
        with mock.patch.object(services, 'search_products', fake):
            products = ProductService(client=None)
            found = await products.search("a")
        fake.assert_awaited_once_with(None, "a")
        self.assertEqual(len(found), 2)
        self.assertEqual(products.find(2).name, "Water")
        self.assertIsNone(products.find(3))

    async def test_failed_search_clears_results(self):
        products = ProductService(client=None)
        products.results = [snap(1)]
        with mock.patch.object(services, 'search_products', mock.AsyncMock(side_effect=LookupFailure())):
            with self.assertRaises(LookupFailure):
                await products.search("x")
        self.assertEqual(products.results, [])

    async def test_superseded_search_is_dropped(self):
        gate = asyncio.Event()

        async def fake_search(client, term=""):
            if term == "old":
                await gate.wait()
                return [snap(1, "Old")]
            return [snap(2, "New")]

        products = ProductService(client=None)
        with mock.patch.object(services, 'search_products', fake_search):
            slow = asyncio.create_task(products.search("old"))
            await asyncio.sleep(0)
            await products.search("new")
            gate.set()
            self.assertIsNone(await slow)
        self.assertEqual([p.name for p in products.results], ["New"])

    async def test_current_stock_matches_by_id(self):
        fake = mock.AsyncMock(return_value=[snap(1, "Cola", stock=9), snap(11, "Cola Zero", stock=2)])
        with mock.patch.object(services, 'search_products', fake):
            products = ProductService(client=None)
            self.assertEqual(await products.current_stock(11, "Cola"), 2)
            self.assertIsNone(await products.current_stock(99, "Cola"))
        fake.assert_awaited_with(None, "Cola")


class CartServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.cart = Cart()
        self.products = ProductService(client=None)
        self.products.results = [snap(1, "Cola", stock=3, vat=19), snap(2, "Gum", stock=0)]
        self.cart_service = CartService(self.cart, self.products)

    def test_add_from_results(self):
        item = self.cart_service.add_from_results(1)
        self.assertEqual(item.name, "Cola")
        self.assertEqual([i.product_id for i in self.cart.items], [1])

    def test_add_same_product_twice(self):
        self.cart_service.add_from_results(1)
        with self.assertRaises(DuplicateItem):
            self.cart_service.add_from_results(1)
        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.get(1).quantity, 1)

    def test_add_out_of_stock(self):
        with self.assertRaises(OutOfStock):
            self.cart_service.add_from_results(2)

    def test_add_needs_a_fetched_candidate(self):
        self.products.results = []
        with self.assertRaises(LookupFailure):
            self.cart_service.add_from_results(1)
        self.assertEqual(len(self.cart), 0)

    def test_default_vat_rate_is_used(self):
        self.products.results = [snap(5, "Tea", stock=2, vat=None)]
        cart_service = CartService(self.cart, self.products, default_vat_rate=Decimal(19))
        self.assertEqual(cart_service.add_from_results(5).vat_rate, Decimal(19))

    async def test_edit_within_stock(self):
        self.cart_service.add_from_results(1)
        with mock.patch.object(services, 'search_products', mock.AsyncMock(return_value=[snap(1, "Cola", stock=3)])):
            warning = await self.cart_service.edit_quantity(1, "2")
        self.assertIsNone(warning)
        self.assertEqual(self.cart.get(1).quantity, 2)

    async def test_edit_above_live_stock_is_clamped(self):
        self.cart_service.add_from_results(1)
        # stock dropped since the product was added
        with mock.patch.object(services, 'search_products', mock.AsyncMock(return_value=[snap(1, "Cola", stock=2)])):
            warning = await self.cart_service.edit_quantity(1, 10)
        self.assertIsInstance(warning, StockClamped)
        self.assertEqual(self.cart.get(1).quantity, 2)
        self.assertEqual(self.cart.get(1).available, 2)

    async def test_edit_applies_locally_when_lookup_fails(self):
        self.cart_service.add_from_results(1)
        with mock.patch.object(services, 'search_products', mock.AsyncMock(side_effect=LookupFailure())):
            warning = await self.cart_service.edit_quantity(1, 7)
        self.assertIsNone(warning)
        self.assertEqual(self.cart.get(1).quantity, 7)

    async def test_edit_applies_locally_when_product_not_found(self):
        self.cart_service.add_from_results(1)
        with mock.patch.object(services, 'search_products', mock.AsyncMock(return_value=[])):
            await self.cart_service.edit_quantity(1, 4)
        self.assertEqual(self.cart.get(1).quantity, 4)

    async def test_older_edit_answer_is_dropped(self):
        self.cart_service.add_from_results(1)
        gate = asyncio.Event()
        calls = []

        async def fake_search(client, term=""):
            calls.append(term)
            if len(calls) == 1:
                await gate.wait()
                return [snap(1, "Cola", stock=2)]
            return [snap(1, "Cola", stock=10)]

        with mock.patch.object(services, 'search_products', fake_search):
            first = asyncio.create_task(self.cart_service.edit_quantity(1, 5))
            await asyncio.sleep(0)
            await self.cart_service.edit_quantity(1, 7)
            gate.set()
            self.assertIsNone(await first)
        self.assertEqual(self.cart.get(1).quantity, 7)

    async def test_edit_answer_after_removal_does_not_bring_item_back(self):
        self.cart_service.add_from_results(1)
        gate = asyncio.Event()

        async def fake_search(client, term=""):
            await gate.wait()
            return [snap(1, "Cola", stock=3)]

        with mock.patch.object(services, 'search_products', fake_search):
            pending = asyncio.create_task(self.cart_service.edit_quantity(1, 2))
            await asyncio.sleep(0)
            self.cart_service.remove_item(1)
            self.cart_service.add_from_results(1)
            gate.set()
            await pending
        self.assertEqual(self.cart.get(1).quantity, 1)

    async def test_edit_unknown_item_does_nothing(self):
        fake = mock.AsyncMock()
        with mock.patch.object(services, 'search_products', fake):
            self.assertIsNone(await self.cart_service.edit_quantity(9, 3))
        fake.assert_not_awaited()


if __name__ == '__main__':
    unittest.main()
