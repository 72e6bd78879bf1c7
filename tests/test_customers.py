import unittest

from tests.base import ApiTestCase


class CustomerAdminTests(ApiTestCase):

    def create(self, **payload):
        body = {"name": "John Doe", "email": "john@example.com", "phone": "+1-234-567-8900"}
        body.update(payload)
        return self.client.post("/customers", json=body, headers=self.admin_headers())

    def test_create_and_duplicate_email(self):
        resp = self.create()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.get_json()["email"], "john@example.com")
        resp = self.create(email="JOHN@example.com")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "Customer with this email already exists")
        self.assertEqual(self.create(name="").status_code, 400)

    def test_aggregates_are_computed(self):
        headers = self.register()
        pid = self.add_product(price="89.99", stock=10)
        self.place([{"productId": pid, "quantity": 1}], headers=headers, customerEmail="jane@example.com")
        self.place([{"productId": pid, "quantity": 2}], headers=headers)
        self.create()

        rows = self.client.get("/customers", headers=self.admin_headers()).get_json()
        by_email = {r["email"]: r for r in rows}
        jane = by_email["jane@example.com"]
        self.assertEqual(jane["total_orders"], 2)
        # 98.99 + 10% tax + 10 shipping, then 179.98 + 18.00 tax
        self.assertAlmostEqual(jane["total_spent"], 108.99 + 197.98)
        self.assertIsNotNone(jane["last_order_date"])
        john = by_email["john@example.com"]
        self.assertEqual((john["total_orders"], john["total_spent"], john["last_order_date"]), (0, 0.0, None))

    def test_search(self):
        self.create()
        self.create(name="Ahmed Hassan", email="ahmed@example.com")
        rows = self.client.get("/customers?search=ahmed", headers=self.admin_headers()).get_json()
        self.assertEqual([r["name"] for r in rows], ["Ahmed Hassan"])

    def test_search_wildcards_match_literally(self):
        self.create()
        self.create(name="Mary_Ann Lee", email="mary_ann@example.com")
        rows = self.client.get("/customers?search=y_a", headers=self.admin_headers()).get_json()
        self.assertEqual([r["name"] for r in rows], ["Mary_Ann Lee"])
        rows = self.client.get("/customers?search=%25", headers=self.admin_headers()).get_json()
        self.assertEqual(rows, [])

    def test_text_fields_must_be_strings(self):
        for bad in ({"name": 5}, {"email": ["john@example.com"]}, {"city": {"name": "Leeds"}}):
            with self.subTest(bad=bad):
                resp = self.create(**bad)
                self.assertEqual(resp.status_code, 400)
                self.assertIn("must be a string", resp.get_json()["error"])
        self.assertEqual(self.client.get("/customers", headers=self.admin_headers()).get_json(), [])

    def test_detail_update_and_delete_keeps_orders(self):
        headers = self.register()
        pid = self.add_product(stock=10)
        order_id = self.place([{"productId": pid, "quantity": 1}], headers=headers,
                              customerEmail="jane@example.com").get_json()["id"]
        cid = self.customer_id("jane@example.com")
        admin = self.admin_headers()

        detail = self.client.get(f"/customers/{cid}", headers=admin).get_json()
        self.assertEqual([o["id"] for o in detail["orders"]], [order_id])

        self.create()
        resp = self.client.put(f"/customers/{cid}", json={"email": "john@example.com"}, headers=admin)
        self.assertEqual(resp.status_code, 400)
        resp = self.client.put(f"/customers/{cid}", json={"city": "Leeds"}, headers=admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get(f"/customers/{cid}", headers=admin).get_json()["city"], "Leeds")

        self.assertEqual(self.client.delete(f"/customers/{cid}", headers=admin).status_code, 200)
        self.assertEqual(self.client.get(f"/customers/{cid}", headers=admin).status_code, 404)
        order = self.order(order_id)
        self.assertIsNone(order["customer_id"])
        self.assertEqual(order["customer_email"], "jane@example.com")

    def test_missing_customer(self):
        admin = self.admin_headers()
        self.assertEqual(self.client.get("/customers/77", headers=admin).status_code, 404)
        self.assertEqual(self.client.put("/customers/77", json={"name": "X"}, headers=admin).status_code, 404)
        self.assertEqual(self.client.delete("/customers/77", headers=admin).status_code, 404)


class AccountTests(ApiTestCase):

    def test_profile_and_orders(self):
        pid = self.add_product(stock=10)
        # guest order placed before registering
        self.place([{"productId": pid, "quantity": 1}], customerEmail="jane@example.com")
        headers = self.register()
        self.place([{"productId": pid, "quantity": 1}], headers=headers, customerEmail="jane@example.com")
        self.place([{"productId": pid, "quantity": 1}], customerEmail="someone@example.com")

        profile = self.client.get("/account", headers=headers).get_json()
        self.assertEqual(profile["email"], "jane@example.com")
        self.assertEqual(profile["total_orders"], 1)

        orders = self.client.get("/account/orders", headers=headers).get_json()
        self.assertEqual(len(orders), 2)
        self.assertTrue(all(o["customer_email"] == "jane@example.com" for o in orders))

    def test_update_profile_and_password(self):
        headers = self.register()
        resp = self.client.put("/account", json={"phone": "+44 20 7946 0000", "password": "n3w-pass"}, headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["user"]["phone"], "+44 20 7946 0000")
        resp = self.client.post("/auth/customer-login", json={"email": "jane@example.com", "password": "n3w-pass"})
        self.assertEqual(resp.status_code, 200)

    def test_account_needs_customer_token(self):
        self.assertEqual(self.client.get("/account").status_code, 401)
        self.assertEqual(self.client.get("/account", headers=self.admin_headers()).status_code, 403)


class DashboardTests(ApiTestCase):

    def test_stats(self):
        low = self.add_product(name="Cat Eye", stock=3)
        self.add_product(name="Tee", price="29.99", stock=50, category="clothes")
        first = self.place([{"productId": low, "quantity": 1}]).get_json()
        self.place([{"productId": low, "quantity": 1}])
        admin = self.admin_headers()
        self.client.delete(f"/orders/{first['id']}", headers=admin)

        stats = self.client.get("/admin/stats", headers=admin).get_json()
        self.assertEqual(stats["products"], 2)
        self.assertEqual(stats["low_stock"], [{"id": low, "name": "Cat Eye", "stock": 1}])
        self.assertEqual(stats["orders"]["pending"], 1)
        self.assertEqual(stats["orders"]["cancelled"], 1)
        self.assertEqual(stats["orders"]["delivered"], 0)
        self.assertAlmostEqual(stats["revenue"], first["total"])
        self.assertEqual(stats["customers"], 0)


if __name__ == "__main__":
    unittest.main()
