import unittest

from tests.base import ApiTestCase


class OrderStatusTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.pid = self.add_product(stock=10)
        resp = self.place([{"productId": self.pid, "quantity": 1}])
        self.order_id = resp.get_json()["id"]
        self.order_number = resp.get_json()["orderNumber"]

    def set_status(self, status, order_id=None):
        return self.client.put(f"/orders/{order_id or self.order_id}", json={"status": status},
                               headers=self.admin_headers())

    def test_happy_path_to_delivered(self):
        for status in ("processing", "shipped", "delivered"):
            resp = self.set_status(status)
            self.assertEqual(resp.status_code, 200, resp.get_json())
            self.assertEqual(resp.get_json()["status"], status)
        self.assertEqual(self.order(self.order_id)["status"], "delivered")

    def test_status_is_case_insensitive(self):
        self.assertEqual(self.set_status("Processing").status_code, 200)
        self.assertEqual(self.order(self.order_id)["status"], "processing")

    def test_illegal_transitions_rejected(self):
        resp = self.set_status("delivered")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "invalid status transition: pending -> delivered")

        for status in ("processing", "shipped", "delivered"):
            self.set_status(status)
        resp = self.set_status("pending")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.order(self.order_id)["status"], "delivered")

    def test_unknown_status_rejected(self):
        resp = self.set_status("teleported")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("unknown order status", resp.get_json()["error"])

    def test_cancel_is_soft(self):
        resp = self.client.delete(f"/orders/{self.order_id}", headers=self.admin_headers())
        self.assertEqual(resp.status_code, 200)
        order = self.order(self.order_id)
        self.assertIsNotNone(order)
        self.assertEqual(order["status"], "cancelled")
        self.assertEqual(len(order["items"]), 1)

    def test_cancelling_delivered_order_rejected(self):
        for status in ("processing", "shipped", "delivered"):
            self.set_status(status)
        resp = self.client.delete(f"/orders/{self.order_id}", headers=self.admin_headers())
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "invalid status transition: delivered -> cancelled")
        self.assertEqual(self.set_status("cancelled").status_code, 400)

    def test_cancelled_is_terminal(self):
        self.client.delete(f"/orders/{self.order_id}", headers=self.admin_headers())
        self.assertEqual(self.set_status("processing").status_code, 400)

    def test_shipping_address_update_without_status(self):
        resp = self.client.put(f"/orders/{self.order_id}", json={"shippingAddress": "9 New Road"},
                               headers=self.admin_headers())
        self.assertEqual(resp.status_code, 200)
        order = self.order(self.order_id)
        self.assertEqual(order["shipping_address"], "9 New Road")
        self.assertEqual(order["status"], "pending")

    def test_missing_order_is_404(self):
        self.assertEqual(self.set_status("processing", order_id=4040).status_code, 404)
        resp = self.client.delete("/orders/4040", headers=self.admin_headers())
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()["error"], "Order not found")


class OrderListingTests(ApiTestCase):

    def test_admin_list_filters_by_status(self):
        pid = self.add_product(stock=10)
        first = self.place([{"productId": pid, "quantity": 1}]).get_json()["id"]
        second = self.place([{"productId": pid, "quantity": 1}]).get_json()["id"]
        headers = self.admin_headers()
        self.client.put(f"/orders/{first}", json={"status": "processing"}, headers=headers)

        everything = self.client.get("/orders", headers=headers).get_json()
        self.assertEqual([o["id"] for o in everything], [second, first])

        pending = self.client.get("/orders?status=pending", headers=headers).get_json()
        self.assertEqual([o["id"] for o in pending], [second])
        self.assertEqual(self.client.get("/orders?status=lost", headers=headers).status_code, 400)

    def test_admin_order_detail_has_items(self):
        pid = self.add_product(stock=10)
        oid = self.place([{"productId": pid, "quantity": 2}]).get_json()["id"]
        body = self.client.get(f"/orders/{oid}", headers=self.admin_headers()).get_json()
        self.assertEqual(body["items"][0]["quantity"], 2)
        self.assertAlmostEqual(body["items"][0]["line_total"], 179.98)

    def test_order_admin_routes_need_admin_token(self):
        self.assertEqual(self.client.get("/orders").status_code, 401)
        customer = self.register()
        self.assertEqual(self.client.get("/orders", headers=customer).status_code, 403)
        self.assertEqual(self.client.put("/orders/1", json={"status": "shipped"}).status_code, 401)

    def test_guest_lookup_needs_matching_email(self):
        pid = self.add_product(stock=10)
        number = self.place([{"productId": pid, "quantity": 1}]).get_json()["orderNumber"]

        resp = self.client.get(f"/orders/lookup?orderNumber={number.lower()}&email=GUEST@example.com")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["order_number"], number)
        self.assertEqual(len(resp.get_json()["items"]), 1)

        resp = self.client.get(f"/orders/lookup?orderNumber={number}&email=other@example.com")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.get("/orders/lookup?orderNumber=" + number).status_code, 400)


if __name__ == "__main__":
    unittest.main()
