import unittest
from datetime import datetime

from bson import ObjectId

from admin import month_starts
from tests.base import ApiTestCase


class AdminGateTests(ApiTestCase):
    def test_non_admin_is_forbidden(self):
        token, _ = self.register()
        for method, path in (
            ("get", "/api/admin/dashboard/stats"),
            ("get", "/api/admin/users"),
            ("put", f"/api/admin/users/{ObjectId()}/admin"),
            ("delete", f"/api/admin/recipes/{ObjectId()}"),
        ):
            response = getattr(self.client, method)(path, headers=self.auth(token))
            self.assertEqual(response.status_code, 403, path)
            self.assertEqual(response.json()["detail"], "Access denied. Admin privileges required.")

    def test_missing_token_is_unauthenticated(self):
        self.assertEqual(self.client.get("/api/admin/users").status_code, 401)

    def test_role_backfill_is_not_an_http_route(self):
        token, _ = self.register_admin()
        response = self.client.post("/api/admin/fix-user-roles", headers=self.auth(token))
        self.assertIn(response.status_code, (404, 405))


class AdminTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin_token, self.admin_id = self.register_admin()
        self.headers = self.auth(self.admin_token)
        self.cook_token, self.cook_id = self.register(full_name="Bola Cook", email="bola@mail.com")
        self.recipe_id = self.create_recipe(self.cook_token, category="Soup")

    def test_dashboard_stats(self):
        self.create_recipe(self.cook_token, title="Pepper Soup", category="Soup")
        self.create_recipe(self.cook_token, title="Chin Chin", category="Snack")
        self.add_review(self.admin_token, self.recipe_id, 5)
        self.add_review(self.cook_token, self.recipe_id, 3)

        response = self.client.get("/api/admin/dashboard/stats", headers=self.headers)
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["stats"]["total_users"], 2)
        self.assertEqual(body["stats"]["total_recipes"], 3)
        self.assertEqual(body["stats"]["total_reviews"], 2)
        self.assertEqual(body["stats"]["active_users"], 2)
        self.assertEqual(body["stats"]["new_recipes_this_month"], 3)

        self.assertEqual(body["top_recipes"][0]["id"], self.recipe_id)
        self.assertEqual(body["recent_recipes"][0]["user"]["full_name"], "Bola Cook")
        self.assertNotIn("password_hash", body["recent_users"][0])

        charts = body["charts"]
        self.assertEqual(len(charts["user_growth"]), 6)
        self.assertEqual(charts["user_growth"][-1]["users"], 2)
        self.assertEqual(charts["monthly_activity"][-1], {
            "month": charts["user_growth"][-1]["month"], "recipes": 3, "reviews": 2,
        })
        self.assertEqual(charts["recipe_categories"][0], {"category": "Soup", "count": 2})
        self.assertEqual(charts["ratings_distribution"], [
            {"rating": 3, "count": 1}, {"rating": 5, "count": 1},
        ])

    def test_list_users_with_role_filter(self):
        self.db["user"].insert_one({"full_name": "Legacy", "email": "legacy@mail.com"})
        self.db["user"].insert_one({"full_name": "Blank", "email": "blank@mail.com", "role": ""})

        body = self.client.get("/api/admin/users", params={"role": "user"}, headers=self.headers).json()
        self.assertEqual(body["total_users"], 3)
        self.assertNotIn(self.admin_id, [u["id"] for u in body["users"]])

        body = self.client.get("/api/admin/users", params={"role": "admin"}, headers=self.headers).json()
        self.assertEqual([u["id"] for u in body["users"]], [self.admin_id])

        body = self.client.get(
            "/api/admin/users", params={"role": "user", "search": "BOLA"}, headers=self.headers
        ).json()
        self.assertEqual(body["total_users"], 1)
        user = body["users"][0]
        self.assertEqual(user["recipe_count"], 1)
        self.assertEqual(user["review_count"], 0)
        self.assertNotIn("password_hash", user)

    def test_list_recipes_and_reviews(self):
        self.create_recipe(self.cook_token, title="Suya", description="Spiced grilled beef", category="Grill")
        self.add_review(self.admin_token, self.recipe_id, 2, "Too salty for me")
        self.add_review(self.cook_token, self.recipe_id, 5, "Perfect")

        recipes = self.client.get(
            "/api/admin/recipes", params={"search": "grilled"}, headers=self.headers
        ).json()
        self.assertEqual(recipes["total_recipes"], 1)
        self.assertEqual(recipes["recipes"][0]["user"]["email"], "bola@mail.com")

        recipes = self.client.get(
            "/api/admin/recipes", params={"category": "Soup"}, headers=self.headers
        ).json()
        self.assertEqual(recipes["total_recipes"], 1)

        reviews = self.client.get(
            "/api/admin/reviews", params={"search": "salty"}, headers=self.headers
        ).json()
        self.assertEqual(reviews["total_reviews"], 1)
        self.assertEqual(reviews["reviews"][0]["recipe"]["title"], "Jollof Rice")

        reviews = self.client.get("/api/admin/reviews", params={"rating": 5}, headers=self.headers).json()
        self.assertEqual([r["comment"] for r in reviews["reviews"]], ["Perfect"])

    def test_toggle_user_status(self):
        url = f"/api/admin/users/{self.cook_id}/status"
        response = self.client.put(url, json={"is_active": False}, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "User deactivated successfully")
        self.assertEqual(
            self.client.get("/api/auth/me", headers=self.auth(self.cook_token)).status_code, 403
        )

        response = self.client.put(url, json={"is_active": True}, headers=self.headers)
        self.assertTrue(response.json()["user"]["is_active"])
        self.assertEqual(
            self.client.get("/api/auth/me", headers=self.auth(self.cook_token)).status_code, 200
        )

        missing = self.client.put(
            f"/api/admin/users/{ObjectId()}/status", json={"is_active": False}, headers=self.headers
        )
        self.assertEqual(missing.status_code, 404)

    def test_promote_user(self):
        response = self.client.put(f"/api/admin/users/{self.cook_id}/admin", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["role"], "admin")
        promoted = self.client.get("/api/admin/users", headers=self.auth(self.cook_token))
        self.assertEqual(promoted.status_code, 200)

    def test_delete_recipe_cascades_to_reviews(self):
        other_recipe = self.create_recipe(self.cook_token, title="Kept")
        self.add_review(self.admin_token, self.recipe_id, 4)
        self.add_review(self.cook_token, self.recipe_id, 2)
        self.add_review(self.cook_token, other_recipe, 5)

        response = self.client.delete(f"/api/admin/recipes/{self.recipe_id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.recipe_doc(self.recipe_id))
        listed = self.client.get(f"/api/reviews/recipe/{self.recipe_id}").json()
        self.assertEqual(listed["total_reviews"], 0)
        self.assertEqual(self.db["review"].count_documents({"recipe_id": other_recipe}), 1)

        again = self.client.delete(f"/api/admin/recipes/{self.recipe_id}", headers=self.headers)
        self.assertEqual(again.status_code, 404)

    def test_admin_delete_review_recomputes(self):
        keep = self.add_review(self.cook_token, self.recipe_id, 2).json()["review"]["id"]
        drop = self.add_review(self.admin_token, self.recipe_id, 5).json()["review"]["id"]
        self.assertEqual(self.recipe_doc(self.recipe_id)["average_rating"], 3.5)

        response = self.client.delete(f"/api/admin/reviews/{drop}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        recipe = self.recipe_doc(self.recipe_id)
        self.assertEqual(recipe["average_rating"], 2)
        self.assertEqual(recipe["rating_count"], 1)
        self.assertEqual(recipe["reviews"], [keep])

        missing = self.client.delete(f"/api/admin/reviews/{drop}", headers=self.headers)
        self.assertEqual(missing.status_code, 404)


class MonthBucketTests(unittest.TestCase):
    def test_month_starts_cross_year(self):
        starts = month_starts(datetime(2026, 2, 15, 10, 30))
        self.assertEqual(starts[0], datetime(2025, 9, 1))
        self.assertEqual(starts[-1], datetime(2026, 2, 1))
        self.assertEqual([s.strftime("%b %Y") for s in starts][2:4], ["Nov 2025", "Dec 2025"])


if __name__ == "__main__":
    unittest.main()
