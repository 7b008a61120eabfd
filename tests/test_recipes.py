import unittest

from bson import ObjectId

from tests.base import ApiTestCase, recipe_payload


class RecipeTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.token, self.user_id = self.register(full_name="Recipe Owner")

    def test_create_sets_owner_and_defaults(self):
        recipe_id = self.create_recipe(self.token, image="/img/cover.png")
        doc = self.recipe_doc(recipe_id)
        self.assertEqual(doc["user_id"], self.user_id)
        self.assertEqual(doc["images"], ["/img/cover.png", "/img/jollof.png"])
        self.assertEqual(doc["average_rating"], 0)
        self.assertEqual(doc["review_count"], 0)
        self.assertEqual(doc["likes"], 0)

    def test_create_requires_an_image(self):
        response = self.client.post(
            "/api/recipes",
            json=recipe_payload(images=[]),
            headers=self.auth(self.token),
        )
        self.assertEqual(response.status_code, 400)

    def test_get_increments_views_and_joins_owner(self):
        recipe_id = self.create_recipe(self.token)
        self.client.get(f"/api/recipes/{recipe_id}")
        body = self.client.get(f"/api/recipes/{recipe_id}").json()
        self.assertEqual(body["views"], 2)
        self.assertEqual(body["user"]["full_name"], "Recipe Owner")
        self.assertEqual(self.client.get(f"/api/recipes/{ObjectId()}").status_code, 404)

    def test_list_search_and_filter(self):
        self.create_recipe(self.token, title="Puff Puff", category="Snack")
        self.create_recipe(self.token, title="Ndole", description="Bitterleaf stew", category="Main Course")
        self.create_recipe(self.token, title="Plantain Chips", category="Snack")

        body = self.client.get("/api/recipes", params={"search": "PUFF"}).json()
        self.assertEqual([r["title"] for r in body["recipes"]], ["Puff Puff"])

        body = self.client.get("/api/recipes", params={"search": "bitterleaf"}).json()
        self.assertEqual(body["total_recipes"], 1)

        body = self.client.get("/api/recipes", params={"category": "Snack", "limit": 1}).json()
        self.assertEqual(body["total_recipes"], 2)
        self.assertEqual(body["total_pages"], 2)
        self.assertEqual(body["recipes"][0]["title"], "Plantain Chips")

    def test_owner_only_update(self):
        recipe_id = self.create_recipe(self.token)
        other_token, _ = self.register()
        forbidden = self.client.put(
            f"/api/recipes/{recipe_id}", json={"title": "Mine now"}, headers=self.auth(other_token)
        )
        self.assertEqual(forbidden.status_code, 403)

        response = self.client.put(
            f"/api/recipes/{recipe_id}", json={"serves": 6}, headers=self.auth(self.token)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["recipe"]["serves"], 6)

    def test_owner_delete_cascades(self):
        recipe_id = self.create_recipe(self.token)
        reviewer, _ = self.register()
        self.add_review(reviewer, recipe_id, 3)

        response = self.client.delete(f"/api/recipes/{recipe_id}", headers=self.auth(self.token))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.recipe_doc(recipe_id))
        self.assertEqual(self.db["review"].count_documents({"recipe_id": recipe_id}), 0)

    def test_like_toggle(self):
        recipe_id = self.create_recipe(self.token)
        fan_token, fan_id = self.register()
        url = f"/api/recipes/{recipe_id}/like"

        liked = self.client.post(url, headers=self.auth(fan_token)).json()
        self.assertEqual(liked, {"likes": 1, "is_liked": True})
        self.assertEqual(self.recipe_doc(recipe_id)["liked_by"], [fan_id])

        unliked = self.client.post(url, headers=self.auth(fan_token)).json()
        self.assertEqual(unliked, {"likes": 0, "is_liked": False})
        self.assertEqual(self.recipe_doc(recipe_id)["liked_by"], [])


if __name__ == "__main__":
    unittest.main()
