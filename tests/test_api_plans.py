import unittest
from unittest.mock import patch

from api_case import ApiTestCase
from nutriscan.ai import AIServiceError
from nutriscan.plan_defaults import iter_plan_meals

AI_DOWN = AIServiceError("OpenAI request failed: timed out")

SIMPLE_MEALS = {
    "breakfast": {"name": "Oats", "ingredients": ["1/2 cup oats"], "calories": 300},
    "lunch": {"name": "Salad", "ingredients": ["greens"], "calories": 450},
    "dinner": {"name": "Salmon", "ingredients": ["salmon fillet"], "calories": 650},
}

PUSH_UPS = {"name": "Push-ups", "sets": 3, "reps": 10, "restTime": 60}


class MealPlanCrudTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.register()

    def _create(self, client=None, **overrides):
        payload = {"name": "Weekday plan", "description": "Simple", "calories": 1400, "meals": SIMPLE_MEALS}
        payload.update(overrides)
        return (client or self.client).post("/api/meal-plans", json=payload)

    def test_create_list_get_delete(self):
        response = self._create()
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["userId"], self.user["id"])
        self.assertEqual(plan["meals"]["dinner"]["name"], "Salmon")

        self.assertEqual([p["id"] for p in self.client.get("/api/meal-plans").get_json()], [plan["id"]])
        self.assertEqual(self.client.get(f"/api/meal-plans/{plan['id']}").get_json()["name"], "Weekday plan")

        self.assertEqual(self.client.delete(f"/api/meal-plans/{plan['id']}").status_code, 200)
        self.assertJsonError(self.client.get(f"/api/meal-plans/{plan['id']}"), 404)
        self.assertEqual(self.client.get("/api/meal-plans").get_json(), [])

    def test_create_validation(self):
        self.assertJsonError(self._create(name=""), 400)
        self.assertJsonError(self._create(meals=[]), 400)
        self.assertJsonError(self._create(calories="lots"), 400)
        self.assertEqual(self._create(calories=None).status_code, 201)

    def test_other_users_plans_are_hidden(self):
        bob_client = self.app.test_client()
        self.register(username="bob", client=bob_client)
        bob_plan = self._create(client=bob_client, name="Bob's plan").get_json()

        self.assertEqual(self.client.get("/api/meal-plans").get_json(), [])
        self.assertJsonError(self.client.get(f"/api/meal-plans/{bob_plan['id']}"), 403)
        self.assertJsonError(self.client.delete(f"/api/meal-plans/{bob_plan['id']}"), 403)
        self.assertJsonError(self.client.get("/api/meal-plans/abc"), 400)


class MealPlanGenerateTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    @patch("nutriscan.routes.generate_meal_plan")
    def test_generate_with_ai(self, generate):
        generate.return_value = {"name": "Lean Day", "description": "High protein", "meals": SIMPLE_MEALS}
        response = self.client.post(
            "/api/meal-plans/generate",
            json={"calories": 1800, "preferences": ["high-protein"], "restrictions": ["gluten"], "healthConditions": ["diabetes"]},
        )
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["name"], "Lean Day")
        self.assertEqual(plan["calories"], 1800)
        generate.assert_called_once_with(1800, ["high-protein"], ["gluten"], 3, ["diabetes"])

    @patch("nutriscan.routes.generate_meal_plan", side_effect=AI_DOWN)
    def test_fallback_uses_template_with_substitutions(self, _generate):
        with self.assertLogs(self.app.logger, level="WARNING"):
            response = self.client.post(
                "/api/meal-plans/generate",
                json={"calories": 2000, "preferences": ["vegan"], "restrictions": ["nuts"], "mealsPerDay": 4},
            )
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["name"], "Vegan 4-Meal Day")
        self.assertEqual(plan["calories"], 2000)
        self.assertEqual(len(plan["meals"]["snacks"]), 1)

        ingredients = [item.lower() for meal in iter_plan_meals(plan["meals"]) for item in meal["ingredients"]]
        self.assertNotIn("3/4 cup almond milk", ingredients)
        self.assertIn("unsweetened oat milk", ingredients)
        self.assertFalse(any("almond" in item for item in ingredients))

    @patch("nutriscan.routes.generate_meal_plan", side_effect=AI_DOWN)
    def test_fallback_honours_diet_type_and_free_preferences(self, _generate):
        response = self.client.post(
            "/api/meal-plans/generate",
            json={"calories": 1600, "dietType": "keto", "preferences": ["dairy-free"]},
        )
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["name"], "Keto 3-Meal Day")
        ingredients = [item.lower() for meal in iter_plan_meals(plan["meals"]) for item in meal["ingredients"]]
        self.assertIn("nutritional yeast", ingredients)
        self.assertFalse(any("ghee" in item or "blue cheese" in item for item in ingredients))

    @patch("nutriscan.routes.generate_meal_plan", side_effect=AI_DOWN)
    def test_fallback_without_template_is_422(self, _generate):
        response = self.client.post("/api/meal-plans/generate", json={"calories": 2000, "mealsPerDay": 7})
        self.assertJsonError(response, 422)
        self.assertEqual(self.client.get("/api/meal-plans").get_json(), [])

    def test_generate_validation(self):
        for payload in ({}, {"calories": 0}, {"calories": "abc"}, {"calories": 2000, "mealsPerDay": 0}):
            self.assertJsonError(self.client.post("/api/meal-plans/generate", json=payload), 400)


class WorkoutPlanCrudTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.register()

    def test_create_estimates_calories_when_missing(self):
        response = self.client.post(
            "/api/workout-plans",
            json={"name": "Quick circuit", "difficulty": "beginner", "duration": 30, "exercises": [PUSH_UPS] * 5},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["caloriesBurned"], 188)

    def test_create_keeps_given_calories(self):
        response = self.client.post(
            "/api/workout-plans",
            json={"name": "Evening run", "exercises": {"main": [PUSH_UPS]}, "caloriesBurned": 420},
        )
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["caloriesBurned"], 420)
        self.assertEqual(plan["exercises"]["main"][0]["name"], "Push-ups")

    def test_create_validation(self):
        self.assertJsonError(self.client.post("/api/workout-plans", json={"exercises": [PUSH_UPS]}), 400)
        self.assertJsonError(self.client.post("/api/workout-plans", json={"name": "Empty", "exercises": []}), 400)
        self.assertJsonError(
            self.client.post("/api/workout-plans", json={"name": "Bad", "exercises": [PUSH_UPS], "caloriesBurned": -5}),
            400,
        )

    def test_get_and_delete_are_owner_only(self):
        plan = self.client.post(
            "/api/workout-plans", json={"name": "Mine", "exercises": [PUSH_UPS], "caloriesBurned": 100}
        ).get_json()
        bob_client = self.app.test_client()
        self.register(username="bob", client=bob_client)

        self.assertJsonError(bob_client.get(f"/api/workout-plans/{plan['id']}"), 403)
        self.assertJsonError(bob_client.delete(f"/api/workout-plans/{plan['id']}"), 403)
        self.assertEqual(bob_client.get("/api/workout-plans").get_json(), [])

        self.assertEqual(self.client.get(f"/api/workout-plans/{plan['id']}").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/workout-plans/{plan['id']}").status_code, 200)
        self.assertJsonError(self.client.get(f"/api/workout-plans/{plan['id']}"), 404)


class WorkoutPlanGenerateTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    @patch("nutriscan.routes.generate_workout_plan")
    def test_generate_with_ai(self, generate):
        generate.return_value = {
            "name": "Core Blast",
            "description": "Short core session",
            "exercises": {"warmup": [], "main": [PUSH_UPS], "cooldown": []},
            "caloriesBurned": 300,
        }
        response = self.client.post(
            "/api/workout-plans/generate",
            json={"fitnessLevel": "Intermediate", "goals": ["core strength"], "duration": 25},
        )
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["caloriesBurned"], 300)
        self.assertEqual(plan["exercises"]["difficulty"], "intermediate")
        self.assertEqual(plan["exercises"]["duration"], 25)
        generate.assert_called_once_with("intermediate", ["core strength"], 25, [])

    @patch("nutriscan.routes.generate_workout_plan", side_effect=AI_DOWN)
    def test_fallback_uses_template_and_requested_duration(self, _generate):
        with self.assertLogs(self.app.logger, level="WARNING"):
            response = self.client.post(
                "/api/workout-plans/generate",
                json={"fitnessLevel": "advanced", "goals": ["core", "strength"], "duration": 45},
            )
        self.assertEqual(response.status_code, 201)
        plan = response.get_json()
        self.assertEqual(plan["name"], "Advanced Strength Foundations")
        self.assertEqual(plan["caloriesBurned"], 675)
        self.assertEqual(plan["exercises"]["duration"], 45)
        self.assertEqual(len(plan["exercises"]["main"]), 6)

    @patch("nutriscan.routes.generate_workout_plan", side_effect=AI_DOWN)
    def test_fallback_applies_health_conditions(self, _generate):
        response = self.client.post(
            "/api/workout-plans/generate",
            json={"fitnessLevel": "beginner", "goals": ["weight loss"], "duration": 30, "healthConditions": ["bad knees"]},
        )
        self.assertEqual(response.status_code, 201)
        names = [ex["name"] for ex in response.get_json()["exercises"]["main"]]
        self.assertEqual(names[0], "Incline Push-ups")
        self.assertFalse(any("jump" in name.lower() for name in names))

    @patch("nutriscan.routes.generate_workout_plan", side_effect=AI_DOWN)
    def test_fallback_without_template_is_422(self, _generate):
        response = self.client.post(
            "/api/workout-plans/generate",
            json={"fitnessLevel": "expert", "goals": ["strength"], "duration": 45},
        )
        self.assertJsonError(response, 422)

    def test_generate_validation(self):
        for payload in (
            {},
            {"fitnessLevel": "beginner", "goals": [], "duration": 30},
            {"fitnessLevel": "beginner", "goals": ["strength"]},
            {"fitnessLevel": "beginner", "goals": ["strength"], "duration": -10},
        ):
            self.assertJsonError(self.client.post("/api/workout-plans/generate", json=payload), 400)


if __name__ == "__main__":
    unittest.main()
