import unittest

from nutriscan.plan_defaults import (
    ALLERGY_SUBSTITUTIONS,
    DEFAULT_MEAL_PLANS,
    DEFAULT_WORKOUT_PLANS,
    FITNESS_LEVELS,
    MEAL_LIBRARY,
    WORKOUT_LIBRARY,
    UnknownPlanTemplate,
    default_meal_plan,
    default_workout_plan,
    emoji_for_exercise,
    estimate_workout_calories,
    iter_plan_meals,
    substitute_ingredients,
    substitution_rules,
)


class MealTemplateTestCase(unittest.TestCase):
    def test_every_diet_has_three_to_five_meal_days(self):
        for diet_type in MEAL_LIBRARY:
            for meals_per_day in (3, 4, 5):
                plan = DEFAULT_MEAL_PLANS[(diet_type, meals_per_day)]
                meals = list(iter_plan_meals(plan["meals"]))
                self.assertEqual(len(meals), meals_per_day)
                self.assertEqual(len(plan["meals"]["snacks"]), meals_per_day - 3)
                self.assertEqual(plan["calories"], sum(meal["calories"] for meal in meals))
                for meal in meals:
                    for field in ("name", "ingredients", "preparation", "calories", "protein", "carbs", "fats"):
                        self.assertIn(field, meal)

    def test_unknown_selector_raises(self):
        with self.assertRaises(UnknownPlanTemplate):
            default_meal_plan("carnivore", 3)
        with self.assertRaises(KeyError):
            default_meal_plan("balanced", 7)

    def test_diet_aliases_resolve(self):
        self.assertEqual(default_meal_plan("Low Carb", 3)["name"], "Keto 3-Meal Day")
        self.assertEqual(default_meal_plan(None, 3)["name"], "Balanced 3-Meal Day")


class SubstitutionTestCase(unittest.TestCase):
    def test_matching_ingredients_are_replaced_case_insensitively(self):
        rules = substitution_rules(["dairy"])
        result = substitute_ingredients(["1 cup Greek YOGURT", "Spinach", "30 g Feta cheese"], rules)
        self.assertEqual(result, ["Coconut yogurt (dairy-free)", "Spinach", "Marinated tofu cubes"])

    def test_first_matching_rule_wins(self):
        rules = [("soy sauce", "Tamari"), ("soy", "Coconut aminos")]
        self.assertEqual(substitute_ingredients(["1 tbsp soy sauce"], rules), ["Tamari"])

    def test_no_rules_leaves_ingredients_untouched(self):
        ingredients = ["2 eggs", "1 slice bread"]
        self.assertEqual(substitute_ingredients(ingredients, []), ingredients)
        self.assertEqual(substitution_rules(["unobtainium"]), [])

    def test_flag_aliases(self):
        self.assertEqual(substitution_rules(["Dairy-Free"]), substitution_rules(["dairy"]))
        self.assertEqual(substitution_rules(["peanuts"]), substitution_rules(["nuts"]))
        self.assertEqual(substitution_rules(["Type 2 Diabetes"]), substitution_rules(["diabetes"]))

    def test_nut_allergy_removes_every_nut_ingredient(self):
        keywords = [keyword for keyword, _ in ALLERGY_SUBSTITUTIONS["nuts"]]
        for diet_type in MEAL_LIBRARY:
            plan = default_meal_plan(diet_type, 5, allergies=["nuts"])
            for meal in iter_plan_meals(plan["meals"]):
                for ingredient in meal["ingredients"]:
                    for keyword in keywords:
                        self.assertNotIn(keyword, ingredient.lower(), (diet_type, meal["name"]))

    def test_substitution_keeps_untouched_ingredients_and_template(self):
        plan = default_meal_plan("balanced", 3, allergies=["dairy"])
        breakfast = plan["meals"]["breakfast"]["ingredients"]
        self.assertEqual(breakfast[0], "Coconut yogurt (dairy-free)")
        self.assertEqual(breakfast[1:], ["1/2 cup mixed berries", "1/4 cup granola", "1 tsp honey"])
        self.assertEqual(DEFAULT_MEAL_PLANS[("balanced", 3)]["meals"]["breakfast"]["ingredients"][0], "1 cup Greek yogurt")

    def test_health_conditions_apply_after_allergies(self):
        plan = default_meal_plan("keto", 3, health_conditions=["high blood pressure"])
        self.assertIn("Sliced turkey breast", plan["meals"]["breakfast"]["ingredients"])


class WorkoutTemplateTestCase(unittest.TestCase):
    def test_every_goal_and_level_has_grouped_exercises(self):
        for goal in WORKOUT_LIBRARY:
            for level in FITNESS_LEVELS:
                plan = DEFAULT_WORKOUT_PLANS[(goal, level)]
                self.assertEqual(set(plan["exercises"]), {"warmup", "main", "cooldown"})
                for group in plan["exercises"].values():
                    self.assertTrue(group)
                    for exercise in group:
                        for field in ("name", "sets", "reps", "restTime", "targetMuscles", "emoji"):
                            self.assertIn(field, exercise)

    def test_levels_scale_the_main_set(self):
        beginner = default_workout_plan("general-fitness", "beginner")["exercises"]["main"][0]
        advanced = default_workout_plan("general-fitness", "advanced")["exercises"]["main"][0]
        self.assertEqual(beginner["name"], "Push-ups")
        self.assertEqual((beginner["sets"], beginner["reps"], beginner["restTime"]), (2, 8, 75))
        self.assertEqual((advanced["sets"], advanced["reps"], advanced["restTime"]), (4, 16, 45))

    def test_unknown_goal_or_level_raises(self):
        with self.assertRaises(UnknownPlanTemplate):
            default_workout_plan("juggling", "beginner")
        with self.assertRaises(UnknownPlanTemplate):
            default_workout_plan("strength", "expert")

    def test_knee_condition_swaps_high_impact_exercises(self):
        plan = default_workout_plan("Weight Loss", "beginner", health_conditions=["bad knees"])
        names = [ex["name"].lower() for group in plan["exercises"].values() for ex in group]
        for keyword in ("jump", "squat", "lunge", "burpee", "skater"):
            self.assertFalse(any(keyword in name for name in names), keyword)

        original = DEFAULT_WORKOUT_PLANS[("weight-loss", "beginner")]["exercises"]["main"][0]
        swapped = plan["exercises"]["main"][0]
        self.assertEqual(original["name"], "Burpees")
        self.assertEqual(swapped["name"], "Incline Push-ups")
        self.assertEqual((swapped["sets"], swapped["reps"]), (original["sets"], original["reps"]))


class WorkoutHelpersTestCase(unittest.TestCase):
    def test_calorie_estimate(self):
        self.assertEqual(estimate_workout_calories("beginner", 30, 5), 188)
        self.assertEqual(estimate_workout_calories("advanced", 60, 10), 900)
        self.assertEqual(estimate_workout_calories("Intermediate", 40, 0), 280)
        self.assertEqual(estimate_workout_calories(None, 20, 0), 120)

    def test_emoji_lookup(self):
        self.assertEqual(emoji_for_exercise("Push-ups"), "💪")
        self.assertEqual(emoji_for_exercise("Jump Squats"), "🦵")
        self.assertEqual(emoji_for_exercise("Mountain Climbers"), "🧗")
        self.assertEqual(emoji_for_exercise("Jumping Jacks"), "⚡")
        self.assertEqual(emoji_for_exercise("Lap swimming"), "🏊")
        self.assertEqual(emoji_for_exercise("Tai chi"), "💪")


if __name__ == "__main__":
    unittest.main()
