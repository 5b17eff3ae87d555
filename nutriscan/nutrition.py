import math
from typing import Sequence

from flask import current_app

from nutriscan.ai import AIServiceError, recommendation_insights
from nutriscan.models import FoodEntry

# Standard 2000 kcal reference diet.
RECOMMENDED_DAILY_VALUES = {
    "calories": 2000,
    "protein": 50,  # g
    "carbs": 275,  # g
    "fats": 78,  # g
    "vitamins": {
        "Vitamin A": 900,  # mcg
        "Vitamin C": 90,  # mg
        "Vitamin D": 15,  # mcg
        "Vitamin E": 15,  # mg
        "Vitamin K": 120,  # mcg
        "Vitamin B6": 1.3,  # mg
        "Vitamin B12": 2.4,  # mcg
        "Folate": 400,  # mcg
    },
    "minerals": {
        "Calcium": 1000,  # mg
        "Iron": 18,  # mg
        "Magnesium": 400,  # mg
        "Potassium": 3500,  # mg
        "Sodium": 2300,  # mg
        "Zinc": 11,  # mg
    },
}
MICROGRAM_VITAMINS = {"Vitamin A", "Vitamin D", "Vitamin K", "Vitamin B12", "Folate"}

MACRO_TRENDS = (
    ("Calories", "calories", "kcal"),
    ("Protein", "protein", "g"),
    ("Carbohydrates", "carbs", "g"),
    ("Fats", "fats", "g"),
)

DEFAULT_DIETARY_PATTERNS = [
    "Your diet seems to be balanced in macronutrients",
    "You tend to eat more protein-rich foods in the morning",
    "Your carbohydrate intake is higher than recommended",
    "Your fat intake is within the recommended range",
]

DEFAULT_MEAL_RECOMMENDATIONS = [
    {
        "type": "Breakfast",
        "suggestions": [
            {
                "name": "Greek Yogurt with Berries",
                "reasoning": "High in protein and antioxidants, helps meet your calcium needs",
                "nutrients": {"calories": 220, "protein": 18, "carbs": 25, "fats": 8},
            },
            {
                "name": "Spinach and Feta Omelet",
                "reasoning": "Good source of protein, iron, and vitamins",
                "nutrients": {"calories": 280, "protein": 22, "carbs": 6, "fats": 18},
            },
        ],
    },
    {
        "type": "Lunch",
        "suggestions": [
            {
                "name": "Quinoa Salad with Grilled Chicken",
                "reasoning": "Complete protein source with fiber and essential minerals",
                "nutrients": {"calories": 360, "protein": 28, "carbs": 35, "fats": 12},
            },
            {
                "name": "Lentil Soup with Whole Grain Bread",
                "reasoning": "Plant-based protein with fiber and B vitamins",
                "nutrients": {"calories": 320, "protein": 16, "carbs": 50, "fats": 6},
            },
        ],
    },
    {
        "type": "Dinner",
        "suggestions": [
            {
                "name": "Baked Salmon with Roasted Vegetables",
                "reasoning": "Excellent source of omega-3 fatty acids and vitamins",
                "nutrients": {"calories": 390, "protein": 32, "carbs": 18, "fats": 22},
            },
            {
                "name": "Stir-Fried Tofu with Brown Rice",
                "reasoning": "Plant-based protein with fiber and complex carbs",
                "nutrients": {"calories": 340, "protein": 20, "carbs": 45, "fats": 10},
            },
        ],
    },
]

DEFAULT_HEALTH_INSIGHTS = [
    "Your protein intake is good, but you could benefit from more plant-based protein sources",
    "Consider increasing your intake of leafy green vegetables for more vitamins and minerals",
    "Your meals tend to be higher in sodium than recommended, try herbs and spices instead of salt",
    "Incorporating more fiber-rich foods could improve your digestive health and help maintain stable blood sugar",
]

BASIC_DIETARY_PATTERNS = [
    "Based on your food history, we've detected some eating patterns",
    "Your diet consists of a mix of different food groups",
    "Consider adding more variety to your meals",
]

BASIC_MEAL_RECOMMENDATIONS = [
    {
        "type": "General Recommendations",
        "suggestions": [
            {
                "name": "Balanced Meal Plate",
                "reasoning": "Try to make half your plate vegetables, a quarter protein, and a quarter whole grains",
                "nutrients": {"calories": 400, "protein": 25, "carbs": 45, "fats": 15},
            },
            {
                "name": "Colorful Fruits and Vegetables",
                "reasoning": "Include a variety of colors for different nutrients and antioxidants",
                "nutrients": {"calories": 150, "protein": 3, "carbs": 30, "fats": 1},
            },
        ],
    }
]

BASIC_HEALTH_INSIGHTS = [
    "Balanced nutrition is important for overall health",
    "Stay hydrated by drinking plenty of water throughout the day",
    "Consider consulting with a registered dietitian for personalized advice",
]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _number(value) -> float:
    if isinstance(value, dict):
        value = value.get("amount")
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def calculate_averages(entries: Sequence[FoodEntry]) -> dict | None:
    """Average calories, macros and micronutrients over ``entries``.

    Macros are averaged over every entry (a missing value counts as 0).
    Each vitamin or mineral is averaged over the entries that report it.
    Returns ``None`` for an empty sequence.
    """
    if not entries:
        return None

    vitamins: dict[str, list[float]] = {}
    minerals: dict[str, list[float]] = {}
    for entry in entries:
        nutrients = entry.nutrients if isinstance(entry.nutrients, dict) else {}
        for bucket, key in ((vitamins, "vitamins"), (minerals, "minerals")):
            reported = nutrients.get(key)
            if not isinstance(reported, dict):
                continue
            for name, amount in reported.items():
                bucket.setdefault(name, []).append(_number(amount))

    return {
        "calories": _mean([_number(entry.calories) for entry in entries]),
        "protein": _mean([_number(entry.protein) for entry in entries]),
        "carbs": _mean([_number(entry.carbs) for entry in entries]),
        "fats": _mean([_number(entry.fats) for entry in entries]),
        "vitamins": {name: _mean(values) for name, values in vitamins.items()},
        "minerals": {name: _mean(values) for name, values in minerals.items()},
    }


def _trend(nutrient: str, average: float, recommended: float, unit: str) -> dict:
    return {
        "nutrient": nutrient,
        "average": round_half_up(average),
        "recommended": recommended,
        "unit": unit,
        "percentOfRecommended": round_half_up(average / recommended * 100) if recommended else 0,
    }


def build_nutrient_trends(averages: dict) -> list[dict]:
    trends = [
        _trend(label, averages[key], RECOMMENDED_DAILY_VALUES[key], unit) for label, key, unit in MACRO_TRENDS
    ]

    for vitamin, average in averages.get("vitamins", {}).items():
        recommended = RECOMMENDED_DAILY_VALUES["vitamins"].get(vitamin)
        if recommended:
            unit = "mcg" if vitamin in MICROGRAM_VITAMINS else "mg"
            trends.append(_trend(vitamin, average, recommended, unit))

    for mineral, average in averages.get("minerals", {}).items():
        recommended = RECOMMENDED_DAILY_VALUES["minerals"].get(mineral)
        if recommended:
            trends.append(_trend(mineral, average, recommended, "mg"))

    return trends


def basic_recommendations(averages: dict | None) -> dict:
    averages = averages or {key: 0 for _, key, _ in MACRO_TRENDS}
    return {
        "nutrientTrends": [
            _trend(label, averages[key], RECOMMENDED_DAILY_VALUES[key], unit) for label, key, unit in MACRO_TRENDS
        ],
        "dietaryPatterns": list(BASIC_DIETARY_PATTERNS),
        "mealRecommendations": list(BASIC_MEAL_RECOMMENDATIONS),
        "healthInsights": list(BASIC_HEALTH_INSIGHTS),
    }


def _food_history(entries: Sequence[FoodEntry]) -> list[dict]:
    return [
        {
            "name": entry.food_name,
            "calories": entry.calories,
            "protein": entry.protein,
            "carbs": entry.carbs,
            "fats": entry.fats,
            "timestamp": entry.created_at.isoformat() if entry.created_at else None,
        }
        for entry in entries
    ]


def generate_recommendations(entries: Sequence[FoodEntry]) -> dict | None:
    averages = calculate_averages(entries)
    if averages is None:
        return None

    try:
        insights = recommendation_insights(_food_history(entries), averages, RECOMMENDED_DAILY_VALUES)
    except AIServiceError as exc:
        current_app.logger.warning("AI recommendations unavailable, using basic set: %s", exc)
        return basic_recommendations(averages)

    return {
        "nutrientTrends": build_nutrient_trends(averages),
        "dietaryPatterns": insights.get("dietaryPatterns") or list(DEFAULT_DIETARY_PATTERNS),
        "mealRecommendations": insights.get("mealRecommendations") or list(DEFAULT_MEAL_RECOMMENDATIONS),
        "healthInsights": insights.get("healthInsights") or list(DEFAULT_HEALTH_INSIGHTS),
    }
