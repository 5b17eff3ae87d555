import base64
import json
import os
import re
from typing import Sequence

import httpx
from openai import OpenAI, OpenAIError

from nutriscan.plan_defaults import emoji_for_exercise

CHAT_SYSTEM_PROMPT = """You are a helpful AI nutrition and health assistant for the NutriScan app.
Your primary responsibilities are:

1. Answering questions about nutrition, calories, and healthy eating habits
2. Providing recommendations for healthier food alternatives
3. Suggesting meal plans based on dietary preferences and health goals
4. Offering basic workout advice that complements diet plans
5. Explaining nutrition concepts in simple, accessible terms

Guidelines:
- Keep responses concise and easy to understand (under 250 words)
- When discussing calories or nutritional info, note that these are estimates
- Don't provide specific medical advice or diagnoses
- If asked something outside your expertise, politely redirect to nutrition topics
- Be supportive and encouraging, not judgmental about food choices
- For specific medical concerns, suggest consulting healthcare professionals
- Base your answers on scientific nutritional facts, not fad diets or trends"""

CHAT_FALLBACK_REPLY = "I'm sorry, I couldn't generate a response. Please try again."


class AIServiceError(RuntimeError):
    pass


class AIResponseError(AIServiceError):
    """The model answered, but not with anything usable."""


def _api_key() -> str:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise AIServiceError("OPENAI_API_KEY is not configured.")
    return api_key


def _http_client() -> httpx.Client:
    return httpx.Client(timeout=float(os.getenv("OPENAI_TIMEOUT_SECONDS", "60")))


def _model() -> str:
    return os.getenv("OPENAI_MODEL", "gpt-4o")


def _extract_json_object(raw_text: str) -> dict:
    text = (raw_text or "").strip()
    if not text:
        return {}

    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z0-9]*\s*", "", text)
        text = re.sub(r"\s*```$", "", text)

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        return {}
    try:
        parsed = json.loads(match.group(0))
        return parsed if isinstance(parsed, dict) else {}
    except json.JSONDecodeError:
        return {}


def _complete(messages: list[dict], *, json_mode: bool = True, **options) -> str:
    api_key = _api_key()
    params = {"model": _model(), "messages": messages, **options}
    if json_mode:
        params["response_format"] = {"type": "json_object"}
    with _http_client() as http_client:
        client = OpenAI(api_key=api_key, http_client=http_client)
        try:
            response = client.chat.completions.create(**params)
        except (OpenAIError, httpx.HTTPError) as exc:
            raise AIServiceError(f"OpenAI request failed: {exc}") from exc
    if not response.choices:
        return ""
    return response.choices[0].message.content or ""


def _complete_json(system_prompt: str, user_content, **options) -> dict:
    raw = _complete(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ],
        **options,
    )
    return _extract_json_object(raw)


def _as_float(value) -> float:
    if value in (None, ""):
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        return _as_float(value.get("amount"))
    match = re.search(r"-?\d+(?:\.\d+)?", str(value))
    if not match:
        return 0.0
    return float(match.group(0))


def _as_text(value, max_len: int = 255) -> str:
    return str(value or "").strip()[:max_len]


def _as_string_list(value) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item or "").strip()]


def _as_amount_map(value) -> dict:
    if not isinstance(value, dict):
        return {}
    return {str(name): _as_float(amount) for name, amount in value.items()}


def _normalize_alternative(raw) -> dict | None:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        return None
    name = _as_text(raw.get("name"))
    if not name:
        return None
    benefits = raw.get("benefits") or raw.get("nutritionalBenefits") or ""
    if isinstance(benefits, list):
        benefits = "; ".join(str(item) for item in benefits)
    return {
        "name": name,
        "description": _as_text(raw.get("description"), 1000),
        "calories": _as_float(raw.get("calories", raw.get("estimatedCalories"))),
        "benefits": _as_text(benefits, 1000),
    }


def normalize_food_analysis(parsed: dict) -> dict:
    """Coerce a loosely shaped analysis reply into the fields the API returns.

    Missing numbers become 0 and missing collections become empty, so callers
    never have to guard against partial replies.
    """
    macros = parsed.get("macronutrients") if isinstance(parsed.get("macronutrients"), dict) else {}
    nutrients = parsed.get("nutrients") if isinstance(parsed.get("nutrients"), dict) else {}
    if not nutrients and isinstance(parsed.get("nutritionData"), dict):
        nutrients = parsed["nutritionData"]

    alternatives = [
        alt for alt in (_normalize_alternative(item) for item in parsed.get("alternatives") or []) if alt
    ]
    return {
        "name": _as_text(parsed.get("name") or parsed.get("foodName")) or "Unknown food",
        "description": _as_text(parsed.get("description"), 2000),
        "ingredients": _as_string_list(parsed.get("ingredients")),
        "calories": _as_float(parsed.get("calories")),
        "protein": _as_float(parsed.get("protein", macros.get("protein"))),
        "carbs": _as_float(parsed.get("carbs", macros.get("carbohydrates"))),
        "fats": _as_float(parsed.get("fats", parsed.get("fat", macros.get("fat")))),
        "nutrients": {
            "fiber": _as_float(nutrients.get("fiber", macros.get("fiber"))),
            "sugar": _as_float(nutrients.get("sugar", macros.get("sugar"))),
            "vitamins": _as_amount_map(nutrients.get("vitamins")),
            "minerals": _as_amount_map(nutrients.get("minerals")),
        },
        "alternatives": alternatives,
    }


def analyze_food_image(image_bytes: bytes, mime_type: str | None) -> dict:
    if not image_bytes:
        raise AIResponseError("No image data was provided.")

    mime = (mime_type or "image/jpeg").split(";")[0].strip()
    if not mime.startswith("image/"):
        mime = "image/jpeg"
    image_b64 = base64.b64encode(image_bytes).decode("utf-8")

    system_prompt = (
        "You are a nutrition expert who analyzes food images and provides detailed nutritional information. "
        "Respond with JSON only using these keys: name (string), description (string), ingredients (string[]), "
        "calories (number), protein (grams), carbs (grams), fats (grams), "
        "nutrients ({fiber: grams, sugar: grams, vitamins: {name: amount}, minerals: {name: amount}}), "
        "alternatives ([{name, description, calories, benefits}]). "
        "Use vitamin names like 'Vitamin C' and mineral names like 'Iron'."
    )
    parsed = _complete_json(
        system_prompt,
        [
            {
                "type": "text",
                "text": "Analyze this food image. Estimate calories, macronutrients, key micronutrients, "
                "and suggest 2-3 healthier alternatives.",
            },
            {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{image_b64}"}},
        ],
    )
    if not parsed:
        raise AIResponseError("Could not identify any food in the image.")
    return normalize_food_analysis(parsed)


def suggest_alternatives(food_name: str) -> list[dict]:
    parsed = _complete_json(
        "You are a nutrition expert who suggests healthier alternatives for foods. "
        "Return JSON only: {\"alternatives\": [{\"name\", \"description\", \"calories\", \"benefits\"}]} "
        "with 3-5 alternatives.",
        f"Suggest healthier alternatives for: {food_name}",
    )
    alternatives = [alt for alt in (_normalize_alternative(item) for item in parsed.get("alternatives") or []) if alt]
    if not alternatives:
        raise AIResponseError(f"No alternatives were suggested for {food_name!r}.")
    return alternatives


def generate_meal_plan(
    calories: int,
    preferences: Sequence[str] = (),
    restrictions: Sequence[str] = (),
    meals_per_day: int = 3,
    health_conditions: Sequence[str] = (),
) -> dict:
    prompt = (
        f"Create a one-day meal plan of about {calories} kcal with {meals_per_day} meals.\n"
        f"Dietary preferences: {', '.join(preferences) or 'none'}\n"
        f"Allergies / restrictions: {', '.join(restrictions) or 'none'}\n"
        f"Health conditions: {', '.join(health_conditions) or 'none'}\n"
        "Return JSON only: {\"name\", \"description\", \"meals\": {\"breakfast\": meal, \"lunch\": meal, "
        "\"dinner\": meal, \"snacks\": [meal]}} where meal is "
        "{\"name\", \"ingredients\": string[], \"preparation\", \"calories\", \"protein\", \"carbs\", \"fats\"}."
    )
    parsed = _complete_json("You are a registered dietitian who writes practical meal plans.", prompt)
    meals = parsed.get("meals")
    if not isinstance(meals, (dict, list)) or not meals:
        raise AIResponseError("The meal plan reply did not include any meals.")
    return {
        "name": _as_text(parsed.get("name")) or f"{calories} kcal Meal Plan",
        "description": _as_text(parsed.get("description"), 2000),
        "meals": meals,
    }


def generate_workout_plan(
    fitness_level: str,
    goals: Sequence[str],
    duration: int,
    health_conditions: Sequence[str] = (),
) -> dict:
    prompt = (
        f"Create a {duration}-minute workout for a {fitness_level} trainee.\n"
        f"Goals: {', '.join(goals)}\n"
        f"Health conditions to work around: {', '.join(health_conditions) or 'none'}\n"
        "Return JSON only: {\"name\", \"description\", \"caloriesBurned\", \"exercises\": {\"warmup\": [ex], "
        "\"main\": [ex], \"cooldown\": [ex]}} where ex is "
        "{\"name\", \"description\", \"sets\", \"reps\", \"restTime\", \"targetMuscles\": string[], \"emoji\"}."
    )
    parsed = _complete_json("You are a certified personal trainer who writes safe workout plans.", prompt)
    exercises = parsed.get("exercises")
    if not isinstance(exercises, dict) or not any(isinstance(v, list) and v for v in exercises.values()):
        raise AIResponseError("The workout plan reply did not include any exercises.")

    for group in exercises.values():
        if not isinstance(group, list):
            continue
        for exercise in group:
            if isinstance(exercise, dict) and not exercise.get("emoji"):
                exercise["emoji"] = emoji_for_exercise(str(exercise.get("name") or ""))

    return {
        "name": _as_text(parsed.get("name")) or f"{fitness_level.title()} Workout",
        "description": _as_text(parsed.get("description"), 2000),
        "exercises": exercises,
        "caloriesBurned": int(round(_as_float(parsed.get("caloriesBurned")))),
    }


def recommendation_insights(food_history: list[dict], averages: dict, recommended: dict) -> dict:
    return _complete_json(
        "You are a nutrition and health expert. Based on the user's food history data, provide personalized "
        "dietary recommendations and health insights. Return JSON only with keys dietaryPatterns (string[]), "
        "mealRecommendations ([{type, suggestions: [{name, reasoning, nutrients: {calories, protein, carbs, fats}}]}]) "
        "and healthInsights (string[]).",
        json.dumps(
            {"foodHistory": food_history, "averageNutrition": averages, "recommendedValues": recommended},
            default=str,
        ),
        max_tokens=1000,
    )


def chat_reply(content: str) -> str:
    reply = _complete(
        [
            {"role": "system", "content": CHAT_SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        json_mode=False,
        max_tokens=500,
        temperature=0.7,
    )
    return reply.strip() or CHAT_FALLBACK_REPLY
