import os
import re
from datetime import date
from functools import wraps
from io import BytesIO
from uuid import uuid4

from flask import Blueprint, current_app, g, jsonify, request, send_file, send_from_directory, session
from werkzeug.exceptions import HTTPException
from werkzeug.http import HTTP_STATUS_CODES
from werkzeug.security import check_password_hash, generate_password_hash
from werkzeug.utils import secure_filename

from nutriscan.ai import (
    AIResponseError,
    AIServiceError,
    analyze_food_image,
    chat_reply,
    generate_meal_plan,
    generate_workout_plan,
    suggest_alternatives,
)
from nutriscan.nutrition import generate_recommendations
from nutriscan.plan_defaults import (
    MEAL_LIBRARY,
    WORKOUT_LIBRARY,
    UnknownPlanTemplate,
    default_meal_plan,
    default_workout_plan,
    estimate_workout_calories,
    resolve_diet_type,
    resolve_goal,
)
from nutriscan.reports import REPORT_TYPES, build_report_pdf, flatten_exercises
from nutriscan.storage import get_storage

bp = Blueprint("main", __name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "heic", "gif"}
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
DEFAULT_WORKOUT_MINUTES = 30


def json_error(message: str, status: int, error: str | None = None):
    return jsonify({"message": message, "error": error or HTTP_STATUS_CODES.get(status, "Error")}), status


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _parse_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _string_list(value) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if str(item or "").strip()]


def _clean(value, max_len: int = 255) -> str:
    return str(value or "").strip()[:max_len]


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if g.user is None:
            return json_error("Not authenticated", 401)
        return view(*args, **kwargs)

    return wrapped


@bp.before_app_request
def load_logged_in_user():
    user_id = session.get("user_id")
    g.user = get_storage().get_user(user_id) if user_id else None


@bp.app_errorhandler(413)
def upload_too_large(_error):
    limit_mb = current_app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
    return json_error(f"Upload is too large. Images must be {limit_mb} MB or smaller.", 413)


@bp.app_errorhandler(HTTPException)
def http_error(error: HTTPException):
    return json_error(error.description or error.name, error.code or 500, error.name)


@bp.app_errorhandler(Exception)
def unexpected_error(error: Exception):
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return json_error("Something went wrong. Please try again.", 500)


def _load_owned(loader, raw_id: str, label: str):
    record_id = _parse_int(raw_id)
    if record_id is None:
        return None, json_error("Invalid ID format", 400)
    record = loader(record_id)
    if record is None:
        return None, json_error(f"{label} not found", 404)
    if record.user_id != g.user.id:
        return None, json_error(f"Unauthorized access to this {label.lower()}", 403)
    return record, None


def _read_image_upload(field: str, stored: bool = True):
    """Return ``(file, raw_bytes, error_response)`` for an image form field.

    Files that end up under ``/uploads`` must carry an image extension. Uploads
    that are only analyzed in memory may rely on an ``image/*`` content type.
    """
    image = request.files.get(field)
    if image is None or not image.filename:
        return None, None, json_error("No image provided", 400)
    accepted = allowed_file(image.filename)
    if not accepted and not stored:
        accepted = (image.mimetype or "").lower().startswith("image/")
    if not accepted:
        return None, None, json_error("Unsupported file type. Use png, jpg, jpeg, webp, gif or heic.", 400)
    raw = image.read()
    if not raw:
        return None, None, json_error("The uploaded image was empty.", 400)
    return image, raw, None


def _store_upload(filename: str, raw: bytes) -> tuple[str, str]:
    safe_name = secure_filename(filename) or "upload"
    upload_name = f"{uuid4().hex}_{safe_name}"
    upload_dir = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_dir, exist_ok=True)
    local_path = os.path.join(upload_dir, upload_name)
    with open(local_path, "wb") as fh:
        fh.write(raw)
    return f"/uploads/{upload_name}", local_path


def _start_session(user):
    session.clear()
    session["user_id"] = user.id
    session.permanent = True


@bp.post("/api/register")
def register():
    payload = _json_body()
    username = _clean(payload.get("username"), 120)
    password = str(payload.get("password") or "")
    email = _clean(payload.get("email")).lower()
    full_name = _clean(payload.get("fullName")) or None

    if not username or not password or not email:
        return json_error("Username, password and email are required", 400)
    if not EMAIL_RE.match(email):
        return json_error("Enter a valid email address", 400)
    if len(password) < MIN_PASSWORD_LENGTH:
        return json_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", 400)

    storage = get_storage()
    if storage.get_user_by_username(username):
        return json_error("Username already exists", 400)

    user = storage.create_user(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=generate_password_hash(password),
    )
    _start_session(user)
    current_app.logger.info("Registered user %s", user.id)
    return jsonify(user.to_dict()), 201


@bp.post("/api/login")
def login():
    payload = _json_body()
    username = _clean(payload.get("username"), 120)
    password = str(payload.get("password") or "")

    user = get_storage().get_user_by_username(username) if username else None
    if user is None or not check_password_hash(user.password_hash, password):
        return json_error("Invalid username or password", 401)

    _start_session(user)
    return jsonify(user.to_dict())


@bp.post("/api/logout")
def logout():
    session.clear()
    return jsonify({"message": "Logged out"})


@bp.get("/api/user")
@login_required
def current_user():
    return jsonify(g.user.to_dict())


@bp.patch("/api/user/<user_id>")
@login_required
def update_user(user_id: str):
    target_id = _parse_int(user_id)
    if target_id is None:
        return json_error("Invalid ID format", 400)
    if target_id != g.user.id:
        return json_error("You can only update your own profile", 403)

    payload = _json_body()
    storage = get_storage()
    changes = {}

    if "fullName" in payload:
        changes["full_name"] = _clean(payload.get("fullName")) or None
    if "email" in payload:
        email = _clean(payload.get("email")).lower()
        if not EMAIL_RE.match(email):
            return json_error("Enter a valid email address", 400)
        changes["email"] = email
    if "username" in payload:
        username = _clean(payload.get("username"), 120)
        if not username:
            return json_error("Username cannot be empty", 400)
        existing = storage.get_user_by_username(username)
        if existing is not None and existing.id != g.user.id:
            return json_error("Username already exists", 400)
        changes["username"] = username

    if not changes:
        return json_error("No profile fields to update", 400)

    user = storage.update_user(g.user.id, **changes)
    return jsonify(user.to_dict())


@bp.post("/api/user/change-password")
@login_required
def change_password():
    payload = _json_body()
    current_password = str(payload.get("currentPassword") or "")
    new_password = str(payload.get("newPassword") or "")
    confirm_password = str(payload.get("confirmPassword") or "")

    if not current_password or not new_password:
        return json_error("Current and new password are required", 400)
    if not check_password_hash(g.user.password_hash, current_password):
        return json_error("Current password is incorrect", 400)
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return json_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", 400)
    if "confirmPassword" in payload and confirm_password != new_password:
        return json_error("New passwords do not match", 400)

    get_storage().update_user(g.user.id, password_hash=generate_password_hash(new_password))
    return jsonify({"message": "Password updated successfully"})


@bp.post("/api/user/upload-profile-pic")
@login_required
def upload_profile_pic():
    image, raw, error = _read_image_upload("profilePic")
    if error:
        return error

    url, _ = _store_upload(image.filename, raw)
    user = get_storage().update_user(g.user.id, profile_pic=url)
    return jsonify({"profilePic": url, "user": user.to_dict()})


@bp.post("/api/waitlist")
def join_waitlist():
    payload = _json_body()
    email = _clean(payload.get("email")).lower()
    if not EMAIL_RE.match(email):
        return json_error("Enter a valid email address", 400)

    interests = payload.get("interests")
    if isinstance(interests, list):
        interests = ", ".join(_string_list(interests))

    storage = get_storage()
    if storage.get_waitlist_entry_by_email(email):
        return json_error("Email already registered on waitlist", 400)

    entry = storage.create_waitlist_entry(
        email=email,
        full_name=_clean(payload.get("fullName")) or None,
        interests=_clean(interests, 2000) or None,
    )
    return jsonify({"message": "Successfully joined waitlist", "entry": entry.to_dict()}), 201


@bp.post("/api/food/analyze")
@login_required
def analyze_food():
    image, raw, error = _read_image_upload("image")
    if error:
        return error

    image_url, local_path = _store_upload(image.filename, raw)
    try:
        analysis = analyze_food_image(raw, image.mimetype)
    except AIResponseError as exc:
        os.remove(local_path)
        current_app.logger.warning("Food analysis returned nothing usable: %s", exc)
        return json_error("Could not analyze the food in this image. Try a clearer photo.", 422)
    except AIServiceError as exc:
        os.remove(local_path)
        current_app.logger.warning("Food analysis failed: %s", exc)
        return json_error("Food analysis is unavailable right now. Please try again.", 500)

    storage = get_storage()
    entry = storage.create_food_entry(
        user_id=g.user.id,
        food_name=analysis["name"],
        description=analysis["description"],
        image_url=image_url,
        calories=analysis["calories"],
        protein=analysis["protein"],
        carbs=analysis["carbs"],
        fats=analysis["fats"],
        nutrients=analysis["nutrients"],
        ingredients=analysis["ingredients"],
    )
    storage.delete_recommendations(g.user.id)
    return jsonify({**analysis, "id": entry.id, "imageUrl": image_url})


@bp.get("/api/food/history")
@bp.get("/api/food-entries")
@login_required
def food_history():
    entries = get_storage().get_food_entries_by_user_id(g.user.id)
    return jsonify([entry.to_dict() for entry in entries])


@bp.get("/api/food/<entry_id>")
@login_required
def food_entry_detail(entry_id: str):
    entry, error = _load_owned(get_storage().get_food_entry, entry_id, "Food entry")
    if error:
        return error
    return jsonify(entry.to_dict())


@bp.delete("/api/food/<entry_id>")
@login_required
def food_entry_delete(entry_id: str):
    storage = get_storage()
    entry, error = _load_owned(storage.get_food_entry, entry_id, "Food entry")
    if error:
        return error
    storage.delete_food_entry(entry.id)
    storage.delete_recommendations(g.user.id)
    return jsonify({"message": "Food entry deleted successfully"})


@bp.post("/api/food/alternatives")
@bp.post("/api/food/alternatives/text")
@login_required
def food_alternatives_text():
    payload = _json_body()
    food_name = _clean(payload.get("foodName") or payload.get("food"))
    if not food_name:
        return json_error("Food name is required", 400)

    try:
        alternatives = suggest_alternatives(food_name)
    except AIServiceError as exc:
        current_app.logger.warning("Alternative suggestions failed for %r: %s", food_name, exc)
        return json_error("Could not suggest alternatives right now. Please try again.", 500)
    return jsonify({"original": food_name, "alternatives": alternatives})


@bp.post("/api/food/alternatives/image")
@login_required
def food_alternatives_image():
    image, raw, error = _read_image_upload("image", stored=False)
    if error:
        return error

    try:
        analysis = analyze_food_image(raw, image.mimetype)
        alternatives = analysis["alternatives"] or suggest_alternatives(analysis["name"])
    except AIResponseError as exc:
        current_app.logger.warning("Could not derive alternatives from image: %s", exc)
        return json_error("Could not identify the food in this image. Try a clearer photo.", 422)
    except AIServiceError as exc:
        current_app.logger.warning("Alternative suggestions from image failed: %s", exc)
        return json_error("Could not suggest alternatives right now. Please try again.", 500)
    return jsonify({"original": analysis["name"], "alternatives": alternatives})


@bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    return send_from_directory(os.path.abspath(current_app.config["UPLOAD_FOLDER"]), filename)


@bp.post("/api/meal-plans")
@login_required
def create_meal_plan():
    payload = _json_body()
    name = _clean(payload.get("name"))
    meals = payload.get("meals")
    if not name:
        return json_error("Meal plan name is required", 400)
    if not isinstance(meals, (dict, list)) or not meals:
        return json_error("Meal plan must include meals", 400)

    calories = payload.get("calories")
    if calories is not None:
        calories = _parse_int(calories)
        if calories is None or calories < 0:
            return json_error("Calories must be a whole number", 400)

    plan = get_storage().create_meal_plan(
        user_id=g.user.id,
        name=name,
        description=_clean(payload.get("description"), 2000) or None,
        calories=calories,
        meals=meals,
    )
    return jsonify(plan.to_dict()), 201


def _fallback_meal_plan(payload: dict, preferences, restrictions, meals_per_day, health_conditions):
    diet_type = payload.get("dietType")
    if not diet_type:
        diet_type = next(
            (pref for pref in preferences if resolve_diet_type(pref) in MEAL_LIBRARY),
            "balanced",
        )
    allergies = restrictions + [pref for pref in preferences if pref.lower().endswith("-free")]
    return default_meal_plan(diet_type, meals_per_day, allergies, health_conditions)


@bp.post("/api/meal-plans/generate")
@login_required
def generate_meal_plan_route():
    payload = _json_body()
    calories = _parse_int(payload.get("calories"))
    if calories is None or calories <= 0:
        return json_error("Valid calorie target required", 400)
    meals_per_day = _parse_int(payload.get("mealsPerDay", 3))
    if meals_per_day is None or meals_per_day <= 0:
        return json_error("Meals per day must be a positive whole number", 400)

    preferences = _string_list(payload.get("preferences"))
    restrictions = _string_list(payload.get("restrictions"))
    health_conditions = _string_list(payload.get("healthConditions"))

    try:
        plan_data = generate_meal_plan(calories, preferences, restrictions, meals_per_day, health_conditions)
    except AIServiceError as exc:
        current_app.logger.warning("Meal plan generation failed, using default template: %s", exc)
        try:
            plan_data = _fallback_meal_plan(payload, preferences, restrictions, meals_per_day, health_conditions)
        except UnknownPlanTemplate as template_error:
            return json_error(str(template_error.args[0]), 422)

    plan = get_storage().create_meal_plan(
        user_id=g.user.id,
        name=plan_data["name"],
        description=plan_data.get("description"),
        meals=plan_data["meals"],
        calories=calories,
    )
    return jsonify(plan.to_dict()), 201


@bp.get("/api/meal-plans")
@login_required
def list_meal_plans():
    plans = get_storage().get_meal_plans_by_user_id(g.user.id)
    return jsonify([plan.to_dict() for plan in plans])


@bp.get("/api/meal-plans/<plan_id>")
@login_required
def meal_plan_detail(plan_id: str):
    plan, error = _load_owned(get_storage().get_meal_plan, plan_id, "Meal plan")
    if error:
        return error
    return jsonify(plan.to_dict())


@bp.delete("/api/meal-plans/<plan_id>")
@login_required
def meal_plan_delete(plan_id: str):
    storage = get_storage()
    plan, error = _load_owned(storage.get_meal_plan, plan_id, "Meal plan")
    if error:
        return error
    storage.delete_meal_plan(plan.id)
    return jsonify({"message": "Meal plan deleted successfully"})


@bp.post("/api/workout-plans")
@login_required
def create_workout_plan():
    payload = _json_body()
    name = _clean(payload.get("name"))
    exercises = payload.get("exercises")
    if not name:
        return json_error("Workout plan name is required", 400)
    if not isinstance(exercises, (dict, list)) or not exercises:
        return json_error("Workout plan must include exercises", 400)

    calories_burned = payload.get("caloriesBurned")
    if calories_burned is None:
        flattened, meta = flatten_exercises(exercises)
        duration = _parse_int(payload.get("duration", meta.get("duration"))) or DEFAULT_WORKOUT_MINUTES
        difficulty = payload.get("difficulty", meta.get("difficulty"))
        calories_burned = estimate_workout_calories(difficulty, duration, len(flattened))
    else:
        calories_burned = _parse_int(calories_burned)
        if calories_burned is None or calories_burned < 0:
            return json_error("Calories burned must be a whole number", 400)

    plan = get_storage().create_workout_plan(
        user_id=g.user.id,
        name=name,
        description=_clean(payload.get("description"), 2000) or None,
        exercises=exercises,
        calories_burned=calories_burned,
    )
    return jsonify(plan.to_dict()), 201


@bp.post("/api/workout-plans/generate")
@login_required
def generate_workout_plan_route():
    payload = _json_body()
    fitness_level = _clean(payload.get("fitnessLevel")).lower()
    goals = _string_list(payload.get("goals"))
    duration = _parse_int(payload.get("duration"))
    if not fitness_level or not goals or not duration:
        return json_error("Fitness level, goals, and duration are required", 400)
    if duration <= 0:
        return json_error("Duration must be a positive number of minutes", 400)
    health_conditions = _string_list(payload.get("healthConditions"))

    try:
        plan_data = generate_workout_plan(fitness_level, goals, duration, health_conditions)
    except AIServiceError as exc:
        current_app.logger.warning("Workout plan generation failed, using default template: %s", exc)
        goal = next((item for item in goals if resolve_goal(item) in WORKOUT_LIBRARY), goals[0])
        try:
            plan_data = default_workout_plan(goal, fitness_level, health_conditions)
        except UnknownPlanTemplate as template_error:
            return json_error(str(template_error.args[0]), 422)
        # template estimate assumes the template's own session length
        plan_data.pop("caloriesBurned")

    exercises = {"difficulty": fitness_level, "duration": duration, **plan_data["exercises"]}
    calories_burned = plan_data.get("caloriesBurned")
    if not calories_burned:
        flattened, _ = flatten_exercises(exercises)
        calories_burned = estimate_workout_calories(fitness_level, duration, len(flattened))

    plan = get_storage().create_workout_plan(
        user_id=g.user.id,
        name=plan_data["name"],
        description=plan_data.get("description"),
        exercises=exercises,
        calories_burned=calories_burned,
    )
    return jsonify(plan.to_dict()), 201


@bp.get("/api/workout-plans")
@login_required
def list_workout_plans():
    plans = get_storage().get_workout_plans_by_user_id(g.user.id)
    return jsonify([plan.to_dict() for plan in plans])


@bp.get("/api/workout-plans/<plan_id>")
@login_required
def workout_plan_detail(plan_id: str):
    plan, error = _load_owned(get_storage().get_workout_plan, plan_id, "Workout plan")
    if error:
        return error
    return jsonify(plan.to_dict())


@bp.delete("/api/workout-plans/<plan_id>")
@login_required
def workout_plan_delete(plan_id: str):
    storage = get_storage()
    plan, error = _load_owned(storage.get_workout_plan, plan_id, "Workout plan")
    if error:
        return error
    storage.delete_workout_plan(plan.id)
    return jsonify({"message": "Workout plan deleted successfully"})


def _fresh_recommendations(storage):
    entries = storage.get_food_entries_by_user_id(g.user.id)
    data = generate_recommendations(entries)
    if data is None:
        return None
    storage.save_recommendations(g.user.id, data)
    return data


@bp.get("/api/recommendations")
@login_required
def recommendations():
    storage = get_storage()
    cached = storage.get_recommendations(g.user.id)
    if cached is not None:
        return jsonify(cached.data)

    data = _fresh_recommendations(storage)
    if data is None:
        return json_error("No food history found. Analyze some meals first to get recommendations.", 404)
    return jsonify(data)


@bp.post("/api/recommendations/generate")
@login_required
def regenerate_recommendations():
    data = _fresh_recommendations(get_storage())
    if data is None:
        return json_error("No food history found. Analyze some meals first to get recommendations.", 404)
    return jsonify(data)


@bp.post("/api/chat")
def chat():
    content = _json_body().get("content")
    if not isinstance(content, str) or not content.strip():
        return json_error("Message content is required", 400)

    try:
        reply = chat_reply(content.strip())
    except AIServiceError as exc:
        current_app.logger.warning("Chat completion failed: %s", exc)
        return json_error("Failed to get response from AI assistant", 500)
    return jsonify({"response": reply})


@bp.get("/api/reports/pdf")
@login_required
def report_pdf():
    report_type = (request.args.get("type") or "all").strip().lower()
    if report_type not in REPORT_TYPES:
        return json_error(f"Report type must be one of: {', '.join(REPORT_TYPES)}", 400)

    storage = get_storage()
    pdf_bytes = build_report_pdf(
        g.user,
        storage.get_food_entries_by_user_id(g.user.id),
        storage.get_meal_plans_by_user_id(g.user.id),
        storage.get_workout_plans_by_user_id(g.user.id),
        report_type,
        page_break=current_app.config["REPORT_PAGE_BREAK_MM"],
    )
    current_app.logger.info("Generated %s report for user %s (%d bytes)", report_type, g.user.id, len(pdf_bytes))
    return send_file(
        BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"nutriscan-{report_type}-report-{date.today().isoformat()}.pdf",
    )
