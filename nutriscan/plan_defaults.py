"""Built-in meal and workout plans used when plan generation is unavailable.

Meal plans are looked up by (diet type, meals per day) and workout plans by
(goal, fitness level). After lookup, ingredients or exercises that clash
with the user's allergies or health conditions are swapped for safer ones:
any ingredient containing a flagged keyword (case-insensitive) is replaced
by that keyword's substitute, and everything else is left as is.
"""

import copy
import re
from typing import Iterable, Iterator

DEFAULT_DIET_TYPE = "balanced"
DEFAULT_MEALS_PER_DAY = 3


class UnknownPlanTemplate(KeyError):
    pass


def _meal(name, ingredients, preparation, calories, protein, carbs, fats):
    return {
        "name": name,
        "ingredients": list(ingredients),
        "preparation": preparation,
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fats": fats,
    }


MEAL_LIBRARY = {
    "balanced": {
        "label": "Balanced",
        "description": "Evenly split macros built around whole foods and lean protein.",
        "breakfast": _meal(
            "Greek Yogurt Parfait",
            ["1 cup Greek yogurt", "1/2 cup mixed berries", "1/4 cup granola", "1 tsp honey"],
            "Layer the yogurt, berries and granola in a glass. Drizzle with honey just before eating.",
            350, 22, 45, 9,
        ),
        "lunch": _meal(
            "Grilled Chicken Quinoa Bowl",
            ["120 g grilled chicken breast", "3/4 cup cooked quinoa", "1 cup roasted vegetables", "1 tbsp olive oil", "Lemon juice"],
            "Grill the chicken and slice it. Toss quinoa and vegetables with olive oil and lemon, then top with chicken.",
            520, 42, 48, 16,
        ),
        "dinner": _meal(
            "Baked Salmon with Sweet Potato",
            ["140 g salmon fillet", "1 medium sweet potato", "1 cup steamed broccoli", "1 tsp olive oil", "Garlic and dill"],
            "Bake salmon and cubed sweet potato at 200C for 18-20 minutes. Serve with steamed broccoli.",
            560, 36, 46, 22,
        ),
        "snacks": [
            _meal(
                "Apple with Peanut Butter",
                ["1 medium apple", "1 tbsp peanut butter"],
                "Slice the apple and serve with peanut butter for dipping.",
                190, 4, 27, 8,
            ),
            _meal(
                "Hummus and Veggie Sticks",
                ["3 tbsp hummus", "1 cup carrot and cucumber sticks", "4 whole wheat crackers"],
                "Cut the vegetables into sticks and serve with hummus and crackers.",
                210, 7, 26, 9,
            ),
        ],
    },
    "vegetarian": {
        "label": "Vegetarian",
        "description": "Meat-free days with eggs, dairy and legumes for protein.",
        "breakfast": _meal(
            "Veggie Scramble on Toast",
            ["2 eggs", "1 cup spinach", "1/2 cup cherry tomatoes", "1 slice whole grain bread", "1 tsp olive oil"],
            "Saute spinach and tomatoes in olive oil, add beaten eggs and scramble. Serve on toasted bread.",
            340, 20, 26, 17,
        ),
        "lunch": _meal(
            "Lentil and Feta Salad",
            ["1 cup cooked lentils", "30 g feta cheese", "1 cup mixed greens", "1/2 cucumber", "1 tbsp olive oil", "Red wine vinegar"],
            "Combine lentils, greens and chopped cucumber. Crumble feta on top and dress with oil and vinegar.",
            480, 26, 44, 20,
        ),
        "dinner": _meal(
            "Chickpea and Vegetable Curry",
            ["1 cup chickpeas", "1/2 cup light coconut milk", "1 cup cauliflower florets", "1/2 onion", "1 tbsp curry paste", "3/4 cup cooked brown rice"],
            "Soften the onion, stir in curry paste, add chickpeas, cauliflower and coconut milk. Simmer 15 minutes and serve over rice.",
            590, 20, 78, 20,
        ),
        "snacks": [
            _meal(
                "Cottage Cheese with Pineapple",
                ["1/2 cup cottage cheese", "1/2 cup pineapple chunks"],
                "Top the cottage cheese with pineapple.",
                160, 14, 18, 3,
            ),
            _meal(
                "Trail Mix",
                ["2 tbsp almonds", "1 tbsp walnuts", "1 tbsp raisins"],
                "Mix and portion into a small container.",
                200, 6, 12, 15,
            ),
        ],
    },
    "vegan": {
        "label": "Vegan",
        "description": "Fully plant-based meals with tofu, legumes and whole grains.",
        "breakfast": _meal(
            "Overnight Oats with Berries",
            ["1/2 cup rolled oats", "3/4 cup almond milk", "1 tbsp chia seeds", "1/2 cup blueberries", "1 tsp maple syrup"],
            "Stir oats, almond milk and chia together and refrigerate overnight. Top with blueberries and maple syrup.",
            330, 10, 52, 10,
        ),
        "lunch": _meal(
            "Tofu Buddha Bowl",
            ["120 g baked tofu", "3/4 cup cooked brown rice", "1/2 avocado", "1 cup shredded red cabbage", "1 tbsp soy sauce", "1 tsp sesame seeds"],
            "Bake cubed tofu until crisp. Arrange over rice with cabbage and avocado, then drizzle with soy sauce and sesame.",
            540, 26, 58, 24,
        ),
        "dinner": _meal(
            "Black Bean Tacos",
            ["1 cup black beans", "3 corn tortillas", "1/2 cup pico de gallo", "1/4 avocado", "Shredded lettuce", "Lime wedge"],
            "Warm the beans with cumin and garlic. Fill warmed tortillas with beans, lettuce, pico and avocado.",
            520, 22, 82, 12,
        ),
        "snacks": [
            _meal(
                "Roasted Edamame",
                ["1 cup shelled edamame", "Sea salt"],
                "Roast edamame at 200C for 15 minutes and season with a pinch of salt.",
                190, 17, 14, 8,
            ),
            _meal(
                "Banana Almond Butter Toast",
                ["1 slice whole grain bread", "1 tbsp almond butter", "1/2 banana"],
                "Toast the bread, spread with almond butter and top with banana slices.",
                230, 7, 30, 10,
            ),
        ],
    },
    "keto": {
        "label": "Keto",
        "description": "Low-carb, high-fat meals that keep net carbs under about 30 g a day.",
        "breakfast": _meal(
            "Bacon and Eggs with Avocado",
            ["3 eggs", "2 slices bacon", "1/2 avocado", "1 tsp ghee"],
            "Fry the bacon, then cook the eggs in ghee. Serve with sliced avocado.",
            520, 28, 6, 43,
        ),
        "lunch": _meal(
            "Cobb Salad",
            ["120 g grilled chicken thigh", "1 hard-boiled egg", "30 g blue cheese", "2 cups romaine", "1/4 avocado", "2 tbsp ranch dressing"],
            "Chop everything and arrange in rows over the romaine. Dress just before serving.",
            610, 42, 9, 45,
        ),
        "dinner": _meal(
            "Garlic Butter Steak with Asparagus",
            ["170 g sirloin steak", "1 cup asparagus", "1 tbsp ghee", "2 garlic cloves", "Fresh thyme"],
            "Sear the steak 3-4 minutes per side, baste with ghee, garlic and thyme. Roast asparagus alongside.",
            580, 44, 8, 41,
        ),
        "snacks": [
            _meal(
                "Cheese Crisps",
                ["40 g cheddar cheese"],
                "Bake small mounds of grated cheddar at 200C for 6 minutes until crisp.",
                160, 10, 1, 13,
            ),
            _meal(
                "Celery with Cream Cheese",
                ["3 celery stalks", "2 tbsp cream cheese"],
                "Fill the celery stalks with cream cheese.",
                120, 2, 4, 10,
            ),
        ],
    },
    "mediterranean": {
        "label": "Mediterranean",
        "description": "Olive oil, fish, legumes and vegetables in the Mediterranean style.",
        "breakfast": _meal(
            "Mediterranean Toast",
            ["1 slice whole grain bread", "2 tbsp hummus", "1 hard-boiled egg", "Sliced tomato", "Olive oil drizzle"],
            "Toast the bread, spread with hummus and top with egg slices, tomato and a drizzle of olive oil.",
            320, 15, 30, 15,
        ),
        "lunch": _meal(
            "Greek Salad with Tuna",
            ["1 can tuna in water", "1 cup cucumber", "1/2 cup cherry tomatoes", "8 kalamata olives", "30 g feta cheese", "1 tbsp olive oil", "1 whole wheat pita"],
            "Toss vegetables, olives and tuna with olive oil. Crumble feta over the top and serve with warm pita.",
            560, 40, 42, 24,
        ),
        "dinner": _meal(
            "Herb Roasted Cod with Couscous",
            ["150 g cod fillet", "3/4 cup cooked couscous", "1 cup zucchini", "1 tbsp olive oil", "Lemon and parsley"],
            "Roast cod and sliced zucchini with olive oil and lemon at 200C for 15 minutes. Serve over couscous.",
            520, 38, 52, 16,
        ),
        "snacks": [
            _meal(
                "Greek Yogurt with Walnuts",
                ["3/4 cup Greek yogurt", "1 tbsp walnuts", "1 tsp honey"],
                "Top the yogurt with walnuts and honey.",
                210, 17, 14, 10,
            ),
            _meal(
                "Olives and Almonds",
                ["10 green olives", "15 almonds"],
                "Portion into a small bowl.",
                180, 4, 5, 17,
            ),
        ],
    },
}

MEAL_SLOTS = {
    3: 0,
    4: 1,
    5: 2,
}  # meals per day -> snacks included alongside breakfast, lunch and dinner

DIET_ALIASES = {
    "": "balanced",
    "none": "balanced",
    "standard": "balanced",
    "omnivore": "balanced",
    "ketogenic": "keto",
    "low-carb": "keto",
    "plant-based": "vegan",
    "mediterranean-diet": "mediterranean",
}


def _compose_meal_plan(diet_type: str, meals_per_day: int) -> dict:
    library = MEAL_LIBRARY[diet_type]
    meals = {
        "breakfast": library["breakfast"],
        "lunch": library["lunch"],
        "dinner": library["dinner"],
        "snacks": library["snacks"][: MEAL_SLOTS[meals_per_day]],
    }
    return {
        "name": f"{library['label']} {meals_per_day}-Meal Day",
        "description": library["description"],
        "calories": sum(meal["calories"] for meal in iter_plan_meals(meals)),
        "meals": meals,
    }


def iter_plan_meals(meals) -> Iterator[dict]:
    """Yield every meal dict in a plan's ``meals`` value.

    Accepts the keyed layout (breakfast/lunch/dinner/snacks) used by
    generated plans as well as the flat list saved by the meal planner form.
    """
    if isinstance(meals, list):
        for meal in meals:
            if isinstance(meal, dict):
                yield meal
        return
    if not isinstance(meals, dict):
        return
    for slot, value in meals.items():
        if isinstance(value, dict):
            yield value
        elif isinstance(value, list):
            for meal in value:
                if isinstance(meal, dict):
                    yield meal


DEFAULT_MEAL_PLANS = {
    (diet_type, meals_per_day): _compose_meal_plan(diet_type, meals_per_day)
    for diet_type in MEAL_LIBRARY
    for meals_per_day in MEAL_SLOTS
}


ALLERGY_SUBSTITUTIONS = {
    "dairy": [
        ("yogurt", "Coconut yogurt (dairy-free)"),
        ("cottage cheese", "Silken tofu"),
        ("cream cheese", "Cashew cream cheese"),
        ("feta", "Marinated tofu cubes"),
        ("cheese", "Nutritional yeast"),
        ("milk", "Unsweetened oat milk"),
        ("ghee", "Avocado oil"),
        ("ranch", "Olive oil and lemon dressing"),
    ],
    "gluten": [
        ("granola", "Gluten-free granola"),
        ("bread", "Gluten-free bread"),
        ("crackers", "Rice crackers"),
        ("pita", "Gluten-free pita"),
        ("couscous", "Quinoa"),
        ("oats", "Certified gluten-free oats"),
        ("soy sauce", "Tamari (gluten-free)"),
        ("pasta", "Gluten-free pasta"),
        ("flour tortilla", "Corn tortilla"),
    ],
    "nuts": [
        ("peanut butter", "Sunflower seed butter"),
        ("almond butter", "Sunflower seed butter"),
        ("almond milk", "Unsweetened oat milk"),
        ("almonds", "Pumpkin seeds"),
        ("walnuts", "Sunflower seeds"),
        ("cashew", "Sunflower seed cream"),
        ("peanuts", "Roasted chickpeas"),
    ],
    "eggs": [
        ("egg", "Firm tofu scramble"),
    ],
    "soy": [
        ("tofu", "Chickpeas"),
        ("edamame", "Green peas"),
        ("soy sauce", "Coconut aminos"),
        ("tamari", "Coconut aminos"),
    ],
    "seafood": [
        ("salmon", "Chicken breast"),
        ("tuna", "Shredded chicken"),
        ("cod fillet", "Chicken breast"),
        ("shrimp", "Chicken breast"),
    ],
    "sesame": [
        ("sesame", "Sunflower seeds"),
        ("hummus", "White bean dip"),
    ],
}

ALLERGY_ALIASES = {
    "lactose": "dairy",
    "milk": "dairy",
    "wheat": "gluten",
    "celiac": "gluten",
    "coeliac": "gluten",
    "peanut": "nuts",
    "peanuts": "nuts",
    "nut": "nuts",
    "tree-nuts": "nuts",
    "egg": "eggs",
    "soya": "soy",
    "fish": "seafood",
    "shellfish": "seafood",
}

HEALTH_CONDITION_SUBSTITUTIONS = {
    "diabetes": [
        ("honey", "Ground cinnamon"),
        ("maple syrup", "Ground cinnamon"),
        ("raisins", "Pumpkin seeds"),
        ("pineapple", "Strawberries"),
        ("banana", "Raspberries"),
        ("brown rice", "Cauliflower rice"),
        ("granola", "Chopped walnuts"),
    ],
    "hypertension": [
        ("soy sauce", "Low-sodium soy sauce"),
        ("bacon", "Sliced turkey breast"),
        ("olives", "Cucumber slices"),
        ("feta", "Fresh mozzarella"),
        ("blue cheese", "Fresh mozzarella"),
        ("sea salt", "Herb seasoning"),
        ("curry paste", "Salt-free curry powder"),
    ],
    "high-cholesterol": [
        ("bacon", "Sliced turkey breast"),
        ("ghee", "Olive oil"),
        ("sirloin", "Skinless chicken breast"),
        ("cream cheese", "Light ricotta"),
        ("cheddar", "Part-skim mozzarella"),
        ("blue cheese", "Part-skim mozzarella"),
    ],
    "kidney-disease": [
        ("banana", "Apple slices"),
        ("sweet potato", "Cauliflower"),
        ("avocado", "Cucumber"),
        ("soy sauce", "Lemon juice"),
    ],
}

CONDITION_ALIASES = {
    "diabetic": "diabetes",
    "type-1-diabetes": "diabetes",
    "type-2-diabetes": "diabetes",
    "prediabetes": "diabetes",
    "high-blood-pressure": "hypertension",
    "cholesterol": "high-cholesterol",
    "heart-disease": "high-cholesterol",
    "ckd": "kidney-disease",
}


def normalize_key(value) -> str:
    text = str(value or "").strip().lower()
    return re.sub(r"[\s_]+", "-", text)


def _flag_key(flag: str) -> str:
    key = normalize_key(flag)
    if key.endswith("-free"):
        key = key[: -len("-free")]
    return ALLERGY_ALIASES.get(key) or CONDITION_ALIASES.get(key) or key


def substitution_rules(allergies: Iterable[str] = (), health_conditions: Iterable[str] = ()) -> list[tuple[str, str]]:
    """Collect (keyword, substitute) pairs for the given flags, in flag order.

    Unrecognised flags contribute nothing.
    """
    rules = []
    for flag in list(allergies) + list(health_conditions):
        key = _flag_key(flag)
        rules.extend(ALLERGY_SUBSTITUTIONS.get(key, ()))
        rules.extend(HEALTH_CONDITION_SUBSTITUTIONS.get(key, ()))
    return rules


def substitute_ingredients(ingredients: Iterable[str], rules: list[tuple[str, str]]) -> list[str]:
    substituted = []
    for ingredient in ingredients:
        lowered = str(ingredient).lower()
        for keyword, replacement in rules:
            if keyword in lowered:
                substituted.append(replacement)
                break
        else:
            substituted.append(ingredient)
    return substituted


def resolve_diet_type(diet_type: str | None) -> str:
    key = normalize_key(diet_type)
    return DIET_ALIASES.get(key, key)


def default_meal_plan(
    diet_type: str | None = DEFAULT_DIET_TYPE,
    meals_per_day: int = DEFAULT_MEALS_PER_DAY,
    allergies: Iterable[str] = (),
    health_conditions: Iterable[str] = (),
) -> dict:
    key = (resolve_diet_type(diet_type), meals_per_day)
    try:
        template = DEFAULT_MEAL_PLANS[key]
    except KeyError:
        raise UnknownPlanTemplate(
            f"No default meal plan for diet type {diet_type!r} with {meals_per_day} meals per day."
        ) from None

    plan = copy.deepcopy(template)
    rules = substitution_rules(allergies, health_conditions)
    if rules:
        for meal in iter_plan_meals(plan["meals"]):
            meal["ingredients"] = substitute_ingredients(meal["ingredients"], rules)
    return plan


EXERCISE_LIBRARY = {
    "Jumping Jacks": ("Jump to a wide stance with arms overhead, then return to standing. Keep a steady rhythm.", ["cardiovascular", "full body"], "🏃"),
    "Arm Circles": ("Extend arms at shoulder height and make small circles, gradually larger. Reverse halfway.", ["shoulders", "arms"], "🔄"),
    "Leg Swings": ("Hold a wall for balance and swing one leg forward and back, then switch legs.", ["hips", "hamstrings"], "🦵"),
    "High Knees": ("Run in place, driving the knees to hip height and pumping the arms.", ["cardiovascular", "hip flexors"], "🏃"),
    "Marching in Place": ("March on the spot, lifting the knees and swinging the arms.", ["cardiovascular"], "🚶"),
    "Cat-Cow": ("On hands and knees, alternate arching and rounding the spine with the breath.", ["spine", "core"], "🧘"),
    "Push-ups": ("Lower the chest to the floor with the body in a straight line, then press back up.", ["chest", "shoulders", "triceps", "core"], "💪"),
    "Incline Push-ups": ("Perform push-ups with hands on a bench or wall to reduce the load.", ["chest", "triceps"], "💪"),
    "Bodyweight Squats": ("Sit the hips back and down until thighs are parallel, then drive up through the heels.", ["quadriceps", "glutes", "hamstrings"], "🦵"),
    "Jump Squats": ("Squat down, then jump explosively and land softly back into the squat.", ["quadriceps", "glutes", "calves"], "🦵"),
    "Goblet Squats": ("Hold a dumbbell at the chest and squat deep, keeping the chest tall.", ["quadriceps", "glutes", "core"], "🏋️"),
    "Barbell Back Squat": ("With the bar on the upper back, squat to depth and stand up under control.", ["quadriceps", "glutes", "lower back"], "🏋️"),
    "Lunges": ("Step forward and lower until both knees bend to 90 degrees. Push back and alternate legs.", ["quadriceps", "glutes", "hamstrings"], "🚶"),
    "Walking Lunges": ("Lunge forward continuously, alternating legs with each step.", ["quadriceps", "glutes"], "🚶"),
    "Plank": ("Hold a straight line from head to heels on the forearms, bracing the core.", ["core", "shoulders"], "🧘"),
    "Mountain Climbers": ("From a high plank, drive the knees to the chest one at a time at a quick pace.", ["core", "shoulders", "cardiovascular"], "🧗"),
    "Burpees": ("Squat, kick the feet back to a plank, return and jump up with arms overhead.", ["full body", "cardiovascular"], "⚡"),
    "Skaters": ("Leap side to side, landing on one leg and sweeping the other behind.", ["glutes", "legs", "cardiovascular"], "⛸️"),
    "Jump Rope": ("Skip with light bounces on the balls of the feet, turning the rope from the wrists.", ["calves", "cardiovascular"], "⚡"),
    "Step-ups": ("Step onto a box or stair with one foot, drive up and step back down. Alternate legs.", ["quadriceps", "glutes"], "🦵"),
    "Running Intervals": ("Run hard for one minute, then recover at an easy jog before the next set.", ["cardiovascular", "legs"], "🏃"),
    "Stationary Cycling": ("Pedal at a steady moderate effort with an upright posture.", ["cardiovascular", "legs"], "🚴"),
    "Brisk Walking": ("Walk at a pace that raises the heart rate while you can still talk.", ["cardiovascular"], "🚶"),
    "Dumbbell Rows": ("Hinge at the hips and row the dumbbell to the hip, squeezing the shoulder blade.", ["back", "biceps"], "🏋️"),
    "Bent-over Row": ("Hinge forward with a flat back and row the bar to the lower ribs.", ["back", "biceps", "lower back"], "🏋️"),
    "Dumbbell Shoulder Press": ("Press the dumbbells overhead from shoulder height without arching the back.", ["shoulders", "triceps"], "🏋️"),
    "Overhead Press": ("Press the bar from the front of the shoulders to lockout overhead.", ["shoulders", "triceps", "core"], "🏋️"),
    "Dumbbell Bicep Curls": ("Curl the dumbbells toward the shoulders, keeping elbows at your sides.", ["biceps"], "💪"),
    "Bench Press": ("Lower the bar to the mid chest and press back to lockout.", ["chest", "triceps", "shoulders"], "🏋️"),
    "Deadlift": ("Hinge at the hips, grip the bar and stand up tall, keeping the bar close.", ["hamstrings", "glutes", "lower back"], "🏋️"),
    "Pull-ups": ("Hang from a bar and pull the chin over it, then lower under control.", ["back", "biceps"], "🏋️"),
    "Glute Bridges": ("Lie on your back with knees bent and lift the hips until the body forms a straight line.", ["glutes", "hamstrings"], "🍑"),
    "Dead Bug": ("Lying on your back, lower the opposite arm and leg while keeping the lower back flat.", ["core"], "🪲"),
    "Bird Dog": ("On hands and knees, extend the opposite arm and leg, pause, then switch.", ["core", "lower back"], "🐕"),
    "Wall Sit": ("Slide down a wall to a comfortable knee angle and hold.", ["quadriceps", "glutes"], "🧱"),
    "Band Pull-aparts": ("Hold a band at chest height and pull it apart by squeezing the shoulder blades.", ["upper back", "shoulders"], "🎗️"),
    "Sun Salutation": ("Flow from standing to forward fold, plank, cobra and downward dog, then back to standing.", ["full body", "spine"], "🧘"),
    "Downward Dog": ("Press the hips up and back, lengthening the spine and hamstrings.", ["hamstrings", "shoulders", "calves"], "🧘"),
    "World's Greatest Stretch": ("From a lunge, place a hand on the floor and rotate the other arm to the ceiling.", ["hips", "thoracic spine"], "🤸"),
    "Pigeon Pose": ("Bring one shin forward across the mat and fold over it, keeping hips square.", ["hips", "glutes"], "🧘"),
    "Thread the Needle": ("On hands and knees, slide one arm under the body and rotate, then switch sides.", ["thoracic spine", "shoulders"], "🧘"),
    "Standing Forward Bend": ("Fold forward from the hips and let the head hang, breathing deeply.", ["hamstrings", "lower back"], "🧘‍♀️"),
    "Knees-to-Chest Stretch": ("Lie on your back and hug both knees gently toward the chest.", ["lower back", "glutes"], "🧘"),
    "Chest and Shoulder Stretch": ("Clasp hands behind the back and lift them away from the body.", ["chest", "shoulders"], "🙆"),
    "Child's Pose": ("Kneel, sit back on the heels and reach the arms forward on the floor.", ["back", "hips"], "🧘"),
    "Hamstring Stretch": ("Sit with one leg extended and reach toward the toes with a long spine.", ["hamstrings"], "🧘"),
    "Quad Stretch": ("Standing, pull one heel toward the glutes while keeping the knees together.", ["quadriceps"], "🦵"),
    "Deep Breathing": ("Lie down and breathe slowly into the belly for a count of four in and six out.", ["recovery"], "🌬️"),
}


def _exercise(name: str, sets: int, reps: int, rest_time: int) -> dict:
    description, target_muscles, emoji = EXERCISE_LIBRARY[name]
    return {
        "name": name,
        "description": description,
        "sets": sets,
        "reps": reps,
        "restTime": rest_time,
        "targetMuscles": list(target_muscles),
        "emoji": emoji,
    }


WORKOUT_LIBRARY = {
    "weight-loss": {
        "label": "Fat Burning Circuit",
        "description": "High-intensity circuit that keeps the heart rate up to maximize calories burned.",
        "warmup": [("Jumping Jacks", 1, 30, 30), ("High Knees", 1, 30, 30)],
        "main": [
            ("Burpees", 3, 10, 45),
            ("Mountain Climbers", 3, 20, 45),
            ("Jump Squats", 3, 12, 45),
            ("Skaters", 3, 16, 45),
            ("Plank", 3, 1, 45),
        ],
        "cooldown": [("Standing Forward Bend", 1, 1, 30), ("Quad Stretch", 1, 1, 30)],
    },
    "muscle-gain": {
        "label": "Hypertrophy Builder",
        "description": "Moderate-rep dumbbell work across all major muscle groups for muscle growth.",
        "warmup": [("Arm Circles", 1, 20, 20), ("Bodyweight Squats", 1, 15, 30)],
        "main": [
            ("Push-ups", 4, 10, 90),
            ("Dumbbell Rows", 4, 10, 90),
            ("Goblet Squats", 4, 10, 90),
            ("Dumbbell Shoulder Press", 3, 10, 90),
            ("Walking Lunges", 3, 12, 90),
            ("Dumbbell Bicep Curls", 3, 12, 60),
        ],
        "cooldown": [("Chest and Shoulder Stretch", 1, 1, 30), ("Child's Pose", 1, 1, 30)],
    },
    "endurance": {
        "label": "Endurance Engine",
        "description": "Sustained cardio intervals and high-rep leg work to build stamina.",
        "warmup": [("Marching in Place", 1, 60, 20), ("Leg Swings", 1, 20, 20)],
        "main": [
            ("Running Intervals", 6, 1, 90),
            ("Jump Rope", 4, 100, 60),
            ("Step-ups", 3, 15, 45),
            ("Bodyweight Squats", 3, 20, 45),
            ("Mountain Climbers", 3, 30, 45),
        ],
        "cooldown": [("Hamstring Stretch", 1, 1, 30), ("Deep Breathing", 1, 1, 30)],
    },
    "flexibility": {
        "label": "Mobility Flow",
        "description": "Slow yoga-inspired flow to open the hips, spine and shoulders.",
        "warmup": [("Cat-Cow", 1, 10, 20), ("Arm Circles", 1, 20, 20)],
        "main": [
            ("Sun Salutation", 3, 1, 30),
            ("Downward Dog", 3, 1, 30),
            ("World's Greatest Stretch", 2, 6, 30),
            ("Pigeon Pose", 2, 1, 30),
            ("Thread the Needle", 2, 8, 20),
        ],
        "cooldown": [("Child's Pose", 1, 1, 30), ("Deep Breathing", 1, 1, 30)],
    },
    "general-fitness": {
        "label": "Full Body Fitness Routine",
        "description": "A balanced workout targeting all major muscle groups.",
        "warmup": [("Jumping Jacks", 1, 30, 30), ("Arm Circles", 1, 20, 20)],
        "main": [
            ("Push-ups", 3, 12, 60),
            ("Bodyweight Squats", 3, 15, 60),
            ("Plank", 3, 1, 60),
            ("Lunges", 3, 10, 60),
            ("Mountain Climbers", 3, 20, 60),
        ],
        "cooldown": [("Standing Forward Bend", 1, 1, 30), ("Chest and Shoulder Stretch", 1, 1, 30)],
    },
    "strength": {
        "label": "Strength Foundations",
        "description": "Heavy compound lifts in low rep ranges with long rests.",
        "warmup": [("Leg Swings", 1, 20, 20), ("Bodyweight Squats", 1, 15, 30)],
        "main": [
            ("Barbell Back Squat", 5, 5, 180),
            ("Deadlift", 5, 5, 180),
            ("Bench Press", 5, 5, 180),
            ("Overhead Press", 4, 6, 150),
            ("Pull-ups", 4, 6, 150),
            ("Bent-over Row", 4, 8, 120),
        ],
        "cooldown": [("Hamstring Stretch", 1, 1, 30), ("Chest and Shoulder Stretch", 1, 1, 30)],
    },
}

FITNESS_LEVELS = {
    # level: (set delta, rep multiplier, rest delta seconds, session minutes)
    "beginner": (-1, 0.7, 15, 30),
    "intermediate": (0, 1.0, 0, 45),
    "advanced": (1, 1.3, -15, 60),
}

GOAL_ALIASES = {
    "lose-weight": "weight-loss",
    "fat-loss": "weight-loss",
    "build-muscle": "muscle-gain",
    "hypertrophy": "muscle-gain",
    "cardio": "endurance",
    "stamina": "endurance",
    "mobility": "flexibility",
    "yoga": "flexibility",
    "general": "general-fitness",
    "fitness": "general-fitness",
    "power": "strength",
}


def estimate_workout_calories(difficulty: str | None, duration: int, exercise_count: int) -> int:
    per_minute = {"beginner": 5, "intermediate": 7, "advanced": 10}.get(normalize_key(difficulty), 6)
    return int(per_minute * duration * (1 + exercise_count * 0.05) + 0.5)


def _compose_workout_plan(goal: str, level: str) -> dict:
    library = WORKOUT_LIBRARY[goal]
    set_delta, rep_factor, rest_delta, minutes = FITNESS_LEVELS[level]

    main = [
        _exercise(
            name,
            max(1, sets + set_delta),
            max(1, int(reps * rep_factor + 0.5)),
            max(15, rest + rest_delta),
        )
        for name, sets, reps, rest in library["main"]
    ]
    exercises = {
        "warmup": [_exercise(*entry) for entry in library["warmup"]],
        "main": main,
        "cooldown": [_exercise(*entry) for entry in library["cooldown"]],
    }
    exercise_count = sum(len(group) for group in exercises.values())
    return {
        "name": f"{level.title()} {library['label']}",
        "description": library["description"],
        "difficulty": level,
        "duration": minutes,
        "caloriesBurned": estimate_workout_calories(level, minutes, exercise_count),
        "exercises": exercises,
    }


DEFAULT_WORKOUT_PLANS = {
    (goal, level): _compose_workout_plan(goal, level) for goal in WORKOUT_LIBRARY for level in FITNESS_LEVELS
}


WORKOUT_CONDITION_SUBSTITUTIONS = {
    "knee-pain": [
        ("jump", "Marching in Place"),
        ("burpee", "Incline Push-ups"),
        ("lunge", "Glute Bridges"),
        ("squat", "Wall Sit"),
        ("skater", "Glute Bridges"),
        ("step-up", "Stationary Cycling"),
        ("running", "Stationary Cycling"),
        ("high knees", "Marching in Place"),
    ],
    "back-pain": [
        ("deadlift", "Glute Bridges"),
        ("bent-over row", "Band Pull-aparts"),
        ("barbell back squat", "Goblet Squats"),
        ("overhead press", "Band Pull-aparts"),
        ("forward bend", "Knees-to-Chest Stretch"),
        ("burpee", "Dead Bug"),
    ],
    "hypertension": [
        ("burpee", "Marching in Place"),
        ("running intervals", "Brisk Walking"),
        ("jump rope", "Marching in Place"),
        ("plank", "Bird Dog"),
        ("wall sit", "Glute Bridges"),
        ("deadlift", "Glute Bridges"),
    ],
    "asthma": [
        ("running intervals", "Brisk Walking"),
        ("burpee", "Marching in Place"),
        ("jump rope", "Stationary Cycling"),
        ("mountain climber", "Dead Bug"),
    ],
}

WORKOUT_CONDITION_ALIASES = {
    "knee": "knee-pain",
    "knees": "knee-pain",
    "bad-knees": "knee-pain",
    "knee-injury": "knee-pain",
    "arthritis": "knee-pain",
    "back": "back-pain",
    "lower-back-pain": "back-pain",
    "back-injury": "back-pain",
    "high-blood-pressure": "hypertension",
}


def workout_substitution_rules(health_conditions: Iterable[str] = ()) -> list[tuple[str, str]]:
    rules = []
    for condition in health_conditions:
        key = normalize_key(condition)
        key = WORKOUT_CONDITION_ALIASES.get(key, key)
        rules.extend(WORKOUT_CONDITION_SUBSTITUTIONS.get(key, ()))
    return rules


def substitute_exercises(exercises: list[dict], rules: list[tuple[str, str]]) -> list[dict]:
    """Swap exercises whose name contains a flagged keyword.

    The replacement keeps the original sets, reps and rest so the session
    length stays the same.
    """
    substituted = []
    for exercise in exercises:
        lowered = str(exercise.get("name") or "").lower()
        for keyword, replacement in rules:
            if keyword in lowered:
                substituted.append(
                    _exercise(replacement, exercise.get("sets", 1), exercise.get("reps", 1), exercise.get("restTime", 30))
                )
                break
        else:
            substituted.append(exercise)
    return substituted


def resolve_goal(goal: str | None) -> str:
    key = normalize_key(goal)
    return GOAL_ALIASES.get(key, key)


def default_workout_plan(goal: str | None, fitness_level: str | None, health_conditions: Iterable[str] = ()) -> dict:
    key = (resolve_goal(goal), normalize_key(fitness_level))
    try:
        template = DEFAULT_WORKOUT_PLANS[key]
    except KeyError:
        raise UnknownPlanTemplate(
            f"No default workout plan for goal {goal!r} at fitness level {fitness_level!r}."
        ) from None

    plan = copy.deepcopy(template)
    rules = workout_substitution_rules(health_conditions)
    if rules:
        plan["exercises"] = {
            group: substitute_exercises(items, rules) for group, items in plan["exercises"].items()
        }
    return plan


EXERCISE_EMOJI = [
    ("push up", "💪"),
    ("pull up", "🏋️"),
    ("squat", "🦵"),
    ("lunge", "🦵"),
    ("plank", "🧘"),
    ("deadlift", "🏋️"),
    ("burpee", "⚡"),
    ("jumping jack", "⚡"),
    ("crunch", "🧘"),
    ("mountain climber", "🧗"),
    ("running", "🏃"),
    ("cycling", "🚴"),
    ("swimming", "🏊"),
    ("yoga", "🧘"),
]
DEFAULT_EXERCISE_EMOJI = "💪"


def emoji_for_exercise(name: str) -> str:
    normalized = re.sub(r"[^\w\s]", " ", (name or "").lower())
    normalized = re.sub(r"\s+", " ", normalized)
    for keyword, emoji in EXERCISE_EMOJI:
        if keyword in normalized:
            return emoji
    return DEFAULT_EXERCISE_EMOJI
