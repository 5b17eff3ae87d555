"""PDF health reports.

Pages are laid out in millimetres measured from the top edge of an A4 sheet.
``ReportWriter`` keeps a vertical cursor and starts a new page as soon as the
cursor moves past the page break line, so nothing is drawn into the footer
area. Footers need the total page count, so they are stamped when the
document is saved (see ``NumberedCanvas``).
"""

from datetime import date
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

REPORT_TYPES = ("all", "food", "meals", "workouts")

PAGE_TOP_MM = 40
PAGE_BREAK_MM = 270
SECTION_BREAK_MM = 240
PLAN_BREAK_MM = 250
LEFT_MM = 20
RIGHT_MM = 190

FOOD_ROW_LIMIT = 15
PLAN_LIMIT = 3
MEAL_LIMIT = 3
EXERCISE_LIMIT = 5

FONTS = {
    "normal": "Helvetica",
    "bold": "Helvetica-Bold",
    "italic": "Helvetica-Oblique",
}
BRAND_GREEN = (76 / 255, 175 / 255, 80 / 255)
MUTED_GREY = (100 / 255, 100 / 255, 100 / 255)
RULE_GREY = (200 / 255, 200 / 255, 200 / 255)
SEPARATOR_GREY = (220 / 255, 220 / 255, 220 / 255)

FOOD_COLUMNS = (("Food Item", 20), ("Calories", 100), ("Protein", 125), ("Carbs", 150), ("Fat", 175))


def _page_y(y_mm: float) -> float:
    return A4[1] - y_mm * mm


def pdf_text(value) -> str:
    # Built-in Helvetica only covers WinAnsi, so emoji and other symbols are dropped.
    text = " ".join(str(value or "").split())
    return text.encode("cp1252", "ignore").decode("cp1252").strip()


def fit_text(text: str, font: str, size: float, max_width_mm: float) -> str:
    if stringWidth(text, font, size) <= max_width_mm * mm:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > max_width_mm * mm:
        text = text[:-1]
    return text.rstrip() + ellipsis


def format_number(value) -> str:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return "0"
    if number.is_integer():
        return str(int(number))
    return f"{number:.1f}"


class NumberedCanvas(canvas.Canvas):
    """Canvas that stamps "Page i of N" footers once the page count is known."""

    copyright_line = "© NutriScan. AI-powered nutrition and fitness platform."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        self.saveState()
        self.setStrokeColorRGB(*RULE_GREY)
        self.line(LEFT_MM * mm, _page_y(280), RIGHT_MM * mm, _page_y(280))
        self.setFont(FONTS["normal"], 10)
        self.setFillColorRGB(*MUTED_GREY)
        self.drawString(LEFT_MM * mm, _page_y(285), self.copyright_line)
        self.drawRightString(RIGHT_MM * mm, _page_y(285), f"Page {self.getPageNumber()} of {total}")
        self.restoreState()


class ReportWriter:
    def __init__(self, buffer, page_break: float = PAGE_BREAK_MM, top: float = PAGE_TOP_MM):
        self.canvas = NumberedCanvas(buffer, pagesize=A4)
        self.page_break = page_break
        self.top = top
        self.y = top
        self.page_count = 1

    def new_page(self):
        self.canvas.showPage()
        self.page_count += 1
        self.y = self.top

    def ensure_space(self, threshold: float | None = None) -> bool:
        """Start a new page if the cursor is past ``threshold``; report whether it did."""
        limit = self.page_break if threshold is None else threshold
        if self.y > limit:
            self.new_page()
            return True
        return False

    def _set_font(self, style: str, size: float):
        self.canvas.setFont(FONTS[style], size)

    def write(self, text, x: float = LEFT_MM, size: float = 10, style: str = "normal", advance: float = 5):
        self.ensure_space()
        self._set_font(style, size)
        line = fit_text(pdf_text(text), FONTS[style], size, RIGHT_MM - x)
        self.canvas.drawString(x * mm, _page_y(self.y), line)
        self.y += advance

    def columns(self, cells, size: float = 10, style: str = "normal", advance: float = 5):
        self.ensure_space()
        self._set_font(style, size)
        positions = [x for _, x in cells] + [RIGHT_MM]
        for (text, x), next_x in zip(cells, positions[1:]):
            line = fit_text(pdf_text(text), FONTS[style], size, next_x - x - 2)
            self.canvas.drawString(x * mm, _page_y(self.y), line)
        self.y += advance

    def rule(self, color=RULE_GREY):
        self.ensure_space()
        self.canvas.setStrokeColorRGB(*color)
        self.canvas.line(LEFT_MM * mm, _page_y(self.y), RIGHT_MM * mm, _page_y(self.y))

    def finish(self):
        self.canvas.showPage()
        self.canvas.save()


def _draw_header(writer: ReportWriter, subtitle: str, user):
    c = writer.canvas
    c.setFillColorRGB(*BRAND_GREEN)
    c.circle(20 * mm, _page_y(20), 5 * mm, stroke=0, fill=1)
    c.setFillColorRGB(1, 1, 1)
    c.ellipse(18 * mm, _page_y(23), 22 * mm, _page_y(17), stroke=0, fill=1)

    c.setFillColorRGB(0, 0, 0)
    c.setFont(FONTS["bold"], 24)
    c.drawString(30 * mm, _page_y(20), "NutriScan Health Report")
    c.setFont(FONTS["normal"], 12)
    c.drawString(30 * mm, _page_y(28), subtitle)

    c.setFont(FONTS["normal"], 10)
    c.setFillColorRGB(*MUTED_GREY)
    c.drawRightString(RIGHT_MM * mm, _page_y(12), f"Generated on: {date.today().isoformat()}")
    if user is not None:
        owner = pdf_text(getattr(user, "full_name", None) or getattr(user, "username", ""))
        if owner:
            c.drawRightString(RIGHT_MM * mm, _page_y(28), f"Prepared for: {owner}")
    c.setFillColorRGB(0, 0, 0)

    c.setStrokeColorRGB(*RULE_GREY)
    c.line(LEFT_MM * mm, _page_y(32), RIGHT_MM * mm, _page_y(32))


def _food_table_header(writer: ReportWriter):
    # header row and its rule stay on one page
    writer.ensure_space(writer.page_break - 5)
    writer.columns(FOOD_COLUMNS, style="bold")
    writer.rule()
    writer.y += 5


def _add_food_entries(writer: ReportWriter, entries):
    writer.write("Food Entries", size=16, style="bold", advance=8)
    _food_table_header(writer)

    for entry in entries[:FOOD_ROW_LIMIT]:
        if writer.ensure_space():
            _food_table_header(writer)
        writer.columns(
            [
                (entry.food_name or "Unknown", 20),
                (f"{format_number(entry.calories)} kcal", 100),
                (f"{format_number(entry.protein)}g", 125),
                (f"{format_number(entry.carbs)}g", 150),
                (f"{format_number(entry.fats)}g", 175),
            ],
            advance=7,
        )

    if len(entries) > FOOD_ROW_LIMIT:
        writer.write(f"... and {len(entries) - FOOD_ROW_LIMIT} more entries", style="italic", advance=7)
    writer.y += 5


def _labelled_meals(meals) -> list[tuple[str, dict]]:
    if isinstance(meals, list):
        return [(str(meal.get("type") or "meal"), meal) for meal in meals if isinstance(meal, dict)]
    if not isinstance(meals, dict):
        return []
    labelled = []
    for slot, value in meals.items():
        if isinstance(value, dict):
            labelled.append((slot, value))
        elif isinstance(value, list):
            label = slot[:-1] if slot.endswith("s") else slot
            labelled.extend((label, meal) for meal in value if isinstance(meal, dict))
    return labelled


def _meal_nutrition_line(meal: dict) -> str:
    parts = []
    if meal.get("calories"):
        parts.append(f"{format_number(meal['calories'])} kcal")
    if meal.get("protein"):
        parts.append(f"{format_number(meal['protein'])}g protein")
    if meal.get("carbs"):
        parts.append(f"{format_number(meal['carbs'])}g carbs")
    fats = meal.get("fats", meal.get("fat"))
    if fats:
        parts.append(f"{format_number(fats)}g fat")
    return ", ".join(parts)


def _plan_separator(writer: ReportWriter, index: int, total: int):
    if index < min(total, PLAN_LIMIT) - 1:
        writer.y += 3
        if not writer.ensure_space():
            writer.rule(SEPARATOR_GREY)
        writer.y += 8


def _plan_heading(writer: ReportWriter, plan):
    writer.ensure_space(PLAN_BREAK_MM)
    writer.write(plan.name or "Untitled plan", size=13, style="bold", advance=6)
    if plan.description:
        writer.write(plan.description, advance=6)


def _add_meal_plans(writer: ReportWriter, plans):
    writer.write("Meal Plans", size=16, style="bold", advance=10)

    for index, plan in enumerate(plans[:PLAN_LIMIT]):
        _plan_heading(writer, plan)
        if plan.calories:
            writer.write(f"Target calories: {format_number(plan.calories)} kcal", advance=6)

        meals = _labelled_meals(plan.meals)
        if meals:
            writer.write(f"Contains {len(meals)} meal{'s' if len(meals) > 1 else ''}", style="italic", advance=6)
            for label, meal in meals[:MEAL_LIMIT]:
                writer.write(f"• {meal.get('name') or 'Unnamed Meal'} ({label})", x=25, style="bold")
                if meal.get("description"):
                    writer.write(meal["description"], x=30)
                nutrition = _meal_nutrition_line(meal)
                if nutrition:
                    writer.write(nutrition, x=30)
            if len(meals) > MEAL_LIMIT:
                writer.write(f"... and {len(meals) - MEAL_LIMIT} more meals", x=25, style="italic")

        _plan_separator(writer, index, len(plans))

    if len(plans) > PLAN_LIMIT:
        writer.write(f"... and {len(plans) - PLAN_LIMIT} more meal plans", style="italic", advance=7)
    writer.y += 5


def flatten_exercises(exercises) -> tuple[list[dict], dict]:
    if isinstance(exercises, list):
        return [ex for ex in exercises if isinstance(ex, dict)], {}
    if not isinstance(exercises, dict):
        return [], {}
    meta = {key: exercises[key] for key in ("difficulty", "duration") if exercises.get(key)}
    if isinstance(exercises.get("exercises"), list):
        return [ex for ex in exercises["exercises"] if isinstance(ex, dict)], meta
    flattened = []
    for group in ("warmup", "main", "cooldown"):
        flattened.extend(ex for ex in exercises.get(group) or [] if isinstance(ex, dict))
    return flattened, meta


def _exercise_detail_line(exercise: dict) -> str:
    detail = ""
    if exercise.get("sets") and exercise.get("reps"):
        detail = f"{exercise['sets']} sets × {exercise['reps']} reps"
    if exercise.get("duration"):
        detail += (", " if detail else "") + f"{exercise['duration']} seconds"
    muscles = exercise.get("muscle") or exercise.get("targetMuscles")
    if isinstance(muscles, list):
        muscles = ", ".join(str(m) for m in muscles)
    if muscles:
        detail += (" | " if detail else "") + f"Muscle group: {muscles}"
    return detail


def _add_workout_plans(writer: ReportWriter, plans):
    writer.write("Workout Plans", size=16, style="bold", advance=10)

    for index, plan in enumerate(plans[:PLAN_LIMIT]):
        _plan_heading(writer, plan)
        if plan.calories_burned:
            writer.write(f"Estimated calories: {format_number(plan.calories_burned)} kcal", advance=6)

        exercises, meta = flatten_exercises(plan.exercises)
        if exercises:
            count = len(exercises)
            writer.write(f"Contains {count} exercise{'s' if count > 1 else ''}", style="italic", advance=6)
            meta_parts = []
            if meta.get("difficulty"):
                meta_parts.append(f"Difficulty: {meta['difficulty']}")
            if meta.get("duration"):
                meta_parts.append(f"Duration: {meta['duration']} min")
            if meta_parts:
                writer.write(", ".join(meta_parts), advance=6)

            for exercise in exercises[:EXERCISE_LIMIT]:
                writer.write(f"• {exercise.get('name') or 'Unnamed Exercise'}", x=25, style="bold")
                detail = _exercise_detail_line(exercise)
                if detail:
                    writer.write(detail, x=30)
            if count > EXERCISE_LIMIT:
                writer.write(f"... and {count - EXERCISE_LIMIT} more exercises", x=25, style="italic")

        _plan_separator(writer, index, len(plans))

    if len(plans) > PLAN_LIMIT:
        writer.write(f"... and {len(plans) - PLAN_LIMIT} more workout plans", style="italic", advance=7)
    writer.y += 5


def build_report_pdf(
    user,
    food_entries,
    meal_plans,
    workout_plans,
    report_type: str = "all",
    page_break: float = PAGE_BREAK_MM,
) -> bytes:
    if report_type not in REPORT_TYPES:
        raise ValueError(f"Unknown report type {report_type!r}; expected one of {', '.join(REPORT_TYPES)}.")

    food_entries = list(food_entries or [])
    meal_plans = list(meal_plans or [])
    workout_plans = list(workout_plans or [])

    buffer = BytesIO()
    writer = ReportWriter(buffer, page_break=page_break)
    subtitle = "Complete Health Summary" if report_type == "all" else f"{report_type.title()} Report"
    _draw_header(writer, subtitle, user)

    if report_type in ("food", "all"):
        if food_entries:
            _add_food_entries(writer, food_entries)
        else:
            writer.write("No food entries available", size=12, advance=10)

    if report_type in ("meals", "all"):
        writer.ensure_space(SECTION_BREAK_MM)
        if meal_plans:
            _add_meal_plans(writer, meal_plans)
        elif report_type == "meals":
            writer.write("No meal plans available", size=12, advance=10)

    if report_type in ("workouts", "all"):
        writer.ensure_space(SECTION_BREAK_MM)
        if workout_plans:
            _add_workout_plans(writer, workout_plans)
        elif report_type == "workouts":
            writer.write("No workout plans available", size=12, advance=10)

    writer.finish()
    return buffer.getvalue()
