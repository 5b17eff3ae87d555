import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from nutriscan import create_app
from nutriscan.reports import REPORT_TYPES, build_report_pdf
from nutriscan.storage import get_storage


def main():
    parser = argparse.ArgumentParser(description="Write a user's NutriScan PDF health report to disk.")
    parser.add_argument("username", help="Username whose food history and plans go into the report.")
    parser.add_argument(
        "--type",
        dest="report_type",
        choices=REPORT_TYPES,
        default="all",
        help="Report sections to include (default: all).",
    )
    parser.add_argument(
        "--output",
        help="Output path (default: <username>-<type>-report.pdf in the current directory).",
    )
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        storage = get_storage()
        user = storage.get_user_by_username(args.username)
        if user is None:
            print(f"No user named {args.username!r}.", file=sys.stderr)
            return 1

        pdf_bytes = build_report_pdf(
            user,
            storage.get_food_entries_by_user_id(user.id),
            storage.get_meal_plans_by_user_id(user.id),
            storage.get_workout_plans_by_user_id(user.id),
            args.report_type,
            page_break=app.config["REPORT_PAGE_BREAK_MM"],
        )

    output = Path(args.output or f"{args.username}-{args.report_type}-report.pdf")
    output.write_bytes(pdf_bytes)
    print(f"Wrote {len(pdf_bytes)} bytes to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
