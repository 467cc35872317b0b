import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from nutria import create_app
from nutria.errors import NutriaError
from nutria.food_catalog import import_remote_food, search_remote_foods
from nutria.models import User


def main():
    parser = argparse.ArgumentParser(
        description="Import USDA FoodData Central search results into a user's food catalog."
    )
    parser.add_argument(
        "queries",
        nargs="+",
        help="Search terms to import (example: frango arroz banana).",
    )
    parser.add_argument("--user-email", required=True, help="Owner of the imported foods.")
    parser.add_argument(
        "--max-results",
        type=int,
        default=25,
        help="Max USDA results imported per query (default: 25).",
    )
    parser.add_argument(
        "--allow-fallback",
        action="store_true",
        help="Import built-in fallback foods when USDA is unreachable.",
    )
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        user = User.query.filter_by(email=args.user_email.strip().lower()).first()
        if user is None:
            parser.error(f"no user with email {args.user_email}")

        total = 0
        for query in args.queries:
            try:
                result = search_remote_foods(query)
            except NutriaError as exc:
                print(f"{query}: skipped ({exc.message})")
                continue
            if result["degraded"] and not args.allow_fallback:
                print(f"{query}: USDA unavailable, skipped")
                continue

            imported = 0
            for record in result["foods"][: args.max_results]:
                import_remote_food(user.id, record=record)
                imported += 1
            total += imported
            print(f"{query}: imported {imported} ({result['source']})")
        print(f"Total imported: {total}")


if __name__ == "__main__":
    main()
