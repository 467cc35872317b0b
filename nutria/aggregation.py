"""Daily, weekly and monthly nutrition rollups.

Every window is resolved through :mod:`nutria.nutrition_day`, so a meal logged
at 04:30 counts toward the previous day in all views.
"""

from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite

from nutria import db
from nutria.models import DailyNutrition, Meal, User, utc_now
from nutria.nutrition_day import (
    DAY_START_HOUR,
    day_range,
    get_zoneinfo,
    month_week_buckets,
    resolve_day_key,
    span_range,
    to_naive_utc,
    week_days,
    weekday_name,
)

UPSERT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def user_zoneinfo(user: User, default: str = "UTC"):
    return get_zoneinfo(user.time_zone if user else None, default)


def sum_meals_between(user_id: int, start: datetime, end: datetime) -> dict:
    row = (
        db.session.query(
            func.coalesce(func.sum(Meal.total_calories), 0),
            func.coalesce(func.sum(Meal.total_protein), 0.0),
            func.coalesce(func.sum(Meal.total_carbs), 0.0),
            func.coalesce(func.sum(Meal.total_fat), 0.0),
            func.count(Meal.id),
        )
        .filter(
            Meal.user_id == user_id,
            Meal.created_at >= to_naive_utc(start),
            Meal.created_at < to_naive_utc(end),
        )
        .one()
    )
    calories, protein, carbs, fat, meal_count = row
    return {
        "calories": int(round(float(calories))),
        "protein": float(protein),
        "carbs": float(carbs),
        "fat": float(fat),
        "mealCount": int(meal_count),
    }


def _rounded(totals: dict) -> dict:
    return {
        **totals,
        "protein": round(totals["protein"], 1),
        "carbs": round(totals["carbs"], 1),
        "fat": round(totals["fat"], 1),
    }


def upsert_daily_nutrition(user_id: int, day_key: date, totals: dict) -> DailyNutrition:
    """Write the ``(user, day)`` rollup in one ``INSERT ... ON CONFLICT DO UPDATE``.

    Concurrent first rollups of the same day land on the same row instead of
    tripping ``uq_daily_nutrition_user_date``.
    """
    values = {
        "total_calories": totals["calories"],
        "total_protein": round(totals["protein"], 1),
        "total_carbs": round(totals["carbs"], 1),
        "total_fat": round(totals["fat"], 1),
        "meal_count": totals["mealCount"],
        "updated_at": utc_now(),
    }
    dialect = db.engine.dialect.name
    insert = UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Daily rollups need PostgreSQL or SQLite, not {dialect}")
    statement = insert(DailyNutrition).values(user_id=user_id, date=day_key, **values)
    db.session.execute(statement.on_conflict_do_update(index_elements=["user_id", "date"], set_=values))
    return DailyNutrition.query.filter_by(user_id=user_id, date=day_key).populate_existing().one()


def daily_total(user: User, day_key: date, tz=None, *, commit: bool = True) -> dict:
    """Sum the user's meals on ``day_key`` and upsert the DailyNutrition row."""
    zone = tz or user_zoneinfo(user)
    start, end = day_range(day_key, zone)
    totals = sum_meals_between(user.id, start, end)
    upsert_daily_nutrition(user.id, day_key, totals)
    if commit:
        db.session.commit()
    return {"date": day_key.isoformat(), **_rounded(totals)}


def weekly_totals(user: User, anchor: date, tz=None) -> list[dict]:
    zone = tz or user_zoneinfo(user)
    results = []
    for day in week_days(anchor):
        entry = daily_total(user, day, zone, commit=False)
        entry["weekday"] = weekday_name(day)
        results.append(entry)
    db.session.commit()
    return results


def monthly_totals(user: User, anchor: date, tz=None) -> list[dict]:
    zone = tz or user_zoneinfo(user)
    results = []
    for first_day, last_day in month_week_buckets(anchor):
        start, end = span_range(first_day, last_day, zone)
        totals = _rounded(sum_meals_between(user.id, start, end))
        results.append({"weekStart": first_day.isoformat(), "weekEnd": last_day.isoformat(), **totals})
    return results


def hourly_totals(user: User, day_key: date, tz=None) -> list[dict]:
    """24 local-hour buckets of one nutritional day, ordered 05h to 04h."""
    zone = tz or user_zoneinfo(user)
    start, end = day_range(day_key, zone)
    meals = (
        Meal.query.filter(
            Meal.user_id == user.id,
            Meal.created_at >= to_naive_utc(start),
            Meal.created_at < to_naive_utc(end),
        )
        .order_by(Meal.created_at.asc())
        .all()
    )

    hours = [(DAY_START_HOUR + offset) % 24 for offset in range(24)]
    buckets = {
        hour: {"hour": hour, "calories": 0, "protein": 0.0, "carbs": 0.0, "fat": 0.0, "meals": []}
        for hour in hours
    }
    for meal in meals:
        local = meal.created_at.replace(tzinfo=timezone.utc).astimezone(zone)
        bucket = buckets[local.hour]
        bucket["calories"] += int(meal.total_calories or 0)
        bucket["protein"] += float(meal.total_protein or 0)
        bucket["carbs"] += float(meal.total_carbs or 0)
        bucket["fat"] += float(meal.total_fat or 0)
        bucket["meals"].append(
            {"id": meal.id, "type": meal.meal_type.name if meal.meal_type else None, "calories": meal.total_calories}
        )

    return [
        {**bucket, "protein": round(bucket["protein"], 1), "carbs": round(bucket["carbs"], 1), "fat": round(bucket["fat"], 1)}
        for bucket in (buckets[hour] for hour in hours)
    ]


def history_between(user_id: int, start_day: date, end_day: date) -> list[DailyNutrition]:
    return (
        DailyNutrition.query.filter(
            DailyNutrition.user_id == user_id,
            DailyNutrition.date >= start_day,
            DailyNutrition.date <= end_day,
        )
        .order_by(DailyNutrition.date.asc())
        .all()
    )


def refresh_history(user: User, start_day: date, end_day: date, tz=None) -> list[DailyNutrition]:
    """Recompute stored days and days with meals in the range, then return the rows.

    Logged days come from ``created_at`` through the nutritional-day resolver
    in the user's current zone, like every other window. Days with neither a
    row nor meals stay absent so an empty window yields no rows.
    """
    zone = tz or user_zoneinfo(user)
    stored = {row.date for row in history_between(user.id, start_day, end_day)}
    span_start, span_end = span_range(start_day, end_day, zone)
    logged = {
        resolve_day_key(created_at, zone)
        for (created_at,) in db.session.query(Meal.created_at).filter(
            Meal.user_id == user.id,
            Meal.created_at >= to_naive_utc(span_start),
            Meal.created_at < to_naive_utc(span_end),
        )
    }
    for day in sorted(stored | logged):
        daily_total(user, day, zone, commit=False)
    db.session.commit()
    return history_between(user.id, start_day, end_day)


def daily_nutrition_payload(record: DailyNutrition) -> dict:
    return {
        "date": record.date.isoformat(),
        "totalCalories": record.total_calories,
        "totalProtein": record.total_protein,
        "totalCarbs": record.total_carbs,
        "totalFat": record.total_fat,
        "mealCount": record.meal_count,
    }
