from nutria.errors import ValidationError

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}
GOAL_OFFSETS = {"lose": -500, "maintain": 0, "gain": 300}

GOAL_LIMITS = {
    "daily_calories": (1200, 5000),
    "daily_protein": (50, 300),
    "daily_carbs": (100, 600),
    "daily_fat": (20, 200),
}


def basal_metabolic_rate(weight_kg: float, height_cm: float, age: int, sex: str | None = None) -> float:
    # Mifflin-St Jeor
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    return base - 161 if (sex or "").lower() == "female" else base + 5


def compute_daily_goals(
    weight_kg: float,
    height_cm: float,
    age: int,
    activity_level: str | None,
    goal: str | None,
    sex: str | None = None,
) -> dict:
    bmr = basal_metabolic_rate(weight_kg, height_cm, age, sex)
    tdee = bmr * ACTIVITY_MULTIPLIERS.get(activity_level or "", 1.55)
    calories = tdee + GOAL_OFFSETS.get(goal or "", 0)

    return {
        "daily_calories": int(round(calories)),
        "daily_protein": int(round(calories * 0.25 / 4)),
        "daily_carbs": int(round(calories * 0.5 / 4)),
        "daily_fat": int(round(calories * 0.25 / 9)),
    }


def validate_goals(values: dict) -> dict:
    cleaned = {}
    for field_name, (low, high) in GOAL_LIMITS.items():
        raw = values.get(field_name)
        try:
            number = int(round(float(raw)))
        except (TypeError, ValueError):
            raise ValidationError("Valores de meta inválidos", details={"field": field_name}) from None
        if number < low or number > high:
            raise ValidationError(
                "Valores de meta inválidos",
                details={"field": field_name, "min": low, "max": high},
            )
        cleaned[field_name] = number
    return cleaned
