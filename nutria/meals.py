from datetime import date, datetime, timezone

from sqlalchemy import or_

from nutria import db
from nutria.errors import NotFoundError, ValidationError
from nutria.food_catalog import get_accessible_food, grams_for, normalize_unit
from nutria.models import Food, Meal, MealFood, MealType, Recipe, RecipeIngredient
from nutria.nutrition_day import day_range, resolve_day_key, to_naive_utc

DEFAULT_MEAL_TYPES = [
    {"name": "Café da Manhã", "icon": "coffee"},
    {"name": "Almoço", "icon": "utensils"},
    {"name": "Jantar", "icon": "bowl-food"},
    {"name": "Lanche", "icon": "cookie-bite"},
]


def seed_default_meal_types_if_needed() -> None:
    existing_names = {
        name for (name,) in db.session.query(MealType.name).filter(MealType.user_id.is_(None)).all()
    }
    missing = [row for row in DEFAULT_MEAL_TYPES if row["name"] not in existing_names]
    if not missing:
        return

    for row in missing:
        db.session.add(MealType(user_id=None, name=row["name"], icon=row["icon"], is_default=True))
    db.session.commit()


def list_meal_types(user_id: int | None) -> list[MealType]:
    seed_default_meal_types_if_needed()
    scope = MealType.user_id.is_(None)
    if user_id is not None:
        scope = or_(MealType.user_id.is_(None), MealType.user_id == user_id)
    return MealType.query.filter(scope).order_by(MealType.is_default.desc(), MealType.id.asc()).all()


def create_meal_type(user_id: int, name: str | None, icon: str | None = None) -> MealType:
    name = (name or "").strip()[:120]
    if not name:
        raise ValidationError("Nome do tipo de refeição é obrigatório")
    if MealType.query.filter_by(user_id=user_id, name=name).first():
        raise ValidationError("Tipo de refeição já existe")
    meal_type = MealType(user_id=user_id, name=name, icon=(icon or "").strip()[:40] or None)
    db.session.add(meal_type)
    db.session.commit()
    return meal_type


def _parse_quantity(value) -> float:
    try:
        quantity = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Quantidade inválida") from None
    if quantity <= 0:
        raise ValidationError("A quantidade deve ser maior que zero")
    return quantity


def nutrition_snapshot(food: Food, quantity: float, unit: str | None) -> dict:
    """Nutrition of ``quantity`` ``unit`` of ``food`` from its per-100g values."""
    multiplier = grams_for(quantity, unit) / 100
    return {
        "calories": int(round((food.calories_per_100g or 0) * multiplier)),
        "protein": round((food.protein_per_100g or 0) * multiplier, 1),
        "carbs": round((food.carbs_per_100g or 0) * multiplier, 1),
        "fat": round((food.fat_per_100g or 0) * multiplier, 1),
    }


def _sum_lines(lines) -> dict:
    return {
        "total_calories": sum(int(line.calories or 0) for line in lines),
        "total_protein": round(sum(float(line.protein or 0) for line in lines), 1),
        "total_carbs": round(sum(float(line.carbs or 0) for line in lines), 1),
        "total_fat": round(sum(float(line.fat or 0) for line in lines), 1),
    }


def refresh_totals(owner, lines) -> None:
    for field_name, value in _sum_lines(lines).items():
        setattr(owner, field_name, value)


def _resolve_line(user_id: int, item: dict) -> dict:
    if not isinstance(item, dict):
        raise ValidationError("Alimento inválido")
    food = get_accessible_food(user_id, item.get("foodId"))
    quantity = _parse_quantity(item.get("quantity"))
    unit = normalize_unit(item.get("unit"))
    return {"food": food, "quantity": quantity, "unit": unit, **nutrition_snapshot(food, quantity, unit)}


def _build_meal_food(user_id: int, item: dict) -> MealFood:
    return MealFood(**_resolve_line(user_id, item))


def get_user_meal(user_id: int, meal_id: int) -> Meal:
    meal = Meal.query.filter_by(id=meal_id, user_id=user_id).first()
    if meal is None:
        raise NotFoundError("Refeição não encontrada")
    return meal


def list_meals(user_id: int, day_key: date | None = None, tz=None) -> list[Meal]:
    query = Meal.query.filter_by(user_id=user_id)
    if day_key is not None:
        start, end = day_range(day_key, tz)
        query = query.filter(Meal.created_at >= to_naive_utc(start), Meal.created_at < to_naive_utc(end))
    return query.order_by(Meal.created_at.asc()).all()


def create_meal(user_id: int, data: dict, tz=None) -> Meal:
    try:
        meal_type_id = int(data.get("mealTypeId"))
    except (TypeError, ValueError):
        raise ValidationError("Selecione um tipo de refeição") from None
    meal_type = db.session.get(MealType, meal_type_id)
    if meal_type is None or (meal_type.user_id is not None and meal_type.user_id != user_id):
        raise NotFoundError("Tipo de refeição não encontrado")

    items = data.get("foods")
    if not isinstance(items, list) or not items:
        raise ValidationError("Adicione pelo menos um alimento")

    logged_at = data.get("loggedAt")
    if logged_at is None:
        logged_at = datetime.now(timezone.utc)
    elif not isinstance(logged_at, datetime):
        raise ValidationError("Data/hora da refeição inválida")
    elif logged_at.tzinfo is None:
        # naive input is the user's wall clock
        logged_at = logged_at.replace(tzinfo=tz or timezone.utc)

    meal = Meal(
        user_id=user_id,
        meal_type_id=meal_type.id,
        name=(data.get("name") or "").strip()[:255] or meal_type.name,
        created_at=to_naive_utc(logged_at),
        date=resolve_day_key(logged_at, tz),
    )
    meal.foods = [_build_meal_food(user_id, item) for item in items]
    refresh_totals(meal, meal.foods)

    db.session.add(meal)
    db.session.commit()
    return meal


def add_food_to_meal(user_id: int, meal_id: int, item: dict) -> MealFood:
    meal = get_user_meal(user_id, meal_id)
    line = _build_meal_food(user_id, item)
    meal.foods.append(line)
    refresh_totals(meal, meal.foods)
    db.session.commit()
    return line


def update_meal_food(user_id: int, meal_food_id: int, data: dict) -> MealFood:
    line = (
        MealFood.query.join(Meal, MealFood.meal_id == Meal.id)
        .filter(MealFood.id == meal_food_id, Meal.user_id == user_id)
        .first()
    )
    if line is None:
        raise NotFoundError("Item da refeição não encontrado")

    quantity = _parse_quantity(data.get("quantity", line.quantity))
    unit = normalize_unit(data.get("unit", line.unit))
    # Always from the food's canonical values, never from the previous snapshot.
    snapshot = nutrition_snapshot(line.food, quantity, unit)
    line.quantity = quantity
    line.unit = unit
    for field_name, value in snapshot.items():
        setattr(line, field_name, value)

    refresh_totals(line.meal, line.meal.foods)
    db.session.commit()
    return line


def remove_food_from_meal(user_id: int, meal_id: int, food_id: int) -> int:
    meal = get_user_meal(user_id, meal_id)
    removed = [line for line in meal.foods if line.food_id == food_id]
    if not removed:
        raise NotFoundError("Alimento não encontrado nesta refeição")
    for line in removed:
        meal.foods.remove(line)
    refresh_totals(meal, meal.foods)
    db.session.commit()
    return len(removed)


def delete_meal(user_id: int, meal_id: int) -> None:
    meal = get_user_meal(user_id, meal_id)
    db.session.delete(meal)
    db.session.commit()


def reassign_meal_days(user_id: int, tz) -> int:
    """Re-resolve ``Meal.date`` for all of a user's meals after a zone change."""
    changed = 0
    for meal in Meal.query.filter_by(user_id=user_id).all():
        day_key = resolve_day_key(meal.created_at, tz)
        if meal.date != day_key:
            meal.date = day_key
            changed += 1
    return changed


def get_user_recipe(user_id: int, recipe_id: int) -> Recipe:
    recipe = Recipe.query.filter_by(id=recipe_id, user_id=user_id).first()
    if recipe is None:
        raise NotFoundError("Receita não encontrada")
    return recipe


def list_recipes(user_id: int) -> list[Recipe]:
    return Recipe.query.filter_by(user_id=user_id).order_by(Recipe.created_at.desc()).all()


def create_recipe(user_id: int, data: dict) -> Recipe:
    name = (data.get("name") or "").strip()[:255]
    if not name:
        raise ValidationError("O nome da receita é obrigatório")
    servings = data.get("servings") or 1
    try:
        servings = max(1, int(servings))
    except (TypeError, ValueError):
        raise ValidationError("Número de porções inválido") from None

    recipe = Recipe(
        user_id=user_id,
        name=name,
        description=(data.get("description") or "").strip() or None,
        instructions=(data.get("instructions") or "").strip() or None,
        servings=servings,
    )
    items = data.get("ingredients") or []
    if not isinstance(items, list):
        raise ValidationError("Ingredientes inválidos")
    recipe.ingredients = [_build_ingredient(user_id, item) for item in items]
    refresh_totals(recipe, recipe.ingredients)

    db.session.add(recipe)
    db.session.commit()
    return recipe


def _build_ingredient(user_id: int, item: dict) -> RecipeIngredient:
    return RecipeIngredient(**_resolve_line(user_id, item))


def add_ingredient_to_recipe(user_id: int, recipe_id: int, item: dict) -> RecipeIngredient:
    recipe = get_user_recipe(user_id, recipe_id)
    ingredient = _build_ingredient(user_id, item)
    recipe.ingredients.append(ingredient)
    refresh_totals(recipe, recipe.ingredients)
    db.session.commit()
    return ingredient


def delete_recipe(user_id: int, recipe_id: int) -> None:
    recipe = get_user_recipe(user_id, recipe_id)
    db.session.delete(recipe)
    db.session.commit()


def line_payload(line) -> dict:
    return {
        "id": line.id,
        "foodId": line.food_id,
        "foodName": line.food.display_name() if line.food else None,
        "quantity": line.quantity,
        "unit": line.unit,
        "calories": line.calories,
        "protein": line.protein,
        "carbs": line.carbs,
        "fat": line.fat,
    }


def meal_payload(meal: Meal, tz=None) -> dict:
    # Without a zone the day stored at logging time is reported.
    return {
        "id": meal.id,
        "mealTypeId": meal.meal_type_id,
        "mealType": meal.meal_type.name if meal.meal_type else None,
        "name": meal.name,
        "date": (resolve_day_key(meal.created_at, tz) if tz is not None else meal.date).isoformat(),
        "createdAt": meal.created_at.isoformat() + "Z",
        "totalCalories": meal.total_calories,
        "totalProtein": meal.total_protein,
        "totalCarbs": meal.total_carbs,
        "totalFat": meal.total_fat,
        "foods": [line_payload(line) for line in meal.foods],
    }


def recipe_payload(recipe: Recipe) -> dict:
    return {
        "id": recipe.id,
        "name": recipe.name,
        "description": recipe.description,
        "instructions": recipe.instructions,
        "servings": recipe.servings,
        "totalCalories": recipe.total_calories,
        "totalProtein": recipe.total_protein,
        "totalCarbs": recipe.total_carbs,
        "totalFat": recipe.total_fat,
        "ingredients": [line_payload(line) for line in recipe.ingredients],
    }


def meal_type_payload(meal_type: MealType) -> dict:
    return {
        "id": meal_type.id,
        "name": meal_type.name,
        "icon": meal_type.icon,
        "isDefault": meal_type.is_default,
    }
