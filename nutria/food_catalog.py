from typing import Any

import httpx
from flask import current_app
from sqlalchemy import or_

from nutria import db
from nutria.errors import NotFoundError, UpstreamError, ValidationError
from nutria.models import Food, MealFood, RecipeIngredient

MIN_REMOTE_QUERY_LENGTH = 3

# Served when the USDA API cannot be reached.
FALLBACK_FOODS = [
    {"name": "Arroz branco cozido", "category": "Cereais", "calories": 130, "protein": 2.7, "carbs": 28, "fat": 0.3, "fiber": 0.4, "sugar": 0.1, "sodium": 0.001},
    {"name": "Arroz integral cozido", "category": "Cereais", "calories": 124, "protein": 2.6, "carbs": 25.8, "fat": 1.0, "fiber": 2.7, "sugar": 0.3, "sodium": 0.001},
    {"name": "Feijão preto cozido", "category": "Leguminosas", "calories": 132, "protein": 8.9, "carbs": 23, "fat": 0.5, "fiber": 8.7, "sugar": 0.3, "sodium": 0.002},
    {"name": "Feijão carioca cozido", "category": "Leguminosas", "calories": 76, "protein": 4.8, "carbs": 13.6, "fat": 0.5, "fiber": 8.5, "sugar": 0.3, "sodium": 0.002},
    {"name": "Peito de frango grelhado", "category": "Carnes", "calories": 165, "protein": 31, "carbs": 0, "fat": 3.6, "fiber": 0, "sugar": 0, "sodium": 0.074},
    {"name": "Coxa de frango assada", "category": "Carnes", "calories": 215, "protein": 26.9, "carbs": 0, "fat": 11.2, "fiber": 0, "sugar": 0, "sodium": 0.09},
    {"name": "Carne bovina patinho grelhado", "category": "Carnes", "calories": 219, "protein": 35.9, "carbs": 0, "fat": 7.3, "fiber": 0, "sugar": 0, "sodium": 0.06},
    {"name": "Tilápia grelhada", "category": "Peixes", "calories": 128, "protein": 26, "carbs": 0, "fat": 2.7, "fiber": 0, "sugar": 0, "sodium": 0.056},
    {"name": "Ovos", "category": "Proteínas", "calories": 155, "protein": 13, "carbs": 1.1, "fat": 11, "fiber": 0, "sugar": 1.1, "sodium": 0.124},
    {"name": "Banana", "category": "Frutas", "calories": 89, "protein": 1.1, "carbs": 23, "fat": 0.3, "fiber": 2.6, "sugar": 12, "sodium": 0.001},
    {"name": "Maçã", "category": "Frutas", "calories": 52, "protein": 0.3, "carbs": 14, "fat": 0.2, "fiber": 2.4, "sugar": 10, "sodium": 0.001},
    {"name": "Pão francês", "category": "Panificados", "calories": 300, "protein": 8, "carbs": 58.6, "fat": 3.1, "fiber": 2.3, "sugar": 1.5, "sodium": 0.648},
    {"name": "Batata-doce cozida", "category": "Tubérculos", "calories": 77, "protein": 0.6, "carbs": 18.4, "fat": 0.1, "fiber": 2.2, "sugar": 5.7, "sodium": 0.009},
    {"name": "Leite integral", "category": "Laticínios", "calories": 61, "protein": 3.2, "carbs": 4.8, "fat": 3.3, "fiber": 0, "sugar": 5.1, "sodium": 0.043},
    {"name": "Queijo minas frescal", "category": "Laticínios", "calories": 264, "protein": 17.4, "carbs": 3.2, "fat": 20.2, "fiber": 0, "sugar": 0.5, "sodium": 0.31},
    {"name": "Aveia em flocos", "category": "Cereais", "calories": 394, "protein": 13.9, "carbs": 66.6, "fat": 8.5, "fiber": 9.1, "sugar": 1.0, "sodium": 0.005},
]

UNIT_TO_GRAMS = {
    "g": 1,
    "ml": 1,
    "tbsp": 15,
    "tsp": 5,
    "cup": 240,
    "glass": 200,
    "unit": 100,
    "slice": 30,
    "piece": 50,
    "portion": 150,
}

UNIT_ALIASES = {
    "gram": "g",
    "grams": "g",
    "gramas": "g",
    "milliliter": "ml",
    "milliliters": "ml",
    "mililitros": "ml",
    "tablespoon": "tbsp",
    "colher_sopa": "tbsp",
    "teaspoon": "tsp",
    "colher_cha": "tsp",
    "cups": "cup",
    "xicara": "cup",
    "copo": "glass",
    "unidade": "unit",
    "unidades": "unit",
    "fatia": "slice",
    "fatias": "slice",
    "pedaco": "piece",
    "porcao": "portion",
}

# USDA nutrient id / legacy nutrient number -> field
USDA_NUTRIENT_MAP = {
    "1008": "calories",
    "208": "calories",
    "1003": "protein",
    "203": "protein",
    "1005": "carbs",
    "205": "carbs",
    "1004": "fat",
    "204": "fat",
    "1079": "fiber",
    "291": "fiber",
    "2000": "sugar",
    "269": "sugar",
    "1093": "sodium",
    "307": "sodium",
}


def safe_str(value, max_len: int):
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:max_len]


def _as_float(value, fallback: float | None = 0.0) -> float | None:
    if value in (None, ""):
        return fallback
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


def normalize_unit(value: str | None) -> str:
    raw = (value or "").strip().lower().replace(".", "")
    return UNIT_ALIASES.get(raw, raw) or "g"


def grams_for(quantity: float, unit: str | None) -> float:
    """Grams in ``quantity`` of ``unit``; unknown units count as grams."""
    return float(quantity) * UNIT_TO_GRAMS.get(normalize_unit(unit), 1)


def validate_search_query(query: str | None) -> str:
    cleaned = (query or "").strip()
    if len(cleaned) < MIN_REMOTE_QUERY_LENGTH:
        raise ValidationError(
            f"A busca precisa de pelo menos {MIN_REMOTE_QUERY_LENGTH} caracteres",
            details={"minLength": MIN_REMOTE_QUERY_LENGTH},
        )
    return cleaned


def fallback_record(row: dict) -> dict[str, Any]:
    return {
        "id": None,
        "usdaFdcId": None,
        "name": row["name"],
        "brand": row.get("brand"),
        "category": row.get("category"),
        "caloriesPer100g": row.get("calories", 0),
        "proteinPer100g": row.get("protein", 0),
        "carbsPer100g": row.get("carbs", 0),
        "fatPer100g": row.get("fat", 0),
        "fiberPer100g": row.get("fiber"),
        "sugarPer100g": row.get("sugar"),
        "sodiumPer100g": row.get("sodium"),
        "isCustom": False,
        "source": "fallback",
    }


def search_fallback_foods(query: str) -> list[dict[str, Any]]:
    needle = query.strip().casefold()
    return [
        fallback_record(row)
        for row in FALLBACK_FOODS
        if needle in row["name"].casefold() or needle in (row.get("category") or "").casefold()
    ]


def parse_usda_nutrients(food_row: dict[str, Any]) -> dict[str, float]:
    parsed: dict[str, float] = {}
    for nutrient in (food_row.get("foodNutrients") or []):
        inner = nutrient.get("nutrient") or {}
        keys = [
            nutrient.get("nutrientId"),
            inner.get("id"),
            nutrient.get("nutrientNumber"),
            inner.get("number"),
            nutrient.get("number"),
        ]
        field_name = None
        for key in keys:
            if key in (None, ""):
                continue
            field_name = USDA_NUTRIENT_MAP.get(str(key))
            if field_name:
                break
        if not field_name or field_name in parsed:
            continue

        value = nutrient.get("value")
        if value is None:
            value = nutrient.get("amount")
        if value is None:
            continue
        parsed[field_name] = float(value)

    if "sodium" in parsed:
        # USDA reports sodium in mg
        parsed["sodium"] = parsed["sodium"] / 1000
    return parsed


def usda_food_to_record(food_row: dict[str, Any]) -> dict[str, Any]:
    nutrients = parse_usda_nutrients(food_row)
    category = food_row.get("foodCategory")
    if isinstance(category, dict):
        category = category.get("description")
    return {
        "id": None,
        "usdaFdcId": food_row.get("fdcId"),
        "name": safe_str(food_row.get("description"), 255) or "Alimento USDA sem nome",
        "brand": safe_str(food_row.get("brandOwner"), 255),
        "category": safe_str(category, 120),
        "caloriesPer100g": nutrients.get("calories", 0),
        "proteinPer100g": nutrients.get("protein", 0),
        "carbsPer100g": nutrients.get("carbs", 0),
        "fatPer100g": nutrients.get("fat", 0),
        "fiberPer100g": nutrients.get("fiber", 0),
        "sugarPer100g": nutrients.get("sugar", 0),
        "sodiumPer100g": nutrients.get("sodium", 0),
        "isCustom": False,
        "source": "usda",
    }


def search_remote_foods(query: str) -> dict[str, Any]:
    """Search USDA FoodData Central, degrading to the built-in list on failure."""
    query = validate_search_query(query)
    config = current_app.config
    endpoint = f"{config['USDA_BASE_URL']}/foods/search"
    params = {
        "api_key": config["USDA_API_KEY"],
        "query": query,
        "pageSize": config.get("USDA_PAGE_SIZE", 50),
        "dataType": "Foundation,SR Legacy",
    }

    try:
        response = httpx.get(endpoint, params=params, timeout=config.get("USDA_TIMEOUT_SECONDS", 8.0))
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        current_app.logger.warning("USDA search failed for %r, serving fallback list: %s", query, exc)
        return {"foods": search_fallback_foods(query), "degraded": True, "source": "fallback"}

    rows = data.get("foods") if isinstance(data, dict) else None
    foods = [usda_food_to_record(row) for row in (rows or []) if isinstance(row, dict) and row.get("fdcId")]
    return {"foods": foods, "degraded": False, "source": "usda"}


def get_remote_food(fdc_id: int) -> dict[str, Any] | None:
    config = current_app.config
    endpoint = f"{config['USDA_BASE_URL']}/food/{int(fdc_id)}"
    try:
        response = httpx.get(
            endpoint,
            params={"api_key": config["USDA_API_KEY"]},
            timeout=config.get("USDA_TIMEOUT_SECONDS", 8.0),
        )
    except httpx.HTTPError as exc:
        current_app.logger.warning("USDA detail fetch failed for fdcId=%s: %s", fdc_id, exc)
        raise UpstreamError("Não foi possível consultar a base USDA") from exc

    if response.status_code == 404:
        return None
    try:
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        current_app.logger.warning("USDA detail fetch failed for fdcId=%s: %s", fdc_id, exc)
        raise UpstreamError("Não foi possível consultar a base USDA") from exc

    if not isinstance(data, dict) or not data.get("fdcId"):
        return None
    return usda_food_to_record(data)


def food_payload(food: Food) -> dict[str, Any]:
    return {
        "id": food.id,
        "usdaFdcId": food.usda_fdc_id,
        "name": food.name,
        "brand": food.brand,
        "category": food.category,
        "caloriesPer100g": food.calories_per_100g,
        "proteinPer100g": food.protein_per_100g,
        "carbsPer100g": food.carbs_per_100g,
        "fatPer100g": food.fat_per_100g,
        "fiberPer100g": food.fiber_per_100g,
        "sugarPer100g": food.sugar_per_100g,
        "sodiumPer100g": food.sodium_per_100g,
        "isCustom": food.is_custom,
        "source": food.source,
    }


def search_local_foods(user_id: int | None, search: str | None = None, limit: int = 100) -> list[Food]:
    scope = Food.user_id.is_(None)
    if user_id is not None:
        scope = or_(Food.user_id == user_id, Food.user_id.is_(None))

    query = Food.query.filter(scope)
    term = (search or "").strip()
    if term:
        query = query.filter(or_(Food.name.ilike(f"%{term}%"), Food.category.ilike(f"%{term}%")))
    return query.order_by(Food.name.asc()).limit(limit).all()


def get_accessible_food(user_id: int, food_id) -> Food:
    try:
        food = db.session.get(Food, int(food_id))
    except (TypeError, ValueError):
        raise ValidationError("foodId inválido") from None
    if food is None or (food.user_id is not None and food.user_id != user_id):
        raise NotFoundError("Alimento não encontrado")
    return food


def get_owned_food(user_id: int, food_id: int) -> Food:
    food = Food.query.filter_by(id=food_id, user_id=user_id).first()
    if food is None:
        raise NotFoundError("Alimento não encontrado")
    return food


FOOD_FIELDS = {
    "name": "name",
    "brand": "brand",
    "category": "category",
    "caloriesPer100g": "calories_per_100g",
    "proteinPer100g": "protein_per_100g",
    "carbsPer100g": "carbs_per_100g",
    "fatPer100g": "fat_per_100g",
    "fiberPer100g": "fiber_per_100g",
    "sugarPer100g": "sugar_per_100g",
    "sodiumPer100g": "sodium_per_100g",
}
REQUIRED_NUMBERS = {"calories_per_100g", "protein_per_100g", "carbs_per_100g", "fat_per_100g"}


def apply_food_fields(food: Food, data: dict, *, partial: bool = False) -> None:
    for wire_name, attr in FOOD_FIELDS.items():
        if wire_name not in data:
            if not partial and attr in REQUIRED_NUMBERS:
                setattr(food, attr, 0.0)
            continue
        value = data.get(wire_name)
        if attr in {"name", "brand", "category"}:
            setattr(food, attr, safe_str(value, 255 if attr != "category" else 120))
            continue
        number = _as_float(value, fallback=None)
        if number is None and attr in REQUIRED_NUMBERS:
            raise ValidationError("Dados do alimento inválidos", details={"field": wire_name})
        if number is not None and number < 0:
            raise ValidationError("Valores nutricionais não podem ser negativos", details={"field": wire_name})
        setattr(food, attr, number)

    if not food.name:
        raise ValidationError("O nome do alimento é obrigatório")


def create_custom_food(user_id: int, data: dict) -> Food:
    food = Food(user_id=user_id, is_custom=True, source="custom")
    apply_food_fields(food, data)
    db.session.add(food)
    db.session.commit()
    return food


def update_custom_food(user_id: int, food_id: int, data: dict) -> Food:
    food = get_owned_food(user_id, food_id)
    apply_food_fields(food, data, partial=True)
    db.session.commit()
    return food


def delete_custom_food(user_id: int, food_id: int) -> None:
    food = get_owned_food(user_id, food_id)
    in_use = (
        MealFood.query.filter_by(food_id=food.id).count()
        + RecipeIngredient.query.filter_by(food_id=food.id).count()
    )
    if in_use:
        raise ValidationError("Alimento em uso por refeições ou receitas")
    db.session.delete(food)
    db.session.commit()


def import_remote_food(user_id: int, fdc_id=None, record: dict | None = None) -> Food:
    """Materialize a remote (or fallback) record into the user's catalog."""
    if fdc_id not in (None, "", 0, "0"):
        try:
            fdc_id = int(fdc_id)
        except (TypeError, ValueError):
            raise ValidationError("usdaFdcId inválido") from None
        existing = Food.query.filter_by(user_id=user_id, usda_fdc_id=fdc_id).first()
        if existing:
            return existing
        inline = record
        try:
            record = get_remote_food(fdc_id)
        except UpstreamError:
            if not isinstance(inline, dict) or not safe_str(inline.get("name"), 255):
                raise
            record = dict(inline, usdaFdcId=fdc_id)
        if record is None:
            raise NotFoundError("Alimento USDA não encontrado")
    elif not isinstance(record, dict) or not safe_str(record.get("name"), 255):
        raise ValidationError("Informe usdaFdcId ou usdaFood")
    elif record.get("usdaFdcId"):
        try:
            record = dict(record, usdaFdcId=int(record["usdaFdcId"]))
        except (TypeError, ValueError):
            raise ValidationError("usdaFdcId inválido") from None
        existing = Food.query.filter_by(user_id=user_id, usda_fdc_id=record["usdaFdcId"]).first()
        if existing:
            return existing
    else:
        # fallback entries carry no fdcId; their name is the identity
        existing = Food.query.filter_by(
            user_id=user_id, name=safe_str(record.get("name"), 255), source="fallback"
        ).first()
        if existing:
            return existing

    food = Food(
        user_id=user_id,
        usda_fdc_id=record.get("usdaFdcId") or None,
        is_custom=False,
        source="usda" if record.get("usdaFdcId") else "fallback",
    )
    apply_food_fields(food, record)
    db.session.add(food)
    db.session.commit()
    return food
