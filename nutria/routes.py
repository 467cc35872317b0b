from datetime import datetime, timedelta, timezone

from flask import Blueprint, Response, current_app, g, jsonify, request

from nutria import ai, db
from nutria.aggregation import (
    daily_nutrition_payload,
    daily_total,
    history_between,
    hourly_totals,
    monthly_totals,
    refresh_history,
    weekly_totals,
)
from nutria.auth import login_required, user_payload
from nutria.errors import NotFoundError, ValidationError
from nutria.food_catalog import (
    create_custom_food,
    delete_custom_food,
    food_payload,
    get_remote_food,
    import_remote_food,
    search_local_foods,
    search_remote_foods,
    update_custom_food,
)
from nutria.goals import ACTIVITY_MULTIPLIERS, GOAL_OFFSETS, compute_daily_goals, validate_goals
from nutria.meals import (
    add_food_to_meal,
    add_ingredient_to_recipe,
    create_meal,
    create_meal_type,
    create_recipe,
    delete_meal,
    delete_recipe,
    get_user_meal,
    get_user_recipe,
    line_payload,
    list_meal_types,
    list_meals,
    list_recipes,
    meal_payload,
    meal_type_payload,
    reassign_meal_days,
    recipe_payload,
    remove_food_from_meal,
    update_meal_food,
)
from nutria.nutrition_day import (
    get_zoneinfo,
    is_valid_time_zone,
    parse_day,
    parse_timestamp,
    resolve_day_key,
    week_days,
)
from nutria.plans import (
    activate_plan,
    delete_plan,
    generate_plan,
    get_active_plan,
    list_plans,
    normalize_plan_type,
    plan_payload,
    update_plan,
)
from nutria.reports import (
    REPORT_TYPES,
    build_report_context,
    render_report_html,
    render_report_pdf,
    report_filename,
)

bp = Blueprint("api", __name__, url_prefix="/api")

HISTORY_PERIODS = ("day", "week", "month")
MAX_HISTORY_DAYS = 366
RECENT_CONTEXT_DAYS = 7
SEXES = ("male", "female")


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def body_text(body: dict, name: str) -> str:
    value = body.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} deve ser um texto", details={"field": name})
    return value.strip()


def parse_int(value):
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def parse_float(value):
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def current_user_id() -> int | None:
    user = g.get("user")
    return user.id if user is not None else None


def get_user_zoneinfo(user=None):
    user = user or g.user
    return get_zoneinfo(user.time_zone, current_app.config.get("DEFAULT_TIME_ZONE") or "UTC")


def get_user_nutrition_today():
    return resolve_day_key(datetime.now(timezone.utc), get_user_zoneinfo())


def query_day(name: str = "date"):
    raw = request.args.get(name)
    parsed = parse_day(raw, fallback=get_user_nutrition_today())
    if parsed is None:
        raise ValidationError("Data inválida. Use o formato AAAA-MM-DD", details={"field": name})
    return parsed


def body_day(body: dict, name: str):
    parsed = parse_day(body.get(name))
    if parsed is None:
        raise ValidationError("Data inválida. Use o formato AAAA-MM-DD", details={"field": name})
    return parsed


def resolve_window(period: str | None, anchor, start_raw, end_raw):
    """Inclusive ``(first_day, last_day)`` from an explicit range or a period."""
    if start_raw or end_raw:
        start_day, end_day = parse_day(start_raw), parse_day(end_raw)
        if start_day is None or end_day is None:
            raise ValidationError("Informe startDate e endDate no formato AAAA-MM-DD")
    else:
        period = (period or "week").strip().lower()
        if period not in HISTORY_PERIODS:
            raise ValidationError("Período inválido", details={"allowed": list(HISTORY_PERIODS)})
        if period == "day":
            start_day = end_day = anchor
        elif period == "week":
            days = week_days(anchor)
            start_day, end_day = days[0], days[-1]
        else:
            start_day = anchor.replace(day=1)
            end_day = (start_day + timedelta(days=32)).replace(day=1) - timedelta(days=1)

    if end_day < start_day:
        raise ValidationError("endDate deve ser posterior a startDate")
    if (end_day - start_day).days + 1 > MAX_HISTORY_DAYS:
        raise ValidationError(f"O período máximo é de {MAX_HISTORY_DAYS} dias")
    return start_day, end_day


def recent_daily_totals(user, days: int = RECENT_CONTEXT_DAYS) -> list[dict]:
    end_day = get_user_nutrition_today()
    start_day = end_day - timedelta(days=days - 1)
    rows = refresh_history(user, start_day, end_day, get_user_zoneinfo(user))
    return [
        {
            "date": row.date.isoformat(),
            "calories": row.total_calories,
            "protein": row.total_protein,
            "carbs": row.total_carbs,
            "fat": row.total_fat,
        }
        for row in rows
    ]


@bp.patch("/user/profile")
@login_required
def update_profile():
    body = json_body()
    user = g.user

    if "weight" in body:
        weight = parse_float(body.get("weight"))
        if weight is None or not 20 <= weight <= 400:
            raise ValidationError("Peso inválido", details={"field": "weight"})
        user.weight_kg = weight
    if "height" in body:
        height = parse_float(body.get("height"))
        if height is None or not 80 <= height <= 260:
            raise ValidationError("Altura inválida", details={"field": "height"})
        user.height_cm = height
    if "age" in body:
        age = parse_int(body.get("age"))
        if age is None or not 10 <= age <= 120:
            raise ValidationError("Idade inválida", details={"field": "age"})
        user.age = age
    if "sex" in body:
        sex = body_text(body, "sex").lower() or None
        if sex is not None and sex not in SEXES:
            raise ValidationError("Sexo inválido", details={"allowed": list(SEXES)})
        user.biological_sex = sex
    if "goal" in body:
        goal = body_text(body, "goal").lower()
        if goal not in GOAL_OFFSETS:
            raise ValidationError("Objetivo inválido", details={"allowed": list(GOAL_OFFSETS)})
        user.goal = goal
    if "activityLevel" in body:
        level = body_text(body, "activityLevel").lower()
        if level not in ACTIVITY_MULTIPLIERS:
            raise ValidationError("Nível de atividade inválido", details={"allowed": list(ACTIVITY_MULTIPLIERS)})
        user.activity_level = level
    if "timeZone" in body:
        name = body_text(body, "timeZone") or None
        if name is not None and not is_valid_time_zone(name):
            raise ValidationError("Fuso horário inválido", details={"field": "timeZone"})
        if name != user.time_zone:
            user.time_zone = name
            reassign_meal_days(user.id, get_user_zoneinfo(user))
    for wire_name, attr in (("firstName", "first_name"), ("lastName", "last_name")):
        if wire_name in body:
            setattr(user, attr, body_text(body, wire_name)[:120] or None)

    if user.weight_kg and user.height_cm and user.age:
        goals = compute_daily_goals(
            user.weight_kg, user.height_cm, user.age, user.activity_level, user.goal, user.biological_sex
        )
        for field_name, value in goals.items():
            setattr(user, field_name, value)

    db.session.commit()
    return jsonify(user_payload(user))


@bp.patch("/user/goals")
@login_required
def update_goals():
    body = json_body()
    user = g.user
    merged = {
        "daily_calories": body.get("dailyCalories", user.daily_calories),
        "daily_protein": body.get("dailyProtein", user.daily_protein),
        "daily_carbs": body.get("dailyCarbs", user.daily_carbs),
        "daily_fat": body.get("dailyFat", user.daily_fat),
    }
    for field_name, value in validate_goals(merged).items():
        setattr(user, field_name, value)
    db.session.commit()
    return jsonify(user_payload(user))


@bp.patch("/user/preferences")
@login_required
def update_preferences():
    body = json_body()
    if "notificationsEnabled" in body:
        if not isinstance(body["notificationsEnabled"], bool):
            raise ValidationError("notificationsEnabled deve ser verdadeiro ou falso")
        g.user.notifications_enabled = body["notificationsEnabled"]
    db.session.commit()
    return jsonify(user_payload(g.user))


@bp.get("/foods")
def foods_index():
    foods = search_local_foods(current_user_id(), request.args.get("search"))
    return jsonify([food_payload(food) for food in foods])


@bp.post("/foods")
@login_required
def foods_create():
    food = create_custom_food(g.user.id, json_body())
    return jsonify(food_payload(food)), 201


@bp.patch("/foods/<int:food_id>")
@login_required
def foods_update(food_id: int):
    food = update_custom_food(g.user.id, food_id, json_body())
    return jsonify(food_payload(food))


@bp.delete("/foods/<int:food_id>")
@login_required
def foods_delete(food_id: int):
    delete_custom_food(g.user.id, food_id)
    return jsonify({"message": "Alimento removido"})


@bp.get("/foods/search")
def foods_remote_search():
    query = request.args.get("query")
    if query is None:
        query = request.args.get("q")
    return jsonify(search_remote_foods(query))


@bp.get("/foods/usda/<int:fdc_id>")
def foods_remote_detail(fdc_id: int):
    record = get_remote_food(fdc_id)
    if record is None:
        raise NotFoundError("Alimento USDA não encontrado")
    return jsonify(record)


@bp.post("/foods/from-usda")
@login_required
def foods_import_remote():
    body = json_body()
    food = import_remote_food(g.user.id, body.get("usdaFdcId"), body.get("usdaFood"))
    return jsonify(food_payload(food)), 201


@bp.get("/meal-types")
def meal_types_index():
    return jsonify([meal_type_payload(item) for item in list_meal_types(current_user_id())])


@bp.post("/meal-types")
@login_required
def meal_types_create():
    body = json_body()
    meal_type = create_meal_type(g.user.id, body.get("name"), body.get("icon"))
    return jsonify(meal_type_payload(meal_type)), 201


@bp.get("/meals")
@login_required
def meals_index():
    day_key = query_day() if request.args.get("date") else None
    meals = list_meals(g.user.id, day_key, get_user_zoneinfo())
    return jsonify([meal_payload(meal, get_user_zoneinfo()) for meal in meals])


@bp.get("/meals/<int:meal_id>")
@login_required
def meals_detail(meal_id: int):
    return jsonify(meal_payload(get_user_meal(g.user.id, meal_id), get_user_zoneinfo()))


@bp.post("/meals")
@login_required
def meals_create():
    body = dict(json_body())
    if body.get("loggedAt") not in (None, ""):
        logged_at = parse_timestamp(body.get("loggedAt"))
        if logged_at is None:
            raise ValidationError("Data/hora da refeição inválida", details={"field": "loggedAt"})
        body["loggedAt"] = logged_at
    else:
        body["loggedAt"] = None

    meal = create_meal(g.user.id, body, get_user_zoneinfo())
    current_app.logger.info("Meal %s logged for user %s on %s", meal.id, g.user.id, meal.date)
    return jsonify(meal_payload(meal, get_user_zoneinfo())), 201


@bp.post("/meals/<int:meal_id>/foods")
@login_required
def meals_add_food(meal_id: int):
    line = add_food_to_meal(g.user.id, meal_id, json_body())
    return jsonify(line_payload(line)), 201


@bp.delete("/meals/<int:meal_id>/foods/<int:food_id>")
@login_required
def meals_remove_food(meal_id: int, food_id: int):
    removed = remove_food_from_meal(g.user.id, meal_id, food_id)
    meal = get_user_meal(g.user.id, meal_id)
    return jsonify(
        {"message": "Alimento removido da refeição", "removed": removed, "meal": meal_payload(meal, get_user_zoneinfo())}
    )


@bp.delete("/meals/<int:meal_id>")
@login_required
def meals_delete(meal_id: int):
    delete_meal(g.user.id, meal_id)
    return jsonify({"message": "Refeição removida"})


@bp.patch("/meal-foods/<int:meal_food_id>")
@login_required
def meal_foods_update(meal_food_id: int):
    line = update_meal_food(g.user.id, meal_food_id, json_body())
    return jsonify({"line": line_payload(line), "meal": meal_payload(line.meal, get_user_zoneinfo())})


@bp.get("/recipes")
@login_required
def recipes_index():
    return jsonify([recipe_payload(recipe) for recipe in list_recipes(g.user.id)])


@bp.post("/recipes")
@login_required
def recipes_create():
    recipe = create_recipe(g.user.id, json_body())
    return jsonify(recipe_payload(recipe)), 201


@bp.get("/recipes/<int:recipe_id>")
@login_required
def recipes_detail(recipe_id: int):
    return jsonify(recipe_payload(get_user_recipe(g.user.id, recipe_id)))


@bp.post("/recipes/<int:recipe_id>/ingredients")
@login_required
def recipes_add_ingredient(recipe_id: int):
    ingredient = add_ingredient_to_recipe(g.user.id, recipe_id, json_body())
    return jsonify(line_payload(ingredient)), 201


@bp.delete("/recipes/<int:recipe_id>")
@login_required
def recipes_delete(recipe_id: int):
    delete_recipe(g.user.id, recipe_id)
    return jsonify({"message": "Receita removida"})


@bp.get("/nutrition/daily")
@login_required
def nutrition_daily():
    totals = daily_total(g.user, query_day(), get_user_zoneinfo())
    totals["goals"] = {
        "calories": g.user.daily_calories,
        "protein": g.user.daily_protein,
        "carbs": g.user.daily_carbs,
        "fat": g.user.daily_fat,
    }
    return jsonify(totals)


@bp.get("/nutrition/history")
@login_required
def nutrition_history():
    start_day, end_day = resolve_window(
        request.args.get("period"),
        query_day(),
        request.args.get("startDate"),
        request.args.get("endDate"),
    )
    rows = history_between(g.user.id, start_day, end_day)
    return jsonify([daily_nutrition_payload(row) for row in rows])


@bp.get("/progress/hourly")
@login_required
def progress_hourly():
    return jsonify(hourly_totals(g.user, query_day(), get_user_zoneinfo()))


@bp.get("/progress/weekly")
@login_required
def progress_weekly():
    return jsonify(weekly_totals(g.user, query_day(), get_user_zoneinfo()))


@bp.get("/progress/monthly")
@login_required
def progress_monthly():
    return jsonify(monthly_totals(g.user, query_day(), get_user_zoneinfo()))


@bp.post("/ai/analyze-meal")
@login_required
def ai_analyze_meal():
    description = body_text(json_body(), "description")
    if not description:
        raise ValidationError("Descrição da refeição é obrigatória")
    return jsonify(ai.analyze_meal_description(description))


@bp.post("/ai/suggest-recipes")
@login_required
def ai_suggest_recipes():
    ingredients = json_body().get("availableIngredients")
    if not isinstance(ingredients, list):
        raise ValidationError("Informe a lista availableIngredients")
    return jsonify(ai.suggest_recipes(ingredients))


@bp.post("/ai/chat")
@login_required
def ai_chat():
    message = body_text(json_body(), "message")
    if not message:
        raise ValidationError("Mensagem é obrigatória")
    reply = ai.chat(g.user, message[:4000], recent_daily_totals(g.user))
    return jsonify({"response": reply})


@bp.post("/ai/personalized-recommendations")
@login_required
def ai_personalized_recommendations():
    text = ai.personalized_recommendations(g.user, recent_daily_totals(g.user))
    return jsonify({"recommendations": text})


@bp.post("/generate-meal-plan")
@login_required
def plans_generate_meal():
    plan = generate_plan(g.user, "nutrition", json_body().get("description"))
    return jsonify(plan_payload(plan)), 201


@bp.post("/generate-workout-plan")
@login_required
def plans_generate_workout():
    plan = generate_plan(g.user, "workout", json_body().get("description"))
    return jsonify(plan_payload(plan)), 201


@bp.get("/user-plans")
@login_required
def plans_index():
    plan_type = normalize_plan_type(request.args.get("type"))
    return jsonify([plan_payload(plan) for plan in list_plans(g.user.id, plan_type)])


@bp.get("/user-plans/active")
@login_required
def plans_active():
    plan = get_active_plan(g.user.id, normalize_plan_type(request.args.get("type"), default="nutrition"))
    return jsonify(plan_payload(plan) if plan else None)


@bp.post("/user-plans/<int:plan_id>/activate")
@login_required
def plans_activate(plan_id: int):
    return jsonify(plan_payload(activate_plan(g.user.id, plan_id)))


@bp.patch("/user-plans/<int:plan_id>")
@login_required
def plans_update(plan_id: int):
    return jsonify(plan_payload(update_plan(g.user, plan_id, json_body().get("description"))))


@bp.delete("/user-plans/<int:plan_id>")
@login_required
def plans_delete(plan_id: int):
    delete_plan(g.user.id, plan_id)
    return jsonify({"message": "Plano removido"})


@bp.get("/my-meal-plan")
@login_required
def my_meal_plan():
    plan = get_active_plan(g.user.id, "nutrition")
    return jsonify(plan_payload(plan) if plan else None)


@bp.get("/my-meal-plans/history")
@login_required
def my_meal_plans_history():
    return jsonify([plan_payload(plan) for plan in list_plans(g.user.id, "nutrition")])


def _report_response(start_day, end_day, report_type: str, output_format: str = "pdf"):
    history = refresh_history(g.user, start_day, end_day, get_user_zoneinfo())
    context = build_report_context(g.user, history, start_day, end_day, report_type)
    if output_format == "html":
        return Response(render_report_html(context), mimetype="text/html")

    pdf_bytes = render_report_pdf(context)
    response = Response(pdf_bytes, mimetype="application/pdf")
    response.headers["Content-Disposition"] = f'attachment; filename="{report_filename(start_day, end_day)}"'
    return response


def report_type_from(value: str) -> str:
    report_type = (value or "daily").lower()
    if report_type not in REPORT_TYPES:
        raise ValidationError("Tipo de relatório inválido", details={"allowed": list(REPORT_TYPES)})
    return report_type


@bp.post("/export/pdf")
@login_required
def export_pdf():
    body = json_body()
    start_day, end_day = resolve_window(None, None, body_day(body, "startDate"), body_day(body, "endDate"))
    return _report_response(start_day, end_day, report_type_from(body_text(body, "type")))


@bp.get("/reports/nutrition-pdf")
@login_required
def reports_nutrition_pdf():
    today = get_user_nutrition_today()
    start_day, end_day = resolve_window(
        None,
        today,
        request.args.get("startDate") or (today - timedelta(days=6)).isoformat(),
        request.args.get("endDate") or today.isoformat(),
    )
    output_format = (request.args.get("format") or "pdf").strip().lower()
    report_type = report_type_from((request.args.get("type") or "").strip())
    return _report_response(start_day, end_day, report_type, output_format)
