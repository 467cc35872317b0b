import json
import re

from flask import current_app
from openai import OpenAI, OpenAIError

from nutria.errors import PlanParseError, UpstreamError

UPSTREAM_FAILURE_MESSAGE = "Não foi possível obter uma resposta da IA. Tente novamente mais tarde."

MEAL_PATTERNS = [
    (re.compile(r"(\d+)\s*fatias?\s+de\s+pão", re.IGNORECASE), "Pão", 80, 3, 15, 1),
    (re.compile(r"(\d+)\s*ovos?", re.IGNORECASE), "Ovo", 70, 6, 1, 5),
    (re.compile(r"(\d+)\s*fatias?\s+de\s+presunto", re.IGNORECASE), "Presunto", 45, 8, 1, 1),
    (re.compile(r"(\d+)\s*colheres?\s+de\s+arroz", re.IGNORECASE), "Arroz", 130, 3, 28, 0.3),
    (re.compile(r"(\d+)\s*colheres?\s+de\s+feijão", re.IGNORECASE), "Feijão", 245, 15, 45, 1),
]

MEAL_ANALYSIS_CONFIDENCE = 0.85

RECIPE_SUGGESTIONS = [
    {
        "requires": {"frango", "arroz"},
        "name": "Frango com Arroz",
        "description": "Prato nutritivo e balanceado com frango grelhado e arroz integral",
        "ingredients": ["frango", "arroz", "temperos"],
        "estimatedCalories": 450,
        "estimatedProtein": 35,
        "estimatedCarbs": 40,
        "estimatedFat": 12,
        "cookingTime": 30,
        "difficulty": "easy",
    },
    {
        "requires": {"ovos"},
        "name": "Omelete Nutritiva",
        "description": "Omelete rica em proteínas com vegetais",
        "ingredients": ["ovos", "vegetais", "queijo"],
        "estimatedCalories": 280,
        "estimatedProtein": 18,
        "estimatedCarbs": 5,
        "estimatedFat": 22,
        "cookingTime": 10,
        "difficulty": "easy",
    },
]


def _client() -> OpenAI:
    config = current_app.config
    base_url = config.get("OPENAI_BASE_URL") or None
    return OpenAI(api_key=config.get("OPENAI_API_KEY"), base_url=base_url)


def generate_text(prompt: str) -> str:
    """Single request/response call to the generative text API."""
    model = current_app.config.get("OPENAI_MODEL") or "gpt-4.1-mini"
    try:
        response = _client().responses.create(model=model, input=prompt)
    except OpenAIError as exc:
        current_app.logger.warning("Generative API call failed: %s", exc)
        raise UpstreamError(UPSTREAM_FAILURE_MESSAGE) from exc
    return response.output_text or ""


def extract_plan_json(raw_text: str) -> dict:
    """Parse the text between the first ``{`` and the last ``}``."""
    text = raw_text or ""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise PlanParseError("A resposta da IA não contém um plano válido")
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise PlanParseError("A resposta da IA não contém um plano válido") from exc
    if not isinstance(parsed, dict):
        raise PlanParseError("A resposta da IA não contém um plano válido")
    return parsed


def analyze_meal_description(description: str) -> dict:
    foods = []
    for pattern, name, calories, protein, carbs, fat in MEAL_PATTERNS:
        match = pattern.search(description or "")
        if not match:
            continue
        quantity = int(match.group(1))
        foods.append(
            {
                "name": name,
                "quantity": quantity,
                "unit": "unidades",
                "estimatedCalories": calories * quantity,
                "estimatedProtein": round(protein * quantity, 1),
                "estimatedCarbs": round(carbs * quantity, 1),
                "estimatedFat": round(fat * quantity, 1),
            }
        )

    return {
        "foods": foods,
        "totalCalories": sum(food["estimatedCalories"] for food in foods),
        "confidence": MEAL_ANALYSIS_CONFIDENCE,
    }


def suggest_recipes(available_ingredients: list[str]) -> list[dict]:
    available = {str(item).strip().lower() for item in available_ingredients or [] if str(item).strip()}
    suggestions = []
    for rule in RECIPE_SUGGESTIONS:
        if rule["requires"] <= available:
            suggestions.append({key: value for key, value in rule.items() if key != "requires"})
    return suggestions


def _context_lines(user, recent_days: list[dict]) -> str:
    lines = [
        f"Meta diária: {user.daily_calories} kcal, {user.daily_protein} g proteína, "
        f"{user.daily_carbs} g carboidratos, {user.daily_fat} g gordura.",
    ]
    if user.goal:
        lines.append(f"Objetivo: {user.goal}.")
    if user.weight_kg and user.height_cm:
        lines.append(f"Peso {user.weight_kg} kg, altura {user.height_cm} cm.")
    for day in recent_days:
        lines.append(
            f"{day['date']}: {day['calories']} kcal, P {day['protein']} g, C {day['carbs']} g, G {day['fat']} g."
        )
    return "\n".join(lines)


def chat(user, message: str, recent_days: list[dict]) -> str:
    prompt = (
        "Você é um nutricionista virtual. Responda em português, de forma breve e prática.\n\n"
        f"Contexto do usuário:\n{_context_lines(user, recent_days)}\n\n"
        f"Pergunta: {message}"
    )
    return generate_text(prompt).strip() or "Não consegui gerar uma resposta agora."


def personalized_recommendations(user, recent_days: list[dict]) -> str:
    prompt = (
        "Você é um nutricionista virtual. Com base nos dados abaixo, dê de 3 a 5 recomendações "
        "objetivas em português para o usuário atingir suas metas.\n\n"
        f"{_context_lines(user, recent_days)}"
    )
    return generate_text(prompt).strip()
