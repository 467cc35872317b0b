"""AI generated nutrition and workout plans.

At most one plan per ``(user, plan_type)`` is active. Activation runs as two
ordered UPDATE statements inside one transaction, and the partial unique index
``uq_plans_one_active_per_type`` rejects any write that would break it.
"""

from flask import current_app

from nutria import ai, db
from nutria.errors import NotFoundError, ValidationError
from nutria.models import Plan, User

PLAN_TYPES = ("nutrition", "workout")
PLAN_TYPE_ALIASES = {"diet": "nutrition", "meal": "nutrition", "nutrition": "nutrition", "workout": "workout"}

DEFAULT_TITLES = {
    "nutrition": "Plano alimentar personalizado",
    "workout": "Plano de treino personalizado",
}


def normalize_plan_type(value: str | None, default: str | None = None) -> str | None:
    if value in (None, ""):
        return default
    plan_type = PLAN_TYPE_ALIASES.get(str(value).strip().lower())
    if plan_type is None:
        raise ValidationError("Tipo de plano inválido", details={"allowed": list(PLAN_TYPES)})
    return plan_type


def build_plan_prompt(user: User, plan_type: str, description: str) -> str:
    profile_bits = []
    if user.age:
        profile_bits.append(f"idade {user.age} anos")
    if user.weight_kg:
        profile_bits.append(f"peso {user.weight_kg} kg")
    if user.height_cm:
        profile_bits.append(f"altura {user.height_cm} cm")
    if user.goal:
        profile_bits.append(f"objetivo {user.goal}")
    if user.activity_level:
        profile_bits.append(f"nível de atividade {user.activity_level}")
    profile_text = ", ".join(profile_bits) or "perfil não informado"

    if plan_type == "workout":
        shape = (
            '{"title": str, "description": str, "workouts": {"segunda": [{"exercise": str, '
            '"sets": int, "reps": str, "rest": str}], ...}}'
        )
        role = "personal trainer"
    else:
        shape = (
            '{"title": str, "description": str, "meals": {"segunda": {"cafe_da_manha": '
            '{"name": str, "foods": [str], "calories": int}, "almoco": {...}, "jantar": {...}, '
            '"lanche": {...}}, ...}}'
        )
        role = "nutricionista"

    return (
        f"Você é um {role}. Crie um plano semanal em português para o pedido abaixo.\n"
        f"Usuário: {profile_text}. Meta diária: {user.daily_calories} kcal, "
        f"{user.daily_protein} g proteína, {user.daily_carbs} g carboidratos, {user.daily_fat} g gordura.\n"
        f"Pedido: {description}\n\n"
        f"Responda somente com um objeto JSON no formato: {shape}"
    )


def _require_description(description) -> str:
    text = (description or "").strip() if isinstance(description, str) else ""
    if not text:
        raise ValidationError("Descreva o plano desejado")
    return text[:2000]


def _request_plan_content(user: User, plan_type: str, description: str) -> dict:
    raw_text = ai.generate_text(build_plan_prompt(user, plan_type, description))
    return ai.extract_plan_json(raw_text)


def _deactivate_others(plan: Plan) -> None:
    Plan.query.filter(
        Plan.user_id == plan.user_id,
        Plan.plan_type == plan.plan_type,
        Plan.id != plan.id,
        Plan.is_active.is_(True),
    ).update({"is_active": False}, synchronize_session=False)
    Plan.query.filter(Plan.id == plan.id).update({"is_active": True}, synchronize_session=False)


def generate_plan(user: User, plan_type: str, description) -> Plan:
    plan_type = normalize_plan_type(plan_type)
    description = _require_description(description)
    content = _request_plan_content(user, plan_type, description)

    plan = Plan(
        user_id=user.id,
        plan_type=plan_type,
        title=str(content.get("title") or DEFAULT_TITLES[plan_type])[:255],
        description=description,
        content=content,
        source="ai",
        model_name=current_app.config.get("OPENAI_MODEL"),
        is_active=False,
    )
    db.session.add(plan)
    db.session.flush()
    _deactivate_others(plan)
    db.session.commit()
    current_app.logger.info("Generated %s plan %s for user %s", plan_type, plan.id, user.id)
    return plan


def get_user_plan(user_id: int, plan_id: int) -> Plan:
    plan = Plan.query.filter_by(id=plan_id, user_id=user_id).first()
    if plan is None:
        raise NotFoundError("Plano não encontrado")
    return plan


def activate_plan(user_id: int, plan_id: int) -> Plan:
    plan = get_user_plan(user_id, plan_id)
    _deactivate_others(plan)
    db.session.commit()
    return plan


def list_plans(user_id: int, plan_type: str | None = None) -> list[Plan]:
    query = Plan.query.filter_by(user_id=user_id)
    if plan_type:
        query = query.filter_by(plan_type=plan_type)
    return query.order_by(Plan.created_at.desc(), Plan.id.desc()).all()


def get_active_plan(user_id: int, plan_type: str) -> Plan | None:
    return Plan.query.filter_by(user_id=user_id, plan_type=plan_type, is_active=True).first()


def update_plan(user: User, plan_id: int, description) -> Plan:
    plan = get_user_plan(user.id, plan_id)
    description = _require_description(description)
    content = _request_plan_content(user, plan.plan_type, description)
    plan.description = description
    plan.content = content
    plan.title = str(content.get("title") or plan.title or DEFAULT_TITLES[plan.plan_type])[:255]
    plan.model_name = current_app.config.get("OPENAI_MODEL")
    db.session.commit()
    return plan


def delete_plan(user_id: int, plan_id: int) -> None:
    plan = get_user_plan(user_id, plan_id)
    db.session.delete(plan)
    db.session.commit()


def plan_payload(plan: Plan) -> dict:
    content = plan.content if isinstance(plan.content, dict) else {}
    return {
        "id": plan.id,
        "type": plan.plan_type,
        "title": plan.title,
        "description": plan.description,
        "content": content,
        "meals": content.get("meals"),
        "workouts": content.get("workouts"),
        "isActive": bool(plan.is_active),
        "source": plan.source,
        "model": plan.model_name,
        "createdAt": plan.created_at.isoformat() + "Z" if plan.created_at else None,
        "updatedAt": plan.updated_at.isoformat() + "Z" if plan.updated_at else None,
    }
