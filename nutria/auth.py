"""Authentication strategies and the identity endpoints.

The strategy is chosen once in ``create_app`` from ``AUTH_STRATEGY``; request
handling only asks it for the current user.
"""

import secrets
from functools import wraps
from urllib.parse import urlencode

import httpx
from flask import Blueprint, current_app, g, jsonify, redirect, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from nutria import db
from nutria.errors import AuthenticationError, ValidationError, error_response
from nutria.models import User

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_FAILURE_REDIRECT = "/auth?error=google_auth_failed"

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


class SessionAuthStrategy:
    """User id kept in Flask's signed session cookie."""

    name = "session"

    def __init__(self, config):
        self.config = config

    def current_user(self) -> User | None:
        user_id = session.get("user_id")
        return db.session.get(User, user_id) if user_id else None

    def login(self, user: User) -> None:
        session.clear()
        session.permanent = True
        session["user_id"] = user.id

    def logout(self) -> None:
        session.clear()


class DevAuthStrategy(SessionAuthStrategy):
    """Falls back to a fixed development user when nobody is logged in."""

    name = "dev"

    def current_user(self) -> User | None:
        user = super().current_user()
        if user is not None:
            return user

        email = self.config.get("DEV_USER_EMAIL") or "dev@local.com"
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, first_name="Dev", last_name="User", auth_provider="dev")
            db.session.add(user)
            db.session.commit()
        return user


AUTH_STRATEGIES = {
    SessionAuthStrategy.name: SessionAuthStrategy,
    DevAuthStrategy.name: DevAuthStrategy,
}


def build_auth_strategy(config):
    name = (config.get("AUTH_STRATEGY") or "session").strip().lower()
    strategy_class = AUTH_STRATEGIES.get(name)
    if strategy_class is None:
        raise ValueError(f"Unknown AUTH_STRATEGY {name!r}; expected one of {', '.join(sorted(AUTH_STRATEGIES))}.")
    return strategy_class(config)


def auth_strategy():
    return current_app.extensions["nutria_auth"]


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if g.get("user") is None:
            return error_response(AuthenticationError.default_message, 401)
        return view(*args, **kwargs)

    return wrapped


@auth_bp.before_app_request
def load_logged_in_user():
    g.user = auth_strategy().current_user()


def normalize_email(value: str | None):
    if not value or not isinstance(value, str):
        return None
    return value.strip().lower() or None


def user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "profileImageUrl": user.profile_image_url,
        "authProvider": user.auth_provider,
        "weight": user.weight_kg,
        "height": user.height_cm,
        "age": user.age,
        "sex": user.biological_sex,
        "goal": user.goal,
        "activityLevel": user.activity_level,
        "timeZone": user.time_zone,
        "dailyCalories": user.daily_calories,
        "dailyProtein": user.daily_protein,
        "dailyCarbs": user.daily_carbs,
        "dailyFat": user.daily_fat,
        "notificationsEnabled": user.notifications_enabled,
        "isProfileComplete": user.is_profile_complete,
    }


@auth_bp.post("/register")
def register():
    body = request.get_json(silent=True) or {}
    email = normalize_email(body.get("email"))
    password = body.get("password") or ""
    first_name = (body.get("firstName") or "").strip()
    last_name = (body.get("lastName") or "").strip()

    if not email or "@" not in email:
        raise ValidationError("E-mail inválido")
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError("A senha deve ter pelo menos 8 caracteres")
    if not first_name:
        raise ValidationError("O nome é obrigatório")
    if User.query.filter_by(email=email).first():
        raise ValidationError("Já existe uma conta com este e-mail")

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        first_name=first_name[:120],
        last_name=last_name[:120] or None,
        auth_provider="local",
    )
    db.session.add(user)
    db.session.commit()

    auth_strategy().login(user)
    current_app.logger.info("Registered user %s", user.id)
    return jsonify(user_payload(user)), 201


@auth_bp.post("/login")
def login():
    body = request.get_json(silent=True) or {}
    email = normalize_email(body.get("email"))
    password = body.get("password") or ""

    user = User.query.filter_by(email=email).first() if email else None
    if not user or not user.password_hash or not check_password_hash(user.password_hash, str(password)):
        raise AuthenticationError("E-mail ou senha incorretos")

    auth_strategy().login(user)
    return jsonify(user_payload(user))


@auth_bp.post("/logout")
def logout():
    auth_strategy().logout()
    return jsonify({"message": "Sessão encerrada"})


@auth_bp.get("/user")
@auth_bp.get("/auth/user", endpoint="auth_user")
@login_required
def current_user():
    return jsonify(user_payload(g.user))


def _google_redirect_uri() -> str:
    return current_app.config.get("GOOGLE_OAUTH_REDIRECT_URI") or url_for("auth.google_callback", _external=True)


@auth_bp.get("/auth/google")
def google_login():
    state = secrets.token_urlsafe(24)
    session["oauth_state"] = state
    params = {
        "client_id": current_app.config["GOOGLE_CLIENT_ID"],
        "redirect_uri": _google_redirect_uri(),
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return redirect(f"{GOOGLE_AUTH_URL}?{urlencode(params)}")


def _fetch_google_profile(code: str) -> dict:
    timeout = 10.0
    token_response = httpx.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": current_app.config["GOOGLE_CLIENT_ID"],
            "client_secret": current_app.config["GOOGLE_CLIENT_SECRET"],
            "redirect_uri": _google_redirect_uri(),
            "grant_type": "authorization_code",
        },
        timeout=timeout,
    )
    token_response.raise_for_status()
    access_token = token_response.json()["access_token"]

    profile_response = httpx.get(
        GOOGLE_USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=timeout,
    )
    profile_response.raise_for_status()
    return profile_response.json()


def link_google_user(profile: dict) -> User:
    google_id = str(profile.get("sub") or "").strip()
    if not google_id:
        raise ValueError("Google profile without subject")
    email = normalize_email(profile.get("email"))

    user = User.query.filter_by(google_id=google_id).first()
    if user is None and email:
        user = User.query.filter_by(email=email).first()
        if user is not None:
            user.google_id = google_id
    if user is None:
        user = User(
            email=email,
            google_id=google_id,
            first_name=(profile.get("given_name") or "")[:120] or None,
            last_name=(profile.get("family_name") or "")[:120] or None,
            auth_provider="google",
        )
        db.session.add(user)
    if profile.get("picture") and not user.profile_image_url:
        user.profile_image_url = str(profile["picture"])[:500]
    db.session.commit()
    return user


@auth_bp.get("/auth/google/callback")
def google_callback():
    expected_state = session.pop("oauth_state", None)
    code = request.args.get("code")
    if request.args.get("error") or not code or not expected_state or request.args.get("state") != expected_state:
        current_app.logger.warning("Google OAuth callback rejected: missing code or state mismatch")
        return redirect(GOOGLE_FAILURE_REDIRECT)

    try:
        profile = _fetch_google_profile(code)
        user = link_google_user(profile)
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        db.session.rollback()
        current_app.logger.warning("Google OAuth failed: %s", exc)
        return redirect(GOOGLE_FAILURE_REDIRECT)

    auth_strategy().login(user)
    return redirect("/")
