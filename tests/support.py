import tempfile
import unittest
from pathlib import Path
from uuid import uuid4

from werkzeug.security import generate_password_hash

from nutria import create_app, db
from nutria.models import Food, MealType, User


def build_settings(db_file: Path, **overrides) -> dict:
    settings = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file.as_posix()}",
        "SECRET_KEY": "test-secret",
        "GOOGLE_CLIENT_ID": "test-google-client",
        "GOOGLE_CLIENT_SECRET": "test-google-secret",
        "GOOGLE_OAUTH_REDIRECT_URI": "http://localhost/api/auth/google/callback",
        "OPENAI_API_KEY": "test-openai-key",
        "OPENAI_BASE_URL": None,
        "OPENAI_MODEL": "gpt-4.1-mini",
        "USDA_API_KEY": "test-usda-key",
        "USDA_BASE_URL": "https://usda.test/fdc/v1",
        "AUTH_STRATEGY": "session",
        "DEFAULT_TIME_ZONE": "UTC",
        "LOG_LEVEL": "WARNING",
    }
    settings.update(overrides)
    return settings


class NutriaTestCase(unittest.TestCase):
    """Fresh schema for every test on a temporary SQLite file per test case class."""

    extra_settings: dict = {}

    @classmethod
    def setUpClass(cls):
        cls.db_file = Path(tempfile.gettempdir()) / f"nutria-{cls.__name__.lower()}-{uuid4().hex}.db"
        cls.app = create_app(build_settings(cls.db_file, **cls.extra_settings))

    @classmethod
    def tearDownClass(cls):
        with cls.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        if cls.db_file.exists():
            try:
                cls.db_file.unlink()
            except PermissionError:
                pass

    def setUp(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.create_all()
        self.client = self.app.test_client()

    def create_user(self, email="ana@example.com", password="senha12345", **fields) -> int:
        with self.app.app_context():
            user = User(
                email=email,
                password_hash=generate_password_hash(password),
                first_name=fields.pop("first_name", "Ana"),
                **fields,
            )
            db.session.add(user)
            db.session.commit()
            return user.id

    def login(self, email="ana@example.com", password="senha12345"):
        response = self.client.post("/api/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.get_json())
        return response

    def create_food(self, user_id=None, name="Alimento teste", calories=100, protein=10, carbs=20, fat=5) -> int:
        with self.app.app_context():
            food = Food(
                user_id=user_id,
                name=name,
                calories_per_100g=calories,
                protein_per_100g=protein,
                carbs_per_100g=carbs,
                fat_per_100g=fat,
                is_custom=user_id is not None,
                source="custom",
            )
            db.session.add(food)
            db.session.commit()
            return food.id

    def create_meal_type(self, user_id=None, name="Almoço teste") -> int:
        with self.app.app_context():
            meal_type = MealType(user_id=user_id, name=name, is_default=user_id is None)
            db.session.add(meal_type)
            db.session.commit()
            return meal_type.id

    def log_meal(self, meal_type_id: int, food_id: int, quantity=100, unit="g", logged_at=None):
        payload = {"mealTypeId": meal_type_id, "foods": [{"foodId": food_id, "quantity": quantity, "unit": unit}]}
        if logged_at is not None:
            payload["loggedAt"] = logged_at
        response = self.client.post("/api/meals", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()
