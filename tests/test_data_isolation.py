import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path
from uuid import uuid4

from werkzeug.security import generate_password_hash

from nutria import create_app, db
from nutria.models import DailyNutrition, Food, Meal, MealFood, MealType, Plan, Recipe, User
from support import build_settings


class DataIsolationTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.db_file = Path(tempfile.gettempdir()) / f"nutria-isolation-{uuid4().hex}.db"
        cls.app = create_app(build_settings(cls.db_file))

        with cls.app.app_context():
            db.drop_all()
            db.create_all()

            user1 = User(
                first_name="User One",
                email="user1@example.com",
                password_hash=generate_password_hash("pass12345"),
            )
            user2 = User(
                first_name="User Two",
                email="user2@example.com",
                password_hash=generate_password_hash("pass12345"),
            )
            db.session.add_all([user1, user2])
            db.session.flush()

            meal_type = MealType(user_id=None, name="Almoço", is_default=True)
            private_type = MealType(user_id=user2.id, name="U2_PRIVATE_MEAL_TYPE")
            u1_food = Food(user_id=user1.id, name="U1_SECRET_FOOD", calories_per_100g=100)
            u2_food = Food(user_id=user2.id, name="U2_SECRET_FOOD", calories_per_100g=100)
            db.session.add_all([meal_type, private_type, u1_food, u2_food])
            db.session.flush()

            meal_u1 = Meal(
                user_id=user1.id,
                meal_type_id=meal_type.id,
                name="U1_SECRET_MEAL",
                date=date(2026, 2, 18),
                created_at=datetime(2026, 2, 18, 12, 0),
                total_calories=420,
            )
            meal_u2 = Meal(
                user_id=user2.id,
                meal_type_id=meal_type.id,
                name="U2_SECRET_MEAL",
                date=date(2026, 2, 18),
                created_at=datetime(2026, 2, 18, 12, 30),
                total_calories=777,
            )
            meal_u2.foods = [MealFood(food_id=u2_food.id, quantity=777, unit="g", calories=777)]
            db.session.add_all([meal_u1, meal_u2])

            recipe_u2 = Recipe(user_id=user2.id, name="U2_SECRET_RECIPE")
            plan_u2 = Plan(user_id=user2.id, plan_type="nutrition", title="U2_SECRET_PLAN", content={}, is_active=True)
            db.session.add_all(
                [
                    recipe_u2,
                    plan_u2,
                    DailyNutrition(user_id=user2.id, date=date(1999, 12, 31), total_calories=9999),
                ]
            )

            db.session.commit()
            cls.user2_meal_id = meal_u2.id
            cls.user2_meal_food_id = meal_u2.foods[0].id
            cls.user2_food_id = u2_food.id
            cls.user2_recipe_id = recipe_u2.id
            cls.user2_plan_id = plan_u2.id

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
        self.client = self.app.test_client()
        response = self.client.post("/api/login", json={"email": "user1@example.com", "password": "pass12345"})
        self.assertEqual(response.status_code, 200)

    def test_user_cannot_open_or_delete_another_users_meal(self):
        self.assertEqual(self.client.get(f"/api/meals/{self.user2_meal_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/meals/{self.user2_meal_id}").status_code, 404)
        response = self.client.post(f"/api/meals/{self.user2_meal_id}/foods", json={"foodId": 1, "quantity": 1})
        self.assertEqual(response.status_code, 404)

    def test_user_cannot_edit_another_users_meal_line(self):
        response = self.client.patch(f"/api/meal-foods/{self.user2_meal_food_id}", json={"quantity": 1})
        self.assertEqual(response.status_code, 404)

    def test_meal_list_only_shows_current_users_meals(self):
        payload = self.client.get("/api/meals").get_data(as_text=True)
        self.assertIn("U1_SECRET_MEAL", payload)
        self.assertNotIn("U2_SECRET_MEAL", payload)

    def test_foods_and_meal_types_are_user_scoped(self):
        foods = self.client.get("/api/foods").get_data(as_text=True)
        self.assertIn("U1_SECRET_FOOD", foods)
        self.assertNotIn("U2_SECRET_FOOD", foods)
        meal_types = self.client.get("/api/meal-types").get_data(as_text=True)
        self.assertNotIn("U2_PRIVATE_MEAL_TYPE", meal_types)

    def test_cannot_log_meal_with_another_users_food(self):
        meal_types = self.client.get("/api/meal-types").get_json()
        response = self.client.post(
            "/api/meals",
            json={"mealTypeId": meal_types[0]["id"], "foods": [{"foodId": self.user2_food_id, "quantity": 100}]},
        )
        self.assertEqual(response.status_code, 404)

    def test_recipes_plans_and_history_are_user_scoped(self):
        self.assertEqual(self.client.get(f"/api/recipes/{self.user2_recipe_id}").status_code, 404)
        self.assertNotIn("U2_SECRET_RECIPE", self.client.get("/api/recipes").get_data(as_text=True))
        self.assertIsNone(self.client.get("/api/my-meal-plan").get_json())
        self.assertEqual(self.client.delete(f"/api/user-plans/{self.user2_plan_id}").status_code, 404)
        history = self.client.get("/api/nutrition/history?startDate=1999-12-01&endDate=1999-12-31").get_json()
        self.assertEqual(history, [])


if __name__ == "__main__":
    unittest.main()
