import json
import unittest
from unittest.mock import MagicMock, patch

import httpx
import openai

from nutria.ai import analyze_meal_description, extract_plan_json, suggest_recipes
from nutria.errors import PlanParseError, UpstreamError
from nutria.models import Plan
from support import NutriaTestCase

NUTRITION_PLAN = {
    "title": "Semana equilibrada",
    "description": "Plano de 2000 kcal",
    "meals": {"segunda": {"cafe_da_manha": {"name": "Aveia com banana", "foods": ["aveia", "banana"], "calories": 350}}},
}


def wrapped_json(payload: dict) -> str:
    return "Claro! Aqui está o seu plano:\n```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```\nBom proveito."


class PlanParsingTestCase(unittest.TestCase):
    def test_first_brace_to_last_brace(self):
        self.assertEqual(extract_plan_json(wrapped_json(NUTRITION_PLAN)), NUTRITION_PLAN)

    def test_malformed_response_raises(self):
        with self.assertRaises(PlanParseError):
            extract_plan_json("Desculpe, não consigo ajudar.")
        with self.assertRaises(PlanParseError):
            extract_plan_json('{"title": "truncado", "meals": {')


class RuleBasedAiTestCase(unittest.TestCase):
    def test_meal_description_patterns(self):
        result = analyze_meal_description("Comi 2 fatias de pão com 3 ovos e 4 colheres de arroz")
        names = [food["name"] for food in result["foods"]]
        self.assertEqual(names, ["Pão", "Ovo", "Arroz"])
        self.assertEqual(result["totalCalories"], 2 * 80 + 3 * 70 + 4 * 130)
        self.assertEqual(result["confidence"], 0.85)

    def test_unrecognized_description(self):
        self.assertEqual(analyze_meal_description("uma salada")["foods"], [])

    def test_recipe_suggestions(self):
        names = [item["name"] for item in suggest_recipes(["Frango", "arroz", "ovos"])]
        self.assertEqual(names, ["Frango com Arroz", "Omelete Nutritiva"])
        self.assertEqual(suggest_recipes(["frango"]), [])


class PlansApiTestCase(NutriaTestCase):
    def setUp(self):
        super().setUp()
        self.user_id = self.create_user()
        self.login()

    def generate(self, payload=NUTRITION_PLAN, path="/api/generate-meal-plan"):
        with patch("nutria.ai.generate_text", return_value=wrapped_json(payload)) as mocked:
            response = self.client.post(path, json={"description": "Quero perder peso comendo comida brasileira"})
        return response, mocked

    def active_ids(self, plan_type="nutrition"):
        with self.app.app_context():
            return [plan.id for plan in Plan.query.filter_by(user_id=self.user_id, plan_type=plan_type, is_active=True)]

    def test_generated_plan_becomes_active(self):
        response, mocked = self.generate()
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body["title"], "Semana equilibrada")
        self.assertEqual(body["type"], "nutrition")
        self.assertTrue(body["isActive"])
        self.assertIn("segunda", body["meals"])
        self.assertIn("Quero perder peso", mocked.call_args.args[0])

        current = self.client.get("/api/my-meal-plan").get_json()
        self.assertEqual(current["id"], body["id"])

    def test_activation_leaves_exactly_one_active_plan(self):
        first = self.generate()[0].get_json()
        second = self.generate()[0].get_json()
        self.assertEqual(self.active_ids(), [second["id"]])

        response = self.client.post(f"/api/user-plans/{first['id']}/activate")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.get_json()["isActive"])
        self.assertEqual(self.active_ids(), [first["id"]])

        history = self.client.get("/api/my-meal-plans/history").get_json()
        self.assertEqual(len(history), 2)

    def test_plan_types_are_independent(self):
        nutrition = self.generate()[0].get_json()
        workout = self.generate({"title": "Treino ABC", "workouts": {"segunda": []}}, "/api/generate-workout-plan")[0]
        self.assertEqual(workout.get_json()["type"], "workout")
        self.assertEqual(self.active_ids("nutrition"), [nutrition["id"]])
        self.assertEqual(self.active_ids("workout"), [workout.get_json()["id"]])

        active = self.client.get("/api/user-plans/active?type=workout").get_json()
        self.assertEqual(active["title"], "Treino ABC")
        listed = self.client.get("/api/user-plans?type=diet").get_json()
        self.assertEqual([plan["id"] for plan in listed], [nutrition["id"]])
        self.assertEqual(self.client.get("/api/user-plans?type=yoga").status_code, 400)

    def test_unparseable_response_is_internal_error(self):
        with patch("nutria.ai.generate_text", return_value="sem json aqui"):
            response = self.client.post("/api/generate-meal-plan", json={"description": "algo"})
        self.assertEqual(response.status_code, 500)
        self.assertIn("message", response.get_json())
        with self.app.app_context():
            self.assertEqual(Plan.query.count(), 0)

    def test_upstream_failure_is_bad_gateway(self):
        with patch("nutria.ai.generate_text", side_effect=UpstreamError()):
            response = self.client.post("/api/generate-meal-plan", json={"description": "algo"})
        self.assertEqual(response.status_code, 502)

    def test_openai_errors_are_translated(self):
        client = MagicMock()
        client.responses.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/responses")
        )
        with patch("nutria.ai.OpenAI", return_value=client):
            response = self.client.post("/api/ai/chat", json={"message": "O que jantar?"})
        self.assertEqual(response.status_code, 502)

    def test_description_required(self):
        response = self.client.post("/api/generate-meal-plan", json={"description": "   "})
        self.assertEqual(response.status_code, 400)

    def test_update_and_delete_plan(self):
        plan = self.generate()[0].get_json()
        updated_plan = dict(NUTRITION_PLAN, title="Semana vegetariana")
        with patch("nutria.ai.generate_text", return_value=wrapped_json(updated_plan)):
            response = self.client.patch(f"/api/user-plans/{plan['id']}", json={"description": "Sem carne"})
        self.assertEqual(response.get_json()["title"], "Semana vegetariana")
        self.assertTrue(response.get_json()["isActive"])

        self.assertEqual(self.client.delete(f"/api/user-plans/{plan['id']}").status_code, 200)
        self.assertIsNone(self.client.get("/api/my-meal-plan").get_json())

    def test_other_users_plan_cannot_be_activated(self):
        plan = self.generate()[0].get_json()
        self.client.post("/api/logout")
        self.create_user(email="bia@example.com")
        self.login(email="bia@example.com")
        self.assertEqual(self.client.post(f"/api/user-plans/{plan['id']}/activate").status_code, 404)


class AiApiTestCase(NutriaTestCase):
    def setUp(self):
        super().setUp()
        self.create_user()
        self.login()

    def test_chat_passes_user_context(self):
        with patch("nutria.ai.generate_text", return_value="Prefira uma sopa leve.") as mocked:
            response = self.client.post("/api/ai/chat", json={"message": "O que jantar?"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"response": "Prefira uma sopa leve."})
        prompt = mocked.call_args.args[0]
        self.assertIn("O que jantar?", prompt)
        self.assertIn("2000 kcal", prompt)

    def test_chat_requires_message(self):
        self.assertEqual(self.client.post("/api/ai/chat", json={}).status_code, 400)

    def test_personalized_recommendations(self):
        with patch("nutria.ai.generate_text", return_value="1. Beba mais água"):
            response = self.client.post("/api/ai/personalized-recommendations")
        self.assertEqual(response.get_json(), {"recommendations": "1. Beba mais água"})

    def test_analyze_meal_endpoint(self):
        response = self.client.post("/api/ai/analyze-meal", json={"description": "2 ovos"})
        self.assertEqual(response.get_json()["totalCalories"], 140)
        self.assertEqual(self.client.post("/api/ai/analyze-meal", json={}).status_code, 400)

    def test_suggest_recipes_endpoint(self):
        response = self.client.post("/api/ai/suggest-recipes", json={"availableIngredients": ["ovos"]})
        self.assertEqual([item["name"] for item in response.get_json()], ["Omelete Nutritiva"])
        response = self.client.post("/api/ai/suggest-recipes", json={"availableIngredients": "ovos"})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
