import unittest
from datetime import date

from nutria.models import DailyNutrition
from nutria.reports import report_filename, summarize_history
from support import NutriaTestCase


class SummaryTestCase(unittest.TestCase):
    def test_empty_window_has_no_averages(self):
        self.assertEqual(
            summarize_history([]),
            {"days": 0, "calories": None, "protein": None, "carbs": None, "fat": None},
        )

    def test_averages(self):
        rows = [
            DailyNutrition(date=date(2024, 1, 15), total_calories=1800, total_protein=100, total_carbs=200, total_fat=60),
            DailyNutrition(date=date(2024, 1, 16), total_calories=2100, total_protein=130, total_carbs=250, total_fat=75),
        ]
        summary = summarize_history(rows)
        self.assertEqual(summary["days"], 2)
        self.assertEqual(summary["calories"], 1950)
        self.assertEqual(summary["protein"], 115)
        self.assertEqual(summary["fat"], 67.5)

    def test_filename(self):
        self.assertEqual(
            report_filename(date(2024, 1, 1), date(2024, 1, 31)),
            "nutrition-report-2024-01-01-2024-01-31.pdf",
        )


class ReportsApiTestCase(NutriaTestCase):
    def setUp(self):
        super().setUp()
        self.create_user(last_name="Souza")
        self.login()
        self.meal_type_id = self.create_meal_type()
        self.food_id = self.create_food(name="Base", calories=100, protein=10, carbs=10, fat=2)

    def test_export_pdf_returns_attachment(self):
        self.log_meal(self.meal_type_id, self.food_id, quantity=1800, logged_at="2024-01-15T12:00:00Z")
        response = self.client.post(
            "/api/export/pdf",
            json={"startDate": "2024-01-14", "endDate": "2024-01-20", "type": "weekly"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/pdf")
        self.assertTrue(response.data.startswith(b"%PDF"))
        self.assertEqual(
            response.headers["Content-Disposition"],
            'attachment; filename="nutrition-report-2024-01-14-2024-01-20.pdf"',
        )

    def test_empty_window_renders_without_data(self):
        response = self.client.get("/api/reports/nutrition-pdf?startDate=2024-01-01&endDate=2024-01-07&format=html")
        self.assertEqual(response.status_code, 200)
        html = response.get_data(as_text=True)
        self.assertIn("Sem dados", html)
        self.assertIn("Ana Souza", html)
        self.assertNotIn("NaN", html)

        response = self.client.get("/api/reports/nutrition-pdf?startDate=2024-01-01&endDate=2024-01-07")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b"%PDF"))

    def test_html_report_lists_days_with_meals(self):
        self.log_meal(self.meal_type_id, self.food_id, quantity=1800, logged_at="2024-01-15T12:00:00Z")
        self.log_meal(self.meal_type_id, self.food_id, quantity=2200, logged_at="2024-01-16T12:00:00Z")
        html = self.client.get(
            "/api/reports/nutrition-pdf?startDate=2024-01-14&endDate=2024-01-20&format=html"
        ).get_data(as_text=True)
        self.assertIn("15/01/2024", html)
        self.assertIn("16/01/2024", html)
        self.assertNotIn("14/01/2024</td>", html)
        self.assertIn("2000 kcal", html)

    def test_export_requires_valid_dates(self):
        response = self.client.post("/api/export/pdf", json={"startDate": "ontem", "endDate": "2024-01-20"})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/export/pdf", json={"startDate": "2024-01-20", "endDate": "2024-01-01"})
        self.assertEqual(response.status_code, 400)

    def test_export_rejects_unknown_or_non_text_type(self):
        window = {"startDate": "2024-01-14", "endDate": "2024-01-20"}
        response = self.client.post("/api/export/pdf", json={**window, "type": 1})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["details"], {"field": "type"})
        response = self.client.post("/api/export/pdf", json={**window, "type": "anual"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["details"]["allowed"], ["daily", "weekly", "monthly"])

    def test_report_follows_time_zone_change(self):
        # 06:00 UTC is the 15th in UTC but 03:00 on the 15th (so the 14th) in Sao Paulo
        self.log_meal(self.meal_type_id, self.food_id, quantity=500, logged_at="2024-01-15T06:00:00Z")
        self.client.patch("/api/user/profile", json={"timeZone": "America/Sao_Paulo"})

        html = self.client.get(
            "/api/reports/nutrition-pdf?startDate=2024-01-14&endDate=2024-01-14&format=html"
        ).get_data(as_text=True)
        self.assertIn("<td>14/01/2024</td>", html)
        self.assertIn("<td>500 kcal</td>", html)
        self.assertNotIn("Sem dados", html)


if __name__ == "__main__":
    unittest.main()
