"""Nutrition history reports rendered as HTML or PDF.

Both renderers take the same context built by :func:`build_report_context` and
have no persistence side effects.
"""

from datetime import date, datetime, timezone
from html import escape
from io import BytesIO

from flask import render_template
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from nutria.models import DailyNutrition, User

NO_DATA_LABEL = "Sem dados"
REPORT_TYPES = ("daily", "weekly", "monthly")


def summarize_history(history: list[DailyNutrition]) -> dict:
    """Arithmetic means of the window; every average is None when it is empty."""
    days = len(history)
    if days == 0:
        return {"days": 0, "calories": None, "protein": None, "carbs": None, "fat": None}
    return {
        "days": days,
        "calories": round(sum(row.total_calories or 0 for row in history) / days),
        "protein": round(sum(row.total_protein or 0 for row in history) / days, 1),
        "carbs": round(sum(row.total_carbs or 0 for row in history) / days, 1),
        "fat": round(sum(row.total_fat or 0 for row in history) / days, 1),
    }


def build_report_context(
    user: User,
    history: list[DailyNutrition],
    start_date: date,
    end_date: date,
    report_type: str = "daily",
) -> dict:
    return {
        "user_name": user.full_name(),
        "user": user,
        "start_date": start_date,
        "end_date": end_date,
        "report_type": report_type if report_type in REPORT_TYPES else "daily",
        "history": history,
        "averages": summarize_history(history),
        "goals": {
            "calories": user.daily_calories,
            "protein": user.daily_protein,
            "carbs": user.daily_carbs,
            "fat": user.daily_fat,
        },
        "generated_at": datetime.now(timezone.utc).strftime("%d/%m/%Y %H:%M UTC"),
        "no_data_label": NO_DATA_LABEL,
    }


def report_filename(start_date: date, end_date: date) -> str:
    return f"nutrition-report-{start_date.isoformat()}-{end_date.isoformat()}.pdf"


def render_report_html(context: dict) -> str:
    return render_template("report.html", **context)


def _display(value, suffix: str = "") -> str:
    if value is None:
        return NO_DATA_LABEL
    return f"{value}{suffix}"


def _styles():
    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="ReportTitle",
            parent=styles["Title"],
            fontSize=18,
            leading=24,
            spaceAfter=12,
        )
    )
    styles.add(
        ParagraphStyle(
            name="ReportHeading",
            parent=styles["Heading2"],
            fontSize=13,
            leading=17,
            spaceBefore=10,
            spaceAfter=6,
            textColor=colors.HexColor("#2c3e50"),
        )
    )
    return styles


def _table(rows: list[list[str]], col_widths: list[float]) -> Table:
    table = Table(rows, colWidths=col_widths)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#16a34a")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#d1d5db")),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f3f4f6")]),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
            ]
        )
    )
    return table


def render_report_pdf(context: dict) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=2 * cm,
        leftMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
        title="Relatório Nutricional",
    )
    styles = _styles()
    averages = context["averages"]
    goals = context["goals"]

    story = [
        Paragraph("Relatório Nutricional", styles["ReportTitle"]),
        Paragraph(escape(context["user_name"] or ""), styles["Normal"]),
        Paragraph(
            f"Período: {context['start_date'].strftime('%d/%m/%Y')} a {context['end_date'].strftime('%d/%m/%Y')}",
            styles["Normal"],
        ),
        Spacer(1, 12),
        Paragraph("Médias diárias", styles["ReportHeading"]),
    ]

    story.append(
        _table(
            [
                ["", "Média", "Meta"],
                ["Calorias", _display(averages["calories"], " kcal"), f"{goals['calories']} kcal"],
                ["Proteínas", _display(averages["protein"], " g"), f"{goals['protein']} g"],
                ["Carboidratos", _display(averages["carbs"], " g"), f"{goals['carbs']} g"],
                ["Gorduras", _display(averages["fat"], " g"), f"{goals['fat']} g"],
            ],
            [5 * cm, 5 * cm, 5 * cm],
        )
    )

    story.append(Paragraph("Histórico", styles["ReportHeading"]))
    history = context["history"]
    if not history:
        story.append(Paragraph(NO_DATA_LABEL, styles["Normal"]))
    else:
        rows = [["Data", "Calorias", "Proteínas", "Carboidratos", "Gorduras", "Refeições"]]
        for row in history:
            rows.append(
                [
                    row.date.strftime("%d/%m/%Y"),
                    f"{row.total_calories} kcal",
                    f"{row.total_protein} g",
                    f"{row.total_carbs} g",
                    f"{row.total_fat} g",
                    str(row.meal_count),
                ]
            )
        story.append(_table(rows, [3 * cm, 2.6 * cm, 2.6 * cm, 2.9 * cm, 2.6 * cm, 2.3 * cm]))

    story.append(Spacer(1, 18))
    story.append(Paragraph(f"Gerado em {context['generated_at']}", styles["Italic"]))

    doc.build(story)
    pdf_content = buffer.getvalue()
    buffer.close()
    return pdf_content
