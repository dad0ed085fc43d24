# app/services/report_pdf.py
#
# Monthly report -> PDF (fpdf2).
# Takes the report dict produced by the getReportData command.

import calendar

from fpdf import FPDF
from fpdf.enums import XPos, YPos

NEXT_LINE = {"new_x": XPos.LMARGIN, "new_y": YPos.NEXT}


def format_currency(amount) -> str:
    amount = float(amount or 0)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _latin1(text) -> str:
    # core PDF fonts only cover latin-1
    return str(text or "").encode("latin-1", "replace").decode("latin-1")


def build_report_pdf(report: dict) -> bytes:
    """
    Render the report: title, summary totals, category breakdown and
    the month's transactions. Returns the PDF bytes.
    """
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    month_name = calendar.month_name[report["month"]]

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, "Financial Report", align="C", **NEXT_LINE)
    pdf.set_font("Helvetica", size=12)
    pdf.cell(0, 8, f"{month_name} {report['year']}", align="C", **NEXT_LINE)
    pdf.ln(4)

    # ---- Summary ----
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(0, 8, "Summary", **NEXT_LINE)
    pdf.set_font("Helvetica", size=11)
    pdf.cell(0, 7, f"Total Income: {format_currency(report['total_income'])}", **NEXT_LINE)
    pdf.cell(0, 7, f"Total Expenses: {format_currency(report['total_expenses'])}", **NEXT_LINE)
    pdf.cell(0, 7, f"Net Balance: {format_currency(report['net_balance'])}", **NEXT_LINE)
    pdf.ln(4)

    # ---- Category breakdown ----
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(0, 8, "By Category", **NEXT_LINE)
    pdf.set_font("Helvetica", "B", 10)
    pdf.set_fill_color(230, 230, 230)
    pdf.cell(80, 7, "Category", border=1, align="C", fill=True)
    pdf.cell(50, 7, "Income", border=1, align="C", fill=True)
    pdf.cell(50, 7, "Expense", border=1, align="C", fill=True, **NEXT_LINE)

    pdf.set_font("Helvetica", size=10)
    if report["category_data"]:
        for row in report["category_data"]:
            pdf.cell(80, 7, _latin1(row["name"])[:40], border=1)
            pdf.cell(50, 7, format_currency(row["income"]), border=1, align="R")
            pdf.cell(50, 7, format_currency(row["expense"]), border=1, align="R", **NEXT_LINE)
    else:
        pdf.cell(0, 7, "No transactions in this month.", **NEXT_LINE)
    pdf.ln(4)

    # ---- Transactions ----
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(0, 8, "Transactions", **NEXT_LINE)
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(28, 7, "Date", border=1, align="C", fill=True)
    pdf.cell(22, 7, "Type", border=1, align="C", fill=True)
    pdf.cell(45, 7, "Category", border=1, align="C", fill=True)
    pdf.cell(60, 7, "Description", border=1, align="C", fill=True)
    pdf.cell(35, 7, "Amount", border=1, align="C", fill=True, **NEXT_LINE)

    pdf.set_font("Helvetica", size=9)
    for tx in report["transactions"]:
        category_name = tx.category.name if tx.category else ""
        pdf.cell(28, 7, tx.date.isoformat(), border=1)
        pdf.cell(22, 7, tx.type.capitalize(), border=1)
        pdf.cell(45, 7, _latin1(category_name)[:24], border=1)
        pdf.cell(60, 7, _latin1(tx.description)[:34], border=1)
        pdf.cell(35, 7, format_currency(tx.amount), border=1, align="R", **NEXT_LINE)

    return bytes(pdf.output())
