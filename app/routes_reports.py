# routes_reports.py
"""
Monthly report page and its PDF export.
"""

from datetime import date

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import HTMLResponse, Response

from app.deps import get_controller, get_router, refused_redirect, render
from app.services.commands import CommandRouter
from app.services.panels import ReportsPanel
from app.services.session import ViewController

router = APIRouter()


def parse_month_param(month_str: str | None, today: date | None = None) -> tuple[int, int]:
    """
    month_str: 'YYYY-MM' or None.
    Returns (year, month). Missing or invalid input means the current month.
    """
    today = today or date.today()
    if not month_str:
        return today.year, today.month
    try:
        year_str, month_only_str = month_str.split("-")
        year = int(year_str)
        month = int(month_only_str)
        if not (1 <= month <= 12):
            raise ValueError
    except ValueError:
        return today.year, today.month
    return year, month


def _open_panel(controller, command_router, month: str | None) -> ReportsPanel | None:
    year, month_num = parse_month_param(month, command_router.clock())
    panel = ReportsPanel(command_router, controller.user, month=month_num, year=year)
    controller.panels["reports"] = panel
    if controller.show_view("reports") is None:
        return None
    return panel


@router.get("/reports", response_class=HTMLResponse)
def reports_page(
    request: Request,
    month: str | None = Query(None),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router, month)
    if panel is None:
        return refused_redirect(controller)

    return render(
        request,
        "reports.html",
        controller,
        panel=panel,
        report=panel.report,
        month_value=f"{panel.year:04d}-{panel.month:02d}",
    )


@router.get("/reports/pdf")
def report_pdf(
    month: str | None = Query(None),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router, month)
    if panel is None:
        return refused_redirect(controller)

    content = panel.export_pdf()
    if content is None:
        return Response(content=panel.error or "Failed to generate report", status_code=400)

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{panel.pdf_filename}"'},
    )
