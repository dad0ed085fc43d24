# app/routes_dashboard.py

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import RedirectResponse

from app.deps import get_controller, get_router, refused_redirect, render
from app.services.aggregation import PERIODS
from app.services.commands import CommandRouter
from app.services.panels import DashboardPanel
from app.services.session import ViewController

router = APIRouter()


@router.get("/")
def read_root():
    """
    Landing endpoint: the dashboard (which bounces to /login when needed).
    """
    return RedirectResponse(url="/dashboard", status_code=302)


@router.get("/dashboard")
def dashboard_page(
    request: Request,
    period: str = Query("month"),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    if period not in PERIODS:
        period = "month"

    controller.panels["dashboard"] = DashboardPanel(command_router, controller.user, period=period)
    panel = controller.show_view("dashboard")
    if panel is None:
        return refused_redirect(controller)

    return render(
        request,
        "dashboard.html",
        controller,
        panel=panel,
        period=period,
        periods=[
            ("week", "Last 7 Days"),
            ("month", "Last 30 Days"),
            ("year", "Last 12 Months"),
        ],
    )
