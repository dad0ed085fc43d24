# app/deps.py
# Role: Shared application-level dependencies.
#       Provides the Jinja2 templates loader, the command router held on app.state,
#       the per-request view controller, and the common page-render helper.

"""
Shared dependencies for the LocalFinTrack web app.
"""

import os

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from app.services.commands import CommandRouter
from app.services.report_pdf import format_currency
from app.services.session import ViewController

# -------------------------------------------------------------------
# Templates
# -------------------------------------------------------------------

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

# Jinja2 templates loader (used by all HTML-rendering routes)
templates = Jinja2Templates(directory=TEMPLATES_DIR)
templates.env.filters["currency"] = format_currency

# -------------------------------------------------------------------
# Router / controller dependencies
# -------------------------------------------------------------------

def get_router(request: Request) -> CommandRouter:
    """The long-lived command router created at startup (see main.py lifespan)."""
    return request.app.state.command_router


def get_controller(request: Request) -> ViewController:
    """
    View controller bound to this browser's session cookie.

    Every request counts as user activity, so a live session
    is extended here.
    """
    controller = ViewController(request.session)
    controller.start()
    controller.touch()
    return controller


# -------------------------------------------------------------------
# Page helpers
# -------------------------------------------------------------------

def refused_redirect(controller: ViewController) -> RedirectResponse:
    """Where to send a request for a view the controller refused."""
    if not controller.is_authenticated:
        return RedirectResponse(url="/login", status_code=303)
    return RedirectResponse(url="/dashboard", status_code=303)


def render(request: Request, template: str, controller: ViewController, status_code: int = 200, **context):
    """Render a page with the navigation/session context every page needs."""
    context.update(
        {
            "user": controller.user,
            "nav": controller.navigation,
            "current_view": controller.current_view,
            "theme": controller.theme,
        }
    )
    return templates.TemplateResponse(request, template, context, status_code=status_code)
