# routes_admin.py
"""
Superadmin views: user management and the audit log.
"""

from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse

from app.deps import get_controller, get_router, refused_redirect, render
from app.services.commands import CommandRouter
from app.services.panels import AuditPanel, UsersPanel
from app.services.session import ViewController
from models import UserRole

router = APIRouter()


def _open_users(controller: ViewController, command_router: CommandRouter) -> UsersPanel | None:
    panel = UsersPanel(command_router, controller.user)
    controller.panels["users"] = panel
    if controller.show_view("users") is None:
        return None
    return panel


def _render_users(request: Request, controller: ViewController, panel: UsersPanel, status_code: int = 200):
    return render(
        request,
        "users.html",
        controller,
        status_code=status_code,
        panel=panel,
        form=panel.form,
        roles=UserRole.ALL,
    )


# -------------------------------------------------------------------
# Users
# -------------------------------------------------------------------

@router.get("/users", response_class=HTMLResponse)
def users_page(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_users(controller, command_router)
    if panel is None:
        return refused_redirect(controller)
    return _render_users(request, controller, panel)


@router.post("/users", response_class=HTMLResponse)
async def create_user(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_users(controller, command_router)
    if panel is None:
        return refused_redirect(controller)

    form = await request.form()
    result = panel.create({
        "username": str(form.get("username") or "").strip(),
        "role": str(form.get("role") or ""),
    })
    return _render_users(request, controller, panel, status_code=200 if result.success else 400)


@router.post("/users/{user_id}", response_class=HTMLResponse)
async def update_user(
    request: Request,
    user_id: int,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_users(controller, command_router)
    if panel is None:
        return refused_redirect(controller)

    form = await request.form()
    result = panel.update({
        "user_id": user_id,
        "role": str(form.get("role") or ""),
        # unchecked checkboxes are simply absent from the form
        "is_active": form.get("is_active") is not None,
        "reset_password": form.get("reset_password") is not None,
    })
    panel.form = {}
    return _render_users(request, controller, panel, status_code=200 if result.success else 400)


@router.post("/users/{user_id}/delete", response_class=HTMLResponse)
def delete_user(
    request: Request,
    user_id: int,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_users(controller, command_router)
    if panel is None:
        return refused_redirect(controller)

    result = panel.delete(user_id)
    panel.form = {}
    return _render_users(request, controller, panel, status_code=200 if result.success else 400)


# -------------------------------------------------------------------
# Audit log
# -------------------------------------------------------------------

@router.get("/audit", response_class=HTMLResponse)
def audit_page(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = AuditPanel(command_router, controller.user)
    controller.panels["audit"] = panel
    if controller.show_view("audit") is None:
        return refused_redirect(controller)
    return render(request, "audit.html", controller, panel=panel)
