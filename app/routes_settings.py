# routes_settings.py
"""
Settings: password change, backup and restore.
"""

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import HTMLResponse

from app.deps import get_controller, get_router, refused_redirect, render
from app.services.backup import list_backups
from app.services.commands import CommandRouter
from app.services.panels import SettingsPanel
from app.services.policy import is_allowed
from app.services.session import ViewController

router = APIRouter()


def _open_panel(controller: ViewController, command_router: CommandRouter) -> SettingsPanel | None:
    panel = SettingsPanel(command_router, controller.user)
    controller.panels["settings"] = panel
    if controller.show_view("settings") is None:
        return None
    return panel


def _render_panel(
    request: Request,
    controller: ViewController,
    command_router: CommandRouter,
    panel: SettingsPanel,
    status_code: int = 200,
    must_change: bool = False,
    restart_required: bool = False,
):
    role = (controller.user or {}).get("role")
    can_restore = is_allowed("restoreDatabase", role)
    return render(
        request,
        "settings.html",
        controller,
        status_code=status_code,
        panel=panel,
        must_change=must_change,
        restart_required=restart_required,
        can_backup=is_allowed("backupDatabase", role),
        can_restore=can_restore,
        backups=list_backups(command_router.settings.backup_dir) if can_restore else [],
    )


@router.get("/settings", response_class=HTMLResponse)
def settings_page(
    request: Request,
    must_change: int = Query(0),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router)
    if panel is None:
        return refused_redirect(controller)
    return _render_panel(request, controller, command_router, panel, must_change=bool(must_change))


@router.post("/settings/password", response_class=HTMLResponse)
async def change_password(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router)
    if panel is None:
        return refused_redirect(controller)

    form = await request.form()
    result = panel.change_password({
        "current_password": str(form.get("current_password") or ""),
        "new_password": str(form.get("new_password") or ""),
        "confirm_password": str(form.get("confirm_password") or ""),
    })
    if result.success:
        controller.refresh_user(result.to_dict()["user"])

    return _render_panel(request, controller, command_router, panel, status_code=200 if result.success else 400)


@router.post("/settings/backup", response_class=HTMLResponse)
def backup(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router)
    if panel is None:
        return refused_redirect(controller)

    result = panel.backup()
    return _render_panel(request, controller, command_router, panel, status_code=200 if result.success else 400)


@router.post("/settings/restore", response_class=HTMLResponse)
async def restore(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router)
    if panel is None:
        return refused_redirect(controller)

    form = await request.form()
    result = panel.restore(str(form.get("backup_path") or ""))
    return _render_panel(
        request,
        controller,
        command_router,
        panel,
        status_code=200 if result.success else 400,
        restart_required=bool(result.data.get("restart_required")),
    )
