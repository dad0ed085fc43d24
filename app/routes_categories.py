# routes_categories.py
"""
Routes for the categories panel (income / expense tabs).
"""

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import HTMLResponse

from app.deps import get_controller, get_router, refused_redirect, render
from app.services.commands import CommandRouter
from app.services.panels import CategoriesPanel
from app.services.session import ViewController

router = APIRouter()


def _open_panel(controller: ViewController, command_router: CommandRouter, tab: str) -> CategoriesPanel | None:
    panel = CategoriesPanel(command_router, controller.user, tab=tab)
    controller.panels["categories"] = panel
    if controller.show_view("categories") is None:
        return None
    return panel


def _render_panel(request: Request, controller: ViewController, panel: CategoriesPanel, status_code: int = 200):
    return render(
        request,
        "categories.html",
        controller,
        status_code=status_code,
        panel=panel,
        form=panel.form,
    )


@router.get("/categories", response_class=HTMLResponse)
def categories_page(
    request: Request,
    tab: str = Query("expense"),
    edit: int | None = Query(None),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router, tab)
    if panel is None:
        return refused_redirect(controller)

    if edit is not None:
        row = next((c for c in panel.rows if c.id == edit), None)
        if row is not None:
            panel.form = {"category_id": row.id, "name": row.name, "type": row.type, "color": row.color}

    return _render_panel(request, controller, panel)


@router.post("/categories", response_class=HTMLResponse)
async def create_category(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    form = await request.form()
    values = {k: str(form.get(k) or "").strip() for k in ("name", "type", "color")}

    panel = _open_panel(controller, command_router, values["type"])
    if panel is None:
        return refused_redirect(controller)

    result = panel.create(values)
    return _render_panel(request, controller, panel, status_code=200 if result.success else 400)


@router.post("/categories/{category_id}", response_class=HTMLResponse)
async def update_category(
    request: Request,
    category_id: int,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    form = await request.form()
    values = {k: str(form.get(k) or "").strip() for k in ("name", "type", "color")}
    values["category_id"] = category_id

    panel = _open_panel(controller, command_router, values["type"])
    if panel is None:
        return refused_redirect(controller)

    result = panel.update(values)
    return _render_panel(request, controller, panel, status_code=200 if result.success else 400)


@router.post("/categories/{category_id}/delete", response_class=HTMLResponse)
def delete_category(
    request: Request,
    category_id: int,
    tab: str = Query("expense"),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = _open_panel(controller, command_router, tab)
    if panel is None:
        return refused_redirect(controller)

    result = panel.delete(category_id)
    panel.form = {}
    return _render_panel(request, controller, panel, status_code=200 if result.success else 400)
