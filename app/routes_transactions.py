# routes_transactions.py
"""
Routes for the transactions panel: filtered list, create, edit, delete.
"""

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import HTMLResponse

from app.deps import get_controller, get_router, refused_redirect, render
from app.services.commands import CommandRouter
from app.services.panels import TransactionsPanel
from app.services.session import ViewController

router = APIRouter()

FORM_FIELDS = ("date", "type", "amount", "category_id", "description", "payment_method", "notes")


def _form_values(form) -> dict:
    return {field: str(form.get(field) or "").strip() for field in FORM_FIELDS}


def _form_from_row(tx) -> dict:
    return {
        "transaction_id": tx.id,
        "date": tx.date.isoformat(),
        "type": tx.type,
        "amount": f"{tx.amount:.2f}",
        "category_id": tx.category_id,
        "description": tx.description,
        "payment_method": tx.payment_method or "",
        "notes": tx.notes or "",
    }


def _render_panel(request: Request, controller: ViewController, panel: TransactionsPanel, status_code: int = 200):
    return render(
        request,
        "transactions.html",
        controller,
        status_code=status_code,
        panel=panel,
        filters=panel.filters,
        form=panel.form,
        category_choices=panel.category_choices(panel.form.get("type") or None),
    )


@router.get("/transactions", response_class=HTMLResponse)
def transactions_page(
    request: Request,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    category_id: str | None = Query(None),
    type: str | None = Query(None),
    edit: int | None = Query(None),
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = TransactionsPanel(
        command_router,
        controller.user,
        filters={
            "start_date": start_date,
            "end_date": end_date,
            "category_id": category_id,
            "type": type,
        },
    )
    controller.panels["transactions"] = panel
    if controller.show_view("transactions") is None:
        return refused_redirect(controller)

    if edit is not None:
        row = next((tx for tx in panel.rows if tx.id == edit), None)
        if row is not None:
            panel.form = _form_from_row(row)

    return _render_panel(request, controller, panel)


@router.post("/transactions", response_class=HTMLResponse)
async def create_transaction(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = TransactionsPanel(command_router, controller.user)
    controller.panels["transactions"] = panel
    if controller.show_view("transactions") is None:
        return refused_redirect(controller)

    result = panel.create(_form_values(await request.form()))
    return _render_panel(request, controller, panel, status_code=200 if result.success else 400)


@router.post("/transactions/{transaction_id}", response_class=HTMLResponse)
async def update_transaction(
    request: Request,
    transaction_id: int,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = TransactionsPanel(command_router, controller.user)
    controller.panels["transactions"] = panel
    if controller.show_view("transactions") is None:
        return refused_redirect(controller)

    form = _form_values(await request.form())
    form["transaction_id"] = transaction_id
    result = panel.update(form)
    return _render_panel(request, controller, panel, status_code=200 if result.success else 400)


@router.post("/transactions/{transaction_id}/delete", response_class=HTMLResponse)
def delete_transaction(
    request: Request,
    transaction_id: int,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    panel = TransactionsPanel(command_router, controller.user)
    controller.panels["transactions"] = panel
    if controller.show_view("transactions") is None:
        return refused_redirect(controller)

    result = panel.delete(transaction_id)
    panel.form = {}
    return _render_panel(request, controller, panel, status_code=200 if result.success else 400)
