# routes_api.py
"""
JSON command endpoint: the single dispatch surface for scripts and the
browser-side chart code.

POST /api/commands/{command} with a JSON object body.
The response is always 200 with {success, message?, ...payload}.
"""

from fastapi import APIRouter, Request, Depends

from app.deps import get_controller, get_router
from app.services.commands import CommandRouter
from app.services.session import ViewController

router = APIRouter(prefix="/api")


@router.post("/commands/{command}")
async def run_command(
    command: str,
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        return {"success": False, "message": "Request body must be a JSON object"}

    result = command_router.dispatch(command, controller.user, payload)
    body = result.to_dict()

    # authenticate doubles as login for API clients
    if command == "authenticate" and result.success:
        controller.login(body["user"])

    return body
