# routes_auth.py
"""
Login / logout and the theme toggle.
"""

from urllib.parse import urlparse

from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse, RedirectResponse

from app.deps import get_controller, get_router, render
from app.services.commands import CommandRouter
from app.services.session import ViewController

router = APIRouter()


def _same_origin(request: Request, url: str | None) -> str:
    """Path part of `url` when it points back at this app, else /dashboard."""
    if not url:
        return "/dashboard"
    parsed = urlparse(url)
    if parsed.scheme not in ("", "http", "https") or parsed.netloc not in ("", request.url.netloc):
        return "/dashboard"
    path = parsed.path or "/dashboard"
    # "//host" and "\\host" would be read as another origin by the browser
    if not path.startswith("/") or path.startswith("//") or "\\" in path:
        return "/dashboard"
    return f"{path}?{parsed.query}" if parsed.query else path


def _user_snapshot(result) -> dict:
    """User dict as stored in the session cookie (camelCase, no hash)."""
    return result.to_dict()["user"]


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    controller: ViewController = Depends(get_controller),
):
    if controller.is_authenticated:
        return RedirectResponse(url="/dashboard", status_code=303)
    return render(request, "login.html", controller, error=None, username="")


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    controller: ViewController = Depends(get_controller),
    command_router: CommandRouter = Depends(get_router),
):
    form = await request.form()
    username = str(form.get("username") or "")
    password = str(form.get("password") or "")

    result = command_router.dispatch("authenticate", None, {"username": username, "password": password})
    if not result.success:
        return render(
            request,
            "login.html",
            controller,
            status_code=401,
            error=result.message,
            username=username,
        )

    user = _user_snapshot(result)
    controller.login(user)

    # Temporary passwords must be replaced before anything else
    if user.get("mustChangePassword"):
        return RedirectResponse(url="/settings?must_change=1", status_code=303)
    return RedirectResponse(url="/dashboard", status_code=303)


@router.post("/logout")
def logout(controller: ViewController = Depends(get_controller)):
    controller.logout()
    return RedirectResponse(url="/login", status_code=303)


@router.post("/theme")
def toggle_theme(
    request: Request,
    controller: ViewController = Depends(get_controller),
):
    controller.toggle_theme()
    return RedirectResponse(url=_same_origin(request, request.headers.get("referer")), status_code=303)
