import logging
import os
import sys
from typing import Annotated, Optional

from fastapi import Depends, Form, Request
from fastapi.responses import ORJSONResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth import UserStore, login_session, logout_session, optional_user, require_session
from errors import (Forbidden, HashingFailed, InvalidCredentials, PasswordIncorrect,
                    PasswordRequired, PasteNotFound, PersistenceFailed, ValidationError)
from expiration import EXPIRATION_CHOICES, expires_in
from models import PasteStore
from models_sql import LoginForm, PasswordForm, PasteCreate, User, UserCreate

logger = logging.getLogger(__name__)


def find_templates_dir() -> str:
    """Templates sit beside the modules in a checkout or editable install and
    under ``<prefix>/share/inkpaste/templates`` in a regular install."""
    configured = os.getenv("TEMPLATES_DIR")
    if configured:
        return configured
    local = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
    if os.path.isdir(local):
        return local
    return os.path.join(sys.prefix, "share", "inkpaste", "templates")


TEMPLATES_DIR = find_templates_dir()
templates = Jinja2Templates(directory=TEMPLATES_DIR)

DEFAULT_LANGUAGE = "plaintext"

SUPPORTED_LANGUAGES = [
    ("plaintext", "Plain Text"),
    ("rust", "Rust"),
    ("javascript", "JavaScript"),
    ("typescript", "TypeScript"),
    ("python", "Python"),
    ("go", "Go"),
    ("java", "Java"),
    ("c", "C"),
    ("cpp", "C++"),
    ("csharp", "C#"),
    ("php", "PHP"),
    ("ruby", "Ruby"),
    ("swift", "Swift"),
    ("kotlin", "Kotlin"),
    ("sql", "SQL"),
    ("html", "HTML"),
    ("css", "CSS"),
    ("json", "JSON"),
    ("yaml", "YAML"),
    ("markdown", "Markdown"),
    ("bash", "Bash"),
    ("dockerfile", "Dockerfile"),
]


def format_date(dt):
    if not dt:
        return ""
    return dt.strftime("%Y-%m-%d %H:%M")


templates.env.filters["datetime"] = format_date


def get_pastes(request: Request) -> PasteStore:
    return request.app.state.pastes


def get_users(request: Request) -> UserStore:
    return request.app.state.users


def user_id_of(user: Optional[User]) -> Optional[int]:
    return user.id if user else None


def render_index(request: Request, user: Optional[User], error: Optional[str] = None,
                 status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "languages": SUPPORTED_LANGUAGES,
            "expirations": EXPIRATION_CHOICES,
            "user": user,
            "error": error,
        },
        status_code=status_code,
    )


def render_not_found(request: Request, user: Optional[User] = None):
    return templates.TemplateResponse(request, "not_found.html", {"user": user}, status_code=404)


async def index_handler(request: Request, user=Depends(optional_user)):
    return render_index(request, user)


async def create_paste_handler(request: Request, form: Annotated[PasteCreate, Form()],
                               user=Depends(optional_user)):
    max_char_content = request.app.state.settings.max_char_content
    content = form.content
    if content.strip() == "":
        return render_index(request, user, "Paste content cannot be empty", status_code=400)
    if len(content) > max_char_content:
        return render_index(request, user, f"Paste exceeds {max_char_content} max chars",
                            status_code=400)

    paste_id = await get_pastes(request).create(
        content,
        language=form.language or DEFAULT_LANGUAGE,
        password=form.password,
        expiration=form.expiration,
        owner_id=user_id_of(user),
    )
    return RedirectResponse(url=f"/{paste_id}", status_code=303)


async def render_paste(request: Request, paste_id: str, user: Optional[User],
                       password: Optional[str] = None):
    store = get_pastes(request)
    try:
        view = await store.view(paste_id, user_id_of(user), password)
    except PasteNotFound:
        return render_not_found(request, user)
    except PasswordRequired:
        return templates.TemplateResponse(request, "password.html",
                                          {"id": paste_id, "error": None, "user": user})
    except PasswordIncorrect:
        return templates.TemplateResponse(request, "password.html",
                                          {"id": paste_id, "error": "Incorrect password", "user": user})

    paste = view.paste
    return templates.TemplateResponse(
        request,
        "view.html",
        {
            "paste": paste,
            "formatted_date": format_date(paste.created_at),
            "expires_in": expires_in(paste.expires_at, store.clock()),
            "user": user,
            "is_owner": view.is_owner,
        },
    )


async def view_paste_handler(paste_id: str, request: Request, user=Depends(optional_user)):
    return await render_paste(request, paste_id, user)


async def unlock_paste_handler(paste_id: str, request: Request,
                               form: Annotated[PasswordForm, Form()],
                               user=Depends(optional_user)):
    return await render_paste(request, paste_id, user, password=form.password)


async def raw_paste_handler(paste_id: str, request: Request):
    try:
        content = await get_pastes(request).raw(paste_id)
    except PasteNotFound:
        return PlainTextResponse("Paste not found", status_code=404)
    except PasswordRequired:
        return PlainTextResponse("This paste is password protected", status_code=403)
    return PlainTextResponse(content)


async def delete_paste_handler(paste_id: str, request: Request, user=Depends(optional_user)):
    try:
        await get_pastes(request).delete(paste_id, user_id_of(user))
    except PasteNotFound:
        logger.info(f"Delete of unknown paste {paste_id}")
    except Forbidden:
        logger.warning(f"User {user_id_of(user)} may not delete paste {paste_id}")
    return RedirectResponse(url="/", status_code=303)


async def register_page(request: Request):
    return templates.TemplateResponse(request, "register.html", {"error": None})


async def register_handler(request: Request, form: Annotated[UserCreate, Form()]):
    try:
        user_id = await get_users(request).register(form.username, form.password,
                                                    form.confirm_password)
    except ValidationError as e:
        return templates.TemplateResponse(request, "register.html", {"error": str(e)})
    except (HashingFailed, PersistenceFailed):
        return templates.TemplateResponse(request, "register.html",
                                          {"error": "Failed to create account"})
    login_session(request, user_id)
    return RedirectResponse(url="/dashboard", status_code=303)


async def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"error": None})


async def login_handler(request: Request, form: Annotated[LoginForm, Form()]):
    try:
        user_id = await get_users(request).login(form.username, form.password)
    except InvalidCredentials as e:
        return templates.TemplateResponse(request, "login.html", {"error": str(e)})
    login_session(request, user_id)
    return RedirectResponse(url="/dashboard", status_code=303)


async def logout_handler(request: Request):
    # Clear session
    logout_session(request)
    return RedirectResponse(url="/", status_code=303)


async def dashboard_handler(request: Request, user=Depends(require_session)):
    limit = request.app.state.settings.list_limit
    pastes = await get_pastes(request).list_by_owner(user.id, limit)
    return templates.TemplateResponse(request, "dashboard.html", {"user": user, "pastes": pastes})


async def public_pastes_handler(request: Request, user=Depends(optional_user)):
    limit = request.app.state.settings.list_limit
    pastes = await get_pastes(request).list_public(limit)
    return templates.TemplateResponse(request, "public.html", {"user": user, "pastes": pastes})


async def health_handler(request: Request):
    try:
        await request.app.state.database.fetch_val("SELECT 1")
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return ORJSONResponse(status_code=500, content={"status": "error", "db_status": "unreachable"})
    return ORJSONResponse(content={"status": "ok", "db_status": "ok"})
