"""
FastAPI main application for the book catalog.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from starlette.middleware.sessions import SessionMiddleware

from api.auth import (
    flash,
    get_current_principal,
    get_optional_principal,
    login_session,
    logout_session,
    pop_flashes,
    session_display_name,
)
from api.config import DEFAULT_SECRET_KEY, config as api_config
from api.models import ErrorResponse, FlashCategory, HealthResponse
from catalog.database import MongoDBManager
from catalog.errors import CatalogError, Conflict, Unauthenticated
from catalog.models import MAX_INT, AuthenticatedPrincipal, BookCreate, BookPatch, MemberCreate
from catalog.services import CatalogServices, build_services
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

# Global database manager and services
db_manager: Optional[MongoDBManager] = None
services: Optional[CatalogServices] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global db_manager, services

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting book catalog")
    if config.is_production() and api_config.secret_key == DEFAULT_SECRET_KEY:
        logger.warning("Session secret key is the built-in default; set SECRET_KEY")

    try:
        db_manager = MongoDBManager(config.mongodb_url, config.mongodb_database)
        database = await db_manager.connect()
        services = build_services(database)
        await services.initializer.run(demo_data=config.seed_demo_data)
    except Exception as e:
        logger.error("Failed to initialize catalog", error=str(e))
        raise

    yield

    logger.info("Shutting down book catalog")
    await db_manager.disconnect()


app = FastAPI(
    title=api_config.api_title,
    description=api_config.api_description,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    SessionMiddleware,
    secret_key=api_config.secret_key,
    session_cookie=api_config.session_cookie,
    max_age=api_config.session_max_age,
    same_site="lax",
    https_only=api_config.https_only,
)


def get_services() -> CatalogServices:
    """Dependency returning the catalog services built at startup."""
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return services


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def render(request: Request, template: str, **context):
    context.update({
        "principal": get_optional_principal(request),
        "display_name": session_display_name(request),
        "flashes": pop_flashes(request),
    })
    return templates.TemplateResponse(request, template, context)


def parse_int(value: Optional[str]) -> Optional[int]:
    """Lenient integer parsing for optional query fields; blanks and junk are None."""
    try:
        return int(value) if value and value.strip() else None
    except ValueError:
        return None


def validation_message(exc: ValidationError) -> str:
    """Flatten pydantic errors into one line for a flash message."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(parts)


# Exception handlers
@app.exception_handler(Unauthenticated)
async def unauthenticated_handler(request: Request, exc: Unauthenticated):
    """Send anonymous or rejected users to the login page."""
    flash(request, exc.message, FlashCategory.ERROR)
    return redirect("/login")


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    """Turn not-found and permission failures into a message on the list page."""
    logger.info("Request rejected", path=request.url.path, error=type(exc).__name__, message=exc.message)
    flash(request, exc.message, FlashCategory.ERROR)
    return redirect("/ui/list")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail), status_code=exc.status_code).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if api_config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if db_manager and db_manager.database is not None:
        health_info = await db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=api_config.api_version,
        database_status=db_status
    )


@app.get("/", include_in_schema=False)
async def index():
    return redirect("/ui/list")


# Members
@app.get("/register", tags=["Members"])
async def register_form(request: Request):
    return render(request, "register.html")


@app.post("/register", tags=["Members"])
async def register(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    display_name: str = Form(""),
    age: str = Form(""),
    email: str = Form(""),
    svc: CatalogServices = Depends(get_services),
):
    """Create a member with the default USER role."""
    try:
        raw = MemberCreate(
            username=username,
            password=password,
            display_name=display_name,
            age=age or None,
            email=email or None,
        )
        member = await svc.member_service.register(raw)
    except ValidationError as e:
        flash(request, validation_message(e), FlashCategory.ERROR)
        return redirect("/register")
    except Conflict as e:
        flash(request, e.message, FlashCategory.ERROR)
        return redirect("/register")

    flash(request, f"Welcome, {member.username}! You can now log in.")
    return redirect("/ui/list")


@app.get("/login", tags=["Members"])
async def login_form(request: Request):
    if get_optional_principal(request):
        return redirect("/ui/list")
    return render(request, "login.html")


@app.post("/login", tags=["Members"])
async def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    svc: CatalogServices = Depends(get_services),
):
    """Authenticate and bind the principal to the session."""
    principal = await svc.member_service.authenticate(username.strip(), password)
    login_session(request, principal)
    flash(request, f"Logged in as {principal.identity}")
    return redirect("/ui/list")


@app.post("/logout", tags=["Members"])
async def logout(request: Request, principal: AuthenticatedPrincipal = Depends(get_current_principal)):
    logout_session(request)
    logger.info("Logged out", username=principal.identity)
    flash(request, "You have been logged out")
    return redirect("/ui/list")


@app.get("/ui/list", tags=["Books"])
async def book_list_page(request: Request, svc: CatalogServices = Depends(get_services)):
    """Main page: every book, newest first."""
    books = await svc.book_service.find_all()
    return render(request, "list.html", books=books)


# Books (login required)
@app.get("/book/list", tags=["Books"])
async def book_list(principal: AuthenticatedPrincipal = Depends(get_current_principal)):
    return redirect("/ui/list")


@app.get("/book/register", tags=["Books"])
async def book_register_form(
    request: Request,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
):
    return render(request, "book/register.html", book=None)


@app.post("/book/register", tags=["Books"])
async def book_register(
    request: Request,
    title: str = Form(""),
    author: str = Form(""),
    price: str = Form(""),
    page_count: str = Form(""),
    description: str = Form(""),
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    """Register a book owned by the logged-in member."""
    try:
        candidate = BookCreate(
            title=title, author=author, price=price,
            page_count=page_count, description=description,
        )
    except ValidationError as e:
        flash(request, validation_message(e), FlashCategory.ERROR)
        return redirect("/book/register")

    book = await svc.book_service.register(candidate, principal.identity)
    flash(request, f"'{book.title}' has been registered")
    return redirect("/ui/list")


@app.get("/book/detail/{book_id}", tags=["Books"])
async def book_detail(
    request: Request,
    book_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    book = await svc.book_service.find_by_id(book_id)
    return render(request, "book/detail.html", book=book)


@app.get("/book/edit/{book_id}", tags=["Books"])
async def book_edit_form(
    request: Request,
    book_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    book = await svc.book_service.find_by_id(book_id)
    return render(request, "book/edit.html", book=book)


@app.post("/book/edit/{book_id}", tags=["Books"])
async def book_edit(
    request: Request,
    book_id: str,
    title: str = Form(""),
    author: str = Form(""),
    price: str = Form(""),
    page_count: str = Form(""),
    description: str = Form(""),
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    """Owner-only update of a book's mutable fields."""
    try:
        patch = BookPatch(
            title=title, author=author, price=price,
            page_count=page_count, description=description,
        )
    except ValidationError as e:
        flash(request, validation_message(e), FlashCategory.ERROR)
        return redirect(f"/book/edit/{book_id}")

    await svc.book_service.update(book_id, patch, principal.identity)
    flash(request, "The book has been updated")
    return redirect("/ui/list")


@app.post("/book/delete/{book_id}", tags=["Books"])
async def book_delete(
    request: Request,
    book_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    """Owner-or-admin delete."""
    await svc.book_service.delete(book_id, principal.identity, principal.permissions)
    flash(request, "The book has been deleted")
    return redirect("/ui/list")


@app.get("/book/mybooks", tags=["Books"])
async def my_books(
    request: Request,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    books = await svc.book_service.find_owned_by(principal.identity)
    return render(request, "book/list.html", books=books, page_title="My books", total=len(books))


@app.get("/book/search", tags=["Books"])
async def book_search(
    request: Request,
    title: Optional[str] = None,
    author: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    svc: CatalogServices = Depends(get_services),
):
    """
    Search the catalog.

    - **title**: case-insensitive substring of the title
    - **author**: case-insensitive substring of the author, used when no title is given
    - **min_price** / **max_price**: inclusive price range, used when neither text field is given
    """
    low, high = parse_int(min_price), parse_int(max_price)
    books = None
    if title and title.strip():
        books = await svc.book_service.search_by_title(title.strip())
    elif author and author.strip():
        books = await svc.book_service.search_by_author(author.strip())
    elif low is not None or high is not None:
        books = await svc.book_service.find_by_price_range(
            low if low is not None else 0,
            high if high is not None else MAX_INT,
        )
    return render(
        request, "book/search.html",
        books=books, title=title or "", author=author or "",
        min_price=low, max_price=high,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower()
    )
