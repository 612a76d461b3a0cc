from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from fastapi.templating import Jinja2Templates

from .auth import authenticate
from .db import init_db
from .errors import (
    AuthenticationFailed,
    InvalidState,
    LedgerError,
    PermissionDenied,
    PersistenceFailure,
    ValidationError,
)
from .export import export_filename, render_csv
from .ledger import LedgerStore
from .logging_setup import configure_logging, get_logger
from .models import CATEGORIES, Principal
from .repo import TransactionRepo
from .settings import Settings, get_settings
from .workflow import ApprovalWorkflow, can_delete

logger = get_logger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
security = HTTPBasic()


def format_rupiah(value: int) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}Rp {abs(value):,}".replace(",", ".")


templates.env.filters["rupiah"] = format_rupiah


def _status_for(exc: LedgerError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, AuthenticationFailed):
        return 401
    if isinstance(exc, PermissionDenied):
        return 403
    if isinstance(exc, InvalidState):
        return 404 if exc.missing else 409
    if isinstance(exc, PersistenceFailure):
        return 503
    return 500


def current_principal(
    request: Request, credentials: Annotated[HTTPBasicCredentials, Depends(security)]
) -> Principal:
    try:
        return authenticate(
            request.app.state.settings, credentials.username, credentials.password
        )
    except AuthenticationFailed as exc:
        raise HTTPException(
            status_code=401,
            detail=str(exc),
            headers={"WWW-Authenticate": "Basic"},
        ) from exc


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    init_db(settings)

    repo = TransactionRepo(settings.db_path)
    store = LedgerStore(repo)
    workflow = ApprovalWorkflow(repo, store)

    app = FastAPI()
    app.state.settings = settings
    app.state.repo = repo
    app.state.store = store
    app.state.workflow = workflow

    @app.exception_handler(LedgerError)
    def ledger_error_handler(request: Request, exc: LedgerError):
        return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})

    def _dashboard_context(request: Request, user: Principal) -> dict:
        return {
            "user": user,
            "org_name": settings.org_name,
            "totals": store.totals(),
            "transactions": store.recent(user, settings.recent_limit),
            "pending_count": len(store.pending(user)),
            "categories": CATEGORIES,
            "can_delete": lambda txn: can_delete(txn, user),
        }

    def _render_partial(request: Request, user: Principal) -> HTMLResponse:
        context = _dashboard_context(request, user)
        summary_html = templates.get_template("_summary.html").render(**context)
        table_html = templates.get_template("_transactions_table.html").render(**context)
        return HTMLResponse(summary_html + table_html)

    def _after_mutation(request: Request, user: Principal, url: str):
        if request.headers.get("HX-Request") == "true":
            return _render_partial(request, user)
        return RedirectResponse(url=url, status_code=303)

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request, user: Annotated[Principal, Depends(current_principal)]):
        return templates.TemplateResponse(
            request, "index.html", _dashboard_context(request, user)
        )

    @app.post("/transactions", response_class=HTMLResponse)
    def create_transaction(
        request: Request,
        user: Annotated[Principal, Depends(current_principal)],
        date: str = Form(...),
        type: str = Form(...),
        amount: str = Form(...),
        category: str = Form(...),
        description: str = Form(...),
        txn_id: int | None = Form(default=None),
    ):
        workflow.intake(
            user,
            date=date,
            description=description,
            amount=amount,
            type=type,
            category=category,
            txn_id=txn_id,
        )
        return _after_mutation(request, user, "/")

    @app.post("/transactions/{txn_id}/approve", response_class=HTMLResponse)
    def approve_transaction(
        txn_id: int,
        request: Request,
        user: Annotated[Principal, Depends(current_principal)],
    ):
        workflow.approve(txn_id, user)
        return RedirectResponse(url="/pending", status_code=303)

    @app.post("/transactions/{txn_id}/reject", response_class=HTMLResponse)
    def reject_transaction(
        txn_id: int,
        request: Request,
        user: Annotated[Principal, Depends(current_principal)],
    ):
        workflow.reject(txn_id, user)
        return RedirectResponse(url="/pending", status_code=303)

    @app.post("/transactions/{txn_id}/delete", response_class=HTMLResponse)
    def delete_transaction(
        txn_id: int,
        request: Request,
        user: Annotated[Principal, Depends(current_principal)],
    ):
        workflow.delete(txn_id, user)
        return _after_mutation(request, user, "/")

    @app.get("/pending", response_class=HTMLResponse)
    def pending(request: Request, user: Annotated[Principal, Depends(current_principal)]):
        return templates.TemplateResponse(
            request,
            "pending.html",
            {"user": user, "org_name": settings.org_name, "transactions": store.pending(user)},
        )

    @app.get("/book", response_class=HTMLResponse)
    def book(request: Request, user: Annotated[Principal, Depends(current_principal)]):
        return templates.TemplateResponse(
            request,
            "book.html",
            {"user": user, "org_name": settings.org_name, "book": store.book()},
        )

    @app.get("/export.csv")
    def export_csv(user: Annotated[Principal, Depends(current_principal)]):
        body = render_csv(store.export_rows())
        filename = export_filename(settings.org_name)
        logger.info("export %s requested by %s", filename, user.username)
        return Response(
            content=body,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/public", response_class=HTMLResponse)
    def public(request: Request):
        return templates.TemplateResponse(
            request,
            "public.html",
            {
                "org_name": settings.org_name,
                "summary": store.public_summary(settings.public_limit),
                "public_limit": settings.public_limit,
            },
        )

    @app.get("/api/summary")
    def api_summary():
        summary = store.public_summary(settings.public_limit)
        return {
            **summary.totals.as_dict(),
            "approved_count": summary.approved_count,
            "income_count": summary.income_count,
            "expense_count": summary.expense_count,
            "by_category": summary.breakdown,
        }

    @app.get("/api/transactions")
    def api_transactions(
        user: Annotated[Principal, Depends(current_principal)], limit: int | None = None
    ):
        n = limit if limit is not None else settings.recent_limit
        return [txn.to_record() for txn in store.recent(user, n)]

    return app
