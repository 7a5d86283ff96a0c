"""
Omsin Ledger API Application Factory
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .. import __version__
from ..config import get_config
from ..errors import BankingError
from ..logging_config import get_logger, setup_logging
from ..store import LedgerStore
from .deps import get_store
from .schemas import ErrorModel
from .auth import router as auth_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .transfers import router as transfers_router


logger = get_logger("omsin.api")

ERROR_RESPONSES = {
    status_code: {"model": ErrorModel}
    for status_code in (401, 404, 409, 422, 503)
}


def create_app(store: Optional[LedgerStore] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Pass ``store`` to serve a specific ledger store (tests do this); otherwise
    the process-wide store is built from configuration on the first request.
    """
    config = get_config()

    app = FastAPI(
        title="Omsin Financial Ledger API",
        description="Demo personal banking: accounts, transaction history and transfers",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if store is not None:
        app.dependency_overrides[get_store] = lambda: store

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", "")
        else:
            message = "Invalid request"
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "message": message}
        )

    # Include routers
    app.include_router(auth_router, prefix="/auth", tags=["Auth"], responses=ERROR_RESPONSES)
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"], responses=ERROR_RESPONSES)
    app.include_router(transactions_router, prefix="/accounts", tags=["Transactions"], responses=ERROR_RESPONSES)
    app.include_router(transfers_router, prefix="/transfers", tags=["Transfers"], responses=ERROR_RESPONSES)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "omsin_ledger_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Omsin Financial Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": "/auth",
                "accounts": "/accounts",
                "transfers": "/transfers",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(level=config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        "omsin_bank.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )


# Module-level app for uvicorn
app = create_app()
