from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookkeeper.config import get_settings
from bookkeeper.domain.errors import NotFound, Unauthorized, ValidationFailure
from bookkeeper.domain.services.auth_service import ensure_default_admin
from bookkeeper.presentation.balances_api import router as balances_router
from bookkeeper.presentation.dependencies import get_store
from bookkeeper.presentation.expenses_api import router as expenses_router
from bookkeeper.presentation.income_api import router as income_router
from bookkeeper.presentation.uploads_api import router as uploads_router
from bookkeeper.presentation.user_api import router as auth_router
from bookkeeper.utils.logging_setup import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    store = app.dependency_overrides.get(get_store, get_store)()
    store.create_tables()
    ensure_default_admin(
        store, settings.default_admin_username, settings.default_admin_password
    )
    yield


async def unauthorized_handler(request: Request, exc: Unauthorized):
    if exc.authenticated:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Bookkeeper API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(Unauthorized, unauthorized_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(ValidationFailure, validation_failure_handler)

    app.include_router(auth_router)
    app.include_router(expenses_router)
    app.include_router(income_router)
    app.include_router(balances_router)
    app.include_router(uploads_router)
    return app


app = create_app()
