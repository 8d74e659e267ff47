import re

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from .api.v1 import admin, auth, download, health, model_versions, models, users, webhooks
from .core.config import get_settings
from .core.database import get_session_local, init_db
from .core.errors import install_error_handlers
from .core.logging import configure_logging
from .domain import repos


class NormalizePathMiddleware(BaseHTTPMiddleware):
    """Collapse repeated slashes so //api/download maps to /api/download."""

    async def dispatch(self, request, call_next):
        scope = request.scope
        original_path = scope.get("path", "")
        normalized_path = re.sub(r"/{2,}", "/", original_path)
        if normalized_path != original_path:
            logger.debug("Normalizing path from {} to {}", original_path, normalized_path)
            scope["path"] = normalized_path
        return await call_next(request)

def create_app(init_database: bool = True) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.APP_NAME, version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(NormalizePathMiddleware)
    install_error_handlers(app)

    @app.on_event("startup")
    def startup_event():
        configure_logging()
        if not init_database:
            return
        init_db()
        session = get_session_local()()
        try:
            admin.ensure_admin(repos.UserRepo(session))
        except Exception:
            logger.exception("Failed to bootstrap admin user on startup")
        finally:
            session.close()

    # scanner + download surface
    app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
    app.include_router(download.router, prefix="/api", tags=["download"])
    app.include_router(model_versions.router, prefix="/api/v1/model-versions", tags=["model-versions"])

    # accounts + authoring
    app.include_router(auth.router, prefix="/v1/auth", tags=["auth"])
    app.include_router(users.router, prefix="/v1/users", tags=["users"])
    app.include_router(models.router, prefix="/v1/models", tags=["models"])
    app.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
    app.include_router(health.router, prefix="/v1/health", tags=["health"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
