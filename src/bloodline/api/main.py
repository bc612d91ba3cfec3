from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from bloodline.api import routers
from bloodline.api.error_handlers import register_error_handlers
from bloodline.api.schemas import HealthResponse
from bloodline.core.config import get_settings
from bloodline.core.logging_config import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Bloodline API",
        root_path=settings.API_ROOT_PATH
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Cookie"],
    )

    register_error_handlers(app)

    @app.get("/", response_model=HealthResponse)
    def read_root():
        return HealthResponse(message="Blood Donation Server is Running")

    app.include_router(routers.auth_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(routers.users_router, prefix="/api/users", tags=["Users"])
    app.include_router(routers.requests_router, prefix="/api/donation-requests", tags=["Donation Requests"])
    return app


app = create_app()

handler = Mangum(app)
