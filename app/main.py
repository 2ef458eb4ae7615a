import uvicorn
from fastapi import FastAPI

from app.api.middleware import TenantSubdomainMiddleware
from app.api.routes.admin_analytics import router as admin_analytics_router
from app.api.routes.admin_coupons import router as admin_coupons_router
from app.api.routes.admin_questions import router as admin_questions_router
from app.api.routes.admin_staff import router as admin_staff_router
from app.api.routes.admin_tenants import router as admin_tenants_router
from app.api.routes.health import router as health_router
from app.api.routes.public_coupons import router as public_coupons_router
from app.api.routes.public_tenant import router as public_tenant_router
from app.core.config import get_settings
from app.core.logging import configure_logging

ADMIN_ROUTERS = (
    admin_tenants_router,
    admin_coupons_router,
    admin_questions_router,
    admin_staff_router,
    admin_analytics_router,
)
# Slug-prefixed, so they must come after every fixed path.
PUBLIC_ROUTERS = (public_coupons_router, public_tenant_router)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    docs_enabled = settings.enable_openapi_docs
    app = FastAPI(
        title="Survey Coupons API",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.add_middleware(TenantSubdomainMiddleware)
    app.include_router(health_router)
    for router in (*ADMIN_ROUTERS, *PUBLIC_ROUTERS):
        app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
