from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from ledger_api.errors import LedgerError
from ledger_api.errors import handle_broad_exceptions
from ledger_api.errors import handle_ledger_errors
from ledger_api.errors import handle_pydantic_validation_errors
from ledger_api.gateway.pool import LedgerDBPool
from ledger_api.ledger.listing import configure_collation
from ledger_api.monitoring.logger import configure_logger
from ledger_api.monitoring.request_context import RequestContextMiddleware
from ledger_api.routes.routes_change_orders import ROUTER_CHANGE_ORDERS
from ledger_api.routes.routes_contractors import ROUTER_CONTRACTORS
from ledger_api.routes.routes_health import ROUTER_HEALTH
from ledger_api.routes.routes_ingestion import ROUTER_INGESTION
from ledger_api.routes.routes_invoices import ROUTER_INVOICES
from ledger_api.routes.routes_join import ROUTER_JOIN
from ledger_api.routes.routes_join import ROUTER_SESSION
from ledger_api.routes.routes_members import ROUTER_MEMBERS
from ledger_api.routes.routes_projects import ROUTER_PROJECTS
from ledger_api.settings import Settings


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings.
    - Deployed: set variables in the host's environment
    - Local development: use a .env file in the working directory
    """
    settings = settings or Settings()

    configure_logger(level=settings.log_level)
    collation = configure_collation(settings.collation_locale)

    logger.info(
        "Configuration loaded successfully",
        storage_configured=bool(settings.storage_url and settings.storage_service_key),
        extraction_configured=bool(settings.extraction_api_key),
        smtp_configured=bool(settings.smtp_host),
        public_site_url=settings.public_site_url,
        collation=collation,
    )

    app = FastAPI(
        title="Construction Ledger API",
        version="v1",
        description=dedent(
            """
        Projects, contractors, change orders and invoices with running contract values,
        invoiced totals and remaining balances.

        | Area | Notes |
        | --- | --- |
        | Projects | list with metrics, detail with contractor rollups, archive/unarchive |
        | Contractors | created inside a project, detail rolled up across all projects |
        | Invoices | signed amounts (credits are negative), optional attachment |
        | AI upload | PDF -> extracted invoice, contractor matched or created |
        | Members | owner invites by email; join link `/join-project?token=...` |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,  # Hide schemas section
            "defaultModelExpandDepth": 1,  # Keep models collapsed if shown
        },
    )
    app.state.settings = settings
    app.state.db_pool = LedgerDBPool(settings.database_url)

    # Add request context middleware for tracking who/where requests come from
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_SESSION, prefix="/api")
    app.include_router(ROUTER_PROJECTS, prefix="/api")
    app.include_router(ROUTER_CONTRACTORS, prefix="/api")
    app.include_router(ROUTER_CHANGE_ORDERS, prefix="/api")
    app.include_router(ROUTER_INVOICES, prefix="/api")
    app.include_router(ROUTER_INGESTION, prefix="/api")
    app.include_router(ROUTER_MEMBERS, prefix="/api")
    app.include_router(ROUTER_JOIN)

    @app.on_event("startup")
    async def startup_database():
        """Open the ledger pool and run migrations."""
        await app.state.db_pool.initialize()

    @app.on_event("shutdown")
    async def shutdown_database():
        """Close the ledger pool."""
        await app.state.db_pool.close()
        logger.info("Ledger database closed")

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=LedgerError,
        handler=handle_ledger_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name
