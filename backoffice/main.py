### backoffice/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import backoffice.models  # registers all models via models/__init__.py
from sqlalchemy.orm import configure_mappers
configure_mappers()

from backoffice.api import (
    ingredient_routes,
    insight_routes,
    invoice_routes,
    kpi_routes,
    reconciliation_routes,
    recipe_routes,
    roster_routes,
    timesheet_routes,
)
from backoffice.config import get_settings
from backoffice.core.errors import BackOfficeError
from backoffice.db import create_db_and_tables

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Starting DB setup...")
    await create_db_and_tables()
    log.info("DB schema ready.")
    yield


# Create the FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Restaurant Back Office API",
    version="0.1.0",
    description="Costing, invoice digitization, sales reconciliation, AI insights and staff time tracking.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BackOfficeError)
async def backoffice_error_handler(request: Request, exc: BackOfficeError):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "outcome": exc.outcome},
    )


@app.get("/healthz")
async def healthz():
    return {"ok": True}


app.include_router(invoice_routes.router, prefix="/invoices", tags=["invoices"])
app.include_router(reconciliation_routes.router, prefix="/sales-reconciliations", tags=["sales reconciliation"])
app.include_router(insight_routes.router, prefix="/ai-insights", tags=["ai insights"])
app.include_router(kpi_routes.router, prefix="/kpis", tags=["kpis"])
app.include_router(ingredient_routes.router, prefix="/ingredients", tags=["ingredients"])
app.include_router(recipe_routes.router, prefix="/recipes", tags=["recipes"])
app.include_router(timesheet_routes.router, prefix="/timesheets", tags=["timesheets"])
app.include_router(roster_routes.router, prefix="/rosters", tags=["rosters"])
