import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from simpletax.core.config import settings
from simpletax.routers import invoices, tax_codes, tax_config

logging.getLogger("simpletax").setLevel(settings.LOG_LEVEL.upper())

OPENAPI_TAGS = [
    {"name": "Tax Config", "description": "Manage the tax codes and tax settings of a tenant."},
    {"name": "Tax Codes", "description": "Inspect and manage tax codes assigned to invoice items."},
    {"name": "Invoices", "description": "Compute the tax items to add to invoices."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Tax code resolution and reconciliation of tax items "
        "across all invoices of an account."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tax_config.router, prefix="/v1/tax_config", tags=["Tax Config"])
app.include_router(tax_codes.router, prefix="/v1", tags=["Tax Codes"])
app.include_router(invoices.router, prefix="/v1/invoices", tags=["Invoices"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
