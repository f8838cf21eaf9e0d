import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from template_market.config import settings
from template_market.database import Base, engine
from template_market.models import download, otp, taxonomy, template, user  # noqa: F401  (register tables)
from template_market.routers import (
    auth,
    credits,
    industry_types,
    media,
    profile,
    software_types,
    sub_categories,
    template_types,
    templates,
)
from template_market.services.free_download_scheduler import free_download_scheduler
from template_market.utils.response import create_response, handle_exception
from seed import run_seed

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# Auto create tables
Base.metadata.create_all(bind=engine)

# CORS for SPA / API access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return create_response(
        message="; ".join(messages) or "Invalid request",
        data=None,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


# Seed default admin and taxonomy on startup
@app.on_event("startup")
async def startup_event():
    run_seed()
    await free_download_scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    await free_download_scheduler.stop()

# Add routes
for module in (
    auth,
    profile,
    templates,
    template_types,
    sub_categories,
    software_types,
    industry_types,
    credits,
    media,
):
    app.include_router(module.router, prefix=settings.API_PREFIX)


@app.get("/")
def home():
    try:
        return create_response(
            message="Template Market API running",
            data={"service": "template-market-backend"},
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
