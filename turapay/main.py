import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from turapay import models  # noqa: F401  registers tables on Base
from turapay.config import Config
from turapay.database import Base, SessionLocal, engine
from turapay.errors import TuraPayError
from turapay.services.settings import seed_default_settings

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_settings(db)
    finally:
        db.close()
    logger.info("TuraPay API started")
    yield


app = FastAPI(
    title="TuraPay Transfer API",
    description="Cross-border transfers: collections, disbursements and operator review",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in CORS_HEADERS.items():
        response.headers[header] = value
    return response


@app.exception_handler(TuraPayError)
async def turapay_error_handler(request: Request, exc: TuraPayError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse({"error": "Invalid request", "details": details}, status_code=400)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "turapay-api"}


from turapay.routers import admin, payments, profile, recipients, transfers, webhooks  # noqa: E402
app.include_router(payments.router, prefix="/functions/v1", tags=["payments"])
app.include_router(transfers.router, prefix="/api/v1/transfers", tags=["transfers"])
app.include_router(recipients.router, prefix="/api/v1/recipients", tags=["recipients"])
app.include_router(profile.router, prefix="/api/v1/profile", tags=["profile"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(webhooks.router, prefix="/api/v1/webhooks", tags=["webhooks"])
