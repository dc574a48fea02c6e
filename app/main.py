import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s"
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Premium Billing API",
    version="1.0.0",
)

from app.middleware.request_logging import RequestLoggingMiddleware
app.add_middleware(RequestLoggingMiddleware)

configured_origins = os.getenv("CORS_ORIGINS", "").strip()
if configured_origins:
    allow_origins = [origin.strip() for origin in configured_origins.split(",") if origin.strip()]
else:
    allow_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


from app.routes.billing import router as billing_router
from app.routes.webhooks import router as webhooks_router

app.include_router(billing_router)
app.include_router(webhooks_router)


@app.get("/health")
def health_check():
    return {
        "status": "ok",
        "service": "premium-billing",
        "version": "1.0.0",
    }
