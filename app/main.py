import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import get_settings
from app.routers import auth, billing, chat

__version__ = "1.0.0"

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.allow_unauthenticated:
        if settings.is_production:
            raise RuntimeError("ALLOW_UNAUTHENTICATED must not be enabled in production")
        logger.warning(
            "ALLOW_UNAUTHENTICATED is on: requests without a token run as X-User-Id or '%s'",
            settings.dev_user_id,
        )
    if not settings.auth_jwt_secret:
        logger.warning("AUTH_JWT_SECRET is empty: bearer tokens cannot be verified")
    yield


app = FastAPI(title="SaaS Boilerplate API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or [settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(chat.router)
app.include_router(billing.router)
app.include_router(billing.webhook_router)


@app.get("/health")
def health():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__,
    }
