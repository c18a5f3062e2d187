from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from countrygate.core.config import settings
from countrygate.core.errors import register_exception_handlers
from countrygate.core.rate_limit import setup_rate_limiting
from countrygate.api import auth, keys, countries
from countrygate.ingestion.init_db import init_db

# ─── Logging ───
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(name)-20s | %(levelname)-7s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("countrygate.main")

VERSION = "1.0.0"


# ─── Lifecycle ───

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("CountryGate API starting up…")
    init_db()
    yield
    logger.info("CountryGate API shutting down…")


app = FastAPI(
    title="CountryGate API",
    description="API keys and an authenticated proxy for country information",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(auth.router)
app.include_router(keys.router)
app.include_router(countries.router)

# Rate limiting
setup_rate_limiting(app)


@app.get("/")
def root():
    return {
        "name": "CountryGate API",
        "version": VERSION,
        "description": "API keys and an authenticated proxy for country information",
        "endpoints": {
            "auth": "/api/auth",
            "keys": "/api/keys",
            "countries": "/api/countries",
            "docs": "/docs",
        },
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
