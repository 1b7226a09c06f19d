"""Application FastAPI principale du suivi des médicaments."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from medtrack import __version__
from medtrack.api import administrations, alerts, medications, prescriptions
from medtrack.core import db
from medtrack.core.logging_config import configure_logging


configure_logging()


@asynccontextmanager
async def _lifespan(_: FastAPI):
    db.init_database()
    yield


app = FastAPI(title="Medtrack API", version=__version__, lifespan=_lifespan)

app.add_middleware(
    ProxyHeadersMiddleware,
    trusted_hosts="*",
)

app.include_router(medications.router, prefix="/medications", tags=["medications"])
app.include_router(prescriptions.router, prefix="/prescriptions", tags=["prescriptions"])
app.include_router(administrations.router, prefix="/administrations", tags=["administrations"])
app.include_router(alerts.router, prefix="/alerts", tags=["alerts"])


@app.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Renvoie l'état de santé générique du service."""
    return {"status": "ok"}
