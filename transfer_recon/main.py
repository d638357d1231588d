import logging

from fastapi import FastAPI

from transfer_recon.api.transfers import router as transfers_router
from transfer_recon.db.settings import get_settings

settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")


@app.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(transfers_router)
