from fastapi import FastAPI
from dotenv import load_dotenv
import logging
import os

from iceslide.api.deps import close_registry
from iceslide.api.routes import router

# Local runs may keep ICESLIDE_* settings in a .env file; the real environment wins.
load_dotenv(override=False)

app = FastAPI(title="iceslide", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=os.environ.get("ICESLIDE_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "iceslide", "version": "0.1.0"}


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_registry()
