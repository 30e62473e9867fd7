"""FastAPI app entry point for Gridfight Server.

Run with:  uvicorn main:app --reload
"""

import logging

from fastapi import FastAPI

from api.combat import router as combat_router
from api.ws import router as ws_router
from config import LOG_LEVEL, SAVE_FILE
from engine.catalog import load_creatures, load_spells
from engine.persistence import load_snapshot
from engine.session import CombatSession

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Gridfight Server",
    description="A headless turn-based grid combat engine for a browser RPG",
    version="0.1.0",
)

app.state.creatures = load_creatures()
app.state.spells = load_spells()

# Resume the saved encounter, if any
app.state.session = CombatSession()
snapshot = load_snapshot(SAVE_FILE)
if snapshot is not None:
    logger.info("Restoring saved combat from %s", SAVE_FILE)
    app.state.session.restore(snapshot.state, snapshot.player)

app.include_router(combat_router, prefix="/combat", tags=["Combat"])
app.include_router(ws_router, prefix="/combat", tags=["WebSocket"])


@app.get("/")
def root() -> dict:
    """Root endpoint returning server info."""
    return {"name": "Gridfight Server", "version": "0.1.0", "status": "running"}


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"healthy": True}
