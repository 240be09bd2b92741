import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from db.database import init_db
from config import load_config, CONFIG_DIR
from routes import chunks_router, review_router, trees_router
from utils.errors import ConcurrencyConflict, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    config = load_config()  # Ensures config exists
    logging.basicConfig(level=config["logging"]["level"].upper())
    init_db()
    yield

app = FastAPI(
    title="LingoFriends",
    description="Chunk scheduling and learning-tree garden for kids learning languages",
    lifespan=lifespan,
)

# Include routers
app.include_router(chunks_router, prefix="/chunks", tags=["chunks"])
app.include_router(review_router, prefix="/review", tags=["review"])
app.include_router(trees_router, prefix="/trees", tags=["trees"])

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(ConcurrencyConflict)
async def conflict_handler(request: Request, exc: ConcurrencyConflict):
    logger.warning("Giving up after repeated conflicts: %s", exc)
    return JSONResponse(status_code=409, content={"detail": str(exc)})

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="LingoFriends progress API")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print(f"DB initialized and config copied to {CONFIG_DIR}/")
        exit(0)
    # Run server
    uvicorn.run("main:app", host="127.0.0.1", port=args.port, reload=args.dev, log_level="info")
