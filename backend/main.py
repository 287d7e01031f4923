from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager

from db import create_db_and_tables
from settings import ebay_settings
from routes import ebay_publish
from routes import ebay_categories

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # On startup
    create_db_and_tables()
    logger.info(f"[Startup] eBay env={ebay_settings.ebay_env} marketplace={ebay_settings.ebay_marketplace_id} "
                f"fees_enabled={ebay_settings.ebay_fees_enabled}")
    yield

# Initialize FastAPI app
app = FastAPI(
    title="ResellrAI Listing API",
    description="Publishes generated listings to eBay",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - restrict to localhost only
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3001", "http://127.0.0.1:3001"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global exception handler for consistent error responses
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "detail": exc.detail,
            "status_code": exc.status_code
        }
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "detail": "Internal server error",
            "status_code": 500
        }
    )

# Include routes
app.include_router(ebay_publish.router)
app.include_router(ebay_categories.router)

# Routes
@app.get("/")
async def root():
    return {"message": "ResellrAI Listing API is running"}


@app.get("/health")
async def health():
    return {"status": "ok", "ebay_connected": bool(ebay_settings.ebay_access_token)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
