"""
Used-Computer Marketplace Auction API - Main Application.

FastAPI application with CORS enabled for frontend communication.

Start Command: uvicorn api.main:app --host 0.0.0.0 --port $PORT
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.errors import auction_error_handler
from domain.errors import AuctionError

# Load environment variables from .env file in the project root
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Used-Computer Marketplace Auction API",
    description="REST API for sell requests, wholesaler offers, awards and transactions",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - defaults to all origins for development
allowed_origins = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

API_PREFIX = "/api/v1"

app.add_exception_handler(AuctionError, auction_error_handler)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Liveness check.

    Reports the configured store backend; does not touch the store itself.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "used-pc-auction-api",
        "store": os.getenv("AUCTION_STORE", "memory"),
    }


@app.get("/", tags=["Root"])
def root():
    """API name plus where to find the docs and the versioned routes."""
    return {
        "message": "Used-Computer Marketplace Auction API",
        "version": __version__,
        "api": API_PREFIX,
        "docs": "/docs",
        "health": "/health",
    }


# Import and include routers
from api.routers import offers, sell_requests, transactions

app.include_router(sell_requests.router, prefix=API_PREFIX, tags=["Sell Requests"])
app.include_router(offers.router, prefix=API_PREFIX, tags=["Offers"])
app.include_router(transactions.router, prefix=API_PREFIX, tags=["Transactions"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
