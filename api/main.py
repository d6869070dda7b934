"""
Token Sale API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from config.settings import load_settings

settings = load_settings()

# Create FastAPI application
app = FastAPI(
    title="Token Sale API",
    description="REST API for buying vested tokens and managing the sale",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS from SALE_CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "token-sale-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Token Sale API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import purchases, quotes, sale, vesting, withdrawals

app.include_router(sale.router, prefix="/api/v1", tags=["Sale"])
app.include_router(quotes.router, prefix="/api/v1", tags=["Quotes"])
app.include_router(purchases.router, prefix="/api/v1", tags=["Purchases"])
app.include_router(vesting.router, prefix="/api/v1", tags=["Vesting"])
app.include_router(withdrawals.router, prefix="/api/v1", tags=["Withdrawals"])
