"""
Lottery Checkout Application

Payment session service for an international lottery storefront.
Drives card, QR, wallet, transfer and gateway payments to a single
outcome per order and issues the ticket.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from .core.config import settings
from .core.errors import PaymentError
from .routes import (
    games_router,
    checkout_router,
    payments_router,
    cards_router,
    tickets_router,
    sandbox_router,
)
from .routes.deps import close_services

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper() if settings.log_level else (logging.DEBUG if settings.debug else logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Lottery Checkout starting up...")
    logger.info(f"Gateway mode: {settings.gateway_mode}")
    logger.info(f"Sandbox gateway: {'enabled' if settings.sandbox_gateway_enabled else 'disabled'}")

    yield

    logger.info("Lottery Checkout shutting down...")
    await close_services()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Payment session service for lottery ticket checkout",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    """Map payment errors to HTTP responses"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
            "fields": exc.details.get("fields", {}),
        },
    )


# Include API routers
app.include_router(games_router)
app.include_router(checkout_router)
app.include_router(payments_router)
app.include_router(cards_router)
app.include_router(tickets_router)
if settings.sandbox_gateway_enabled:
    app.include_router(sandbox_router)


@app.get("/")
async def home():
    """Service index"""
    return {
        "message": "Lottery Checkout API",
        "docs": "/docs",
        "endpoints": {
            "games": "/api/games",
            "checkout": "/api/checkout",
            "payments": "/api/payments",
            "cards": "/api/cards",
            "tickets": "/api/tickets",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "lottery-checkout"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lottery_checkout.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
