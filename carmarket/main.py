# carmarket/main.py
import logging

from fastapi import FastAPI

from carmarket.config import settings
from carmarket.database import Base, engine
from carmarket import models  # noqa: F401 - register tables on Base.metadata
from carmarket.api import listings, moderation, reports

logging.basicConfig(
    level=(settings.LOG_LEVEL or ("DEBUG" if settings.DEBUG else "INFO")).upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(title="CarMarket Moderation API")

# API routers
app.include_router(listings.router)    # /listings/*
app.include_router(moderation.router)  # /moderation/*
app.include_router(reports.router)     # /reports/*


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "message": "CarMarket Moderation API is running",
        "environment": settings.APP_ENV,
        "version": "1.0.0",
    }
