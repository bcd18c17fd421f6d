import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from labelscan import __version__
from labelscan.config import settings

logging.basicConfig(level=settings.LOG_LEVEL.upper())

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Expiration date, nutrition, receipt and shopping-list extraction from OCR text",
    version=__version__,
    debug=settings.DEBUG,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {
        "message": f"{settings.APP_NAME} API",
        "version": __version__,
        "status": "running"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Import routers
from labelscan.routers import extract, sessions

# Include routers
app.include_router(extract.router)
app.include_router(sessions.router)
