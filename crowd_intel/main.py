"""
FastAPI main application
"""
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from crowd_intel.api.dependencies import get_engine
from crowd_intel.api.routes import crowd, health, predictions, sensors
from crowd_intel.config import settings
from crowd_intel.database import close_mongo_connection, connect_to_mongo, get_database
from crowd_intel.engine import CrowdEngine, build_engine

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Crowd Intelligence Engine...")

    await connect_to_mongo()

    if get_database() is None:
        logger.warning("Database not connected, crowd engine and scheduled cycles disabled")
        app.state.engine = None
    else:
        engine = build_engine(scheduler)
        engine.scheduler.setup_scheduled_cycles()
        scheduler.start()
        app.state.engine = engine
        logger.info("Crowd Scheduler started with scheduled cycles")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if scheduler.running:
        scheduler.shutdown()
    await close_mongo_connection()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Crowd Intelligence API",
    description="Current crowd levels, hourly forecasts and heatmaps for points of interest",
    version="1.0.0",
    lifespan=lifespan
)

# Origins are configured via CORS_ORIGINS environment variable (comma-separated)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

# Include routers
app.include_router(crowd.router)
app.include_router(predictions.router)
app.include_router(sensors.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Crowd Intelligence Engine",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "crowd": "/api/crowd/places/{place_id}",
            "heatmap": "/api/crowd/heatmap",
            "predictions": "/api/predictions/{place_id}",
            "sensors": "/api/sensors",
            "health": "/api/health",
            "orchestrator": "/api/orchestrator/status"
        }
    }


@app.get("/api/orchestrator/status")
async def orchestrator_status(engine: CrowdEngine = Depends(get_engine)):
    """Get Crowd Scheduler status"""
    return engine.scheduler.get_status()


@app.post("/api/orchestrator/refresh")
async def trigger_refresh(engine: CrowdEngine = Depends(get_engine)):
    """Manually trigger the refresh cycle"""
    return await engine.scheduler.run_refresh_cycle()


@app.post("/api/orchestrator/forecast")
async def trigger_forecast(engine: CrowdEngine = Depends(get_engine)):
    """Manually trigger the forecast cycle"""
    return await engine.scheduler.run_forecast_cycle()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "crowd_intel.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
