"""
Shared route dependencies
"""
from fastapi import HTTPException, Request
from crowd_intel.engine import CrowdEngine


def get_engine(request: Request) -> CrowdEngine:
    """The engine built at startup; 503 until the database is connected"""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Crowd engine not available")
    return engine
