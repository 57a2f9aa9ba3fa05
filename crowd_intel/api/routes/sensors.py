"""
API routes for the sensor registry
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from crowd_intel.api.dependencies import get_engine
from crowd_intel.engine import CrowdEngine
from crowd_intel.exceptions import InvalidSensorReading, NotFound
from crowd_intel.models.schemas import (
    RegisterSensorRequest,
    Sensor,
    SensorReadingAck,
    SensorStats,
    SensorWithReadings,
    SubmitSensorReadingRequest,
    UpdateSensorRequest,
)

router = APIRouter(prefix="/api/sensors", tags=["sensors"])


@router.post("", response_model=Sensor, status_code=201)
async def register_sensor(request: RegisterSensorRequest, engine: CrowdEngine = Depends(get_engine)):
    """Register a new sensor"""
    try:
        return await engine.sensors.register_sensor(request)
    except InvalidSensorReading as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/readings", response_model=SensorReadingAck, status_code=201)
async def submit_reading(request: SubmitSensorReadingRequest, engine: CrowdEngine = Depends(get_engine)):
    """Submit a sensor reading"""
    try:
        return await engine.sensors.submit_reading(request)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidSensorReading as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/place/{place_id}", response_model=List[SensorWithReadings])
async def get_place_sensors(place_id: int, engine: CrowdEngine = Depends(get_engine)):
    """Get all sensors of a place with their last hour of readings"""
    return await engine.sensors.get_sensors_for_place(place_id)


@router.get("/{sensor_id}/stats", response_model=SensorStats)
async def get_sensor_stats(
    sensor_id: int,
    hours: int = Query(24, ge=1, le=720),
    engine: CrowdEngine = Depends(get_engine)
):
    """
    Get reading statistics for a sensor

    Args:
        sensor_id: Sensor identifier
        hours: Trailing window in hours
    """
    try:
        return await engine.sensors.get_sensor_stats(sensor_id, hours)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{sensor_id}", response_model=SensorWithReadings)
async def get_sensor(sensor_id: int, engine: CrowdEngine = Depends(get_engine)):
    """Get a sensor with its 10 latest readings"""
    try:
        return await engine.sensors.get_sensor(sensor_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{sensor_id}", response_model=Sensor)
async def update_sensor(
    sensor_id: int,
    request: UpdateSensorRequest,
    engine: CrowdEngine = Depends(get_engine)
):
    """Update sensor configuration (name, activity, capacity, threshold, calibration)"""
    try:
        return await engine.sensors.update_sensor(sensor_id, request)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{sensor_id}", status_code=204)
async def delete_sensor(sensor_id: int, engine: CrowdEngine = Depends(get_engine)):
    """Delete a sensor and its readings"""
    try:
        await engine.sensors.delete_sensor(sensor_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
