"""Pydantic schemas for login and health."""

from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    status: str  # "healthy" | "unhealthy"
    uptime: float  # seconds since process start
    database: str  # "connected" | "disconnected"
    version: str
    timestamp: datetime
