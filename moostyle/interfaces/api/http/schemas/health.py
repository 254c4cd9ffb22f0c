"""
===============================================================================
TARJETA CRC — schemas/health.py
===============================================================================

Módulo:
    Schemas HTTP para /api/health/*
===============================================================================
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthRes(BaseModel):
    success: bool = True
    status: str
    timestamp: datetime
    uptime_seconds: float
    environment: str


class SubsystemHealthRes(BaseModel):
    success: bool = True
    status: str
    subsystem: str
    timestamp: datetime
    counts: dict[str, int] = Field(default_factory=dict)
