from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional


class SimTemperatureRequest(BaseModel):
    celsius: float = Field(ge=-40, le=150)


class SimRampRequest(BaseModel):
    target: float = Field(ge=-40, le=150)
    rate_c_per_s: float = Field(default=0.1, gt=0, le=50)


class SimFailRequest(BaseModel):
    # omitted: fail until /sim/temperature/recover
    count: Optional[int] = Field(default=None, ge=0)


class SimButtonRequest(BaseModel):
    # press/release set the steady level; the others queue a scripted gesture
    action: Literal["press", "release", "click", "twice", "hold"]
    hold_seconds: float = Field(default=2.0, gt=0, le=30)
