"""Strict pydantic bases: unknown fields are rejected on every DTO."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Response DTO base."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base; bodies with unexpected keys fail validation."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, str_max_length=5000)
