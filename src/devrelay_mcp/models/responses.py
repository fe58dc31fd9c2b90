"""API response models."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str
    active_sessions: int
    live_processes: int = 0


class InfoResponse(BaseModel):
    """Server information."""

    name: str
    version: str
    python_version: str
    workspace: str
    features: dict[str, bool] = Field(default_factory=dict)
    supported_runtimes: list[str] = Field(default_factory=list)
    test_runners: list[str] = Field(default_factory=list)
    lint_tools: list[str] = Field(default_factory=list)
    max_sessions: int
    active_sessions: int
    records: dict[str, int] = Field(default_factory=dict)
