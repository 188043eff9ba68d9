"""
Outcome values produced by the watchers and the status resolver.

Outcomes are tagged unions: each variant is its own frozen model with a
literal ``outcome`` (or ``state``) field used as the discriminator.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)


class Succeeded(_Outcome):
    outcome: Literal["succeeded"] = "succeeded"
    completion_time: Optional[datetime] = None


class Failed(_Outcome):
    outcome: Literal["failed"] = "failed"
    conditions: List[Dict[str, Any]] = Field(default_factory=list)


class TimedOut(_Outcome):
    outcome: Literal["timed_out"] = "timed_out"
    timeout_seconds: float


class WatchError(_Outcome):
    """The subscription closed before resolution; ``cause`` is None on a clean close."""

    outcome: Literal["watch_error"] = "watch_error"
    cause: Optional[str] = None


class Ready(_Outcome):
    outcome: Literal["ready"] = "ready"


class Aborted(_Outcome):
    outcome: Literal["aborted"] = "aborted"
    reason: str = "deleted"


TerminalOutcome = Annotated[
    Union[Succeeded, Failed, TimedOut, WatchError], Field(discriminator="outcome")
]

ReadinessOutcome = Annotated[
    Union[Ready, Aborted, TimedOut, WatchError], Field(discriminator="outcome")
]


class _ContainerState(BaseModel):
    model_config = ConfigDict(frozen=True)


class Running(_ContainerState):
    state: Literal["running"] = "running"
    started_at: Optional[datetime] = None


class Waiting(_ContainerState):
    state: Literal["waiting"] = "waiting"
    reason: Optional[str] = None
    message: Optional[str] = None


class Terminated(_ContainerState):
    state: Literal["terminated"] = "terminated"
    exit_code: int
    reason: Optional[str] = None


ContainerLifecycleState = Annotated[
    Union[Running, Waiting, Terminated], Field(discriminator="state")
]
