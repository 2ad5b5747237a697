"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class SwitchStatus(str, Enum):
    """Relay state reported by the smart plug."""

    on = "on"
    off = "off"


@dataclass(frozen=True, slots=True)
class Reading:
    """A single smart plug sample with its timestamp in the display zone."""

    timestamp: datetime
    switch_status: Union[SwitchStatus, int, str, None]
    country: Optional[str]
    town: Optional[str]
    volt: float
    current: float
    watts: float
