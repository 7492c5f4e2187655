"""Records stored by the geolocation security service."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class User:
    """A registered user; the basis of authentication and authorization."""

    id: uuid.UUID
    username: str
    email: str
    password_hash: str
    status: str
    created_at: datetime
    last_login_at: datetime | None = None
    """Time of the last successful login, if any."""


@dataclass
class Device:
    """A registered device with its own identity."""

    id: uuid.UUID
    user_id: uuid.UUID
    device_fingerprint: str
    friendly_name: str
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class LocationRecord:
    """A verified and signed geographic location record."""

    id: uuid.UUID
    user_id: uuid.UUID
    device_id: uuid.UUID
    latitude: float
    longitude: float
    accuracy: float
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class BehavioralEvent:
    """A behavioural event logged for analysis and auditing."""

    id: uuid.UUID
    user_id: uuid.UUID
    event_type: str
    created_at: datetime
    event_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class SecurityAlert:
    """A security alert raised and signed by the system."""

    id: uuid.UUID
    user_id: uuid.UUID
    alert_type: str
    created_at: datetime
    alert_data: dict[str, Any] = field(default_factory=dict)