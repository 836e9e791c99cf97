"""
Tracklog data model.

Breadcrumbs are parsed from tracklog archives or GeoJSON into these
structures before transforms are applied and they are handed to the
breadcrumb sink. Wire names are camelCase, as written by the recorder app.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in degrees."""

    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["GeoPoint"]:
        if data is None:
            return None
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class Breadcrumb:
    """A single timestamped GPS sample with motion and audio context."""

    lat: float
    lng: float
    timestamp: int  # ms since epoch

    audio_level: float = 0.0  # 0..1
    is_moving: bool = False
    movement_speed: float = 0.0  # m/s
    direction: Optional[float] = None  # degrees
    accuracy: Optional[float] = None  # meters
    altitude: Optional[float] = None

    session_id: Optional[str] = None
    imported: bool = False
    original_session_id: Optional[str] = None

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lng)

    @classmethod
    def from_dict(cls, data: dict) -> "Breadcrumb":
        """
        Build a breadcrumb from its wire form.

        Raises:
            KeyError, TypeError, ValueError: if lat, lng or timestamp is
                missing or not numeric
        """
        return cls(
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            timestamp=int(data["timestamp"]),
            audio_level=float(data.get("audioLevel") or 0.0),
            is_moving=bool(data.get("isMoving") or False),
            movement_speed=float(data.get("movementSpeed") or 0.0),
            direction=_optional_float(data.get("direction")),
            accuracy=_optional_float(data.get("accuracy")),
            altitude=_optional_float(data.get("altitude")),
            session_id=data.get("sessionId"),
            imported=bool(data.get("imported", False)),
            original_session_id=data.get("originalSessionId"),
        )

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "timestamp": self.timestamp,
            "audioLevel": self.audio_level,
            "isMoving": self.is_moving,
            "movementSpeed": self.movement_speed,
            "direction": self.direction,
            "accuracy": self.accuracy,
            "altitude": self.altitude,
            "sessionId": self.session_id,
            "imported": self.imported,
            "originalSessionId": self.original_session_id,
        }


@dataclass
class MovementSummary:
    """Aggregate movement statistics for a breadcrumb sequence."""

    total_distance: float = 0.0  # meters
    average_speed: float = 0.0   # m/s, mean of per-segment speeds
    max_speed: float = 0.0       # m/s
    stationary_time: float = 0.0  # seconds
    moving_time: float = 0.0      # seconds
    pattern: str = "stationary"   # "moving", "stationary" or "mixed"

    def to_dict(self) -> dict:
        return {
            "totalDistance": self.total_distance,
            "averageSpeed": self.average_speed,
            "maxSpeed": self.max_speed,
            "stationaryTime": self.stationary_time,
            "movingTime": self.moving_time,
            "pattern": self.pattern,
        }


@dataclass
class TracklogData:
    """
    Parsed tracklog (tracklog/tracklog.json or a synthesized equivalent).

    Breadcrumbs stay in raw wire form so a single malformed entry can be
    skipped during import instead of failing the whole file.
    """

    session_id: Optional[str]
    breadcrumbs: list[dict] = field(default_factory=list)
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    summary: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TracklogData":
        return cls(
            session_id=data.get("sessionId") or data.get("id"),
            breadcrumbs=list(data["breadcrumbs"]),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            summary=data.get("summary"),
        )
