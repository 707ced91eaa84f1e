"""Domain models."""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping

_FRACTION = re.compile(r"\.(\d+)")


def parse_time(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # fromisoformat needs a 6-digit fraction
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"invalid time: {value!r}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_time(value: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS[.ffffff]Z``; the fraction is omitted when zero."""
    value = parse_time(value)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    return text + "Z"


@dataclass(frozen=True)
class Endpoint:
    """Connection parameters of an HMB sink. ``path`` always starts and ends with ``/``."""

    host: str
    path: str = "/"
    user: str = ""
    password: str = ""

    def __post_init__(self) -> None:
        if not self.path.startswith("/") or not self.path.endswith("/"):
            raise ValueError("endpoint path must start and end with '/'")

    @property
    def auth(self) -> tuple[str, str] | None:
        if not self.user:
            return None
        return (self.user, self.password)

    def url(self, operation: str) -> str:
        return f"http://{self.host}{self.path}{operation}"


@dataclass(frozen=True)
class Session:
    """Server-assigned identifiers scoping send operations."""

    sid: str
    cid: str


@dataclass(frozen=True)
class BusMessage:
    """HMB envelope: logical channel, time range and embedded payload document."""

    type: str
    queue: str
    starttime: str
    endtime: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "queue": self.queue,
            "starttime": self.starttime,
            "endtime": self.endtime,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class WaveformStreamID:
    network_code: str
    station_code: str
    location_code: str = ""
    channel_code: str = ""

    @staticmethod
    def from_document(doc: Mapping[str, Any]) -> "WaveformStreamID":
        network = str(doc.get("networkCode") or "").strip()
        station = str(doc.get("stationCode") or "").strip()
        if not network or not station:
            raise ValueError("waveformID requires networkCode and stationCode")
        return WaveformStreamID(
            network_code=network,
            station_code=station,
            location_code=str(doc.get("locationCode", "") or ""),
            channel_code=str(doc.get("channelCode", "") or ""),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "networkCode": self.network_code,
            "stationCode": self.station_code,
            "locationCode": self.location_code,
            "channelCode": self.channel_code,
        }


@dataclass(frozen=True)
class CreationInfo:
    agency_id: str = ""
    author: str = ""
    creation_time: datetime | None = None

    @staticmethod
    def from_document(doc: Mapping[str, Any]) -> "CreationInfo":
        creation_time = doc.get("creationTime")
        return CreationInfo(
            agency_id=str(doc.get("agencyID", "") or ""),
            author=str(doc.get("author", "") or ""),
            creation_time=parse_time(creation_time) if creation_time else None,
        )

    def to_document(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"agencyID": self.agency_id, "author": self.author}
        if self.creation_time is not None:
            payload["creationTime"] = format_time(self.creation_time)
        return payload


@dataclass(frozen=True)
class Pick:
    """A phase detection on one waveform stream."""

    public_id: str
    time: datetime
    waveform_id: WaveformStreamID
    phase_hint: str | None = None
    evaluation_mode: str | None = None
    method_id: str | None = None
    creation_info: CreationInfo | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.public_id, str) or not self.public_id:
            raise TypeError("pick.public_id must be a non-empty str")
        if not isinstance(self.time, datetime):
            raise TypeError("pick.time must be a datetime")
        object.__setattr__(self, "time", parse_time(self.time))

    @property
    def time_string(self) -> str:
        return format_time(self.time)

    def with_author_from_agency(self) -> "Pick":
        """Attribute the pick to its creating agency. No-op without creation info."""
        if self.creation_info is None:
            return self
        return replace(
            self,
            creation_info=replace(self.creation_info, author=self.creation_info.agency_id),
        )

    @staticmethod
    def from_document(doc: Mapping[str, Any]) -> "Pick":
        public_id = str(doc.get("publicID") or "").strip()
        if not public_id:
            raise ValueError("pick missing required field: publicID")
        time_doc = doc.get("time")
        if isinstance(time_doc, Mapping):
            time_doc = time_doc.get("value")
        if not time_doc:
            raise ValueError("pick missing required field: time")
        waveform_doc = doc.get("waveformID")
        if not isinstance(waveform_doc, Mapping):
            raise ValueError("pick missing required field: waveformID")
        phase_hint = doc.get("phaseHint")
        if isinstance(phase_hint, Mapping):
            phase_hint = phase_hint.get("code")
        creation_doc = doc.get("creationInfo")
        return Pick(
            public_id=public_id,
            time=parse_time(time_doc),
            waveform_id=WaveformStreamID.from_document(waveform_doc),
            phase_hint=str(phase_hint) if phase_hint else None,
            evaluation_mode=doc.get("evaluationMode") or None,
            method_id=doc.get("methodID") or None,
            creation_info=CreationInfo.from_document(creation_doc) if isinstance(creation_doc, Mapping) else None,
        )

    def to_document(self) -> dict[str, Any]:
        """Serialisable mapping embedded in the bus payload. Absent optional fields are omitted."""
        payload: dict[str, Any] = {
            "publicID": self.public_id,
            "time": {"value": self.time_string},
            "waveformID": self.waveform_id.to_document(),
        }
        if self.phase_hint is not None:
            payload["phaseHint"] = {"code": self.phase_hint}
        if self.evaluation_mode is not None:
            payload["evaluationMode"] = self.evaluation_mode
        if self.method_id is not None:
            payload["methodID"] = self.method_id
        if self.creation_info is not None:
            payload["creationInfo"] = self.creation_info.to_document()
        return payload


@dataclass(frozen=True)
class SensorLocation:
    """Coordinates of a sensor location during one epoch. ``end=None`` means still open."""

    network: str
    station: str
    location: str
    latitude: float
    longitude: float
    start: datetime
    end: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", parse_time(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", parse_time(self.end))

    def matches(self, network: str, station: str, location: str, time: datetime) -> bool:
        if (self.network, self.station, self.location) != (network, station, location):
            return False
        time = parse_time(time)
        if time < self.start:
            return False
        return self.end is None or time < self.end

    @staticmethod
    def from_document(doc: Mapping[str, Any]) -> "SensorLocation":
        return SensorLocation(
            network=str(doc["network"]),
            station=str(doc["station"]),
            location=str(doc.get("location", "") or ""),
            latitude=float(doc["latitude"]),
            longitude=float(doc["longitude"]),
            start=parse_time(doc["start"]),
            end=parse_time(doc["end"]) if doc.get("end") else None,
        )
