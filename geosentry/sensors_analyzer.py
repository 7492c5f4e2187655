"""Sensor reading analysis that issues HMAC-SHA384 signed verdicts."""

from __future__ import annotations

import abc
import hashlib
import hmac
import json
import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

TAMPER_THRESHOLD = 0.8
NORMAL_SCORE = 0.05
ANOMALY_SCORE = 0.9
FALLBACK_RATE_THRESHOLD = 1000.0
MIN_TIME_DELTA_SECONDS = 0.001


class SensorError(Exception):
    """Raised when a reading is invalid, detection fails or signing fails."""


@dataclass(frozen=True)
class SensorReading:
    """A single reading from one sensor."""

    sensor_type: str
    value: float
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "sensor_type": self.sensor_type,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SensorAnalysisResult:
    """The signed verdict on one reading."""

    reading: SensorReading
    anomaly_score: float
    is_tampered: bool
    reasoning: str
    signature: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "reading": self.reading.to_dict(),
            "anomaly_score": self.anomaly_score,
            "is_tampered": self.is_tampered,
            "reasoning": self.reasoning,
            "signature": self.signature,
        }


class SensorAnomalyDetector(abc.ABC):
    """Scores a reading against the history that preceded it."""

    @abc.abstractmethod
    async def analyze(
        self, current: SensorReading, history: Sequence[SensorReading]
    ) -> tuple[float, str]:
        """Return an anomaly score in [0, 1] and the reasoning behind it."""


class SensorsAnalyzerEngine:
    """Validates readings, scores them with a detector and signs the verdict."""

    def __init__(self, signing_key: bytes, detector: SensorAnomalyDetector) -> None:
        self._signing_key = bytes(signing_key)
        self.detector = detector

    async def analyze(
        self, reading: SensorReading, history: Sequence[SensorReading] = ()
    ) -> SensorAnalysisResult:
        """Analyse one reading and return its signed verdict."""
        self._validate(reading)
        try:
            anomaly_score, reasoning = await self.detector.analyze(reading, history)
        except SensorError:
            raise
        except Exception as exc:
            raise SensorError(f"Anomaly detector failed: {exc}") from exc

        unsigned = SensorAnalysisResult(
            reading=reading,
            anomaly_score=anomaly_score,
            is_tampered=anomaly_score > TAMPER_THRESHOLD,
            reasoning=reasoning,
        )
        return replace(unsigned, signature=self._sign(unsigned))

    def verify(self, result: SensorAnalysisResult) -> bool:
        """True if the result's signature matches its contents under this engine's key."""
        return hmac.compare_digest(self._sign(result), result.signature)

    @staticmethod
    def _validate(reading: SensorReading) -> None:
        if not reading.sensor_type.strip():
            raise SensorError("Invalid sensor data provided: Sensor type cannot be empty.")
        if not math.isfinite(reading.value):
            raise SensorError(
                "Invalid sensor data provided: Sensor value must be a finite number."
            )

    def _sign(self, result: SensorAnalysisResult) -> str:
        payload = replace(result, signature="").to_dict()
        try:
            serialized = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SensorError(f"Failed to generate or verify signature: {exc}") from exc
        return hmac.new(self._signing_key, serialized, hashlib.sha384).hexdigest()


def _default_thresholds() -> dict[str, float]:
    return {"Accelerometer": 10.0, "Gyroscope": 360.0}


@dataclass
class DefaultSensorAnomalyDetector(SensorAnomalyDetector):
    """Flags readings whose rate of change since the last same-type reading is unrealistic."""

    rate_change_thresholds: dict[str, float] = field(default_factory=_default_thresholds)

    async def analyze(
        self, current: SensorReading, history: Sequence[SensorReading]
    ) -> tuple[float, str]:
        last = next(
            (r for r in reversed(history) if r.sensor_type == current.sensor_type),
            None,
        )
        if last is None:
            return NORMAL_SCORE, "Normal fluctuation."

        elapsed_ms = (current.timestamp - last.timestamp) // timedelta(milliseconds=1)
        time_delta = elapsed_ms / 1000.0
        if time_delta <= MIN_TIME_DELTA_SECONDS:
            return NORMAL_SCORE, "Normal fluctuation."

        rate_of_change = abs(current.value - last.value) / time_delta
        threshold = self.rate_change_thresholds.get(
            current.sensor_type, FALLBACK_RATE_THRESHOLD
        )
        if rate_of_change > threshold:
            return (
                ANOMALY_SCORE,
                f"Anomaly: Unrealistic rate of change detected ({rate_of_change:.2f} units/sec).",
            )
        return NORMAL_SCORE, "Normal fluctuation."