import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from geosentry.sensors_analyzer import (
    DefaultSensorAnomalyDetector,
    SensorAnalysisResult,
    SensorAnomalyDetector,
    SensorError,
    SensorReading,
    SensorsAnalyzerEngine,
)

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
KEY = bytes([42] * 48)


class MockTamperDetector(SensorAnomalyDetector):
    async def analyze(self, current, history):
        return 0.95, "Tampering detected by mock!"


class BrokenDetector(SensorAnomalyDetector):
    async def analyze(self, current, history):
        raise RuntimeError("model offline")


def make_engine(detector=None):
    if detector is None:
        detector = DefaultSensorAnomalyDetector({})
    return SensorsAnalyzerEngine(KEY, detector)


def reading(sensor_type, value, offset_ms=0):
    return SensorReading(sensor_type, value, T0 + timedelta(milliseconds=offset_ms))


@pytest.mark.asyncio
async def test_normal_reading_with_default_detector():
    result = await make_engine().analyze(reading("Accelerometer", 1.5), [])
    assert result.anomaly_score < 0.1
    assert result.is_tampered is False
    assert "Normal" in result.reasoning


@pytest.mark.asyncio
async def test_mock_detector_always_finds_tampering():
    result = await make_engine(MockTamperDetector()).analyze(reading("Gyroscope", 10.0), [])
    assert result.anomaly_score == 0.95
    assert result.is_tampered is True
    assert "mock" in result.reasoning


@pytest.mark.asyncio
async def test_default_detector_finds_unrealistic_change():
    history = [reading("Accelerometer", 0.0)]
    result = await make_engine().analyze(reading("Accelerometer", 50.0, 10), history)
    assert result.anomaly_score > 0.8
    assert result.is_tampered is True
    assert "Unrealistic rate of change" in result.reasoning


@pytest.mark.asyncio
async def test_signature_verification_roundtrip():
    engine = make_engine()
    result = await engine.analyze(reading("Test", 1.0), [])
    assert len(result.signature) == 96
    assert engine.verify(result) is True


@pytest.mark.asyncio
async def test_modified_result_fails_verification():
    engine = make_engine()
    result = await engine.analyze(reading("Test", 1.0), [])
    forged = replace(result, reasoning="All good.")
    assert engine.verify(forged) is False


@pytest.mark.asyncio
async def test_other_key_fails_verification():
    result = await make_engine().analyze(reading("Test", 1.0), [])
    other = SensorsAnalyzerEngine(bytes([7] * 48), DefaultSensorAnomalyDetector())
    assert other.verify(result) is False


@pytest.mark.asyncio
async def test_signature_is_deterministic():
    engine = make_engine()
    first = await engine.analyze(reading("Test", 2.0), [])
    second = await engine.analyze(reading("Test", 2.0), [])
    assert first.signature == second.signature


@pytest.mark.asyncio
@pytest.mark.parametrize("sensor_type", ["", "   "])
async def test_empty_sensor_type_is_rejected(sensor_type):
    with pytest.raises(SensorError, match="Sensor type cannot be empty"):
        await make_engine().analyze(reading(sensor_type, 1.0), [])


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
async def test_non_finite_value_is_rejected(value):
    with pytest.raises(SensorError, match="finite"):
        await make_engine().analyze(reading("Accelerometer", value), [])


@pytest.mark.asyncio
async def test_detector_failure_is_wrapped():
    with pytest.raises(SensorError, match="model offline"):
        await make_engine(BrokenDetector()).analyze(reading("Accelerometer", 1.0), [])


@pytest.mark.asyncio
async def test_default_thresholds_allow_slow_accelerometer_change():
    detector = DefaultSensorAnomalyDetector()
    score, reasoning = await detector.analyze(
        reading("Accelerometer", 5.0, 1000), [reading("Accelerometer", 0.0)]
    )
    assert score == 0.05
    assert reasoning == "Normal fluctuation."


@pytest.mark.asyncio
async def test_default_thresholds_flag_fast_accelerometer_change():
    detector = DefaultSensorAnomalyDetector()
    score, reasoning = await detector.analyze(
        reading("Accelerometer", 20.0, 1000), [reading("Accelerometer", 0.0)]
    )
    assert score == 0.9
    assert reasoning == "Anomaly: Unrealistic rate of change detected (20.00 units/sec)."


@pytest.mark.asyncio
async def test_default_detector_has_gyroscope_threshold():
    detector = DefaultSensorAnomalyDetector()
    assert detector.rate_change_thresholds == {"Accelerometer": 10.0, "Gyroscope": 360.0}
    score, _ = await detector.analyze(
        reading("Gyroscope", 300.0, 1000), [reading("Gyroscope", 0.0)]
    )
    assert score == 0.05


@pytest.mark.asyncio
async def test_tiny_time_delta_is_not_checked():
    detector = DefaultSensorAnomalyDetector({})
    score, reasoning = await detector.analyze(
        reading("Accelerometer", 500.0, 1), [reading("Accelerometer", 0.0)]
    )
    assert score == 0.05
    assert reasoning == "Normal fluctuation."


@pytest.mark.asyncio
async def test_other_sensor_types_in_history_are_ignored():
    detector = DefaultSensorAnomalyDetector({})
    score, _ = await detector.analyze(
        reading("Accelerometer", 5000.0, 10), [reading("Gyroscope", 0.0)]
    )
    assert score == 0.05


@pytest.mark.asyncio
async def test_most_recent_same_type_reading_is_used():
    detector = DefaultSensorAnomalyDetector({"Accelerometer": 10.0})
    history = [reading("Accelerometer", 0.0), reading("Accelerometer", 49.0, 500)]
    score, _ = await detector.analyze(reading("Accelerometer", 50.0, 1000), history)
    assert score == 0.05


@pytest.mark.asyncio
async def test_result_keeps_reading():
    original = reading("Accelerometer", 3.25)
    result = await make_engine().analyze(original, [])
    assert isinstance(result, SensorAnalysisResult)
    assert result.reading == original
    assert result.to_dict()["reading"]["value"] == 3.25