# geosentry

Building blocks for geolocation-aware security checks. Everything is a
library: import the module you need and call it from your own application.

| Module | What it gives you |
| --- | --- |
| `geosentry.policy` | `can_execute` decides whether a user may perform an action, from account status, roles and trust score; `parse_role` turns a role name into a `Role`. |
| `geosentry.input_validator` | `sanitize_text` and `normalize_and_sanitize` for HTML input; `validate_password_strength`, `validate_username`, `validate_phone_number`, which raise `ValidationError`. |
| `geosentry.ratelimit` | `RateLimiter`, a fixed-window limiter per IP address with a whitelist and a blacklist. |
| `geosentry.history` | `HistoryService` over an `InMemoryHistoryStore`, with detection of event bursts in a time window. |
| `geosentry.sensors_analyzer` | `SensorsAnalyzerEngine`, which scores sensor readings with a detector and signs the verdict with HMAC-SHA384. |
| `geosentry.network_analyzer` | `NetworkAnalyzer`, which detects VPN, proxy and Tor addresses, scores trust and returns the address AES-256-GCM encrypted. |
| `geosentry.weather` | `WeatherEngine`, which asks several providers at once and averages their answers; `OpenMeteoProvider` for the Open-Meteo forecast API. |
| `geosentry.crud`, `geosentry.models` | User lookups and security checks over a DB-API connection, and the record dataclasses (`User`, `Device`, `LocationRecord`, `BehavioralEvent`, `SecurityAlert`). |
| `geosentry.helpers` | `aes_encrypt` (AES-256-GCM, nonce prepended) and `calculate_distance` (haversine, kilometres). |

## Installation

```
pip install geosentry
```

Requires Python 3.10 or later. Depends on `cryptography` and `httpx`.

## Examples

### Policy decisions

`can_execute` returns `None` when the action is allowed and raises a
`PolicyError` subclass (`UserBanned`, `UserSuspended`,
`InsufficientPermissions`, `LowTrustScore`) saying why it is not. Banned and
suspended accounts are refused before anything else; `Role.ADMIN` is then
allowed everything; `PerformSensitiveTransaction` needs a trust score of at
least 0.9.

```python
import uuid
from geosentry.policy import (
    LowTrustScore, PerformSensitiveTransaction, PolicyContext, Role, UserStatus,
    can_execute, parse_role,
)

context = PolicyContext(
    user_id=uuid.uuid4(),
    roles=[parse_role("TRUSTED_USER")],
    status=UserStatus.ACTIVE,
    trust_score=0.7,
)
try:
    can_execute(context, PerformSensitiveTransaction())
except LowTrustScore as exc:
    print(exc.trust_score, exc.required)  # 0.7 0.9
```

### Input validation

```python
from geosentry.input_validator import (
    ValidationError, normalize_and_sanitize, validate_username,
)

print(normalize_and_sanitize("Hello, <script>alert('x');</script> world!"))
# Hello,  world!

try:
    validate_username("admin")
except ValidationError as exc:
    print(exc.code)  # blacklisted_username
```

`sanitize_text` drops `<script>` and `<style>` together with their contents,
removes tags and attributes outside a safe list, drops URLs with unknown
schemes and adds `rel="noopener noreferrer"` to links. Safe tags such as
`<b>` and `<i>` are kept.

### Rate limiting

```python
import asyncio
from geosentry.ratelimit import LimitExceeded, RateLimitConfig, RateLimiter

async def demo():
    limiter = RateLimiter(RateLimitConfig(max_requests=2, window=60.0))
    await limiter.check("203.0.113.5")
    await limiter.check("203.0.113.5")
    try:
        await limiter.check("203.0.113.5")
    except LimitExceeded:
        print("too many requests")

asyncio.run(demo())
```

Whitelisted addresses are never counted; blacklisted ones raise `Blacklisted`.
Use `add_whitelist` and `add_blacklist` to change the lists at run time.

### Event history

```python
import asyncio
from datetime import datetime, timezone
from geosentry.history import AnomalyConfig, HistoryEvent, HistoryService, InMemoryHistoryStore

async def demo():
    service = HistoryService(InMemoryHistoryStore(), AnomalyConfig(default_threshold=2))
    for event_id in (1, 2, 3):
        await service.log_event(HistoryEvent(
            id=event_id, entity_id="device-1", event_type="LOGIN_SUCCESS",
            timestamp=datetime.now(timezone.utc),
        ))
    anomalies = await service.detect_timeline_anomalies("device-1", window_mins=30)
    print([event.id for event in anomalies])  # [3]

asyncio.run(demo())
```

### Sensor analysis

```python
import asyncio
from datetime import datetime, timezone
from geosentry.sensors_analyzer import (
    DefaultSensorAnomalyDetector, SensorReading, SensorsAnalyzerEngine,
)

engine = SensorsAnalyzerEngine(b"secret", DefaultSensorAnomalyDetector())
reading = SensorReading("Accelerometer", 1.5, datetime.now(timezone.utc))
result = asyncio.run(engine.analyze(reading, []))
print(result.anomaly_score, result.is_tampered, engine.verify(result))
```

### Network analysis

```python
import asyncio, os
from geosentry.network_analyzer import (
    ConnectionType, DefaultAiNetworkAnalyzer, NetworkAnalyzer, ProxyDatabase,
    StaticNetworkProvider,
)

analyzer = NetworkAnalyzer(
    encryption_key=os.urandom(32),
    proxy_db=ProxyDatabase(vpn_ips={"198.51.100.7"}),
    ai_analyzer=DefaultAiNetworkAnalyzer(),
)
result = asyncio.run(analyzer.analyze(StaticNetworkProvider("198.51.100.7", ConnectionType.WIFI)))
print(result.concealment.is_vpn, round(result.security_score, 2))  # True 0.5
```

The key must be 32 bytes. Geolocation comes from an optional `geo_lookup`
callable that takes an address and returns a `GeoLocation` or `None`; without
it every address counts as an unknown location (a further 0.1 off the score).

### Weather cross-checking

```python
import asyncio
from geosentry.weather import OpenMeteoProvider, WeatherEngine

engine = WeatherEngine([OpenMeteoProvider()])
print(asyncio.run(engine.fetch_and_validate(24.7, 46.7)))
```

Providers that raise `WeatherError` are ignored; if none answers,
`NoReliableData` is raised. The merged reading averages the numeric fields
and takes the highest weather code. Open-Meteo reports neither humidity nor
precipitation, so that provider fills them with 50.0 and 0.0.

### Database access

The functions in `geosentry.crud` take an open DB-API connection whose driver
uses the `?` placeholder style (for example `sqlite3`) and tables `users`,
`devices` and `user_roles`. Timestamps are read and written as
`YYYY-MM-DD HH:MM:SS` text. `create_user` commits after inserting.
`verify_user_security` is true for an active user who has logged in at least
once; `verify_user_device_and_role` additionally requires the device to belong
to the user and the user to hold the given role.

## What the package does not do

- It has no command-line program and no HTTP server; it is used from your own
  code.
- It does not create or migrate database tables; `geosentry.crud` expects the
  schema to exist.
- Event history is kept only in memory by `InMemoryHistoryStore`.
- It ships no IP geolocation database and no lists of VPN, proxy or Tor
  addresses; you supply them.

## Running the tests

```
pip install -e ".[test]"
pytest
```