"""Small shared helpers: authenticated encryption and great-circle distance."""

from __future__ import annotations

import math
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

EARTH_RADIUS_KM = 6371.0
NONCE_SIZE = 12
KEY_SIZE = 32


def aes_encrypt(data: bytes, key: bytes) -> bytes:
    """Encrypt with AES-256-GCM; the result is the random nonce followed by the ciphertext."""
    if len(key) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(key)}")
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, bytes(data), None)


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points (haversine formula)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))