"""Geolocation and behavioural security toolkit: policy, validation, rate limiting, history, sensor, network and weather checks."""

__version__ = "1.0.0"