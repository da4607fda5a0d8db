"""Behavioural telemetry sampling."""
from .sampler import NoisyDiagnosticsFilter, TelemetryAccumulator, TelemetrySampler

__all__ = ["NoisyDiagnosticsFilter", "TelemetryAccumulator", "TelemetrySampler"]
