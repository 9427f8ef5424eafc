from clinic_analytics.middleware.telemetry import TelemetryMiddleware

__all__ = ["TelemetryMiddleware"]
