"""Shared infrastructure: settings, telemetry and storage adapters."""
