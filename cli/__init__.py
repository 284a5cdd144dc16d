"""Command-line client for the CO2 telemetry ingest service."""
