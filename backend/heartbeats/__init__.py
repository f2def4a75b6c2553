"""Anonymized device heartbeat ingestion and windowed usage analytics."""
