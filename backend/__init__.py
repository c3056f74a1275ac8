"""Handpose — FastAPI backend (optional server mode).

This package provides REST + WebSocket endpoints for remote hand detection.
It is OPTIONAL — the `handpose` package runs without it.
"""
