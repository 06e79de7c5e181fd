"""
Core Module Package.

Shared infrastructure used by the alert engine.

Components:
- clock: Unified UTC time abstraction (system + mock)
"""

from .clock import ClockProtocol, MockClock, SystemClock

__all__ = ["ClockProtocol", "MockClock", "SystemClock"]
