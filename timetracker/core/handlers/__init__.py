"""
Kafka event handlers for the TimeTracker attendance service.

This module contains handlers that consume events written by the clock-in
flow and react to them.
"""

from .attendance_handlers import register_attendance_handlers

__all__ = ["register_attendance_handlers"]
