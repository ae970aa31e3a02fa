"""Scheduling components for Farm Irrigation."""
from .auto_scheduler import AutoScheduler
from .executor import ScheduleExecutor
from .schedule_book import ScheduleBook

__all__ = ["AutoScheduler", "ScheduleExecutor", "ScheduleBook"]
