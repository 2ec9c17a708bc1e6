"""Alert evaluation and notification engine for managed Redis clusters."""

__version__ = '1.0.0'
