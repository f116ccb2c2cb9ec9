"""
Scheduler package: circular polling and change detection.

This package contains:
- Change detection between snapshot and remote list
- Notification content and delivery
- Sync cycle orchestration
- Periodic scheduling with retry backoff
"""

__version__ = "1.0.0"
