"""
Crowd Scheduler
Periodic refresh and forecast jobs for the crowd intelligence engine
"""

from crowd_intel.orchestrator.scheduler import CrowdScheduler

__all__ = ["CrowdScheduler"]
