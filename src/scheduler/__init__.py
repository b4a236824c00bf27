"""
Scheduled reconciliation passes.

Modules:
    orchestrator: CronScheduler running one pass at a time
    wiring: Assembles a scheduler from settings
"""

from .orchestrator import CronScheduler, PassResult
from .wiring import build_scheduler

__all__ = ["CronScheduler", "PassResult", "build_scheduler"]
