"""
Stale worker reaper.
Returns jobs held by dead workers to the queue.
"""

from queuectl.reaper.main import Reaper, run

__all__ = ["Reaper", "run"]
