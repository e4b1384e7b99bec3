"""
Reaper module.
Contains the sweep that clears expired leases.
"""

from leasequeue.reaper.main import Reaper, run

__all__ = ["Reaper", "run"]
