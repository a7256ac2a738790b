"""
Simulation helpers for testing and demos.
"""

from .scan_simulator import simulate_laser_scan

__all__ = [
    "simulate_laser_scan",
]
