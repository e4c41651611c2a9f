"""
Layer 4: Timeline (monthly tone trend).
"""
from .timeline import build_timeline, percent_change, rescale

__all__ = [
    'build_timeline',
    'percent_change',
    'rescale',
]
