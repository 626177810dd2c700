"""
Calculators Package

Provides all calculation components for statement composition.
"""

from .ledger import LedgerAggregator
from .lifetime import LifetimeContextBuilder, LifetimePositionTracker
from .recoupment import AdvanceRecoupmentTracker
from .returns import ReturnsDeductionCalculator
from .split import SplitAllocator
from .tiers import TierResolver
from .warnings import WarningDeriver

__all__ = [
    "LedgerAggregator",
    "TierResolver",
    "LifetimePositionTracker",
    "LifetimeContextBuilder",
    "AdvanceRecoupmentTracker",
    "ReturnsDeductionCalculator",
    "SplitAllocator",
    "WarningDeriver",
]
