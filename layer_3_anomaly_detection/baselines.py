"""
Per-neighbourhood tone baselines

Each neighbourhood is compared against its own reviews rather than one global
threshold. Neighbourhoods with too few reviews borrow the dataset-wide
baseline, and standard deviations are floored so near-identical groups do not
turn every small difference into an anomaly.
"""
from collections import OrderedDict
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from models.insights import NeighbourhoodBaseline

# Smallest group that gets its own baseline
MIN_BASELINE_SAMPLES = 5

# Lower bound for any baseline standard deviation
MIN_STD_DEV = 0.2


def compute_baseline(scores: Sequence[float]) -> NeighbourhoodBaseline:
    """
    Mean and population standard deviation of scores, stdDev floored at MIN_STD_DEV

    Args:
        scores: Tone scores of one group (must not be empty)

    Returns:
        NeighbourhoodBaseline for the group
    """
    if len(scores) == 0:
        raise ValueError("Cannot compute a baseline from zero scores")

    values = np.asarray(scores, dtype=float)
    mean = float(np.mean(values))
    std_dev = float(np.std(values))
    return NeighbourhoodBaseline(mean=mean, std_dev=max(std_dev, MIN_STD_DEV), sample_count=len(values))


def group_scores(pairs: Iterable[Tuple[str, float]]) -> Dict[str, List[float]]:
    """Group (neighbourhood, score) pairs, keeping first-seen neighbourhood order"""
    groups: Dict[str, List[float]] = OrderedDict()
    for neighbourhood, score in pairs:
        groups.setdefault(neighbourhood, []).append(score)
    return groups


class BaselineTable:
    """Baselines for every neighbourhood in one dataset, plus the global fallback"""

    def __init__(
        self,
        groups: Mapping[str, Sequence[float]],
        overrides: Optional[Mapping[str, NeighbourhoodBaseline]] = None,
    ):
        all_scores = [score for scores in groups.values() for score in scores]
        self.global_baseline = compute_baseline(all_scores) if all_scores else None
        self.group_sizes = {name: len(scores) for name, scores in groups.items()}
        self.baselines: Dict[str, NeighbourhoodBaseline] = {
            name: compute_baseline(scores)
            for name, scores in groups.items()
            if len(scores) >= MIN_BASELINE_SAMPLES
        }
        # Overrides get the same stdDev floor as computed baselines
        self.overrides: Dict[str, NeighbourhoodBaseline] = {
            name: replace(baseline, std_dev=max(baseline.std_dev, MIN_STD_DEV))
            for name, baseline in (overrides or {}).items()
        }

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Tuple[str, float]],
        overrides: Optional[Mapping[str, NeighbourhoodBaseline]] = None,
    ) -> "BaselineTable":
        return cls(group_scores(pairs), overrides)

    def uses_own_baseline(self, neighbourhood: str) -> bool:
        """True when the neighbourhood is compared against its own reviews"""
        return neighbourhood in self.overrides or neighbourhood in self.baselines

    def baseline_for(self, neighbourhood: str) -> NeighbourhoodBaseline:
        """
        Baseline to compare a neighbourhood's reviews against

        Overrides win, then the neighbourhood's own baseline when it has at
        least MIN_BASELINE_SAMPLES reviews, then the dataset-wide baseline.
        """
        if neighbourhood in self.overrides:
            return self.overrides[neighbourhood]
        if neighbourhood in self.baselines:
            return self.baselines[neighbourhood]
        if self.global_baseline is None:
            raise KeyError(f"No baseline available for {neighbourhood!r}")
        return self.global_baseline
