"""
Isolation forest anomaly scorer (Liu, Ting & Zhou, 2008).

Random recursive partitioning isolates sparse points in fewer cuts than points
inside dense regions, so the average path length to a leaf is an anomaly
signal that needs no distance or density metric.

Scores follow the usual convention:
- close to 1.0: short average path, easily isolated, anomalous
- around 0.5: statistically average point
- below 0.5: well inside the dense normal region
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from src.core.config import ForestConfig, config
from src.core.exceptions import DataValidationError
from src.data.schema import MetricKey, MetricSnapshot

logger = logging.getLogger(__name__)

EULER_GAMMA = 0.5772156649
NEUTRAL_SCORE = 0.5

FEATURES: Tuple[MetricKey, ...] = tuple(MetricKey)

Point = Tuple[float, ...]


def average_path_length(n: int) -> float:
    """
    Expected path length of an unsuccessful search in a random BST of n points.

    Added at leaves to account for the subtree that was never built.
    """
    if n <= 1:
        return 0.0
    if n == 2:
        return 1.0
    return 2.0 * (math.log(n - 1) + EULER_GAMMA) - 2.0 * (n - 1) / n


@dataclass(frozen=True)
class IsolationNode:
    """
    Node of an isolation tree.

    Leaves carry size (points that reached them); internal nodes carry the
    split feature index, split value and both children.
    """

    size: int = 0
    feature: Optional[int] = None
    split: float = 0.0
    left: Optional["IsolationNode"] = None
    right: Optional["IsolationNode"] = None

    @property
    def is_leaf(self) -> bool:
        return self.feature is None


class IsolationTree:
    """Immutable isolation tree built once from a subsample."""

    def __init__(self, root: IsolationNode, max_depth: int) -> None:
        self.root = root
        self.max_depth = max_depth

    @classmethod
    def build(cls, sample: Sequence[Point], max_depth: int, rng: random.Random) -> "IsolationTree":
        return cls(cls._grow(list(sample), 0, max_depth, rng), max_depth)

    @classmethod
    def _grow(cls, data: List[Point], depth: int, max_depth: int, rng: random.Random) -> IsolationNode:
        if depth >= max_depth or len(data) <= 1:
            return IsolationNode(size=len(data))

        feature = rng.randrange(len(FEATURES))
        values = [point[feature] for point in data]
        low, high = min(values), max(values)
        # Identical values on this feature: nothing left to separate
        if low >= high:
            return IsolationNode(size=len(data))

        split = low + rng.random() * (high - low)
        left = [point for point in data if point[feature] < split]
        right = [point for point in data if point[feature] >= split]
        return IsolationNode(
            feature=feature,
            split=split,
            left=cls._grow(left, depth + 1, max_depth, rng),
            right=cls._grow(right, depth + 1, max_depth, rng),
        )

    def path_length(self, point: Point) -> float:
        node = self.root
        depth = 0
        while not node.is_leaf:
            node = node.left if point[node.feature] < node.split else node.right
            depth += 1
        return depth + average_path_length(node.size)


class AnomalyForest:
    """
    Ensemble of isolation trees trained once on a baseline window.

    Notes:
    - Trains at most once per session; reset() returns it to untrained.
    - Untrained forests score every point as NEUTRAL_SCORE.
    - Pass a seed for reproducible trees; production leaves it unseeded.
    - Path lengths are normalized by c(subsample_size), or by c(sample_size)
      when normalize_by_sample is set.
    """

    def __init__(
        self,
        n_trees: Optional[int] = None,
        subsample_size: Optional[int] = None,
        seed: Optional[int] = None,
        forest_config: Optional[ForestConfig] = None,
    ) -> None:
        cfg = forest_config or config.forest
        self.n_trees = n_trees if n_trees is not None else cfg.n_trees
        self.subsample_size = subsample_size if subsample_size is not None else cfg.subsample_size
        self.seed = seed if seed is not None else cfg.seed
        self.min_baseline = cfg.min_baseline
        self.normalize_by_sample = cfg.normalize_by_sample
        if self.n_trees < 1:
            raise ValueError("n_trees must be >= 1")
        if self.subsample_size < 2:
            raise ValueError("subsample_size must be >= 2")
        self.max_depth = math.ceil(math.log2(self.subsample_size))
        self._rng = random.Random(self.seed)
        self.trees: List[IsolationTree] = []
        self.sample_size = 0
        self._normalizer = 0.0
        self.trained = False

    def train(self, baseline: Sequence[MetricSnapshot]) -> bool:
        """
        Build the forest from baseline snapshots.

        Returns:
            False (forest stays untrained) when the baseline is too small or
            has no complete snapshots, True otherwise.
        """
        points = [snapshot.vector() for snapshot in baseline if snapshot.is_complete]
        if len(points) < self.min_baseline:
            logger.info(
                f"Forest training deferred: {len(points)} complete baseline points "
                f"(< {self.min_baseline})"
            )
            return False

        self.sample_size = min(self.subsample_size, len(points))
        self.trees = [
            IsolationTree.build(self._rng.sample(points, self.sample_size), self.max_depth, self._rng)
            for _ in range(self.n_trees)
        ]
        self._normalizer = average_path_length(
            self.sample_size if self.normalize_by_sample else self.subsample_size
        )
        self.trained = True
        logger.info(
            f"Forest trained: {self.n_trees} trees, sample_size={self.sample_size}, "
            f"max_depth={self.max_depth}"
        )
        return True

    def score(self, point: MetricSnapshot) -> float:
        """
        Score one snapshot in [0, 1]; higher is more anomalous.

        Raises:
            DataValidationError: If the snapshot has a missing or NaN metric
        """
        if not self.trained:
            return NEUTRAL_SCORE
        if not point.is_complete:
            raise DataValidationError(
                f"Cannot score incomplete snapshot at tick {point.tick_index}"
            )
        vector = point.vector()
        mean_path = sum(tree.path_length(vector) for tree in self.trees) / len(self.trees)
        return 2.0 ** (-mean_path / self._normalizer)

    def stats(self) -> Dict[str, object]:
        return {
            "trained": self.trained,
            "n_trees": self.n_trees,
            "subsample_size": self.subsample_size,
            "sample_size": self.sample_size,
            "max_depth": self.max_depth,
            "normalizer": self._normalizer,
        }

    def reset(self) -> None:
        self.trees = []
        self.sample_size = 0
        self._normalizer = 0.0
        self.trained = False
        self._rng = random.Random(self.seed)
