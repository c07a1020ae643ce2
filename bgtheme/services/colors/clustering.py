"""
Multi-run k-means clustering of Lab samples.

Each run uses a fixed seed (``base_seed + run_index``); the run with the
lowest inertia wins and ties go to the earliest run index. Runs may execute
on a thread pool, the selection never depends on completion order.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from loguru import logger
from sklearn.cluster import KMeans

from bgtheme.errors import ClusteringError


@dataclass(frozen=True, eq=False)
class ClusterResult:
    """Outcome of one k-means run."""
    centroids: np.ndarray  # (k, 3) Lab
    indices: np.ndarray    # (N,) cluster index per sample
    score: float           # inertia, lower is better
    seed: int

    @property
    def k(self) -> int:
        return len(self.centroids)

    def weights(self) -> np.ndarray:
        """Fraction of samples assigned to each centroid."""
        counts = np.bincount(self.indices, minlength=self.k)
        return counts / max(len(self.indices), 1)


def run_kmeans(samples: np.ndarray, k: int, max_iter: int, tol: float, seed: int) -> ClusterResult:
    """Run a single seeded k-means pass."""
    kmeans = KMeans(
        n_clusters=k,
        init="k-means++",
        n_init=1,
        max_iter=max_iter,
        tol=tol,
        random_state=seed,
    )
    labels = kmeans.fit_predict(samples)
    centroids = np.asarray(kmeans.cluster_centers_, dtype=np.float64)
    centroids.setflags(write=False)
    labels = np.asarray(labels, dtype=np.int64)
    labels.setflags(write=False)
    return ClusterResult(centroids=centroids, indices=labels, score=float(kmeans.inertia_), seed=seed)


def cluster_samples(samples: np.ndarray,
                    k: int = 8,
                    max_iter: int = 40,
                    tol: float = 1e-4,
                    runs: int = 2,
                    base_seed: int = 42,
                    parallel: bool = False,
                    max_workers: Optional[int] = None) -> ClusterResult:
    """
    Cluster samples ``runs`` times and keep the tightest result.

    Args:
        samples: (N, 3) Lab samples
        k: Number of clusters
        max_iter: Iteration cap per run
        tol: Convergence tolerance
        runs: Number of seeded runs
        base_seed: Seed of run 0; run i uses ``base_seed + i``
        parallel: Execute runs on a thread pool
        max_workers: Thread pool size when parallel

    Returns:
        ClusterResult of the run with the lowest score

    Raises:
        ClusteringError: If there are no samples or the parameters are invalid
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 2 or samples.shape[1] != 3:
        raise ClusteringError(f"Expected (N, 3) samples, got shape {samples.shape}")
    if len(samples) == 0:
        raise ClusteringError("Cannot cluster zero samples")
    if k < 1 or runs < 1 or max_iter < 1:
        raise ClusteringError(f"Invalid clustering parameters k={k} runs={runs} max_iter={max_iter}")

    if len(samples) < k:
        logger.warning(f"Only {len(samples)} samples for k={k}, reducing k")
        k = len(samples)

    seeds = [base_seed + i for i in range(runs)]
    logger.info(f"Starting clustering with k={k}, {len(samples)} samples, seeds={seeds}")

    if parallel and runs > 1:
        with ThreadPoolExecutor(max_workers=max_workers or runs) as pool:
            futures = [pool.submit(run_kmeans, samples, k, max_iter, tol, s) for s in seeds]
            results = [f.result() for f in futures]
    else:
        results = [run_kmeans(samples, k, max_iter, tol, s) for s in seeds]

    best = select_best_run(results)
    logger.info(f"Clustering finished: best seed={best.seed} score={best.score:.3f}")
    return best


def select_best_run(results: List[ClusterResult]) -> ClusterResult:
    """Lowest score wins; ties keep the earliest run in ``results``."""
    if not results:
        raise ClusteringError("No clustering runs to select from")
    best_index = min(range(len(results)), key=lambda i: (results[i].score, i))
    return results[best_index]
