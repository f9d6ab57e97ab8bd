"""Topology-preserving thinning: binary mask → one-pixel-wide skeleton.

Iterative conditional erosion (Guo–Hall family, two sub-iterations):

    P9 P2 P3
    P8 P1 P4
    P7 P6 P5

A foreground interior pixel P1 is removed in a sub-iteration when:
    - 2 ≤ N ≤ 6, N = number of foreground neighbours P2..P9
    - A == 1, A = number of 0→1 transitions around P2→P3→…→P9→P2
    - even sub-iteration: P2·P4·P6 == 0 and P4·P6·P8 == 0
      odd sub-iteration:  P2·P4·P8 == 0 and P2·P6·P8 == 0

Every sub-iteration decides all removals from the committed state and
then applies them as one batch. The loop stops after the first full pass
(even + odd) that removes nothing. The one-pixel image border is never
eroded.
"""

import logging
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)

EVEN_STEP = 0
ODD_STEP = 1


def _neighbours(work: np.ndarray) -> List[np.ndarray]:
    """Views P2..P9 (clockwise from directly above) aligned with the interior."""
    return [
        work[:-2, 1:-1],   # P2
        work[:-2, 2:],     # P3
        work[1:-1, 2:],    # P4
        work[2:, 2:],      # P5
        work[2:, 1:-1],    # P6
        work[2:, :-2],     # P7
        work[1:-1, :-2],   # P8
        work[:-2, :-2],    # P9
    ]


def removal_candidates(work: np.ndarray, step: int) -> np.ndarray:
    """Decide which interior pixels one sub-iteration removes.

    Parameters
    ----------
    work : np.ndarray
        (H, W) 0/1 working grid, H and W >= 3; not modified
    step : int
        EVEN_STEP or ODD_STEP

    Returns
    -------
    remove : np.ndarray
        (H-2, W-2) bool, True where the interior pixel is deleted
    """
    if step not in (EVEN_STEP, ODD_STEP):
        raise ValueError(f"step must be {EVEN_STEP} or {ODD_STEP}, got {step}")

    p2, p3, p4, p5, p6, p7, p8, p9 = nbrs = _neighbours(work)
    ring = nbrs + [p2]

    count = np.zeros(p2.shape, dtype=np.int32)
    for p in nbrs:
        count += p

    transitions = np.zeros(p2.shape, dtype=np.int32)
    for a, b in zip(ring[:-1], ring[1:]):
        transitions += (a == 0) & (b == 1)

    if step == EVEN_STEP:
        c1 = p2 * p4 * p6
        c2 = p4 * p6 * p8
    else:
        c1 = p2 * p4 * p8
        c2 = p2 * p6 * p8

    return (
        (work[1:-1, 1:-1] == 1)
        & (count >= 2) & (count <= 6)
        & (transitions == 1)
        & (c1 == 0) & (c2 == 0)
    )


def thin(mask: np.ndarray, max_passes: Optional[int] = None) -> np.ndarray:
    """Reduce foreground regions to a one-pixel-wide skeleton.

    Parameters
    ----------
    mask : np.ndarray
        (H, W) mask; any nonzero pixel is foreground
    max_passes : int, optional
        Stop after this many full passes even if pixels are still being
        removed; None (default) runs to the fixed point

    Returns
    -------
    skeleton : np.ndarray
        (H, W) uint8, 0 = background, 255 = foreground; mask is untouched

    Raises
    ------
    ValueError
        If mask is not two-dimensional
    """
    mask = np.asarray(mask)
    if mask.ndim != 2:
        raise ValueError(f"Expected a 2D mask, got shape {mask.shape}")

    work = (mask > 0).astype(np.uint8)
    h, w = work.shape
    if h < 3 or w < 3:
        return work * 255

    passes = 0
    removed_total = 0
    while max_passes is None or passes < max_passes:
        removed_in_pass = 0
        for step in (EVEN_STEP, ODD_STEP):
            remove = removal_candidates(work, step)
            n = int(np.count_nonzero(remove))
            if n:
                work[1:-1, 1:-1][remove] = 0
                removed_in_pass += n
        passes += 1
        removed_total += removed_in_pass
        if removed_in_pass == 0:
            break

    logger.debug(
        f"Thinning finished after {passes} passes: removed {removed_total} px, "
        f"{int(work.sum())} px remain"
    )
    return work * 255
