"""
Dense linear assignment solver (Jonker-Volgenant).

Solves the rectangular minimum-cost assignment problem between the rows
(existing tracks) and columns (new detections) of a cost matrix. A
rectangular or thresholded problem is turned into a square one by
padding with dummy rows and columns, so that "no match" can be
expressed as an assignment to a dummy.

Reference:
    Jonker and Volgenant, "A Shortest Augmenting Path Algorithm for
    Dense and Sparse Linear Assignment Problems", Computing 38, 1987
"""

from typing import List, Tuple

import numpy as np

LARGE = 1000000.0


class LAPJVError(RuntimeError):
    """Raised when the solver hits an internal consistency violation."""


def _ccrrt_dense(
    cost: List[List[float]],
    free_rows: List[int],
    x: List[int],
    y: List[int],
    v: List[float]
) -> int:
    """
    Column reduction and reduction transfer.

    Returns:
        Number of rows left unassigned, stored at the front of free_rows
    """
    n = len(cost)
    unique = [True] * n

    for i in range(n):
        x[i] = -1
        v[i] = LARGE
        y[i] = 0

    for i in range(n):
        row = cost[i]
        for j in range(n):
            c = row[j]
            if c < v[j]:
                v[j] = c
                y[j] = i

    for j in range(n - 1, -1, -1):
        i = y[j]
        if x[i] < 0:
            x[i] = j
        else:
            unique[i] = False
            y[j] = -1

    n_free_rows = 0
    for i in range(n):
        if x[i] < 0:
            free_rows[n_free_rows] = i
            n_free_rows += 1
        elif unique[i]:
            j = x[i]
            row = cost[i]
            min_val = LARGE
            for j2 in range(n):
                if j2 == j:
                    continue
                c = row[j2] - v[j2]
                if c < min_val:
                    min_val = c
            v[j] -= min_val

    return n_free_rows


def _carr_dense(
    cost: List[List[float]],
    n_free_rows: int,
    free_rows: List[int],
    x: List[int],
    y: List[int],
    v: List[float]
) -> int:
    """
    Augmenting row reduction.

    Returns:
        Number of rows still unassigned after the pass
    """
    n = len(cost)
    current = 0
    new_free_rows = 0
    rr_cnt = 0

    while current < n_free_rows:
        rr_cnt += 1
        free_i = free_rows[current]
        current += 1

        row = cost[free_i]
        j1 = 0
        v1 = row[0] - v[0]
        j2 = -1
        v2 = LARGE
        for j in range(1, n):
            c = row[j] - v[j]
            if c < v2:
                if c >= v1:
                    v2 = c
                    j2 = j
                else:
                    v2 = v1
                    v1 = c
                    j2 = j1
                    j1 = j

        i0 = y[j1]
        v1_new = v[j1] - (v2 - v1)
        v1_lowers = v1_new < v[j1]

        if rr_cnt < current * n:
            if v1_lowers:
                v[j1] = v1_new
            elif i0 >= 0 and j2 >= 0:
                j1 = j2
                i0 = y[j2]

            if i0 >= 0:
                if v1_lowers:
                    current -= 1
                    free_rows[current] = i0
                else:
                    free_rows[new_free_rows] = i0
                    new_free_rows += 1
        elif i0 >= 0:
            free_rows[new_free_rows] = i0
            new_free_rows += 1

        x[free_i] = j1
        y[j1] = free_i

    return new_free_rows


def _find_dense(n: int, lo: int, d: List[float], cols: List[int]) -> int:
    """Move the columns with minimum d[j] onto the SCAN list cols[lo:hi]."""
    hi = lo + 1
    mind = d[cols[lo]]
    for k in range(hi, n):
        j = cols[k]
        if d[j] <= mind:
            if d[j] < mind:
                hi = lo
                mind = d[j]
            cols[k] = cols[hi]
            cols[hi] = j
            hi += 1
    return hi


def _scan_dense(
    cost: List[List[float]],
    lo: int,
    hi: int,
    d: List[float],
    cols: List[int],
    pred: List[int],
    y: List[int],
    v: List[float]
) -> Tuple[int, int, int]:
    """
    Relax the unscanned columns through each column on the SCAN list.

    Returns:
        (final_j, lo, hi) where final_j is a free column reached at the
        current minimum distance, or -1 if none was found
    """
    n = len(cost)
    while lo != hi:
        j = cols[lo]
        lo += 1
        i = y[j]
        mind = d[j]
        row = cost[i]
        h = row[j] - v[j] - mind
        for k in range(hi, n):
            j = cols[k]
            cred_ij = row[j] - v[j] - h
            if cred_ij < d[j]:
                d[j] = cred_ij
                pred[j] = i
                if cred_ij == mind:
                    if y[j] < 0:
                        return j, lo, hi
                    cols[k] = cols[hi]
                    cols[hi] = j
                    hi += 1
    return -1, lo, hi


def _find_path_dense(
    cost: List[List[float]],
    start_i: int,
    y: List[int],
    v: List[float],
    pred: List[int]
) -> int:
    """
    Single shortest augmenting path search from a free row.

    Columns are partitioned into READY cols[:lo], SCAN cols[lo:hi] and
    unscanned cols[hi:].

    Returns:
        The free column that terminates the path
    """
    n = len(cost)
    lo = 0
    hi = 0
    final_j = -1
    n_ready = 0
    cols = list(range(n))
    row = cost[start_i]
    d = [row[j] - v[j] for j in range(n)]
    for j in range(n):
        pred[j] = start_i

    while final_j == -1:
        if lo == hi:
            if lo >= n:
                raise LAPJVError(
                    f"No augmenting path from row {start_i}: "
                    f"all {n} columns scanned"
                )
            n_ready = lo
            hi = _find_dense(n, lo, d, cols)
            for k in range(lo, hi):
                j = cols[k]
                if y[j] < 0:
                    final_j = j

        if final_j == -1:
            final_j, lo, hi = _scan_dense(cost, lo, hi, d, cols, pred, y, v)

    mind = d[cols[lo]]
    for k in range(n_ready):
        j = cols[k]
        v[j] += d[j] - mind

    return final_j


def _ca_dense(
    cost: List[List[float]],
    n_free_rows: int,
    free_rows: List[int],
    x: List[int],
    y: List[int],
    v: List[float]
) -> None:
    """
    Augment every remaining free row along a shortest path.

    A path visits at most n columns, so the walk back to the free row may
    take n steps; only a longer walk (k > n) is an inconsistent state.
    """
    n = len(cost)
    pred = [0] * n

    for free_i in free_rows[:n_free_rows]:
        i = -1
        k = 0

        j = _find_path_dense(cost, free_i, y, v, pred)
        if j < 0 or j >= n:
            raise LAPJVError(f"Augmenting path ended at invalid column {j}")

        while i != free_i:
            i = pred[j]
            y[j] = i
            j, x[i] = x[i], j
            k += 1
            if k > n:
                raise LAPJVError(
                    f"Augmenting path from row {free_i} exceeds {n} steps"
                )


def lapjv_square(cost: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve a square assignment problem.

    Args:
        cost: Cost matrix of shape (N, N)

    Returns:
        x: Column assigned to each row, shape (N,)
        y: Row assigned to each column, shape (N,)

    Raises:
        LAPJVError: On an internal consistency violation
    """
    cost = np.asarray(cost, dtype=np.float64)
    if cost.ndim != 2 or cost.shape[0] != cost.shape[1]:
        raise ValueError(f"Expected a square cost matrix, got {cost.shape}")

    n = cost.shape[0]
    if n == 0:
        return np.empty((0,), dtype=np.int64), np.empty((0,), dtype=np.int64)

    rows = cost.tolist()
    free_rows = [0] * n
    x = [-1] * n
    y = [-1] * n
    v = [0.0] * n

    ret = _ccrrt_dense(rows, free_rows, x, y, v)

    i = 0
    while ret > 0 and i < 2:
        ret = _carr_dense(rows, ret, free_rows, x, y, v)
        i += 1

    if ret > 0:
        _ca_dense(rows, ret, free_rows, x, y, v)

    return np.array(x, dtype=np.int64), np.array(y, dtype=np.int64)


def lapjv(
    cost: np.ndarray,
    extend_cost: bool = True,
    cost_limit: float = np.inf
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve the rectangular assignment problem with an optional cost cap.

    When extend_cost is set or cost_limit is finite, the (R, C) matrix is
    padded to (R + C, R + C). The real costs fill the top-left block, the
    dummy blocks cost cost_limit / 2 (or max(cost) + 1 without a limit)
    and dummy-to-dummy pairs cost 0. A real pair costing more than
    cost_limit is then never worth taking.

    Args:
        cost: Cost matrix of shape (R, C)
        extend_cost: Allow non-square matrices by padding
        cost_limit: Pairs costing more than this are left unmatched

    Returns:
        row_assignment: Column matched to each row or -1, shape (R,)
        col_assignment: Row matched to each column or -1, shape (C,)

    Raises:
        ValueError: If the matrix is non-square and extend_cost is False
        LAPJVError: On an internal consistency violation
    """
    cost = np.asarray(cost, dtype=np.float32)
    if cost.ndim != 2:
        raise ValueError(f"Expected a 2D cost matrix, got {cost.ndim}D")

    n_rows, n_cols = cost.shape
    if n_rows == 0 or n_cols == 0:
        return (
            np.full(n_rows, -1, dtype=np.int64),
            np.full(n_cols, -1, dtype=np.int64),
        )

    if n_rows != n_cols and not extend_cost:
        raise ValueError(
            "Non-square cost matrix requires extend_cost=True "
            f"(got shape {cost.shape})"
        )

    limited = np.isfinite(cost_limit)
    if extend_cost or limited:
        n = n_rows + n_cols
        if limited:
            fill = np.float32(cost_limit) / np.float32(2.0)
        else:
            fill = cost.max() + np.float32(1.0)

        extended = np.full((n, n), fill, dtype=np.float32)
        extended[n_rows:, n_cols:] = 0
        extended[:n_rows, :n_cols] = cost
        cost = extended

    x, y = lapjv_square(cost.astype(np.float64))

    if x.shape[0] != n_rows:
        x = np.where(x >= n_cols, -1, x)
        y = np.where(y >= n_rows, -1, y)

    return x[:n_rows].copy(), y[:n_cols].copy()
