"""
Fitness and error statistics for evaluated programs.
"""

from typing import Dict

import numpy as np

# Affine predictions can land a few ulps short of |r| = 1.
UNIT_TOLERANCE = 16 * np.finfo(np.float64).eps


def pearson_r(true: np.ndarray, predicted: np.ndarray) -> float:
    """
    Pearson correlation between target and prediction.

    Returns NaN when either series has zero variance or contains non-finite
    values, which the search treats as an undefined fitness. Results within
    a few ulps of +1 or -1 are reported as exactly +1 or -1.
    """
    true = np.asarray(true, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if true.shape != predicted.shape or true.size < 2:
        return float('nan')

    with np.errstate(all='ignore'):
        # Centering a constant series leaves rounding noise, so check spread first
        if not (np.ptp(true) > 0 and np.ptp(predicted) > 0):
            return float('nan')
        t = true - true.mean()
        p = predicted - predicted.mean()
        denominator = np.sqrt(np.dot(t, t) * np.dot(p, p))
        if not np.isfinite(denominator) or denominator == 0.0:
            return float('nan')
        r = np.dot(t, p) / denominator

    if not np.isfinite(r):
        return float('nan')
    if 1.0 - abs(r) <= UNIT_TOLERANCE:
        return float(np.sign(r))
    return float(np.clip(r, -1.0, 1.0))


def regression_metrics(true: np.ndarray, predicted: np.ndarray) -> Dict[str, float]:
    """
    Standard regression error measures.

    Returns:
        Dict with pearson_r, nmse (MSE normalised by target variance), mae and
        mre (mean relative error over rows with a non-zero target)
    """
    true = np.asarray(true, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if true.size == 0 or true.shape != predicted.shape:
        nan = float('nan')
        return {"pearson_r": nan, "nmse": nan, "mae": nan, "mre": nan}

    with np.errstate(all='ignore'):
        residual = true - predicted
        variance = np.var(true)
        mse = np.mean(residual ** 2)
        nmse = mse / variance if variance > 0 else float('nan')
        mae = np.mean(np.abs(residual))
        nonzero = true != 0
        mre = np.mean(np.abs(residual[nonzero] / true[nonzero])) if nonzero.any() else float('nan')

    return {
        "pearson_r": pearson_r(true, predicted),
        "nmse": float(nmse),
        "mae": float(mae),
        "mre": float(mre),
    }
