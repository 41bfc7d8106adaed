"""
Helpers to bring model outputs to the vector length the index expects.
"""

from typing import List, Sequence

import numpy as np


def fit_dimension(vector: Sequence[float], target_dimension: int) -> List[float]:
    """
    Resize `vector` to `target_dimension` and L2-normalize it.

    Shorter vectors are zero-padded. Longer vectors are average-pooled:
    output element i is the mean of input[int(i*scale):int((i+1)*scale)]
    with scale = len(vector) / target_dimension.

    Raises:
        ValueError: If the vector is empty or the target is not positive
    """
    if target_dimension < 1:
        raise ValueError(f"target_dimension must be >= 1, got {target_dimension}")

    values = np.asarray(vector, dtype=np.float64).ravel()
    if values.size == 0:
        raise ValueError("Cannot resize an empty vector")

    if values.size < target_dimension:
        resized = np.zeros(target_dimension, dtype=np.float64)
        resized[: values.size] = values
    elif values.size > target_dimension:
        scale = values.size / target_dimension
        resized = np.empty(target_dimension, dtype=np.float64)
        for i in range(target_dimension):
            start = int(i * scale)
            end = max(int((i + 1) * scale), start + 1)
            resized[i] = values[start:end].mean()
    else:
        resized = values

    norm = np.linalg.norm(resized)
    if norm > 0:
        resized = resized / norm
    return resized.astype(np.float32).tolist()


def pool_embedding(data) -> List[float]:
    """
    Collapse a feature-extraction response to one sentence vector.

    Accepts a flat vector, a (1, d) batch, a (tokens, d) matrix or a
    (1, tokens, d) batch; token matrices are mean-pooled.

    Raises:
        ValueError: If the payload is not numeric or has an unexpected shape
    """
    array = np.asarray(data, dtype=np.float64)
    if array.ndim == 3 and array.shape[0] == 1:
        array = array[0]
    if array.ndim == 2:
        array = array[0] if array.shape[0] == 1 else array.mean(axis=0)
    if array.ndim != 1 or array.size == 0:
        raise ValueError(f"Unexpected embedding shape {array.shape}")
    return array.tolist()
