"""Vector math helpers for the store."""

import math

from wingman.service.vectordb.models import VectorDimensionError


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First embedding vector
        vec_b: Second embedding vector

    Returns:
        float: Similarity in [-1, 1]; 0.0 when either vector has zero norm

    Raises:
        VectorDimensionError: If the vectors differ in length
    """
    if len(vec_a) != len(vec_b):
        raise VectorDimensionError(
            f"Vectors must have the same length ({len(vec_a)} != {len(vec_b)})"
        )

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    magnitude_a = math.sqrt(sum(a * a for a in vec_a))
    magnitude_b = math.sqrt(sum(b * b for b in vec_b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    similarity = dot_product / (magnitude_a * magnitude_b)
    # Rounding can push parallel vectors a hair past 1.
    return max(-1.0, min(1.0, similarity))


def average_vector(vectors: list[list[float]]) -> list[float]:
    """Compute the per-dimension mean of a list of vectors.

    Args:
        vectors: Non-empty list of equally sized vectors

    Returns:
        list[float]: The mean vector

    Raises:
        ValueError: If no vectors are given
        VectorDimensionError: If the vectors differ in length
    """
    if not vectors:
        raise ValueError("Cannot average an empty list of vectors")

    dimensions = len(vectors[0])
    totals = [0.0] * dimensions
    for vector in vectors:
        if len(vector) != dimensions:
            raise VectorDimensionError(
                f"Vectors must have the same length ({len(vector)} != {dimensions})"
            )
        for i, value in enumerate(vector):
            totals[i] += value

    return [total / len(vectors) for total in totals]
