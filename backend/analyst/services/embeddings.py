"""
Embedding Vector Utilities

Pure numeric helpers shared by the semantic scorer:
    - cosine_similarity(): Compare two vectors (-1 to 1)
    - sharpen_similarity(): Remap -1..1 to 0..1 and push values away from 0.5
    - truncate_text(): Cap embedding input length
"""

import math
from typing import List

import numpy as np

TRUNCATION_MARKER = "..."


def cosine_similarity(vec1: List[float], vec2: List[float]) -> float:
    """
    Calculate cosine similarity between two embedding vectors.

    Formula: cos(θ) = (a · b) / (||a|| × ||b||)

    Args:
        vec1: First embedding vector
        vec2: Second embedding vector

    Returns:
        Similarity score from -1 (opposite) to 1 (identical).
        Returns 0.0 if either vector has zero magnitude.

    Raises:
        ValueError: If the vectors have different dimensions
    """
    a = np.array(vec1, dtype=float)
    b = np.array(vec2, dtype=float)

    if a.shape != b.shape:
        raise ValueError(f"Embedding dimensions differ: {a.shape} vs {b.shape}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def sharpen_similarity(similarity: float) -> float:
    """
    Map a cosine similarity onto 0..1 with logistic sharpening.

    The similarity is first remapped linearly from [-1, 1] to [0, 1], then
    passed through 1 / (1 + e^(-4(x - 0.5))) so that pairs near the
    midpoint are spread further apart.
    """
    normalized = (similarity + 1) / 2
    enhanced = 1 / (1 + math.exp(-4 * (normalized - 0.5)))
    return max(0.0, min(1.0, enhanced))


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with an ellipsis."""
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_MARKER
    return text
