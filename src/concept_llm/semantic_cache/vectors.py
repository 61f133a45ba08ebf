"""
Vector math and binary codec for cached embeddings.

Embeddings are persisted as packed little-endian float32 so a 1536-dim
vector takes 6 KiB instead of a JSON list several times that size.
"""

from collections.abc import Sequence

import numpy as np

from ..errors import CacheError

_FLOAT32_LE = np.dtype("<f4")


def cosine_similarity(vec1: Sequence[float] | np.ndarray, vec2: Sequence[float] | np.ndarray) -> float:
    """
    Calculate cosine similarity between two vectors.

    Vectors of different length (e.g. after an embedding model change) and
    zero-norm vectors are not comparable and score 0.0.

    Args:
        vec1: First vector
        vec2: Second vector

    Returns:
        Cosine similarity, clamped to [-1, 1]
    """
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)

    if v1.shape != v2.shape or v1.size == 0:
        return 0.0

    v1_norm = np.linalg.norm(v1)
    v2_norm = np.linalg.norm(v2)

    if v1_norm == 0 or v2_norm == 0:
        return 0.0

    similarity = float(np.dot(v1, v2) / (v1_norm * v2_norm))
    # Rounding drift can push |v·v| / |v|² a hair past 1
    return max(-1.0, min(1.0, similarity))


def encode_vector(vector: Sequence[float] | np.ndarray) -> bytes:
    """Pack a vector as little-endian float32 bytes."""
    return np.asarray(vector, dtype=_FLOAT32_LE).tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    """
    Unpack little-endian float32 bytes.

    Raises:
        CacheError: If the blob length is not a whole number of float32 values
    """
    if len(blob) % _FLOAT32_LE.itemsize != 0:
        raise CacheError(
            "Corrupt embedding blob",
            details={"byte_length": len(blob)},
        )
    return np.frombuffer(blob, dtype=_FLOAT32_LE).astype(np.float64)
