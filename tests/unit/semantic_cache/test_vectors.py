"""
Tests for cosine similarity and the float32 vector codec.
"""

import math

import numpy as np
import pytest

from concept_llm.errors import CacheError
from concept_llm.semantic_cache.vectors import cosine_similarity, decode_vector, encode_vector


class TestCosineSimilarity:
    """Test cosine_similarity."""

    def test_identical_vectors(self) -> None:
        v = [0.3, -1.2, 4.5, 0.0]
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self) -> None:
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_symmetric(self) -> None:
        a = [0.2, 0.7, -0.1]
        b = [0.9, -0.3, 0.4]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_scale_invariant(self) -> None:
        a = [1.0, 2.0, 3.0]
        assert cosine_similarity(a, [10.0, 20.0, 30.0]) == pytest.approx(1.0)

    def test_mismatched_length_scores_zero(self) -> None:
        """Test vectors from different embedding models never match."""
        assert cosine_similarity([1.0] * 768, [1.0] * 1536) == 0.0

    def test_zero_vector_scores_zero(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_empty_vectors_score_zero(self) -> None:
        assert cosine_similarity([], []) == 0.0

    def test_known_angle(self) -> None:
        """Test a vector pair built at cosine 0.93."""
        b = [0.93, math.sqrt(1 - 0.93**2)]
        assert cosine_similarity([1.0, 0.0], b) == pytest.approx(0.93)

    def test_result_clamped_to_unit_range(self) -> None:
        """Test rounding drift never reports a similarity above 1."""
        rng = np.random.default_rng(7)
        for _ in range(50):
            v = rng.normal(size=768).astype(np.float32)
            assert -1.0 <= cosine_similarity(v, v) <= 1.0
            assert cosine_similarity(v, v * 3.0) <= 1.0

    def test_accepts_numpy_arrays(self) -> None:
        assert cosine_similarity(np.array([1.0, 1.0]), [1.0, 1.0]) == pytest.approx(1.0)


class TestVectorCodec:
    """Test encode_vector / decode_vector."""

    def test_packs_float32_little_endian(self) -> None:
        blob = encode_vector([1.0, -2.5, 0.25])

        assert len(blob) == 12
        assert blob == np.array([1.0, -2.5, 0.25], dtype="<f4").tobytes()
        np.testing.assert_allclose(decode_vector(blob), [1.0, -2.5, 0.25])

    def test_similarity_survives_encoding(self) -> None:
        v = [0.12345678, -0.98765432, 0.5]
        assert cosine_similarity(v, decode_vector(encode_vector(v))) == pytest.approx(1.0, abs=1e-6)

    def test_empty_blob(self) -> None:
        assert decode_vector(b"").size == 0

    def test_corrupt_blob_raises(self) -> None:
        with pytest.raises(CacheError):
            decode_vector(b"\x00\x01\x02")
