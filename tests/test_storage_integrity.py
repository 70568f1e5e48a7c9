"""Tests for content digest computation and verification."""

from __future__ import annotations

import hashlib
import io

import pytest

from procstore.storage.integrity import (
    ContentDigest,
    compute_digest,
    is_supported_algorithm,
    normalize_digest,
    verify_digest,
)

EMPTY_MD5 = "D41D8CD98F00B204E9800998ECF8427E"


def test_compute_digest_is_uppercase_md5() -> None:
    data = b"procurement tender documentation"

    digest = compute_digest(io.BytesIO(data))

    assert digest == hashlib.md5(data).hexdigest().upper()


def test_compute_digest_small_chunks_match_single_read() -> None:
    """Chunk boundaries do not change the digest."""
    data = bytes(range(256)) * 40

    assert compute_digest(io.BytesIO(data), chunk_size=7) == compute_digest(io.BytesIO(data))


def test_compute_digest_empty_stream() -> None:
    assert compute_digest(io.BytesIO(b"")) == EMPTY_MD5


def test_compute_digest_other_algorithm() -> None:
    data = b"signed"

    assert compute_digest(io.BytesIO(data), "sha256") == hashlib.sha256(data).hexdigest().upper()


def test_content_digest_counts_bytes() -> None:
    digest = ContentDigest()
    digest.update(b"abc")
    digest.update(b"defg")

    assert digest.size_bytes == 7
    assert digest.algorithm == "md5"
    assert digest.hexdigest() == hashlib.md5(b"abcdefg").hexdigest().upper()


def test_unknown_algorithm_rejected() -> None:
    with pytest.raises(ValueError):
        ContentDigest("not-a-hash")


@pytest.mark.parametrize("algorithm", ["shake_128", "shake_256"])
def test_variable_length_algorithm_rejected(algorithm: str) -> None:
    with pytest.raises(ValueError, match="Variable-length"):
        ContentDigest(algorithm)

    assert not is_supported_algorithm(algorithm)


def test_fixed_length_algorithms_supported() -> None:
    assert is_supported_algorithm("md5")
    assert is_supported_algorithm("sha256")
    assert not is_supported_algorithm("not-a-hash")


class TestVerifyDigest:
    """Tests for verify_digest()."""

    def test_case_insensitive(self) -> None:
        assert verify_digest(EMPTY_MD5, EMPTY_MD5.lower())

    def test_ignores_surrounding_whitespace(self) -> None:
        assert verify_digest(f" {EMPTY_MD5}\n", EMPTY_MD5)

    def test_mismatch(self) -> None:
        assert not verify_digest(EMPTY_MD5, "0" * 32)

    def test_normalize_digest(self) -> None:
        assert normalize_digest(" abcdef ") == "ABCDEF"

    def test_non_ascii_expected_hash_is_a_mismatch(self) -> None:
        """A declared hash with non-ASCII characters never matches, and never raises."""
        assert not verify_digest(EMPTY_MD5, "ÄBCD")
        assert not verify_digest(EMPTY_MD5, "é")

    def test_non_ascii_hash_matches_itself(self) -> None:
        assert verify_digest("ÄBCD", "äbcd")
