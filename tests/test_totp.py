"""Tests for TOTP code generation."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from avanza_client import InvalidSecret, generate_code

# RFC 6238 SHA1 seed "12345678901234567890" in base32.
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class TestGenerateCode:
    """Tests for generate_code()."""

    @pytest.mark.parametrize(
        ("timestamp", "expected"),
        [
            (59, "287082"),
            (1111111109, "081804"),
            (1234567890, "005924"),
        ],
    )
    def test_rfc6238_vectors(self, timestamp: int, expected: str) -> None:
        assert generate_code(RFC_SECRET, for_time=timestamp) == expected

    def test_same_window_same_code(self) -> None:
        """Codes are stable within one 30 second window."""
        assert generate_code(RFC_SECRET, for_time=60) == generate_code(
            RFC_SECRET, for_time=89
        )

    def test_accepts_datetime(self) -> None:
        moment = datetime.fromtimestamp(59, tz=UTC)
        assert generate_code(RFC_SECRET, for_time=moment) == "287082"

    def test_lowercase_and_spaced_secret(self) -> None:
        spaced = "gezd gnbv gy3t qojq gezd gnbv gy3t qojq"
        assert generate_code(spaced, for_time=59) == "287082"

    def test_current_code_is_six_digits(self) -> None:
        code = generate_code(RFC_SECRET)
        assert len(code) == 6
        assert code.isdigit()

    @pytest.mark.parametrize("secret", ["", "   ", "not base32!", "A1B8"])
    def test_malformed_secret_raises(self, secret: str) -> None:
        with pytest.raises(InvalidSecret):
            generate_code(secret, for_time=59)
