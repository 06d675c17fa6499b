"""Tests for short code strategies."""

import pytest

from tinylink.exceptions import ConfigurationError
from tinylink.shortcode import (
    BASE62_CHARS,
    EncodedIdStrategy,
    RandomCodeStrategy,
    base62_to_int,
    create_code_strategy,
    int_to_base62,
    is_valid_format,
)


class TestBase62:
    """Test base62 helpers."""

    def test_int_to_base62_pads_to_length(self):
        """Test zero-padding with the first alphabet character."""
        assert int_to_base62(0, 6) == "aaaaaa"
        assert int_to_base62(61, 2) == "a9"

    def test_base62_to_int_inverts(self):
        """Test conversion back to an integer."""
        for num in (0, 1, 61, 62, 3843, 56800235583):
            assert base62_to_int(int_to_base62(num)) == num

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            int_to_base62(-1)

    def test_is_valid_format(self):
        """Test code format checks."""
        assert is_valid_format("abc123")
        assert is_valid_format("ABCxyz")
        assert not is_valid_format("")
        assert not is_valid_format("abc-12")
        assert not is_valid_format("abc 12")


class TestRandomCodeStrategy:
    """Test random code generation."""

    def test_generate_length_and_alphabet(self):
        """Test generated codes are 6 base62 characters."""
        strategy = RandomCodeStrategy()

        for _ in range(200):
            code = strategy.generate()
            assert len(code) == 6
            assert all(c in BASE62_CHARS for c in code)

    def test_custom_length(self):
        strategy = RandomCodeStrategy(length=10)
        assert len(strategy.generate()) == 10

    def test_does_not_require_id(self):
        assert RandomCodeStrategy.requires_id is False

    def test_codes_vary(self):
        """Test that generated codes are not constant."""
        strategy = RandomCodeStrategy()
        codes = {strategy.generate() for _ in range(100)}
        assert len(codes) > 90

    def test_invalid_length(self):
        with pytest.raises(ConfigurationError):
            RandomCodeStrategy(length=0)


class TestEncodedIdStrategy:
    """Test salted id encoding."""

    def test_requires_salt(self):
        """Test an empty salt is rejected."""
        with pytest.raises(ConfigurationError):
            EncodedIdStrategy(salt="")

    def test_multiplier_must_be_coprime(self):
        with pytest.raises(ConfigurationError):
            EncodedIdStrategy(salt="pepper", mult=31)

    def test_deterministic(self):
        """Test the same id and salt always give the same code."""
        first = EncodedIdStrategy(salt="pepper")
        second = EncodedIdStrategy(salt="pepper")

        assert first.generate(42) == second.generate(42)

    def test_salt_changes_codes(self):
        assert EncodedIdStrategy(salt="pepper").generate(42) != EncodedIdStrategy(salt="paprika").generate(42)

    def test_distinct_ids_give_distinct_codes(self):
        """Test the encoding is collision-free over a range of ids."""
        strategy = EncodedIdStrategy(salt="pepper")

        codes = [strategy.generate(record_id) for record_id in range(1, 5001)]

        assert len(set(codes)) == len(codes)
        assert all(len(code) == 6 and is_valid_format(code) for code in codes)

    def test_sequential_ids_not_sequential_codes(self):
        """Test consecutive ids do not produce consecutive codes."""
        strategy = EncodedIdStrategy(salt="pepper")

        assert abs(base62_to_int(strategy.generate(2)) - base62_to_int(strategy.generate(1))) != 1

    def test_decode_recovers_id(self):
        strategy = EncodedIdStrategy(salt="pepper")

        for record_id in (0, 1, 2, 999, 123456789):
            assert strategy.decode(strategy.generate(record_id)) == record_id

    def test_length_grows_past_capacity(self):
        """Test ids beyond 62**6 get longer codes instead of colliding."""
        strategy = EncodedIdStrategy(salt="pepper", min_length=6)

        big_id = 62**6
        code = strategy.generate(big_id)

        assert len(code) == 7
        assert strategy.decode(code) == big_id

    def test_generate_needs_id(self):
        with pytest.raises(ValueError):
            EncodedIdStrategy(salt="pepper").generate()

    def test_decode_rejects_foreign_codes(self):
        strategy = EncodedIdStrategy(salt="pepper")

        with pytest.raises(ValueError):
            strategy.decode("abc")
        with pytest.raises(ValueError):
            strategy.decode("abc-de")


class TestCreateCodeStrategy:
    """Test strategy selection from configuration."""

    def test_random(self):
        strategy = create_code_strategy("random", length=8)

        assert isinstance(strategy, RandomCodeStrategy)
        assert strategy.length == 8

    def test_encoded(self):
        strategy = create_code_strategy("Encoded", length=6, salt="pepper")

        assert isinstance(strategy, EncodedIdStrategy)
        assert strategy.requires_id

    def test_unknown(self):
        with pytest.raises(ConfigurationError, match="Unknown code strategy"):
            create_code_strategy("sequential")
