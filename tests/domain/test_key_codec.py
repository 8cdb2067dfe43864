"""Unit tests for KeyCodec and RawKey"""

import pytest

from shardcatalog.domain.enums import KeyType
from shardcatalog.domain.exceptions import InvalidKeyError
from shardcatalog.domain.value_objects import KeyCodec, RawKey, TenantName


@pytest.fixture
def codec():
    return KeyCodec()


class TestEncode:
    def test_known_encoding(self, codec):
        """
        GIVEN tenant key 5000
        WHEN encoding it as an int32 key
        THEN the raw key is 0x80001388
        """
        raw_key = codec.encode(5000)

        assert raw_key.value == bytes.fromhex("80001388")
        assert raw_key.hex == "0x80001388"

    def test_fixed_width(self, codec):
        """Small keys keep all four bytes, trailing zeros included"""
        assert codec.encode(0).value == b"\x80\x00\x00\x00"
        assert len(codec.encode(1).value) == 4

    def test_int64_width(self):
        codec = KeyCodec(KeyType.INT64)

        raw_key = codec.encode(5000)

        assert raw_key.hex == "0x8000000000001388"

    def test_byte_order_matches_numeric_order(self):
        codec = KeyCodec(allow_negative=True)
        keys = [-(2**31), -5000, -1, 0, 1, 5000, 2**31 - 1]

        encoded = [codec.encode(k).value for k in keys]

        assert encoded == sorted(encoded)

    @pytest.mark.parametrize("key", [0, 1, 5000, 2**31 - 1])
    def test_decode_inverts_encode(self, codec, key):
        assert codec.decode(codec.encode(key)) == key

    def test_same_key_same_bytes(self, codec):
        """Encoding is deterministic"""
        assert codec.encode(42) == codec.encode(42)


class TestInvalidKeys:
    @pytest.mark.parametrize("key", ["5000", 5000.0, None, True, False])
    def test_non_integer_rejected(self, codec, key):
        with pytest.raises(InvalidKeyError):
            codec.encode(key)

    def test_negative_rejected_by_default(self, codec):
        with pytest.raises(InvalidKeyError) as exc_info:
            codec.encode(-1)

        assert exc_info.value.error_code == "INVALID_KEY"
        assert exc_info.value.retryable is False

    @pytest.mark.parametrize("key", [2**31, 2**40])
    def test_out_of_range_rejected(self, codec, key):
        with pytest.raises(InvalidKeyError):
            codec.encode(key)

    def test_decode_rejects_wrong_width(self, codec):
        with pytest.raises(InvalidKeyError):
            codec.decode(b"\x80\x00")


class TestHex:
    def test_from_hex_accepts_either_case_and_prefix(self, codec):
        expected = codec.encode(255)

        assert codec.from_hex("0x800000FF") == expected
        assert codec.from_hex("0X800000ff") == expected
        assert codec.from_hex("800000Ff") == expected

    def test_to_hex_is_uppercase_with_prefix(self, codec):
        assert KeyCodec.to_hex(codec.encode(255)) == "0x800000FF"

    @pytest.mark.parametrize("text", ["0xZZ", "0x8000", "not hex"])
    def test_from_hex_rejects_malformed(self, codec, text):
        with pytest.raises(InvalidKeyError):
            codec.from_hex(text)

    def test_raw_key_requires_bytes(self):
        with pytest.raises(ValueError):
            RawKey(b"")


class TestTenantName:
    @pytest.mark.parametrize("display", ["Acme", "acme", "A c m e", " ACME\t"])
    def test_database_name_normalization(self, display):
        assert TenantName(display).database_name == "acme"

    @pytest.mark.parametrize("display", ["", "   ", "x" * 129])
    def test_invalid_names_rejected(self, display):
        with pytest.raises(ValueError):
            TenantName(display)
