from dataclasses import dataclass

from shardcatalog.domain.enums import KeyType
from shardcatalog.domain.exceptions import InvalidKeyError

HEX_PREFIX = "0x"


@dataclass(frozen=True)
class RawKey:
    """
    Value object for the canonical byte form of a tenant key.

    The bytes are computed once; the hex form is always derived from them,
    so the persisted literal and the lookup key cannot drift apart.
    """

    value: bytes

    def __post_init__(self):
        if not isinstance(self.value, bytes) or not self.value:
            raise ValueError("Raw key must be a non-empty bytes value")

    @property
    def hex(self) -> str:
        return HEX_PREFIX + self.value.hex().upper()

    def __str__(self) -> str:
        return self.hex


class KeyCodec:
    """
    Converts logical tenant keys to raw shard map keys and back.

    Keys are encoded big-endian at a fixed width with the sign bit flipped,
    so unsigned byte order matches numeric order:

        encode(-1)   -> 0x7FFFFFFF
        encode(0)    -> 0x80000000
        encode(5000) -> 0x80001388
    """

    def __init__(self, key_type: KeyType = KeyType.INT32, *, allow_negative: bool = False):
        self.key_type = key_type
        self.allow_negative = allow_negative
        bits = key_type.width * 8
        self._sign_bit = 1 << (bits - 1)
        self._min = -self._sign_bit
        self._max = self._sign_bit - 1

    def validate(self, tenant_key: int) -> int:
        """Check that a tenant key is inside the supported domain"""
        # bool is an int subclass but never a tenant key
        if isinstance(tenant_key, bool) or not isinstance(tenant_key, int):
            raise InvalidKeyError(tenant_key, "tenant key must be an integer")
        if tenant_key < 0 and not self.allow_negative:
            raise InvalidKeyError(tenant_key, "negative keys are not allowed")
        if not self._min <= tenant_key <= self._max:
            raise InvalidKeyError(tenant_key, f"out of range for {self.key_type.value}")
        return tenant_key

    def encode(self, tenant_key: int) -> RawKey:
        key = self.validate(tenant_key)
        return RawKey((key + self._sign_bit).to_bytes(self.key_type.width, "big"))

    def decode(self, raw_key: RawKey | bytes) -> int:
        data = raw_key.value if isinstance(raw_key, RawKey) else raw_key
        if len(data) != self.key_type.width:
            raise InvalidKeyError(
                data, f"expected {self.key_type.width} bytes for {self.key_type.value}"
            )
        return int.from_bytes(data, "big") - self._sign_bit

    @staticmethod
    def to_hex(raw_key: RawKey) -> str:
        return raw_key.hex

    def from_hex(self, text: str) -> RawKey:
        """Parse a hex literal in either case, with or without the 0x prefix"""
        digits = text[2:] if text[:2].lower() == HEX_PREFIX else text
        try:
            data = bytes.fromhex(digits)
        except ValueError as e:
            raise InvalidKeyError(text, "not a hexadecimal literal") from e
        if len(data) != self.key_type.width:
            raise InvalidKeyError(
                text, f"expected {self.key_type.width} bytes for {self.key_type.value}"
            )
        return RawKey(data)
