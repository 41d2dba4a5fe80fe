# brokerage_oracle/codec.py
"""
Fixed-point result codec.

A decimal quantity is scaled by 10^2, rounded half away from zero and
serialized as a 32-byte big-endian unsigned integer (uint256), which is the
result shape the oracle network expects from a job.

    encode(Decimal("4521.10"))  -> 32 bytes holding 452110
    decode(encode(v))           == round(v, 2)
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

from .errors import EncodingError

DECIMALS = 2
WIDTH = 32
MAX_UINT = 2 ** (WIDTH * 8) - 1

# uint256 has 78 digits; enough headroom that scaling never rounds
PRECISION = 100


def _to_decimal(value) -> Decimal:
    if isinstance(value, bool):
        raise EncodingError(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() keeps the shortest repr, so 1234.565 stays 1234.565
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise EncodingError(f"not a number: {value!r}") from None
    raise EncodingError(f"not a number: {value!r}")


def scale(value) -> int:
    """Return round(value * 100) as an int, rounding half away from zero."""
    d = _to_decimal(value)
    if not d.is_finite():
        raise EncodingError(f"non-finite value: {value!r}")
    if d < 0:
        raise EncodingError(f"negative value: {value!r}")
    if d.adjusted() + DECIMALS >= PRECISION:
        raise EncodingError(f"value {value!r} overflows uint{WIDTH * 8}")

    with localcontext() as ctx:
        # wide enough that scaleb is exact and quantize is the only rounding
        ctx.prec = max(PRECISION, len(d.as_tuple().digits) + DECIMALS + 1)
        scaled = int(d.scaleb(DECIMALS).quantize(Decimal(1), rounding=ROUND_HALF_UP))

    if scaled > MAX_UINT:
        raise EncodingError(f"value {value!r} overflows uint{WIDTH * 8}")
    return scaled


def encode(value) -> bytes:
    return scale(value).to_bytes(WIDTH, "big")


def decode(data) -> Decimal:
    """Inverse of encode. Accepts raw bytes or a 0x-prefixed hex string."""
    if isinstance(data, str):
        data = from_hexstring(data)
    if len(data) != WIDTH:
        raise EncodingError(f"expected {WIDTH} bytes, got {len(data)}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(int.from_bytes(data, "big")).scaleb(-DECIMALS)


def to_hexstring(data: bytes) -> str:
    return "0x" + data.hex()


def from_hexstring(text: str) -> bytes:
    text = text.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise EncodingError(f"invalid hex string: {text[:16]}") from None
