"""Field descriptions and value types for TLS (RFC 5246) encoded structures.

Structures are described as dataclasses whose fields carry a tag string in
their ``"tls"`` metadata entry (see :func:`tls_field`).  The tag clauses are:

``maxval:N``
    enum field encoded in as many bytes as are needed to hold N
``size:S``
    enum field encoded in S bytes
``minlen:N,maxlen:M``
    variable-length vector with a length prefix big enough to hold M
``selector:Field,val:V``
    variant field present only when the earlier enum ``Field`` equals V
"""

from __future__ import annotations

import dataclasses
import operator
import re
from typing import Any, ClassVar


class TLSError(ValueError):
    """Base class for TLS encoding errors."""

    kind = "error"

    def __init__(self, field: str, msg: str) -> None:
        self.field = field
        self.msg = msg
        prefix = f"{field}: " if field else ""
        super().__init__(f"tls: {self.kind}: {prefix}{msg}")


class TLSStructuralError(TLSError):
    """The TLS data may be valid, but the Python type receiving it does not match."""

    kind = "structure error"


class TLSSyntaxError(TLSError):
    """The TLS data is invalid."""

    kind = "syntax error"


class _TLSInt(int):
    """An unsigned integer restricted to the range of its storage type."""

    width: ClassVar[int | None] = None
    limit: ClassVar[int] = 1 << 64

    def __new__(cls, value: Any = 0):
        number = super().__new__(cls, operator.index(value))
        if not 0 <= number < cls.limit:
            raise ValueError(f"{cls.__name__} value {int(number)} out of range")
        return number

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class Uint8(_TLSInt):
    """A one-byte unsigned integer."""

    width = 1
    limit = 1 << 8


class Uint16(_TLSInt):
    """A two-byte unsigned integer."""

    width = 2
    limit = 1 << 16


class Uint24(_TLSInt):
    """A three-byte unsigned integer, held in 32 bits until it is encoded."""

    width = 3
    limit = 1 << 32


class Uint32(_TLSInt):
    """A four-byte unsigned integer."""

    width = 4
    limit = 1 << 32


class Uint64(_TLSInt):
    """An eight-byte unsigned integer."""

    width = 8
    limit = 1 << 64


class Enum(_TLSInt):
    """An unsigned enumeration value whose encoded size comes from its field tag.

    Subclass it to define enumerations of your own.
    """


class FixedBytes(bytes):
    """A fixed-length opaque byte array; use ``FixedBytes[n]`` for length n."""

    size: ClassVar[int | None] = None
    _sized: ClassVar[dict[int, type[FixedBytes]]] = {}

    def __class_getitem__(cls, size: int) -> type[FixedBytes]:
        if cls.size is not None:
            raise TypeError(f"{cls.__name__} already has a size")
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise TypeError(f"invalid FixedBytes size {size!r}")
        sized = FixedBytes._sized.get(size)
        if sized is None:
            sized = type(f"FixedBytes[{size}]", (FixedBytes,), {"size": size})
            FixedBytes._sized[size] = sized
        return sized

    def __new__(cls, value: Any = None):
        if cls.size is None:
            raise TypeError("FixedBytes needs a size: use FixedBytes[n]")
        data = bytes(cls.size) if value is None else bytes(value)
        if len(data) != cls.size:
            raise ValueError(f"{cls.__name__} needs {cls.size} bytes, got {len(data)}")
        return super().__new__(cls, data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({bytes(self)!r})"


@dataclasses.dataclass
class FieldInfo:
    """Encoding information parsed from a field tag."""

    count: int = 0
    count_set: bool = False
    minlen: int = 0
    maxlen: int = 0
    selector: str = ""
    val: int = 0
    name: str = ""

    def check(self, val: int, field_name: str) -> None:
        """Raise TLSStructuralError if val does not fit this field."""
        if val >= 1 << (8 * self.count):
            raise TLSStructuralError(field_name, f"value {val} too large for size")
        if self.maxlen != 0:
            if val < self.minlen:
                raise TLSStructuralError(
                    field_name, f"value {val} too small for minimum {self.minlen}"
                )
            if val > self.maxlen:
                raise TLSStructuralError(
                    field_name, f"value {val} too large for maximum {self.maxlen}"
                )


def byte_count(x: int) -> int:
    """Return the number of bytes needed to encode values up to and including x."""
    for count in range(1, 8):
        if x < 1 << (8 * count):
            return count
    return 8


_DIGITS = re.compile(r"[0-9]+")


def _parse_uint(text: str, bits: int) -> int | None:
    if not _DIGITS.fullmatch(text):
        return None
    value = int(text)
    return value if value < 1 << bits else None


def field_tag_to_field_info(tag: str, name: str = "") -> FieldInfo | None:
    """Parse a field tag; clauses that do not parse are ignored.

    Returns None when the tag holds nothing and no name is given.
    """
    info: FieldInfo | None = None
    for part in tag.split(","):
        if part.startswith("maxval:"):
            value = _parse_uint(part[7:], 64)
            if value is not None:
                info = FieldInfo(count=byte_count(value), count_set=True)
        elif part.startswith("size:"):
            size = _parse_uint(part[5:], 32)
            if size is not None:
                info = FieldInfo(count=size, count_set=True)
        elif part.startswith("maxlen:"):
            value = _parse_uint(part[7:], 64)
            if value is None:
                continue
            info = info or FieldInfo()
            info.count = byte_count(value)
            info.count_set = True
            info.maxlen = value
        elif part.startswith("minlen:"):
            value = _parse_uint(part[7:], 64)
            if value is None:
                continue
            info = info or FieldInfo()
            info.minlen = value
        elif part.startswith("selector:"):
            info = info or FieldInfo()
            info.selector = part[9:]
        elif part.startswith("val:"):
            value = _parse_uint(part[4:], 64)
            if value is None:
                continue
            info = info or FieldInfo()
            info.val = value

    if info is None:
        return FieldInfo(name=name) if name else None

    info.name = name
    if not info.selector:
        if info.count < 1:
            raise TLSStructuralError(name, f"field of unknown size in {tag}")
        if info.count > 8:
            raise TLSStructuralError(name, f"specified size too large in {tag}")
        if info.minlen > info.maxlen:
            raise TLSStructuralError(name, f"specified length range inverted in {tag}")
        if info.val > 0:
            raise TLSStructuralError(name, f"specified selector value but not field in {tag}")
    return info


def tls_field(tag: str, **kwargs: Any) -> Any:
    """Return a dataclass field carrying the given TLS tag in its metadata."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata["tls"] = tag
    return dataclasses.field(metadata=metadata, **kwargs)