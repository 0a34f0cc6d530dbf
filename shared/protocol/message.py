from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .commands import normalize_type
from .constants import ENCODING, HEADER_SIZE, MAX_MESSAGE_SIZE, STATIC_BUFFER_SIZE, WORD_SIZE
from .errors import DecodeError, MessageTooLargeError

# words(u32) type(u8) flags(u8) extra(u16), little-endian
_HEADER = struct.Struct("<IBBH")
_UINT32 = struct.Struct("<I")
_UINT64 = struct.Struct("<Q")
_INT64 = struct.Struct("<q")


def round_up(size: int) -> int:
    """Round `size` up to the next multiple of the word size."""
    return (size + WORD_SIZE - 1) // WORD_SIZE * WORD_SIZE


def pack_header(words: int, mtype: int, flags: int = 0, extra: int = 0) -> bytes:
    return _HEADER.pack(words, mtype, flags, extra)


def unpack_header(raw: Union[bytes, bytearray, memoryview]) -> Tuple[int, int, int, int]:
    """Decode the 8 header bytes into (words, type, flags, extra)."""
    if len(raw) != HEADER_SIZE:
        raise DecodeError(f"header must be {HEADER_SIZE} bytes, got {len(raw)}")
    return _HEADER.unpack(raw)


@dataclass
class Buffer:
    """Body storage plus the number of valid (written or consumed) bytes."""

    data: bytearray = field(default_factory=bytearray)
    offset: int = 0

    def view(self) -> memoryview:
        return memoryview(self.data)[: self.offset]


class Message:
    """
    One protocol frame, reusable across calls.

    Encoders append to `body1` and spill into `body2` once `body1` is full.
    On receive the whole body lands in `body1`, which is grown on demand up to
    `max_size`.
    """

    def __init__(self, capacity: int = STATIC_BUFFER_SIZE, max_size: int = MAX_MESSAGE_SIZE) -> None:
        self.max_size = max_size
        self.init(capacity)

    def init(self, capacity: int) -> None:
        """Allocate at least `capacity` bytes of primary storage and clear all state."""
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self.header = bytearray(HEADER_SIZE)
        self.body1 = Buffer(bytearray(round_up(capacity)))
        self.reset()

    def reset(self) -> None:
        """Clear header fields and offsets, keeping the primary storage."""
        self.words = 0
        self.mtype = 0
        self.flags = 0
        self.extra = 0
        self.header[:] = bytes(HEADER_SIZE)
        self.body1.offset = 0
        self.body2: Optional[Buffer] = None

    @property
    def capacity(self) -> int:
        return len(self.body1.data)

    @property
    def body_size(self) -> int:
        """Bytes currently written across both body buffers."""
        return self.body1.offset + (self.body2.offset if self.body2 is not None else 0)

    # --- Header ----------------------------------------------------------
    def encode_header(self) -> None:
        _HEADER.pack_into(self.header, 0, self.words, self.mtype, self.flags, self.extra)

    def decode_header(self, raw: Optional[Union[bytes, bytearray, memoryview]] = None) -> None:
        if raw is not None:
            self.header[:] = raw
        self.words, self.mtype, self.flags, self.extra = unpack_header(self.header)

    def finalize(self, mtype: int, flags: int = 0, extra: int = 0) -> None:
        """Pad the body to a word boundary and write the header for sending."""
        padding = round_up(self.body_size) - self.body_size
        if padding:
            self.put_bytes(bytes(padding))
        self.words = self.body_size // WORD_SIZE
        self.mtype = normalize_type(mtype)
        self.flags = flags
        self.extra = extra
        self.encode_header()

    # --- Body write ------------------------------------------------------
    def put_bytes(self, data: Union[bytes, bytearray]) -> None:
        size = len(data)
        if self.body_size + size > self.max_size:
            raise MessageTooLargeError(
                f"body of {self.body_size + size} bytes exceeds limit of {self.max_size} bytes"
            )
        if self.body2 is None:
            end = self.body1.offset + size
            if end <= len(self.body1.data):
                self.body1.data[self.body1.offset : end] = data
                self.body1.offset = end
                return
            self.body2 = Buffer()
        self.body2.data += data
        self.body2.offset += size

    def put_uint8(self, value: int) -> None:
        self.put_bytes(bytes((value,)))

    def put_uint32(self, value: int) -> None:
        self.put_bytes(_UINT32.pack(value))

    def put_uint64(self, value: int) -> None:
        self.put_bytes(_UINT64.pack(value))

    def put_int64(self, value: int) -> None:
        self.put_bytes(_INT64.pack(value))

    def put_string(self, value: str) -> None:
        """NUL-terminated UTF-8, zero padded to a whole number of words."""
        data = value.encode(ENCODING) + b"\x00"
        self.put_bytes(data + bytes(round_up(len(data)) - len(data)))

    def segments(self) -> List[memoryview]:
        """Body slices to put on the wire, primary first."""
        parts = [self.body1.view()]
        if self.body2 is not None:
            parts.append(self.body2.view())
        return parts

    # --- Body read -------------------------------------------------------
    def prepare_receive(self, size: int) -> memoryview:
        """Size the primary buffer for an incoming body of `size` bytes."""
        if size > self.max_size:
            raise MessageTooLargeError(f"incoming body of {size} bytes exceeds limit of {self.max_size} bytes")
        if size > len(self.body1.data):
            self.body1.data = bytearray(round_up(size))
        self.body1.offset = 0
        self.body2 = None
        return memoryview(self.body1.data)[:size]

    def body_bytes(self) -> bytes:
        """The received body, exactly `words * 8` bytes."""
        return bytes(self.body1.data[: self.words * WORD_SIZE])

    def has_more(self) -> bool:
        return self.body1.offset < self.words * WORD_SIZE

    def _read(self, size: int) -> memoryview:
        limit = self.words * WORD_SIZE
        start = self.body1.offset
        end = start + size
        if end > limit:
            raise DecodeError(f"read of {size} bytes at offset {start} overruns {limit} byte body")
        self.body1.offset = end
        return memoryview(self.body1.data)[start:end]

    def get_uint8(self) -> int:
        return self._read(1)[0]

    def get_uint32(self) -> int:
        return _UINT32.unpack(self._read(4))[0]

    def get_uint64(self) -> int:
        return _UINT64.unpack(self._read(8))[0]

    def get_int64(self) -> int:
        return _INT64.unpack(self._read(8))[0]

    def get_string(self) -> str:
        limit = self.words * WORD_SIZE
        start = self.body1.offset
        end = self.body1.data.find(b"\x00", start, limit)
        if end < 0:
            raise DecodeError(f"unterminated string at offset {start}")
        raw = bytes(self.body1.data[start:end])
        self._read(round_up(end - start + 1))
        try:
            return raw.decode(ENCODING)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid string at offset {start}: {exc}") from exc

    def __repr__(self) -> str:
        return (
            f"Message(words={self.words}, type={self.mtype}, flags={self.flags}, "
            f"extra={self.extra}, body={self.body_size})"
        )


__all__ = ["Message", "Buffer", "pack_header", "unpack_header", "round_up"]
