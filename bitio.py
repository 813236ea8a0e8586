"""
Bit level readers and writers over binary streams

Bits are packed most significant bit first. A writer pads its last partial
byte with 0 bits when it is closed; a reader hands back every bit of the
stream, padding included, and leaves it to the caller to know where the
meaningful bits stop.
"""

from typing import BinaryIO

BLOCK = 4096


class BitWriter:
    def __init__(self, stream: BinaryIO, owns_stream: bool = False):
        self.stream = stream
        self.owns_stream = owns_stream
        self.bits_written = 0
        self.closed = False
        self._acc = 0
        self._acc_bits = 0
        self._buffer = bytearray()

    @classmethod
    def open(cls, path: str, mode: str = "wb") -> "BitWriter":
        return cls(open(path, mode), owns_stream=True)

    def write_bit(self, bit: bool) -> None:
        if self.closed:
            raise ValueError("write to a closed BitWriter")
        self._acc = (self._acc << 1) | (1 if bit else 0)
        self._acc_bits += 1
        self.bits_written += 1
        if self._acc_bits == 8:
            self._buffer.append(self._acc)
            self._acc = 0
            self._acc_bits = 0
            if len(self._buffer) >= BLOCK:
                self._flush_buffer()

    def _flush_buffer(self) -> None:
        self.stream.write(bytes(self._buffer))
        self._buffer.clear()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            if self._acc_bits:
                self._buffer.append(self._acc << (8 - self._acc_bits))
                self._acc = 0
                self._acc_bits = 0
            self._flush_buffer()
            self.stream.flush()
        finally:
            if self.owns_stream:
                self.stream.close()

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BitReader:
    def __init__(self, stream: BinaryIO, owns_stream: bool = False):
        self.stream = stream
        self.owns_stream = owns_stream
        self.position = 0  # bits handed out so far
        self.closed = False
        self._data = b""
        self._index = 0
        self._mask = 0x80

    @classmethod
    def open(cls, path: str) -> "BitReader":
        return cls(open(path, "rb"), owns_stream=True)

    def has_next(self) -> bool:
        if self._index < len(self._data):
            return True
        self._data = self.stream.read(BLOCK)
        self._index = 0
        self._mask = 0x80
        return len(self._data) > 0

    def read_bit(self) -> bool:
        if not self.has_next():
            raise EOFError("read past the end of the bit stream")
        bit = (self._data[self._index] & self._mask) != 0
        self._mask >>= 1
        if self._mask == 0:
            self._mask = 0x80
            self._index += 1
        self.position += 1
        return bit

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.owns_stream:
            self.stream.close()

    def __enter__(self) -> "BitReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
