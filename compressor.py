"""
File level compression runs

A compressed file carries its own frequency table so it can be decompressed
without the original:

    magic      4 bytes   b"HUFZ"
    version    1 byte
    length     8 bytes   number of symbols encoded in the payload
    n          2 bytes   number of distinct symbols
    n entries  9 bytes   symbol (1 byte) + count (8 bytes)
    payload              packed bitstream, zero padded to a whole byte

All integers are big endian. The decoder rebuilds the same tree from the table
and stops after length symbols, so the padding bits are never decoded.
"""

import json
import logging
import os
import struct
from typing import Dict, Optional, Tuple

import huffman as huff
from bitio import BitReader, BitWriter

logger = logging.getLogger(__name__)

BLOCK = 4096
MAGIC = b"HUFZ"
VERSION = 1
SUFFIX = ".huff"

_HEADER = struct.Struct(">4sBQH")
_ENTRY = struct.Struct(">BQ")


class CompressorError(Exception):
    pass


class SourceUnavailable(CompressorError):
    pass


class SinkUnavailable(CompressorError):
    pass


class BadContainer(CompressorError):
    pass


def frequency_table_from_file(path: str) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    try:
        with open(path, "rb") as f:
            data = f.read(BLOCK)
            while data:
                for b in data:
                    ft[b] = ft.get(b, 0) + 1
                data = f.read(BLOCK)
    except OSError as e:
        raise SourceUnavailable(f"cannot read {path}: {e}") from e
    return ft


def save_table(frequency_table: Dict[int, int], path: str) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump({str(symbol): count for symbol, count in sorted(frequency_table.items())}, f)
    except OSError as e:
        raise SinkUnavailable(f"cannot write {path}: {e}") from e


def load_table(path: str) -> Dict[int, int]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise SourceUnavailable(f"cannot read {path}: {e}") from e
    except ValueError as e:
        raise BadContainer(f"{path} is not a frequency table: {e}") from e

    ft: Dict[int, int] = {}
    for key, count in raw.items():
        symbol = int(key)
        if not 0 <= symbol <= 255 or not isinstance(count, int) or count <= 0:
            raise BadContainer(f"{path}: bad entry {key!r}: {count!r}")
        ft[symbol] = count
    return ft


def write_header(stream, frequency_table: Dict[int, int], length: int) -> None:
    stream.write(_HEADER.pack(MAGIC, VERSION, length, len(frequency_table)))
    for symbol, count in sorted(frequency_table.items()):
        stream.write(_ENTRY.pack(symbol, count))


def read_header(stream) -> Tuple[Dict[int, int], int]:
    head = stream.read(_HEADER.size)
    if len(head) < _HEADER.size:
        raise BadContainer("header truncated")
    magic, version, length, n = _HEADER.unpack(head)
    if magic != MAGIC:
        raise BadContainer(f"bad magic {magic!r}")
    if version != VERSION:
        raise BadContainer(f"unsupported version {version}")
    if n > 256:
        raise BadContainer(f"{n} distinct symbols in the frequency table")

    ft: Dict[int, int] = {}
    for _ in range(n):
        entry = stream.read(_ENTRY.size)
        if len(entry) < _ENTRY.size:
            raise BadContainer("frequency table truncated")
        symbol, count = _ENTRY.unpack(entry)
        if symbol in ft:
            raise BadContainer(f"symbol {symbol} listed twice in the frequency table")
        ft[symbol] = count
    return ft, length


def compress_file(input_path: str, output_path: Optional[str] = None,
                  frequency_table: Optional[Dict[int, int]] = None) -> str:
    """
    Compress input_path into output_path (input_path + ".huff" by default)

    The frequency table is counted from the input unless one is given, in which
    case every byte of the input must have an entry in it.
    Returns the output path.
    """
    if output_path is None:
        output_path = input_path + SUFFIX
    _check_distinct(input_path, output_path)
    if frequency_table is None:
        frequency_table = frequency_table_from_file(input_path)

    root = huff.build_huffman_tree(frequency_table)
    code_map = huff.generate_huffman_codes(root)
    logger.debug("%s: %d distinct symbols", input_path, len(code_map))

    try:
        source = open(input_path, "rb")
    except OSError as e:
        raise SourceUnavailable(f"cannot read {input_path}: {e}") from e

    with source:
        try:
            sink = open(output_path, "wb")
        except OSError as e:
            raise SinkUnavailable(f"cannot write {output_path}: {e}") from e

        try:
            with sink:
                length = 0
                bit_count = 0
                try:
                    # Length is only known once the input is read, the header is rewritten after
                    write_header(sink, frequency_table, length)
                    with BitWriter(sink) as writer:
                        data = _read_block(source, input_path)
                        while data:
                            bit_count += huff.encode(data, code_map, writer)
                            length += len(data)
                            data = _read_block(source, input_path)
                    sink.seek(0)
                    write_header(sink, frequency_table, length)
                except OSError as e:
                    raise SinkUnavailable(f"cannot write {output_path}: {e}") from e
        except BaseException:
            _discard(output_path)
            raise

    logger.info("compressed %s -> %s (%d bits)", input_path, output_path, bit_count)
    return output_path


def _check_distinct(input_path: str, output_path: str) -> None:
    # Opening the sink would truncate the source before it is read
    if os.path.exists(input_path) and os.path.exists(output_path) and os.path.samefile(input_path, output_path):
        raise SinkUnavailable(f"refusing to overwrite the input {input_path}")


def _discard(path: str) -> None:
    # A half written output must not pass for a complete one
    try:
        os.remove(path)
    except OSError as e:
        logger.warning("could not remove partial output %s: %s", path, e)


def _read_block(source, path: str) -> bytes:
    try:
        return source.read(BLOCK)
    except OSError as e:
        raise SourceUnavailable(f"cannot read {path}: {e}") from e


def decompress_file(input_path: str, output_path: Optional[str] = None) -> str:
    """
    Decompress a file written by compress_file
    Returns the output path.
    """
    if output_path is None:
        if input_path.endswith(SUFFIX):
            output_path = input_path[:-len(SUFFIX)]
        else:
            output_path = input_path + ".out"
    _check_distinct(input_path, output_path)

    try:
        reader = BitReader.open(input_path)
    except OSError as e:
        raise SourceUnavailable(f"cannot read {input_path}: {e}") from e

    with reader:
        try:
            frequency_table, total = read_header(reader.stream)
        except OSError as e:
            raise SourceUnavailable(f"cannot read {input_path}: {e}") from e
        root = huff.build_huffman_tree(frequency_table)
        logger.debug("%s: %d symbols, %d distinct", input_path, total, len(frequency_table))

        try:
            sink = open(output_path, "wb")
        except OSError as e:
            raise SinkUnavailable(f"cannot write {output_path}: {e}") from e

        try:
            with sink:
                buffer = bytearray()
                symbols = huff.iter_decode(root, reader, symbol_count=total)
                while True:
                    try:
                        symbol = next(symbols)
                    except StopIteration:
                        break
                    except OSError as e:
                        raise SourceUnavailable(f"cannot read {input_path}: {e}") from e
                    buffer.append(symbol)
                    if len(buffer) >= BLOCK:
                        _write_block(sink, buffer, output_path)
                _write_block(sink, buffer, output_path)
        except BaseException:
            _discard(output_path)
            raise

    logger.info("decompressed %s -> %s (%d bytes)", input_path, output_path, total)
    return output_path


def _write_block(sink, buffer: bytearray, path: str) -> None:
    try:
        sink.write(bytes(buffer))
    except OSError as e:
        raise SinkUnavailable(f"cannot write {path}: {e}") from e
    buffer.clear()
