import io

import pytest

import bitio
from bitio import BitReader, BitWriter


def test_writer_packs_msb_first_and_pads_with_zeros():
    sink = io.BytesIO()
    with BitWriter(sink) as writer:
        for bit in (True, False, True):
            writer.write_bit(bit)
    assert writer.bits_written == 3
    assert sink.getvalue() == b"\xa0"


def test_writer_full_bytes_need_no_padding():
    sink = io.BytesIO()
    with BitWriter(sink) as writer:
        for ch in "1111000000001111":
            writer.write_bit(ch == "1")
    assert sink.getvalue() == b"\xf0\x0f"


def test_writer_flushes_large_output():
    sink = io.BytesIO()
    with BitWriter(sink) as writer:
        for _ in range((bitio.BLOCK + 10) * 8):
            writer.write_bit(True)
    assert sink.getvalue() == b"\xff" * (bitio.BLOCK + 10)


def test_write_after_close():
    writer = BitWriter(io.BytesIO())
    writer.close()
    writer.close()
    with pytest.raises(ValueError):
        writer.write_bit(True)


def test_reader_returns_every_bit_including_padding():
    reader = BitReader(io.BytesIO(b"\xa0"))
    bits = []
    while reader.has_next():
        bits.append(reader.read_bit())
    assert bits == [True, False, True, False, False, False, False, False]
    assert reader.position == 8


def test_reader_on_empty_stream():
    reader = BitReader(io.BytesIO(b""))
    assert not reader.has_next()
    with pytest.raises(EOFError):
        reader.read_bit()


def test_reader_crosses_block_boundary():
    data = bytes(range(256)) * (bitio.BLOCK // 256 + 1)
    with BitReader(io.BytesIO(data)) as reader:
        out = bytearray()
        while reader.has_next():
            byte = 0
            for _ in range(8):
                byte = (byte << 1) | reader.read_bit()
            out.append(byte)
    assert bytes(out) == data


def test_open_owns_the_file(tmp_path):
    path = str(tmp_path / "bits.bin")
    writer = BitWriter.open(path)
    with writer:
        for ch in "10000001":
            writer.write_bit(ch == "1")
    assert writer.stream.closed

    reader = BitReader.open(path)
    with reader:
        assert [reader.read_bit() for _ in range(8)] == [True] + [False] * 6 + [True]
        assert not reader.has_next()
    assert reader.stream.closed


def test_borrowed_stream_stays_open():
    sink = io.BytesIO()
    with BitWriter(sink) as writer:
        writer.write_bit(True)
    assert not sink.closed
