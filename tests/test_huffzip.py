import huffzip


def test_compress_and_decompress(tmp_path, capsys):
    src = tmp_path / "story.txt"
    src.write_bytes(b"once upon a time " * 40)
    assert huffzip.main(["compress", str(src)]) == 0
    assert "story.txt.huff" in capsys.readouterr().out

    out = tmp_path / "copy.txt"
    assert huffzip.main(["decompress", str(src) + ".huff", "-o", str(out)]) == 0
    assert out.read_bytes() == src.read_bytes()


def test_build_table_then_compress_with_it(tmp_path, capsys):
    corpus = tmp_path / "corpus.txt"
    corpus.write_bytes(b"abcdefghijklmnopqrstuvwxyz " * 10)
    table = tmp_path / "table.json"
    assert huffzip.main(["build-table", str(corpus), "-o", str(table)]) == 0
    assert "27 symbols" in capsys.readouterr().out

    src = tmp_path / "msg.txt"
    src.write_bytes(b"hello there")
    assert huffzip.main(["compress", str(src), "--table", str(table), "-o", str(tmp_path / "msg.huff")]) == 0
    assert huffzip.main(["decompress", str(tmp_path / "msg.huff"), "-o", str(tmp_path / "msg.out")]) == 0
    assert (tmp_path / "msg.out").read_bytes() == b"hello there"


def test_codes(tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_bytes(b"aab")
    assert huffzip.main(["codes", str(src)]) == 0
    out = capsys.readouterr().out
    assert " 97  'a'" in out
    assert "Average code length: 1.000 bits" in out


def test_missing_file_exit_code(tmp_path, capsys):
    assert huffzip.main(["compress", str(tmp_path / "missing.txt")]) == 1
    assert capsys.readouterr().err.startswith("huffzip: cannot read")


def test_symbol_missing_from_table(tmp_path, capsys):
    table = tmp_path / "table.json"
    table.write_text('{"97": 1}')
    src = tmp_path / "in.txt"
    src.write_bytes(b"ab")
    assert huffzip.main(["compress", str(src), "-t", str(table)]) == 1
    assert "huffzip:" in capsys.readouterr().err


def test_compress_onto_itself_keeps_input(tmp_path, capsys):
    src = tmp_path / "keep.txt"
    src.write_bytes(b"precious")
    assert huffzip.main(["compress", str(src), "-o", str(src)]) == 1
    assert src.read_bytes() == b"precious"
    assert "refusing to overwrite" in capsys.readouterr().err
