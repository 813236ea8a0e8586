"""
huffzip: compress and decompress files with Huffman coding

How to run:
  python huffzip.py compress notes.txt
  python huffzip.py compress notes.txt -o notes.huff --table english.json
  python huffzip.py decompress notes.txt.huff -o notes.copy.txt
  python huffzip.py build-table corpus.txt -o english.json
  python huffzip.py codes notes.txt
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import compressor
import huffman as huff

logger = logging.getLogger("huffzip")


def cmd_compress(args: argparse.Namespace) -> None:
    table = compressor.load_table(args.table) if args.table else None
    output_path = compressor.compress_file(args.input, args.output, frequency_table=table)
    original = os.path.getsize(args.input)
    compressed = os.path.getsize(output_path)
    print(f"{args.input} -> {output_path}: {original} -> {compressed} bytes")


def cmd_decompress(args: argparse.Namespace) -> None:
    output_path = compressor.decompress_file(args.input, args.output)
    print(f"{args.input} -> {output_path}")


def cmd_build_table(args: argparse.Namespace) -> None:
    ft = compressor.frequency_table_from_file(args.input)
    compressor.save_table(ft, args.output)
    print(f"Wrote {len(ft)} symbols to {args.output}")


def cmd_codes(args: argparse.Namespace) -> None:
    ft = compressor.frequency_table_from_file(args.input)
    codes = huff.generate_huffman_codes(huff.build_huffman_tree(ft))
    for symbol in sorted(codes, key=lambda s: (len(codes[s]), s)):
        print(f"{symbol:3d}  {chr(symbol)!r:8}  {ft[symbol]:>10}  {codes[symbol]}")
    if ft:
        print(f"Average code length: {huff.average_code_length(ft, codes):.3f} bits, "
              f"entropy: {huff.entropy(ft):.3f} bits")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffzip", description="Huffman file compressor")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("compress", help="Compress a file")
    p.add_argument("input")
    p.add_argument("-o", "--output", default=None, help=f"Output path (default: INPUT{compressor.SUFFIX})")
    p.add_argument("-t", "--table", default=None, help="Compress with a saved frequency table instead of counting INPUT")
    p.set_defaults(func=cmd_compress)

    p = sub.add_parser("decompress", help="Decompress a file")
    p.add_argument("input")
    p.add_argument("-o", "--output", default=None, help=f"Output path (default: INPUT without {compressor.SUFFIX})")
    p.set_defaults(func=cmd_decompress)

    p = sub.add_parser("build-table", help="Count INPUT and save its frequency table as JSON")
    p.add_argument("input")
    p.add_argument("-o", "--output", required=True)
    p.set_defaults(func=cmd_build_table)

    p = sub.add_parser("codes", help="Print the code table of INPUT")
    p.add_argument("input")
    p.set_defaults(func=cmd_codes)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except (compressor.CompressorError, huff.HuffmanError) as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"huffzip: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
