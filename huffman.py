import heapq
import io
import itertools
import math
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from bitio import BitReader, BitWriter


class HuffmanError(Exception):
    pass


class MalformedBitstream(HuffmanError):
    """Raised when the bitstream does not belong to the tree it is decoded with."""


class UnknownSymbol(HuffmanError, KeyError):
    """Raised when the encoder meets a symbol that has no code."""

    def __str__(self):
        return str(self.args[0]) # KeyError would quote the message


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency, left=None, right=None):
        self.symbol = symbol    # byte or None
        self.frequency = frequency
        self.left = left
        self.right = right

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol!r}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency})"


def frequency_table(data: Iterable[int]) -> Dict[int, int]: # data: bytes or any iterable of symbols
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft


def build_forest(frequency_table: Dict[int, int]) -> Tuple[List[tuple], Iterator[int]]:
    """
    Wrap every symbol as a leaf and load them into a min-heap

    Heap entries are (frequency, sequence, node). Leaves are pushed in ascending
    symbol order and every later push takes the next sequence number, so ties on
    frequency go to the tree that entered the heap first. The sequence counter is
    returned so the tree builder keeps numbering from where the forest stopped.
    """
    sequence = itertools.count()
    forest: List[tuple] = []
    for symbol in sorted(frequency_table):
        forest.append((frequency_table[symbol], next(sequence), HuffmanNode(symbol, frequency_table[symbol])))
    heapq.heapify(forest)
    return forest, sequence


def build_huffman_tree(frequency_table: Dict[int, int]) -> Optional[HuffmanNode]: # frequency_table: dict of symbol -> frequency
    priority_queue, sequence = build_forest(frequency_table)
    if not priority_queue:
        return None # empty input, no tree

    # Build the tree, first removed becomes the left child
    while len(priority_queue) > 1:
        _, _, left = heapq.heappop(priority_queue)
        _, _, right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.frequency + right.frequency, left, right)
        heapq.heappush(priority_queue, (merged_node.frequency, next(sequence), merged_node))

    return priority_queue[0][2] # root of the tree, a bare leaf for a single symbol


def iter_leaves(root: Optional[HuffmanNode]) -> Iterator[HuffmanNode]:
    stack = [root] if root is not None else []
    while stack:
        node = stack.pop()
        if node.is_leaf():
            yield node
        else:
            stack.append(node.right)
            stack.append(node.left)


def generate_huffman_codes(root: Optional[HuffmanNode]) -> Dict[int, str]: # root: root of the Huffman tree
    codes: Dict[int, str] = {}
    if root is None:
        return codes

    # A lone leaf has no edge to walk, it gets a one bit code
    if root.is_leaf():
        codes[root.symbol] = "0"
        return codes

    stack = [(root, "")]
    while stack:
        node, current_code = stack.pop()
        if node.is_leaf():
            codes[node.symbol] = current_code
            continue
        stack.append((node.right, current_code + "1"))
        stack.append((node.left, current_code + "0"))

    return codes # mapping of symbols to their Huffman codes


def encode(data: Iterable[int], code_map: Dict[int, str], writer: BitWriter) -> int:
    """
    Write the code of every symbol of data to writer, in order
    Returns the number of bits written (padding excluded)
    """
    bit_count = 0
    for symbol in data:
        try:
            code = code_map[symbol]
        except KeyError:
            raise UnknownSymbol(f"byte {symbol} has no code in the table") from None
        for ch in code:
            writer.write_bit(ch == "1")
        bit_count += len(code)
    return bit_count


def encode_bytes(data: bytes, code_map: Dict[int, str]) -> Tuple[bytes, int]:
    """
    Encode data into packed bytes
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    sink = io.BytesIO()
    with BitWriter(sink) as writer:
        bit_count = encode(data, code_map, writer)
    return sink.getvalue(), -bit_count % 8


def iter_decode(root: Optional[HuffmanNode], reader: BitReader, symbol_count: Optional[int] = None) -> Iterator[int]:
    """
    Walk the tree one bit at a time and yield a symbol for every leaf reached

    Without symbol_count decoding runs until the reader is exhausted and a path
    left unfinished at the end is dropped as padding. With symbol_count exactly
    that many symbols are produced and the remaining bits are never read.
    """
    emitted = 0
    if symbol_count is not None and symbol_count <= 0:
        return

    if root is None:
        if reader.has_next() or symbol_count:
            raise MalformedBitstream("nothing to decode with an empty tree")
        return

    current = root
    bits_read = 0
    while reader.has_next():
        bit = reader.read_bit()
        bits_read += 1
        if root.is_leaf():
            # Every bit stands for the only symbol
            yield root.symbol
        else:
            current = current.right if bit else current.left
            if current is None:
                raise MalformedBitstream(f"no {'right' if bit else 'left'} child at bit {bits_read - 1}")
            if not current.is_leaf():
                continue
            yield current.symbol
            current = root
        emitted += 1
        if emitted == symbol_count:
            return

    if symbol_count is not None:
        raise MalformedBitstream(f"stream ended after {emitted} of {symbol_count} symbols")


def decode(root: Optional[HuffmanNode], reader: BitReader, symbol_count: Optional[int] = None) -> bytes:
    return bytes(iter_decode(root, reader, symbol_count))


def decode_bytes(packed: bytes, root: Optional[HuffmanNode], symbol_count: Optional[int] = None) -> bytes:
    with BitReader(io.BytesIO(packed)) as reader:
        return decode(root, reader, symbol_count)


def average_code_length(frequency_table: Dict[int, int], code_map: Dict[int, str]) -> float:
    total = sum(frequency_table.values())
    if total == 0:
        return 0.0
    return sum(count * len(code_map[symbol]) for symbol, count in frequency_table.items()) / total


def entropy(frequency_table: Dict[int, int]) -> float: # Shannon entropy in bits per symbol
    total = sum(frequency_table.values())
    h = 0.0
    for count in frequency_table.values():
        p = count / total
        h -= p * math.log2(p)
    return h
