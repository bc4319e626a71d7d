import heapq
import itertools
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

ETB_CHAR = chr(23) # end of transmission block, terminates every compressed stream
ETB_LABEL = "<ETB>"


class HuffmanError(ValueError):
    """Base class for everything the codec refuses to do."""


class CorpusError(HuffmanError):
    pass


class UnknownSymbolError(HuffmanError):
    def __init__(self, symbol, position: int):
        super().__init__(f"symbol {symbol!r} at position {position} is not in the code book")
        self.symbol = symbol
        self.position = position


class TruncatedInputError(HuffmanError):
    def __init__(self, bits_read: int):
        super().__init__(f"compressed stream ended after {bits_read} bits without an end of transmission marker")
        self.bits_read = bits_read


class CorruptInputError(HuffmanError):
    def __init__(self, bits_read: int):
        super().__init__(f"bit {bits_read} does not follow any codeword")
        self.bits_read = bits_read


class HuffmanNode: # Node for Huffman trie
    def __init__(self, symbol, weight, left=None, right=None, sentinel=False, order=0):
        self.symbol = symbol    # character or None
        self.weight = weight
        self.left = left
        self.right = right
        self.sentinel = sentinel # True only for the ETB leaf seeded by the codec
        self.order = order      # creation sequence within one build

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def sort_key(self) -> Tuple[int, int, int, int]:
        # leaves sort before internal nodes of equal weight, leaves by code point
        if self.is_leaf():
            return (self.weight, 0, ord(self.symbol), self.order)
        return (self.weight, 1, 0, self.order)

    def __lt__(self, other):
        return self.sort_key() < other.sort_key() # allows heapq to keep a deterministic min-heap

    def __repr__(self):
        if self.is_leaf():
            label = ETB_LABEL if self.sentinel else repr(self.symbol)
            return f"HuffmanNode({label}, {self.weight})"
        return f"HuffmanNode(<internal>, {self.weight})"


def frequency_table(corpus: Iterable[str]) -> Dict[str, int]: # corpus: str or any iterable of single characters
    ft: Dict[str, int] = {}
    for position, symbol in enumerate(corpus):
        if not isinstance(symbol, str) or len(symbol) != 1:
            raise CorpusError(f"corpus item {symbol!r} at position {position} is not a single character")
        ft[symbol] = ft.get(symbol, 0) + 1
    return ft


def build_huffman_trie(frequencies: Mapping[str, int]) -> HuffmanNode:
    order = itertools.count()
    priority_queue = [HuffmanNode(ETB_CHAR, 1, sentinel=True, order=next(order))]
    for symbol, weight in sorted(frequencies.items()):
        if isinstance(weight, bool) or not isinstance(weight, int) or weight <= 0:
            raise CorpusError(f"weight of {symbol!r} must be a positive integer, got {weight!r}")
        priority_queue.append(HuffmanNode(symbol, weight, order=next(order)))
    heapq.heapify(priority_queue)

    # Merge the two lightest nodes until only the root is left
    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.weight + right.weight, left, right, order=next(order))
        heapq.heappush(priority_queue, merged_node)

    return priority_queue[0]


class CodeBook:
    """
    Read-only mapping of corpus symbols to codewords ('0'/'1' strings).
    The sentinel codeword lives in `sentinel`, never under a symbol key.
    """

    def __init__(self, codes: Dict[str, str], sentinel: str):
        self._codes = MappingProxyType(dict(codes))
        self._sentinel = sentinel
        self._packed = {symbol: (int(code, 2), len(code)) for symbol, code in codes.items()}
        self._packed_sentinel = (int(sentinel, 2), len(sentinel))

    @property
    def codes(self) -> Mapping[str, str]:
        return self._codes

    @property
    def sentinel(self) -> str:
        return self._sentinel

    def __getitem__(self, symbol: str) -> str:
        return self._codes[symbol]

    def __contains__(self, symbol) -> bool:
        return symbol in self._codes

    def __len__(self) -> int:
        return len(self._codes)

    def __eq__(self, other):
        if not isinstance(other, CodeBook):
            return NotImplemented
        return self._sentinel == other._sentinel and dict(self._codes) == dict(other._codes)

    def packed(self, symbol: str) -> Tuple[int, int]:
        return self._packed[symbol]

    def packed_sentinel(self) -> Tuple[int, int]:
        return self._packed_sentinel

    def table(self) -> List[Tuple[str, str]]:
        rows = [(ETB_LABEL, self._sentinel)]
        rows.extend(sorted(self._codes.items()))
        return rows

    def __repr__(self):
        entries = ", ".join(f"{label!r}: {code}" for label, code in self.table())
        return f"CodeBook({{{entries}}})"


def generate_huffman_codes(root: HuffmanNode) -> CodeBook:
    codes: Dict[str, str] = {}
    sentinel: Optional[str] = None

    stack = [(root, "")]
    while stack:
        node, path = stack.pop()
        if node.is_leaf():
            code = path or "0" # a trie made of one leaf still needs a bit to emit
            if node.sentinel:
                sentinel = code
            else:
                codes[node.symbol] = code
            continue
        stack.append((node.right, path + "1"))
        stack.append((node.left, path + "0"))

    if sentinel is None:
        raise CorpusError("trie has no end of transmission leaf")
    return CodeBook(codes, sentinel)


def pack_codes(codes: Iterable[Tuple[int, int]]) -> Tuple[bytes, int]:
    """
    Packs (value, bit length) codewords MSB first.
    Returns (packed_bytes, pad_bits) where pad_bits is the number of 0 bits added at the end
    """
    out = bytearray()
    acc = 0
    acc_bits = 0

    for value, length in codes:
        acc = (acc << length) | value
        acc_bits += length
        while acc_bits >= 8:
            acc_bits -= 8
            out.append((acc >> acc_bits) & 0xFF)
        acc &= (1 << acc_bits) - 1

    pad_bits = 0
    if acc_bits != 0:
        pad_bits = 8 - acc_bits
        out.append((acc << pad_bits) & 0xFF)

    return bytes(out), pad_bits


def _message_codes(message: Iterable[str], codebook: CodeBook):
    for position, symbol in enumerate(message):
        try:
            code = codebook.packed(symbol)
        except (KeyError, TypeError):
            raise UnknownSymbolError(symbol, position) from None
        yield code
    yield codebook.packed_sentinel()


def encode(message: Iterable[str], codebook: CodeBook) -> bytes:
    packed, _ = pack_codes(_message_codes(message, codebook))
    return packed


def decode(data: bytes, root: HuffmanNode) -> str:
    decoded: List[str] = []
    node = root
    bits_read = 0

    for byte in data:
        for i in range(7, -1, -1):
            bit = (byte >> i) & 1
            bits_read += 1
            if root.is_leaf():
                # Single leaf trie: its only codeword is "0"
                if bit:
                    raise CorruptInputError(bits_read)
            else:
                node = node.right if bit == 1 else node.left
                if not node.is_leaf():
                    continue

            # Leaf
            if node.sentinel:
                return "".join(decoded) # padding after the marker is never read
            decoded.append(node.symbol)
            node = root

    raise TruncatedInputError(bits_read)


class HuffmanCodec:
    """
    Reusable Huffman code built from the character distribution of a
    reference corpus. Messages with a similar distribution compress well;
    messages using characters the corpus never had cannot be encoded.
    A message may be any iterable of characters, but decode always
    returns the characters joined into a `str`.

    The trie and code book are built once here and never mutated, so one
    codec may serve any number of encode/decode calls.
    """

    def __init__(self, corpus: Iterable[str]):
        self.frequencies: Mapping[str, int] = MappingProxyType(frequency_table(corpus))
        self.root = build_huffman_trie(self.frequencies)
        self.codebook = generate_huffman_codes(self.root)

    def encode(self, message: Iterable[str]) -> bytes:
        return encode(message, self.codebook)

    def decode(self, data: bytes) -> str:
        return decode(data, self.root)

    def encoded_bit_length(self, message: Iterable[str]) -> int:
        """Bits written for `message` including the sentinel, before padding."""
        return sum(length for _, length in _message_codes(message, self.codebook))

    def average_code_length(self) -> float:
        total = sum(self.frequencies.values())
        if total == 0:
            return 0.0
        bits = sum(weight * len(self.codebook[symbol]) for symbol, weight in self.frequencies.items())
        return bits / total

    def __repr__(self):
        return f"HuffmanCodec(symbols={len(self.codebook)}, sentinel={self.codebook.sentinel!r})"
