import heapq
from collections import Counter
from typing import Dict, Hashable, Iterable, List, Tuple, Union


class HuffmanError(Exception):
    """Base class for Huffman coding contract violations."""


class EmptyQueueError(HuffmanError, IndexError):
    """Raised when extracting from an empty priority queue."""


class InvalidInputError(HuffmanError, ValueError):
    """Raised when a tree cannot be built from the given frequencies."""


class UnknownSymbolError(HuffmanError, ValueError):
    """Raised when a symbol has no entry in the code table.

    :ivar symbol: The offending symbol.
    """

    def __init__(self, symbol):
        super().__init__(f"Symbol {symbol!r} does not have a Huffman code")
        self.symbol = symbol


class Leaf:
    """Leaf of a Huffman tree: one symbol and its frequency.

    :ivar symbol: The symbol stored at this leaf.
    :type symbol: Hashable
    :ivar freq: Number of occurrences of ``symbol``.
    :type freq: int
    """

    is_leaf = True

    def __init__(self, symbol: Hashable, freq: int):
        self.symbol = symbol
        self.freq = freq

    def __repr__(self):
        return f"Leaf({self.symbol!r}, {self.freq})"


class Internal:
    """Internal node of a Huffman tree owning exactly two children.

    The frequency is always the sum of the children's frequencies.

    :ivar left: Subtree reached with bit ``0``.
    :type left: HuffmanNode
    :ivar right: Subtree reached with bit ``1``.
    :type right: HuffmanNode
    :ivar freq: Combined frequency of both subtrees.
    :type freq: int
    """

    is_leaf = False

    def __init__(self, left: "HuffmanNode", right: "HuffmanNode"):
        self.left = left
        self.right = right
        self.freq = left.freq + right.freq

    def __repr__(self):
        return f"Internal({self.freq}, {self.left!r}, {self.right!r})"


HuffmanNode = Union[Leaf, Internal]


class PriorityQueue:
    """Min-priority queue of tree nodes keyed by frequency.

    Backed by a binary heap kept in a list with :mod:`heapq`. Nodes with
    equal frequency come out in insertion order.
    """

    def __init__(self):
        self._heap: List[Tuple[int, int, HuffmanNode]] = []
        self._seq = 0

    def insert(self, node: HuffmanNode):
        """Add ``node`` to the queue.

        :param node: Node to add.
        :type node: HuffmanNode
        :returns: None
        :rtype: None
        """
        heapq.heappush(self._heap, (node.freq, self._seq, node))
        self._seq += 1

    def extract_min(self) -> HuffmanNode:
        """Remove and return the node with the smallest frequency.

        :returns: The lowest-frequency node.
        :rtype: HuffmanNode
        :raises EmptyQueueError: If the queue is empty.
        """
        if not self._heap:
            raise EmptyQueueError("Priority queue is empty")
        return heapq.heappop(self._heap)[2]

    def size(self) -> int:
        return len(self._heap)

    def __len__(self):
        return len(self._heap)


def count_symbols(symbols: Iterable[Hashable]) -> Counter:
    """Count occurrences of every symbol in ``symbols``.

    Entries keep the order in which symbols first appear.

    :param symbols: Input sequence, e.g. a string.
    :type symbols: Iterable[Hashable]
    :returns: Mapping from symbol to occurrence count.
    :rtype: Counter
    """
    return Counter(symbols)


def merge_frequencies(tables: Iterable[Dict[Hashable, int]]) -> Counter:
    """Sum partial frequency tables, e.g. ones counted per input chunk.

    :param tables: Frequency tables to merge.
    :type tables: Iterable[Dict[Hashable, int]]
    :returns: Combined frequency table.
    :rtype: Counter
    """
    merged = Counter()
    for table in tables:
        merged.update(table)
    return merged


def build_tree(
    frequencies: Dict[Hashable, int], order_by_symbol: bool = False
) -> HuffmanNode:
    """Build a Huffman tree by repeatedly merging the two rarest nodes.

    The first node popped becomes the left child, the second the right one.
    With a single distinct symbol the returned root is a :class:`Leaf`.

    :param frequencies: Mapping from symbol to occurrence count.
    :type frequencies: Dict[Hashable, int]
    :param order_by_symbol: Insert leaves sorted by symbol instead of in
        table order, so ties are broken by symbol value.
    :type order_by_symbol: bool
    :returns: Root of the finished tree.
    :rtype: HuffmanNode
    :raises InvalidInputError: If ``frequencies`` is empty or holds a
        non-positive count.
    """
    if not frequencies:
        raise InvalidInputError("Cannot build a Huffman tree without symbols")

    items = frequencies.items()
    if order_by_symbol:
        items = sorted(items)

    queue = PriorityQueue()
    for symbol, freq in items:
        if freq <= 0:
            raise InvalidInputError(
                f"Symbol {symbol!r} has non-positive frequency {freq}"
            )
        queue.insert(Leaf(symbol, freq))

    while queue.size() > 1:
        left = queue.extract_min()
        right = queue.extract_min()
        queue.insert(Internal(left, right))

    return queue.extract_min()


def generate_codes(root: HuffmanNode) -> Dict[Hashable, str]:
    """Derive the code table of a finished tree.

    Each code is the root-to-leaf path, ``0`` for left and ``1`` for right.
    A tree made of a single leaf assigns the code ``"0"`` to its symbol.

    :param root: Root of a tree produced by :func:`build_tree`.
    :type root: HuffmanNode
    :returns: Mapping from symbol to its bit string.
    :rtype: Dict[Hashable, str]
    """
    if root.is_leaf:
        return {root.symbol: "0"}

    codes: Dict[Hashable, str] = {}
    stack = [(root, "")]
    while stack:
        node, path = stack.pop()
        if node.is_leaf:
            codes[node.symbol] = path
        else:
            stack.append((node.right, path + "1"))
            stack.append((node.left, path + "0"))
    return codes


def iter_leaves(root: HuffmanNode) -> Iterable[Leaf]:
    """Yield the leaves of a tree from left to right."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_leaf:
            yield node
        else:
            stack.append(node.right)
            stack.append(node.left)
