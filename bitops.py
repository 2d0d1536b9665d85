from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from huffman import HuffmanNode, UnknownSymbolError

PROGRESS_INTERVAL = 1024  #: Symbols between two progress callbacks


class BitWriter:
    """Bit-packing writer.

    Accumulates individual bits into bytes, most significant bit first, and
    buffers them until flushed.

    :ivar buffer: Internal byte buffer holding fully written bytes.
    :type buffer: bytearray
    :ivar bit_buffer: 8-bit scratch register for accumulating pending bits.
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    :ivar bit_length: Total number of bits written so far, padding excluded.
    :type bit_length: int
    """

    def __init__(self):
        """Initialize an empty bit writer.

        :returns: None
        :rtype: None
        """
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0
        self.bit_length = 0

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value`` to the buffer, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write.
        :type nbits: int
        :returns: None
        :rtype: None
        """
        for i in range(nbits - 1, -1, -1):
            self.bit_buffer = (self.bit_buffer << 1) | ((value >> i) & 1)
            self.bit_count += 1
            if self.bit_count == 8:
                self.buffer.append(self.bit_buffer)
                self.bit_buffer = 0
                self.bit_count = 0
        self.bit_length += nbits

    def flush(self) -> bytes:
        """Flush remaining bits (if any) and return the full byte buffer.

        Any partial byte in ``bit_buffer`` is padded with zeros on its low
        end to complete the byte before being appended.

        :returns: The accumulated bytes written so far.
        :rtype: bytes
        """
        if self.bit_count > 0:
            self.bit_buffer <<= (8 - self.bit_count)
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0
        return bytes(self.buffer)


class BitReader:
    """Bit-unpacking reader over a bytes-like object, MSB first.

    :ivar data: Input data to read bits from.
    :type data: bytes
    :ivar pos: Index of the next byte to load from ``data``.
    :type pos: int
    :ivar bit_buffer: Scratch register holding the current source byte.
    :type bit_buffer: int
    :ivar bit_count: Number of unread bits remaining in ``bit_buffer`` (0-8).
    :type bit_count: int
    """

    def __init__(self, data: bytes):
        """Create a bit reader for the given input ``data``.

        :param data: Source data to read from.
        :type data: bytes
        :returns: None
        :rtype: None
        """
        self.data = data
        self.pos = 0
        self.bit_buffer = 0
        self.bit_count = 0

    @property
    def bits_remaining(self) -> int:
        """Number of bits not read yet."""
        return self.bit_count + 8 * (len(self.data) - self.pos)

    def read_bit(self) -> int:
        """Read a single bit.

        :returns: ``0`` or ``1``.
        :rtype: int
        :raises EOFError: If all bits have been consumed.
        """
        if self.bit_count == 0:
            if self.pos >= len(self.data):
                raise EOFError("Unexpected end of data")
            self.bit_buffer = self.data[self.pos]
            self.pos += 1
            self.bit_count = 8
        self.bit_count -= 1
        return (self.bit_buffer >> self.bit_count) & 1

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits from the stream and return them as an integer.

        Bits are returned MSB-first in the integer.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The integer value composed of the next ``nbits`` bits.
        :rtype: int
        :raises EOFError: If the end of data is reached before reading ``nbits``.
        """
        result = 0
        for _ in range(nbits):
            result = (result << 1) | self.read_bit()
        return result


def encode_bits(
    symbols: Iterable[Hashable],
    codes: Dict[Hashable, str],
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> Tuple[bytes, int]:
    """Pack the codes of ``symbols`` and report the exact bit count.

    :param symbols: Sequence of symbols to encode. Must support ``len()``
                    when ``on_progress`` is given.
    :type symbols: Iterable[Hashable]
    :param codes: Code table, symbol to ``"0"``/``"1"`` string.
    :type codes: Dict[Hashable, str]
    :param on_progress: Optional callback ``on_progress(done, total)`` called
                        every :data:`PROGRESS_INTERVAL` symbols and once at
                        the end, with symbol counts.
    :type on_progress: Optional[Callable[[int, int], None]]
    :returns: Tuple ``(packed, bit_length)``; ``packed`` is zero-padded to a
        whole number of bytes, ``bit_length`` excludes the padding.
    :rtype: Tuple[bytes, int]
    :raises UnknownSymbolError: If a symbol has no code in ``codes``.
    """
    packed_codes = {sym: (int(code, 2), len(code)) for sym, code in codes.items()}
    total = len(symbols) if on_progress is not None else 0
    writer = BitWriter()
    done = 0
    for symbol in symbols:
        try:
            value, length = packed_codes[symbol]
        except KeyError:
            raise UnknownSymbolError(symbol) from None
        writer.write_bits(value, length)
        done += 1
        if on_progress is not None and done % PROGRESS_INTERVAL == 0:
            on_progress(done, total)
    if on_progress is not None:
        on_progress(done, total)
    return writer.flush(), writer.bit_length


def encode(symbols: Iterable[Hashable], codes: Dict[Hashable, str]) -> bytes:
    """Pack the codes of ``symbols`` into bytes, MSB first.

    The unpadded bit length is not recorded; use :func:`encode_bits` when it
    is needed for an exact round trip.

    :raises UnknownSymbolError: If a symbol has no code in ``codes``.
    """
    return encode_bits(symbols, codes)[0]


def decode(
    data: bytes,
    root: HuffmanNode,
    bit_length: Optional[int] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> List[Hashable]:
    """Decode packed bits by walking the Huffman tree.

    Bit ``0`` moves to the left child, ``1`` to the right one; reaching a
    leaf emits its symbol and restarts at ``root``.

    Without ``bit_length`` every bit of ``data`` is consumed and an
    unfinished code at the end is taken as padding. Padding bits that happen
    to form a whole code are decoded as symbols in that mode.

    :param data: Packed bytes produced by :func:`encode`.
    :type data: bytes
    :param root: Root of the tree the codes were derived from.
    :type root: HuffmanNode
    :param bit_length: Exact number of meaningful bits in ``data``.
    :type bit_length: Optional[int]
    :param on_progress: Optional callback ``on_progress(done, total)`` called
                        every :data:`PROGRESS_INTERVAL` decoded symbols and
                        once at the end, with counts of bits consumed.
    :type on_progress: Optional[Callable[[int, int], None]]
    :returns: Decoded symbols.
    :rtype: List[Hashable]
    :raises EOFError: If ``bit_length`` exceeds the bits available.
    :raises ValueError: If a bit has no path in the tree, or the stream
        ends in the middle of a code while ``bit_length`` is given.
    """
    reader = BitReader(data)
    exact = bit_length is not None
    if not exact:
        bit_length = reader.bits_remaining
    elif bit_length > reader.bits_remaining:
        raise EOFError(
            f"Need {bit_length} bits but only {reader.bits_remaining} available"
        )

    out: List[Hashable] = []
    node = root
    for i in range(bit_length):
        bit = reader.read_bit()
        if root.is_leaf:
            if bit:
                raise ValueError("Invalid Huffman code")
        else:
            node = node.right if bit else node.left
            if not node.is_leaf:
                continue
        out.append(node.symbol)
        node = root
        if on_progress is not None and len(out) % PROGRESS_INTERVAL == 0:
            on_progress(i + 1, bit_length)

    if exact and node is not root:
        raise ValueError("Encoded stream ends in the middle of a code")
    if on_progress is not None:
        on_progress(bit_length, bit_length)
    return out
