import json
import struct
from typing import Callable, Dict, Optional

from bitops import decode, encode_bits
from huffman import HuffmanNode, build_tree, count_symbols, generate_codes

MAGIC = b"HUF1"  #: Container magic number
VERSION = 1  #: Container format version

_HEADER = struct.Struct("<4sBI")
_BODY = struct.Struct("<QI")


class HuffmanCodec:
    """Text coder running the full Huffman pipeline.

    Encoded containers are laid out as (little-endian):

    - Magic: ``b"HUF1"`` (4 bytes)
    - Version: uint8
    - Symbol count: uint32 (the container ends here when it is 0)
    - Bit length of the payload: uint64
    - Frequency table length: uint32
    - Frequency table: UTF-8 JSON list of ``[symbol, count]`` pairs in the
      order leaves were inserted into the tree
    - Payload: packed Huffman codes

    :ivar frequencies: Frequency table of the last processed text.
    :type frequencies: Dict[str, int]
    :ivar tree: Huffman tree of the last processed text.
    :type tree: HuffmanNode | None
    :ivar codes: Code table of the last processed text.
    :type codes: Dict[str, str]
    """

    def __init__(self):
        """Initialize an empty codec.

        :returns: None
        :rtype: None
        """
        self.frequencies: Dict[str, int] = {}
        self.tree: Optional[HuffmanNode] = None
        self.codes: Dict[str, str] = {}

    def _prepare(self, frequencies: Dict[str, int]):
        self.frequencies = dict(frequencies)
        self.tree = build_tree(self.frequencies)
        self.codes = generate_codes(self.tree)

    def compress(
        self,
        text: str,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> bytes:
        """Encode ``text`` into a self-describing container.

        :param text: Text to encode; every character is one symbol.
        :type text: str
        :param on_progress: Optional callback ``on_progress(done, total)``
                            called as symbols are packed, with symbol
                            counts.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Container bytes. For empty input only the header is written.
        :rtype: bytes
        """
        if not text:
            self.frequencies, self.tree, self.codes = {}, None, {}
            return _HEADER.pack(MAGIC, VERSION, 0)

        self._prepare(count_symbols(text))
        if on_progress is not None:
            on_progress(0, len(text))

        payload, bit_length = encode_bits(text, self.codes, on_progress)

        table = json.dumps(
            [[sym, freq] for sym, freq in self.frequencies.items()],
            ensure_ascii=False,
        ).encode("utf-8", "surrogatepass")
        return b"".join(
            (
                _HEADER.pack(MAGIC, VERSION, len(text)),
                _BODY.pack(bit_length, len(table)),
                table,
                payload,
            )
        )

    def decompress(
        self,
        data: bytes,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> str:
        """Decode a container produced by :meth:`compress`.

        :param data: Container bytes.
        :type data: bytes
        :param on_progress: Optional callback ``on_progress(done, total)``
                            called as bits are decoded, with the number
                            of symbols recovered estimated from the bits
                            consumed.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: The original text.
        :rtype: str
        :raises ValueError: If the magic or version is wrong, the frequency
            table is malformed, or the payload does not decode to the
            recorded number of symbols, or bytes follow the payload.
        :raises EOFError: If the container is truncated.
        """
        if len(data) < _HEADER.size:
            raise EOFError("Unexpected end of data")
        magic, version, count = _HEADER.unpack_from(data, 0)
        if magic != MAGIC:
            raise ValueError("Invalid container format (bad magic)")
        if version != VERSION:
            raise ValueError(f"Unsupported version: {version}")
        if count == 0:
            self.frequencies, self.tree, self.codes = {}, None, {}
            return ""

        pos = _HEADER.size
        if len(data) < pos + _BODY.size:
            raise EOFError("Unexpected end of data")
        bit_length, table_len = _BODY.unpack_from(data, pos)
        pos += _BODY.size
        if len(data) < pos + table_len:
            raise EOFError("Unexpected end of data")
        self._prepare(self._load_table(data[pos:pos + table_len]))
        pos += table_len

        payload = data[pos:]
        if len(payload) > (bit_length + 7) // 8:
            raise ValueError(
                f"{len(payload) - (bit_length + 7) // 8} unexpected bytes "
                "after the payload"
            )

        bit_progress = None
        if on_progress is not None:
            on_progress(0, count)
            bit_progress = _SymbolProgress(on_progress, count)

        symbols = decode(payload, self.tree, bit_length, bit_progress)
        if len(symbols) != count:
            raise ValueError(
                f"Decoded {len(symbols)} symbols, expected {count}"
            )

        return "".join(symbols)

    @staticmethod
    def _load_table(raw: bytes) -> Dict[str, int]:
        """Parse the JSON frequency table stored in a container.

        :param raw: UTF-8 JSON bytes; lone surrogates are allowed.
        :type raw: bytes
        :returns: Frequency table in stored order.
        :rtype: Dict[str, int]
        :raises ValueError: If the table is not a list of
            ``[symbol, count]`` pairs.
        """
        try:
            pairs = json.loads(raw.decode("utf-8", "surrogatepass"))
            table = {sym: freq for sym, freq in pairs}
        except (UnicodeDecodeError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed frequency table: {e}") from e
        for sym, freq in table.items():
            if not isinstance(sym, str) or not isinstance(freq, int):
                raise ValueError(
                    f"Malformed frequency table entry: {sym!r}: {freq!r}"
                )
        return table


class _SymbolProgress:
    """Turn ``(bits, total_bits)`` decode progress into symbol counts.

    :ivar callback: Callback receiving ``(symbols, total_symbols)``.
    :type callback: Callable[[int, int], None]
    :ivar count: Number of symbols in the container.
    :type count: int
    """

    def __init__(self, callback: Callable[[int, int], None], count: int):
        self.callback = callback
        self.count = count

    def __call__(self, done: int, total: int) -> None:
        if total <= 0:
            return
        self.callback(min(self.count, done * self.count // total), self.count)
