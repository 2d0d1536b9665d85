import argparse
import codecs
import sys
import urllib.error
import urllib.request

from typing import Callable, Dict, List, Optional
from codec import HuffmanCodec

DEFAULT_SOURCE = (
    "https://raw.githubusercontent.com/kse-ua/algorithms/main/res/sherlock.txt"
)  #: Text fetched by ``roundtrip`` when no source is given
DEFAULT_OUTPUT = "encoded_text.bin"  #: Default encoded file for ``roundtrip``
FETCH_TIMEOUT = 30  #: Seconds to wait for a remote source


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Huffman text coder"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Encode a text file or URL"
    )
    encode.add_argument("source", help="Path or http(s) URL of the text")
    encode.add_argument(
        "-o", "--output", required=True, help="Output encoded file path"
    )
    encode.add_argument(
        "--encoding", default="utf-8", help="Text encoding (default: utf-8)"
    )
    encode.add_argument(
        "-c", "--show-codes", action="store_true", help="Print the code table"
    )
    encode.add_argument(
        "-P", "--no-progress", action="store_true", help="Hide progress"
    )

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Decode a previously encoded file"
    )
    decode.add_argument("encoded", help="Encoded file to decode")
    decode.add_argument(
        "-o", "--output", default=None,
        help="Destination text file (default: standard output)",
    )
    decode.add_argument(
        "--encoding", default="utf-8", help="Text encoding (default: utf-8)"
    )
    decode.add_argument(
        "-P", "--no-progress", action="store_true", help="Hide progress"
    )

    roundtrip = subparsers.add_parser(
        "roundtrip", aliases=["r"],
        help="Encode, save, reload and decode a text, printing each stage",
    )
    roundtrip.add_argument(
        "source", nargs="?", default=DEFAULT_SOURCE,
        help="Path or http(s) URL of the text (default: Sherlock Holmes)",
    )
    roundtrip.add_argument(
        "-o", "--output", default=DEFAULT_OUTPUT,
        help=f"Encoded file path (default: {DEFAULT_OUTPUT})",
    )
    roundtrip.add_argument(
        "--encoding", default="utf-8", help="Text encoding (default: utf-8)"
    )
    roundtrip.add_argument(
        "-q", "--quiet", action="store_true",
        help="Do not print the decoded text",
    )

    return parser


def _is_url(source: str) -> bool:
    """Tell whether ``source`` should be fetched over HTTP.

    :param source: Path or URL given on the command line.
    :type source: str
    :returns: ``True`` for ``http://`` and ``https://`` sources.
    :rtype: bool
    """
    return source.lower().startswith(("http://", "https://"))


def load_text(source: str, encoding: str = "utf-8") -> str:
    """Read the text to encode from a local file or a URL.

    :param source: Filesystem path or http(s) URL.
    :type source: str
    :param encoding: Encoding used when the source does not declare one.
    :type encoding: str
    :returns: The text, line endings untouched.
    :rtype: str
    :raises OSError: If the file cannot be read or the URL fetched.
    :raises LookupError: If ``encoding`` is unknown.
    """
    codecs.lookup(encoding)
    if _is_url(source):
        with urllib.request.urlopen(source, timeout=FETCH_TIMEOUT) as resp:
            charset = resp.headers.get_content_charset() or encoding
            return resp.read().decode(charset)
    with open(source, "r", encoding=encoding, newline="") as f:
        return f.read()


def _fmt_symbol(symbol: str) -> str:
    """Render a symbol so whitespace and control characters stay visible.

    :param symbol: Single-character symbol.
    :type symbol: str
    :returns: Printable representation.
    :rtype: str
    """
    if symbol.isprintable() and not symbol.isspace():
        return symbol
    return repr(symbol)


def format_code_table(codes: Dict[str, str]) -> List[str]:
    """Format a code table, shortest codes first.

    :param codes: Mapping from symbol to bit string.
    :type codes: Dict[str, str]
    :returns: One line per symbol.
    :rtype: List[str]
    """
    return [
        f"Symbol: {_fmt_symbol(sym)}, Code: {code}"
        for sym, code in sorted(codes.items(), key=lambda kv: (len(kv[1]), kv[1]))
    ]


def _print_progress(line: str) -> None:
    """Render and flush a single progress line in-place (carriage return).

    :param line: The textual progress line to display.
    :type line: str
    :returns: None
    :rtype: None
    """
    sys.stdout.write("\r" + line)
    sys.stdout.flush()


def _fmt_pct(done: int, total: int) -> str:
    """Format a completion percentage string like ``12.34%``.

    :param done: Units completed.
    :type done: int
    :param total: Total units to complete.
    :type total: int
    :returns: Percentage.
    :rtype: str
    """
    if total <= 0:
        return "0%"
    pct = 100.0 * (done / float(total))
    return f"{pct:6.2f}%"


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


class Progress:
    """Callable progress reporter printing one in-place line per percent.

    :ivar label: Action label (e.g., "Encoding" or "Decoding").
    :type label: str
    :ivar name: Name of the file or URL being processed.
    :type name: str
    """

    def __init__(self, label: str, name: str) -> None:
        self.label = label
        self.name = name
        self._last_reported = -1

    def __call__(self, done: int, total: int) -> None:
        """Update the progress display.

        :param done: Symbols processed so far.
        :type done: int
        :param total: Total number of symbols.
        :type total: int
        :returns: None
        :rtype: None
        """
        if total <= 0:
            return
        percent_bucket = int((done * 100) / total)
        if percent_bucket == self._last_reported:
            return
        self._last_reported = percent_bucket
        _print_progress(f"{self.label} {self.name}  {_fmt_pct(done, total)}")


def _text_size(text: str, encoding: str) -> int:
    """Size of ``text`` in ``encoding``; unencodable characters count as one byte."""
    return len(text.encode(encoding, "replace"))


def _report_sizes(source_size: int, encoded_size: int) -> None:
    print("Size before encoding: ", _fmt_bytes(source_size))
    print("Size after encoding: ", _fmt_bytes(encoded_size))
    if encoded_size:
        print(f"Compression ratio: {source_size / encoded_size:.2f}")


def _load_or_report(source: str, encoding: str) -> Optional[str]:
    """Load ``source``, printing a ``[!]`` line instead of raising on I/O errors.

    :returns: The text, or ``None`` if it could not be loaded.
    :rtype: Optional[str]
    """
    try:
        return load_text(source, encoding)
    except FileNotFoundError:
        print(f"[!] Source file not found: {source}")
    except urllib.error.URLError as e:
        print(f"[!] Could not fetch {source}: {e.reason}")
    except UnicodeDecodeError as e:
        print(f"[!] Source is not valid {encoding} text: {e}")
    except LookupError:
        print(f"[!] Unknown text encoding: {encoding}")
    except OSError as e:
        print(f"[!] Could not read {source}: {e}")
    return None


def _decode_or_report(
    data: bytes,
    encoded_path: str,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> Optional[str]:
    """Decode a container, printing a ``[!]`` line if it is invalid.

    :returns: The decoded text, or ``None`` if the container is invalid.
    :rtype: Optional[str]
    """
    try:
        return HuffmanCodec().decompress(data, on_progress=on_progress)
    except (ValueError, EOFError) as e:
        print(f"[!] Invalid encoded file {encoded_path}: {e}")
    return None


def encode_file(
    source: str,
    output_path: str,
    encoding: str = "utf-8",
    show_codes: bool = False,
    hide_progress: bool = True,
) -> int:
    """Encode a text file or URL and write the container to ``output_path``.

    :param source: Path or http(s) URL of the text.
    :type source: str
    :param output_path: Destination encoded file path.
    :type output_path: str
    :param encoding: Text encoding of the source.
    :type encoding: str
    :param show_codes: Whether to print the code table.
    :type show_codes: bool
    :param hide_progress: Whether to suppress the progress line.
    :type hide_progress: bool
    :returns: Process exit status.
    :rtype: int
    """
    text = _load_or_report(source, encoding)
    if text is None:
        return 1

    codec = HuffmanCodec()
    on_prog = None if hide_progress else Progress("Encoding", source)
    data = codec.compress(text, on_progress=on_prog)
    if on_prog is not None:
        sys.stdout.write("\n")
        sys.stdout.flush()

    if show_codes:
        for line in format_code_table(codec.codes):
            print(line)

    with open(output_path, "wb") as out:
        out.write(data)
    print(f"Text was encoded and saved in file: {output_path}")
    _report_sizes(_text_size(text, encoding), len(data))
    return 0


def decode_file(
    encoded_path: str,
    output_path: Optional[str] = None,
    encoding: str = "utf-8",
    hide_progress: bool = True,
) -> int:
    """Decode an encoded file written by :func:`encode_file`.

    :param encoded_path: Encoded file to read.
    :type encoded_path: str
    :param output_path: Destination text file; standard output when ``None``.
    :type output_path: Optional[str]
    :param encoding: Encoding for the written text.
    :type encoding: str
    :param hide_progress: Whether to suppress the progress line.
    :type hide_progress: bool
    :returns: Process exit status.
    :rtype: int
    """
    try:
        encoded_fd = open(encoded_path, "rb")
    except FileNotFoundError:
        print(f"[!] Encoded file not found: {encoded_path}")
        return 1
    except OSError as e:
        print(f"[!] Could not read {encoded_path}: {e}")
        return 1
    with encoded_fd as f:
        data = f.read()

    on_prog = None
    if not hide_progress and output_path is not None:
        on_prog = Progress("Decoding", encoded_path)
    text = _decode_or_report(data, encoded_path, on_prog)
    if on_prog is not None:
        sys.stdout.write("\n")
        sys.stdout.flush()
    if text is None:
        return 1

    if output_path is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return 0
    try:
        with open(output_path, "w", encoding=encoding, newline="") as out:
            out.write(text)
    except (OSError, LookupError, UnicodeEncodeError) as e:
        print(f"[!] Could not write {output_path}: {e}")
        return 1
    print(f"Decoded text was saved in file: {output_path}")
    return 0


def roundtrip(
    source: str = DEFAULT_SOURCE,
    output_path: str = DEFAULT_OUTPUT,
    encoding: str = "utf-8",
    quiet: bool = False,
) -> int:
    """Encode ``source``, persist it, read it back and decode it again.

    Prints the code table, the file the encoded bytes went to and the
    decoded text.

    :param source: Path or http(s) URL of the text.
    :type source: str
    :param output_path: Encoded file path.
    :type output_path: str
    :param encoding: Text encoding of the source.
    :type encoding: str
    :param quiet: Whether to skip printing the decoded text.
    :type quiet: bool
    :returns: ``0`` if the decoded text equals the source, ``1`` otherwise.
    :rtype: int
    """
    text = _load_or_report(source, encoding)
    if text is None:
        return 1

    codec = HuffmanCodec()
    data = codec.compress(text)
    for line in format_code_table(codec.codes):
        print(line)

    with open(output_path, "wb") as out:
        out.write(data)
    print(f"Text was encoded and saved in file: {output_path}")

    with open(output_path, "rb") as f:
        stored = f.read()
    decoded = _decode_or_report(stored, output_path)
    if decoded is None:
        return 1

    if not quiet:
        print("\nDecoded text:")
        print(decoded)
    _report_sizes(_text_size(text, encoding), len(stored))

    if decoded != text:
        print("[!] Decoded text differs from the source")
        return 1
    print("Round trip OK")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments to parse instead of ``sys.argv[1:]``.
    :type argv: Optional[List[str]]
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    if args.cmd in ["encode", "e"]:
        return encode_file(
            args.source, args.output, args.encoding,
            show_codes=args.show_codes,
            hide_progress=getattr(args, "no_progress", False),
        )
    if args.cmd in ["decode", "d"]:
        return decode_file(
            args.encoded, args.output, args.encoding,
            hide_progress=getattr(args, "no_progress", False),
        )
    return roundtrip(args.source, args.output, args.encoding, args.quiet)


if __name__ == "__main__":
    sys.exit(main())
