import json
import struct
import pytest

from codec import MAGIC, VERSION, HuffmanCodec


def test_codec_roundtrip_with_progress(progress_recorder, sample_text):
    codec = HuffmanCodec()
    on_prog, calls = progress_recorder
    comp = codec.compress(sample_text, on_progress=on_prog)
    assert comp.startswith(MAGIC)
    assert set(codec.codes) == set(sample_text)
    assert codec.tree.freq == len(sample_text)

    out = HuffmanCodec().decompress(comp, on_progress=on_prog)
    assert out == sample_text
    assert calls[-1] == (len(sample_text), len(sample_text))


def test_codec_encoded_is_smaller_for_redundant_text():
    text = "abababababcabababababd" * 50
    comp = HuffmanCodec().compress(text)
    assert len(comp) < len(text.encode("utf-8"))


def test_codec_empty_input():
    codec = HuffmanCodec()
    comp = codec.compress("")
    assert len(comp) == 9
    assert codec.codes == {} and codec.tree is None
    assert HuffmanCodec().decompress(comp) == ""


def test_codec_single_symbol():
    comp = HuffmanCodec().compress("aaaaaaaaa")
    assert HuffmanCodec().decompress(comp) == "aaaaaaaaa"


def test_codec_concrete_scenario_needs_no_padding_guess():
    codec = HuffmanCodec()
    comp = codec.compress("aabbbcc")
    assert codec.codes == {"b": "0", "a": "10", "c": "11"}
    assert HuffmanCodec().decompress(comp) == "aabbbcc"


def test_codec_rebuilds_same_codes_from_stored_table():
    text = "equal equal freq tie break"
    enc = HuffmanCodec()
    comp = enc.compress(text)
    dec = HuffmanCodec()
    dec.decompress(comp)
    assert dec.codes == enc.codes
    assert dec.frequencies == enc.frequencies


def test_codec_bad_magic_raises():
    with pytest.raises(ValueError):
        _ = HuffmanCodec().decompress(struct.pack("<4sBI", b"BAD!", VERSION, 0))


def test_codec_wrong_version_raises():
    with pytest.raises(ValueError):
        _ = HuffmanCodec().decompress(struct.pack("<4sBI", MAGIC, 99, 0))


def test_codec_truncated_raises_eoferror():
    comp = HuffmanCodec().compress("hello world")
    with pytest.raises(EOFError):
        _ = HuffmanCodec().decompress(comp[:6])
    with pytest.raises(EOFError):
        _ = HuffmanCodec().decompress(comp[:15])
    with pytest.raises(EOFError):
        _ = HuffmanCodec().decompress(comp[:-1])


def test_codec_symbol_count_mismatch_raises():
    comp = bytearray(HuffmanCodec().compress("hello world"))
    struct.pack_into("<I", comp, 5, 12)
    with pytest.raises(ValueError):
        _ = HuffmanCodec().decompress(bytes(comp))


def test_codec_malformed_table_raises():
    table = json.dumps({"a": 1}).encode("utf-8")
    data = (
        struct.pack("<4sBI", MAGIC, VERSION, 1)
        + struct.pack("<QI", 1, len(table))
        + table
        + b"\x00"
    )
    with pytest.raises(ValueError):
        _ = HuffmanCodec().decompress(data)


def test_codec_progress_advances_while_coding(progress_recorder):
    text = "ab" * 3000
    on_prog, calls = progress_recorder
    comp = HuffmanCodec().compress(text, on_progress=on_prog)
    assert len(calls) > 3
    assert calls[0] == (0, len(text)) and calls[-1] == (len(text), len(text))
    assert any(0 < done < len(text) for done, _ in calls)

    calls.clear()
    assert HuffmanCodec().decompress(comp, on_progress=on_prog) == text
    assert len(calls) > 3
    done_values = [done for done, _ in calls]
    assert done_values == sorted(done_values)
    assert any(0 < done < len(text) for done in done_values)
    assert calls[-1] == (len(text), len(text))


def test_codec_lone_surrogate_roundtrip():
    text = "a\udcffb\udcff"
    comp = HuffmanCodec().compress(text)
    assert HuffmanCodec().decompress(comp) == text


def test_codec_trailing_bytes_raise():
    comp = HuffmanCodec().compress("hello world")
    with pytest.raises(ValueError):
        _ = HuffmanCodec().decompress(comp + b"\xff\xff")
