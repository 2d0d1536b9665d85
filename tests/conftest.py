import io
import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def no_progress(monkeypatch, m):
    """Suppress progress rendering in main module during tests."""
    calls = []

    def _stub(line: str):
        calls.append(line)

    monkeypatch.setattr(m, "_print_progress", _stub)
    return calls


@pytest.fixture()
def progress_recorder():
    """Provide a reusable progress callback and its call log."""
    calls = []

    def cb(done, total):
        calls.append((done, total))

    return cb, calls


@pytest.fixture()
def sample_text():
    return (
        "To Sherlock Holmes she is always THE woman.\n"
        "I have seldom heard him mention her under any other name.\r\n"
        "Ünïcödé → ✓\ttabs and  double  spaces\n"
    )


@pytest.fixture()
def sample_file(tmp_path: Path, sample_text):
    path = tmp_path / "sample.txt"
    path.write_bytes(sample_text.encode("utf-8"))
    return path


class FakeResponse(io.BytesIO):
    """Minimal stand-in for the object returned by ``urlopen``."""

    def __init__(self, body: bytes, charset=None):
        super().__init__(body)
        self.headers = _FakeHeaders(charset)


class _FakeHeaders:
    def __init__(self, charset):
        self._charset = charset

    def get_content_charset(self):
        return self._charset


@pytest.fixture()
def fake_urlopen(monkeypatch, m):
    """Serve URL fetches from a dict instead of the network."""
    pages = {}
    requested = []

    def _urlopen(url, timeout=None):
        requested.append((url, timeout))
        if url not in pages:
            raise m.urllib.error.URLError("not found")
        body, charset = pages[url]
        return FakeResponse(body, charset)

    monkeypatch.setattr(m.urllib.request, "urlopen", _urlopen)
    return pages, requested
