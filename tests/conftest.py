"""
Pytest configuration and shared fixtures for Serial Scout tests.
"""

from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image

from history import HistoryStore
from main import create_app
from serial_format import DEFAULT_FORMAT

# C0 / line 2 / 2014 second half / week 30 / unit 1234 / model DHJQ
KNOWN_SERIAL = "C02N412ADHJQ"


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeVisionClient:
    """Stands in for openai.OpenAI: only chat.completions.create is used."""

    def __init__(self, *replies):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def serial_format():
    return DEFAULT_FORMAT


@pytest.fixture
def history():
    return HistoryStore()


@pytest.fixture
def png_bytes():
    out = BytesIO()
    Image.new("RGBA", (64, 32), (255, 255, 255, 255)).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def make_app(history):
    def _make(vision_client=None):
        return create_app(
            history=history,
            config={"TESTING": True, "VISION_CLIENT": vision_client},
        )
    return _make


@pytest.fixture
def client(make_app):
    return make_app().test_client()
