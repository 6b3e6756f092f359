import pytest

from danmu_companion.main import serves_ai_locally


@pytest.mark.parametrize(
    "base_url, host, port, expected",
    [
        ("http://127.0.0.1:8765", "127.0.0.1", 8765, True),
        ("http://localhost:8765/", "0.0.0.0", 8765, True),
        ("http://companion.lan:8765", "companion.lan", 8765, True),
        ("http://127.0.0.1:9000", "127.0.0.1", 8765, False),
        ("https://ai.example.com", "127.0.0.1", 8765, False),
        ("http://ai.example.com:8765", "127.0.0.1", 8765, False),
    ],
)
def test_serves_ai_locally(base_url, host, port, expected) -> None:
    assert serves_ai_locally(base_url, host, port) is expected
