import pytest

from chat_agent.domain.formatting.plain_text import has_code, strip_markdown


@pytest.mark.parametrize("raw,expected", [
    ("**bold** and __also bold__", "bold and also bold"),
    ("some *italic* and _underscored_ text", "some italic and underscored text"),
    ("~~gone~~ here", "gone here"),
    ("## Heading\nbody", "Heading\nbody"),
    ("see [the docs](https://example.com)", "see the docs"),
    ("![diagram](img.png) below", "diagram below"),
    ("run `pip install x` first", "run pip install x first"),
    ("```python\nprint('hi')\n```", "print('hi')"),
    ("one\n\n\n\ntwo", "one\n\ntwo"),
    ("   padded   ", "padded"),
])
def test_strip_markdown(raw, expected):
    assert strip_markdown(raw) == expected


def test_plain_text_is_untouched():
    text = "It's sunny in Paris, 22 degrees. Snake_case names and 2 * 3 stay."

    assert strip_markdown(text) == text


def test_empty_input():
    assert strip_markdown("") == ""
    assert strip_markdown(None) == ""


def test_has_code():
    assert has_code("look:\n```\nx = 1\n```")
    assert not has_code("no code here")
