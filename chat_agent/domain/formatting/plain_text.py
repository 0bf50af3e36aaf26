"""
Reduce model markdown to plain text for the chat channel.
"""

import re

_CODE_FENCE = re.compile(r"```[^\n`]*\n?(.*?)```", re.DOTALL)
_INLINE_CODE = re.compile(r"`([^`\n]+)`")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_BOLD = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1", re.DOTALL)
_ITALIC_STAR = re.compile(r"(?<![\w*])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\w*])")
_ITALIC_UNDERSCORE = re.compile(r"(?<![\w_])_(?=\S)([^_\n]+?)(?<=\S)_(?![\w_])")
_STRIKE = re.compile(r"~~(.+?)~~")
_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+", re.MULTILINE)
_BLANK_RUNS = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")


def has_code(text: str) -> bool:
    return bool(_CODE_FENCE.search(text or ""))


def strip_markdown(text: str) -> str:
    """Remove emphasis, code markers, headings and link syntax; collapse blank lines"""

    if not text:
        return ""

    result = text.replace("\r\n", "\n")
    result = _CODE_FENCE.sub(lambda m: m.group(1).rstrip("\n"), result)
    result = _INLINE_CODE.sub(r"\1", result)
    result = _IMAGE.sub(r"\1", result)
    result = _LINK.sub(r"\1", result)
    result = _BOLD.sub(r"\2", result)
    result = _ITALIC_STAR.sub(r"\1", result)
    result = _ITALIC_UNDERSCORE.sub(r"\1", result)
    result = _STRIKE.sub(r"\1", result)
    result = _HEADING.sub("", result)
    result = _BLANK_RUNS.sub("\n\n", result)

    return result.strip()
