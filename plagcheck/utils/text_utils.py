import re
from typing import Optional

from bs4 import BeautifulSoup

_NON_PRINTABLE = re.compile(r"[^\x09\x0A\x0D\x20-\x7E]")


def sanitize_input(text: Optional[str]) -> str:
    """Strip HTML tags and anything outside printable ASCII (tabs/newlines kept)."""
    if not text:
        return ""
    if "<" in text:
        text = BeautifulSoup(text, "html.parser").get_text()
    return _NON_PRINTABLE.sub("", text)
