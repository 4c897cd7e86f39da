from __future__ import annotations

import re
from typing import Any, Optional, TypedDict


class Contact(TypedDict):
    name: Optional[str]
    email: Optional[str]
    url: Optional[str]


_GROUP_CHARACTERS: dict[str, str] = {
    "(": ")",
    "[": "]",
    "<": ">",
}
_RE_MAILTO = re.compile(r"^mailto:", re.IGNORECASE)


def _strip_group(text: str) -> str:
    """Remove one layer of (), [] or <> when they wrap the whole string."""
    if (
        len(text) > 1
        and text[0] in _GROUP_CHARACTERS
        and text[-1] == _GROUP_CHARACTERS[text[0]]
    ):
        return text[1:-1]
    return text


def parse_contact_string(contact_string: Any) -> Optional[Contact]:
    """Parse a free-text author string such as ``Name <email> (url)``.

    Words are split on single spaces. The first word that looks like an
    http(s) URL becomes the url and the first word containing ``@`` becomes
    the email; any later URLs or emails are discarded. The remaining words
    form the name.

    Args:
        contact_string: The raw author text, typically an element's text

    Returns:
        A contact dict, or None for non-strings and blank strings
    """
    if not isinstance(contact_string, str) or not contact_string.strip():
        return None

    words: list[tuple[str, bool, bool]] = []
    for word in contact_string.split(" "):
        text = _strip_group(word)
        is_url = text.lower().startswith(("http://", "https://"))
        is_email = not is_url and "@" in text
        if is_email:
            text = _RE_MAILTO.sub("", text)
        words.append((text, is_url, is_email))

    email = next((text for text, _, is_email in words if is_email), None) or None
    url = next((text for text, is_url, _ in words if is_url), None) or None

    name: Optional[str] = contact_string
    if email or url:
        name = (
            " ".join(
                text for text, is_url, is_email in words if not (is_url or is_email)
            ).strip()
            or None
        )
    if name:
        name = _strip_group(name)

    return {"name": name, "email": email, "url": url}
