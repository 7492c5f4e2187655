"""Validation and sanitization of user-supplied input.

Recommended order for any user input: ``normalize_and_sanitize`` first,
then the relevant ``validate_*`` function.
"""

from __future__ import annotations

import re
import unicodedata
from html.parser import HTMLParser

_PHONE_RE = re.compile(r"\+?[1-9]\d{1,14}")
_LOWER_RE = re.compile(r"[a-z]")
_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile(r"[^\da-zA-Z]")
_SCHEME_RE = re.compile(r"^\s*([a-zA-Z][a-zA-Z0-9+.\-]*):")

USERNAME_BLACKLIST = frozenset({"admin", "root", "administrator", "support", "superuser"})
MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 24

_ALLOWED_TAGS = frozenset(
    """a abbr acronym area article aside b bdi bdo blockquote br caption center
    cite code col colgroup data dd del details dfn div dl dt em figcaption figure
    footer h1 h2 h3 h4 h5 h6 header hgroup hr i img ins kbd li map mark nav ol p
    pre q rp rt rtc ruby s samp small span strike strong sub summary sup table
    tbody td th thead time tr tt u ul var wbr""".split()
)
_VOID_TAGS = frozenset({"area", "br", "col", "hr", "img", "wbr"})
_CLEAN_CONTENT_TAGS = frozenset({"script", "style"})
_GENERIC_ATTRIBUTES = frozenset({"lang", "title"})
_TABLE_CELL = frozenset({"align", "char", "charoff"})
_TAG_ATTRIBUTES = {
    "a": frozenset({"href", "hreflang"}),
    "bdo": frozenset({"dir"}),
    "blockquote": frozenset({"cite"}),
    "col": _TABLE_CELL | {"span"},
    "colgroup": _TABLE_CELL | {"span"},
    "del": frozenset({"cite", "datetime"}),
    "hr": frozenset({"align", "size", "width"}),
    "img": frozenset({"align", "alt", "height", "src", "width"}),
    "ins": frozenset({"cite", "datetime"}),
    "ol": frozenset({"start"}),
    "q": frozenset({"cite"}),
    "table": _TABLE_CELL | {"summary"},
    "tbody": _TABLE_CELL,
    "td": _TABLE_CELL | {"colspan", "headers", "rowspan"},
    "tfoot": _TABLE_CELL,
    "th": _TABLE_CELL | {"colspan", "headers", "rowspan", "scope"},
    "thead": _TABLE_CELL,
    "tr": _TABLE_CELL,
}
_URL_ATTRIBUTES = frozenset({"href", "src", "cite"})
_URL_SCHEMES = frozenset(
    """bitcoin ftp ftps geo http https im irc ircs magnet mailto mms mx news nntp
    openpgp4fpr sip sms smsto ssh tel url webcal wtai xmpp""".split()
)
_LINK_REL = "noopener noreferrer"


class ValidationError(ValueError):
    """An input failed a validation rule; ``code`` names the rule."""

    def __init__(self, code: str, **params: str) -> None:
        self.code = code
        self.params = params
        super().__init__(params.get("reason", code))


def _escape_text(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("\xa0", "&nbsp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def _escape_attribute(value: str) -> str:
    return value.replace("&", "&amp;").replace("\xa0", "&nbsp;").replace('"', "&quot;")


def _url_allowed(value: str) -> bool:
    match = _SCHEME_RE.match(value)
    return match is None or match.group(1).lower() in _URL_SCHEMES


class _Sanitizer(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._open: list[str] = []
        self._skip_depth = 0

    def _render_start(self, tag: str, attrs: list[tuple[str, str | None]]) -> str:
        allowed = _GENERIC_ATTRIBUTES | _TAG_ATTRIBUTES.get(tag, frozenset())
        rendered = []
        for name, value in attrs:
            if name not in allowed:
                continue
            value = value or ""
            if name in _URL_ATTRIBUTES and not _url_allowed(value):
                continue
            rendered.append(f' {name}="{_escape_attribute(value)}"')
        if tag == "a":
            rendered.append(f' rel="{_LINK_REL}"')
        return f"<{tag}{''.join(rendered)}>"

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _CLEAN_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in _ALLOWED_TAGS:
            return
        self._parts.append(self._render_start(tag, attrs))
        if tag not in _VOID_TAGS:
            self._open.append(tag)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _CLEAN_CONTENT_TAGS:
            return
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        if tag in _CLEAN_CONTENT_TAGS:
            if self._skip_depth:
                self._skip_depth -= 1
            return
        if self._skip_depth or tag not in self._open:
            return
        while self._open:
            current = self._open.pop()
            self._parts.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self._parts.append(_escape_text(data))

    def result(self) -> str:
        self.close()
        closing_tags = (f"</{tag}>" for tag in reversed(self._open))
        self._open.clear()
        return "".join(self._parts) + "".join(closing_tags)


def sanitize_text(text: str) -> str:
    """Strip dangerous markup: script and style with their contents, unsafe tags and attributes."""
    parser = _Sanitizer()
    parser.feed(text)
    return parser.result()


def normalize_and_sanitize(text: str) -> str:
    """NFC-normalize the text, then sanitize it."""
    return sanitize_text(unicodedata.normalize("NFC", text))


def validate_password_strength(password: str) -> None:
    """Require 8+ bytes with a lowercase, an uppercase, a digit and a symbol."""
    strong = (
        _LOWER_RE.search(password)
        and _UPPER_RE.search(password)
        and _DIGIT_RE.search(password)
        and _SYMBOL_RE.search(password)
        and len(password.encode("utf-8")) >= MIN_PASSWORD_LENGTH
    )
    if not strong:
        raise ValidationError(
            "password_policy",
            reason=(
                "Password must contain at least one lowercase, uppercase, digit, "
                "and special character, and be at least 8 characters long."
            ),
        )


def validate_username(username: str) -> None:
    """Require 3 to 24 bytes and reject reserved names (ASCII case-insensitive)."""
    length = len(username.encode("utf-8"))
    if length < MIN_USERNAME_LENGTH or length > MAX_USERNAME_LENGTH:
        raise ValidationError("invalid_username_length")
    if username.isascii() and username.lower() in USERNAME_BLACKLIST:
        raise ValidationError("blacklisted_username")


def validate_phone_number(phone: str) -> None:
    """Require an international number: optional '+', then 2 to 15 digits not starting with 0."""
    if _PHONE_RE.fullmatch(phone) is None:
        raise ValidationError("invalid_phone_number_format")