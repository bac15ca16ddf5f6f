from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from docnote import ClcNote

from templatenest.exceptions import MalformedToken

_INDENT_CHARS = ' \t'


@dataclass(frozen=True, slots=True)
class TokenSyntax:
    """Token syntax determines which character sequences delimit the
    tokens within a template body, and which character (if any) can be
    used to write those sequences literally.
    """
    prefix: Annotated[
        str,
        ClcNote('''The marker that opens a token, for example ``<!--%``.
            ''')]
    suffix: Annotated[
        str,
        ClcNote('''The marker that closes a token, for example ``%-->``.
            ''')]
    escape_char: Annotated[
        str | None,
        ClcNote(
            '''Placing the escape character immediately before a marker
            causes the marker to be emitted verbatim instead of being
            treated as a token. The escape character itself is removed
            from the output. ``None`` (or an empty string) disables
            escaping entirely.
            ''')] = '\\'

    def __post_init__(self):
        if not self.prefix or not self.suffix:
            raise ValueError(
                'Token prefix and suffix must both be non-empty!', self)


class NamedTokenSyntax(Enum):
    HTML_COMMENT = TokenSyntax(prefix='<!--%', suffix='%-->')
    CURLY_BRACES = TokenSyntax(prefix='{{', suffix='}}')


@dataclass(frozen=True, slots=True)
class ScannedToken:
    """A single occurrence of a token within a template body. Offsets
    are character offsets into the original source, spanning the whole
    token including both markers.
    """
    name: str
    start: int
    end: int
    indent: Annotated[
        str,
        ClcNote(
            '''The run of spaces and tabs at the beginning of the line
            the token appears on. Nested output is re-indented with
            this.
            ''')]


@dataclass(frozen=True, slots=True)
class ScannedTemplate:
    template_id: str
    source: str
    # Literal text and tokens, in source order. Adjacent literals are always
    # merged, so there are never two strings in a row.
    parts: tuple[str | ScannedToken, ...]
    token_names: frozenset[str]

    @property
    def tokens(self) -> tuple[ScannedToken, ...]:
        return tuple(
            part for part in self.parts if isinstance(part, ScannedToken))


def scan(
        text: str,
        syntax: TokenSyntax,
        *,
        template_id: str = '<string>'
        ) -> ScannedTemplate:
    """Scans the template body in a single left-to-right pass, splitting
    it into literal text and tokens. Raises ``MalformedToken`` for:
    ++  a prefix that is never closed
    ++  a prefix that opens before the current token was closed
    ++  a token whose name is empty (after stripping padding whitespace)

    Closing markers outside of a token are just literal text.
    """
    prefix = syntax.prefix
    suffix = syntax.suffix
    escape_char = syntax.escape_char or ''

    parts: list[str | ScannedToken] = []
    token_names: set[str] = set()
    literal_buffer: list[str] = []
    cursor = 0

    while True:
        opener = text.find(prefix, cursor)
        if opener == -1:
            literal_buffer.append(_unescape_suffix(
                text[cursor:], suffix, escape_char))
            break

        # Note: the bounds check must come first; a negative start would
        # make startswith count from the end of the text, and anything
        # before the cursor belongs to the previous token.
        if (
            escape_char
            and opener - len(escape_char) >= cursor
            and text.startswith(
                escape_char, opener - len(escape_char), opener)
        ):
            literal_buffer.append(_unescape_suffix(
                text[cursor:opener - len(escape_char)], suffix, escape_char))
            literal_buffer.append(prefix)
            cursor = opener + len(prefix)
            continue

        name_start = opener + len(prefix)
        closer = text.find(suffix, name_start)
        if closer == -1:
            raise MalformedToken(
                'Token opened but never closed',
                template_id=template_id,
                position=opener,
                line=line_of(text, opener))

        nested_opener = text.find(prefix, name_start, closer)
        if nested_opener != -1:
            raise MalformedToken(
                'Token opened before the previous token was closed',
                template_id=template_id,
                position=nested_opener,
                line=line_of(text, nested_opener))

        name = text[name_start:closer].strip()
        if not name:
            raise MalformedToken(
                'Empty token name',
                template_id=template_id,
                position=opener,
                line=line_of(text, opener))

        literal_buffer.append(_unescape_suffix(
            text[cursor:opener], suffix, escape_char))
        _flush_literal(literal_buffer, parts)

        end = closer + len(suffix)
        parts.append(ScannedToken(
            name=name,
            start=opener,
            end=end,
            indent=_extract_indent(text, opener)))
        token_names.add(name)
        cursor = end

    _flush_literal(literal_buffer, parts)
    return ScannedTemplate(
        template_id=template_id,
        source=text,
        parts=tuple(parts),
        token_names=frozenset(token_names))


def _flush_literal(
        literal_buffer: list[str],
        parts: list[str | ScannedToken]):
    literal = ''.join(literal_buffer)
    literal_buffer.clear()
    if literal:
        parts.append(literal)


def _unescape_suffix(literal: str, suffix: str, escape_char: str) -> str:
    if escape_char:
        return literal.replace(escape_char + suffix, suffix)
    return literal


def _extract_indent(text: str, position: int) -> str:
    """Returns the leading whitespace of the line containing
    ``position``.
    """
    line_start = text.rfind('\n', 0, position) + 1
    line_prefix = text[line_start:position]
    return line_prefix[:len(line_prefix) - len(line_prefix.lstrip(
        _INDENT_CHARS))]


def line_of(text: str, position: int) -> int:
    """Converts a character offset into a 1-based line number."""
    return text.count('\n', 0, position) + 1
