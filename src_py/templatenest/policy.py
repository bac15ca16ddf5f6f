from __future__ import annotations

import dataclasses
import html
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from types import EllipsisType
from types import MappingProxyType
from typing import Annotated
from typing import NamedTuple
from typing import Protocol

from docnote import ClcNote

from templatenest.scanner import NamedTokenSyntax
from templatenest.scanner import TokenSyntax

type DefaultsKey = str | tuple[str, str]


class Escaper(Protocol):

    def __call__(self, value: str) -> str:
        """Escaper functions accept a single positional argument: the
        string scalar to escape. They do any required escaping and
        return the final string.
        """
        ...


def html_escaper(value: str) -> str:
    """Replaces the five HTML-significant characters (``&<>"'``) with
    their entity forms.
    """
    return html.escape(value, quote=True)


def noop_escaper(value: str) -> str:
    return value


class CommentDelimiters(NamedTuple):
    open: str
    close: str


@dataclass(frozen=True)
class RenderPolicy:
    escape_html: Annotated[
        bool,
        ClcNote(
            '''If true, string scalars are passed through the escaper
            before being substituted. Numbers, bools, and nulls are
            never escaped, and neither is the literal template text.
            ''')] = True
    escaper: Annotated[
        Escaper,
        ClcNote(
            '''The escaping strategy applied when ``escape_html`` is
            enabled. Swap this out to produce other output formats
            without touching the renderer.
            ''')] = html_escaper
    fixed_indent: Annotated[
        bool,
        ClcNote(
            '''By default, every line of nested output after the first is
            prefixed with the indentation of the line the token sits on.
            Setting ``fixed_indent`` inserts nested output verbatim
            instead.
            ''')] = False
    show_labels: Annotated[
        bool,
        ClcNote(
            '''Wraps every nested template's output in BEGIN/END comments
            naming the template. Purely a debugging aid.
            ''')] = False
    comment_delimiters: Annotated[
        CommentDelimiters,
        ClcNote(
            '''The open/close pair used to write labels. Tuples are
            converted automatically.
            ''')] = CommentDelimiters('<!--', '-->')
    defaults: Annotated[
        Mapping[DefaultsKey, object],
        ClcNote(
            '''Fallback values for tokens missing from the filling. Keys
            are either a bare token name, which applies to every
            template, or a ``(template_id, token)`` pair, which applies
            only within that template and takes precedence over the
            bare name. Values may be anything a filling may contain,
            including nested template references.
            ''')] = field(default_factory=dict)
    die_on_bad_params: Annotated[
        bool,
        ClcNote(
            '''If true, a token with neither a filling value nor a default
            fails the render with ``MissingParameter``. If false, it is
            silently replaced with an empty string.
            ''')] = True
    die_on_unknown_params: Annotated[
        bool,
        ClcNote(
            '''If true, a filling field that doesn't match any token in
            its template fails the render with ``UnknownParameter``.
            ''')] = False
    template_key: Annotated[
        str,
        ClcNote(
            '''The reserved field that turns a filling object into a
            reference to a nested template. Its value is the template
            id.
            ''')] = 'TEMPLATE'
    max_depth: Annotated[
        int | None,
        ClcNote(
            '''The maximum nesting depth of the filling, with the root
            template at depth 1. Every nested template and every nested
            sequence adds a level. ``None`` disables the guard, leaving
            only the interpreter's recursion limit.
            ''')] = 128
    token_syntax: Annotated[
        TokenSyntax,
        ClcNote(
            '''The token markers and escape character. Must match the
            syntax the template store was sealed with.
            ''')] = NamedTokenSyntax.HTML_COMMENT.value

    # Defaults may hold arbitrary (unhashable) filling values, so policies
    # support equality but not hashing.
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self):
        if not isinstance(self.comment_delimiters, CommentDelimiters):
            object.__setattr__(
                self,
                'comment_delimiters',
                CommentDelimiters(*self.comment_delimiters))
        if isinstance(self.token_syntax, NamedTokenSyntax):
            object.__setattr__(self, 'token_syntax', self.token_syntax.value)
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError('max_depth must be at least 1!', self.max_depth)

        # Defaults are copied, so later changes to the caller's dict never
        # reach a policy shared between renders.
        object.__setattr__(
            self, 'defaults', MappingProxyType(dict(self.defaults)))

    def replace(self, **changes) -> RenderPolicy:
        """Returns a copy of the policy with the passed fields changed,
        for example to turn off escaping for a single render.
        """
        return dataclasses.replace(self, **changes)

    def lookup_default(
            self,
            template_id: str,
            token: str
            ) -> object | EllipsisType:
        """Returns the template-scoped default for the token if there is
        one, otherwise the global default, otherwise ``...``.
        """
        defaults = self.defaults
        value = defaults.get((template_id, token), ...)
        if value is ...:
            value = defaults.get(token, ...)
        return value
