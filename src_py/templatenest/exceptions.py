from __future__ import annotations

from collections.abc import Sequence


class TemplateNestException(Exception):
    """Base class for all templatenest exceptions."""


class StoreSealed(TemplateNestException):
    """Raised when attempting to register a template into a store that
    has already been sealed. Sealed stores are shared read-only between
    renders, so they can never be modified after the fact.
    """


class StoreNotSealed(TemplateNestException):
    """Raised when attempting to render from an environment whose
    template store hasn't been sealed yet.
    """


class MismatchedTokenSyntax(TemplateNestException):
    """Raised when the token syntax in a render policy differs from the
    syntax that the template store was scanned with. The store's token
    positions are only meaningful for the syntax they were scanned
    with, so we refuse to render instead of producing garbage.
    """


class RenderError(TemplateNestException):
    """Render errors are collected during rendering and raised together
    as a ``RenderFailure`` once the render has finished. They carry
    enough context to point at the exact spot in the template tree
    that failed:
    ++  ``template_id``: the template that was being rendered (or, for
        ``UnknownTemplate``, the one that was requested)
    ++  ``template_stack``: every template id being rendered at the
        time of the error, root first
    ++  ``token``: the token name, where applicable
    ++  ``position``: the character offset within the template body,
        where applicable
    ++  ``line``: the 1-based line number of ``position``
    """
    template_id: str | None
    template_stack: tuple[str, ...]
    token: str | None
    position: int | None
    line: int | None

    def __init__(
            self,
            message: str,
            *,
            template_id: str | None = None,
            template_stack: Sequence[str] = (),
            token: str | None = None,
            position: int | None = None,
            line: int | None = None):
        super().__init__(message)
        self.template_id = template_id
        self.template_stack = tuple(template_stack)
        self.token = token
        self.position = position
        self.line = line

    def __str__(self) -> str:
        details = []
        if self.template_id is not None:
            details.append(f'template={self.template_id!r}')
        if self.token is not None:
            details.append(f'token={self.token!r}')
        if self.position is not None:
            details.append(f'position={self.position}')
        if self.line is not None:
            details.append(f'line={self.line}')
        if self.template_stack:
            details.append(f'stack={" > ".join(self.template_stack)}')

        message = super().__str__()
        if details:
            return f'{message} ({", ".join(details)})'
        return message


class UnknownTemplate(RenderError):
    """The referenced template id isn't present in the template store
    (or, for loaders, the template source couldn't be found).
    """


class MissingParameter(RenderError):
    """A token had no filling value and no default, and the render
    policy requires all parameters to be present.
    """


class UnknownParameter(RenderError):
    """A filling supplied a field that doesn't correspond to any token
    in the template it instantiates, and the render policy rejects
    unknown parameters.
    """


class MalformedToken(RenderError):
    """The scanner found a marker that was opened but never closed, a
    marker opened inside another token, or a token with an empty name.
    """


class InvalidFillingShape(RenderError):
    """A filling value can't be rendered at all: for example, an object
    without a template reference in token position, or a value that
    isn't a scalar, mapping, or sequence.
    """


class NestingTooDeep(RenderError):
    """Template nesting exceeded the render policy's ``max_depth``. In
    practice this almost always means that a filling refers back to
    itself.
    """


class RenderFailure(ExceptionGroup):
    """Raised at the end of a render that collected one or more
    ``RenderError`` instances. No output is returned in that case.
    """

    def derive(self, excs):
        return RenderFailure(self.message, excs)


class StoreSealingFailure(ExceptionGroup):
    """Raised when sealing a template store finds one or more template
    bodies that fail to scan.
    """

    def derive(self, excs):
        return StoreSealingFailure(self.message, excs)
