from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field

from templatenest._types import FillingObject
from templatenest._types import FillingSequence
from templatenest._types import FillingValue
from templatenest._types import Scalar
from templatenest._types import TemplateId
from templatenest._types import as_filling
from templatenest._types import is_template_reference
from templatenest.exceptions import InvalidFillingShape
from templatenest.exceptions import MismatchedTokenSyntax
from templatenest.exceptions import MissingParameter
from templatenest.exceptions import NestingTooDeep
from templatenest.exceptions import RenderError
from templatenest.exceptions import RenderFailure
from templatenest.exceptions import UnknownParameter
from templatenest.exceptions import UnknownTemplate
from templatenest.policy import RenderPolicy
from templatenest.scanner import ScannedTemplate
from templatenest.scanner import ScannedToken
from templatenest.scanner import line_of
from templatenest.store import SealedTemplateStore

logger = logging.getLogger(__name__)

DEFAULT_POLICY = RenderPolicy()


def render(
        store: SealedTemplateStore,
        template_id: TemplateId,
        filling: object = None,
        policy: RenderPolicy = DEFAULT_POLICY
        ) -> str:
    """Renders the template ``template_id`` from the store, using
    ``filling`` for its tokens. The filling may be a ``FillingObject``
    or any mapping (``None`` is treated as an empty mapping). If it
    happens to contain the policy's template key, that key is ignored.

    Rendering is all-or-nothing: every error encountered along the way
    is collected, and if there were any, they're raised together as a
    ``RenderFailure`` instead of returning partial output.
    """
    _check_token_syntax(store, policy)
    logger.debug('Rendering template %r', template_id)
    context = _RenderContext(store=store, policy=policy)

    # Unknown templates are reported regardless of the filling's shape
    template_known = template_id in store
    if not template_known:
        context.collect(
            UnknownTemplate,
            'Template not found in store',
            template_id=template_id)

    output = ''
    root_filling = context.coerce_root(
        {} if filling is None else filling)
    if root_filling is None:
        pass
    elif not isinstance(root_filling, FillingObject):
        context.collect(
            InvalidFillingShape,
            'The root filling for a template must be an object',
            template_id=template_id)
    elif template_known:
        output = context.render_template(template_id, root_filling)

    return context.finish(output)


def render_filling(
        store: SealedTemplateStore,
        filling: object,
        policy: RenderPolicy = DEFAULT_POLICY
        ) -> str:
    """Renders a filling that names its own template(s): either a
    template reference (an object carrying the policy's template key),
    or a sequence of them, whose renders are concatenated in order.
    """
    _check_token_syntax(store, policy)
    context = _RenderContext(store=store, policy=policy)

    root_filling = context.coerce_root(filling)
    if root_filling is None:
        output = ''
    else:
        output = context.render_root_filling(root_filling)

    return context.finish(output)


def _check_token_syntax(store: SealedTemplateStore, policy: RenderPolicy):
    if store.token_syntax != policy.token_syntax:
        raise MismatchedTokenSyntax(
            'Render policy token syntax does not match the syntax the '
            + 'template store was sealed with',
            policy.token_syntax,
            store.token_syntax)


@dataclass(slots=True)
class _RenderContext:
    """The render context is created fresh for every call to render,
    and is never shared between renders. That's what allows the store
    and policy to be shared between concurrent renders without locks.
    """
    store: SealedTemplateStore
    policy: RenderPolicy
    error_collector: list[Exception] = field(default_factory=list)
    # Template ids currently being rendered, root first. Only used for
    # diagnostics.
    template_stack: list[TemplateId] = field(default_factory=list)
    # Nested templates plus nested sequences currently being rendered;
    # checked against the policy's max_depth.
    nesting_depth: int = 0

    def collect(
            self,
            error_cls: type[RenderError],
            message: str,
            *,
            template_id: TemplateId | None = None,
            token: ScannedToken | None = None,
            scanned: ScannedTemplate | None = None,
            from_exc: Exception | None = None):
        """Creates an error with the current render stack attached, and
        adds it to the error collector.
        """
        if token is None or scanned is None:
            position = line = None
        else:
            position = token.start
            line = line_of(scanned.source, token.start)

        self.error_collector.append(_capture_traceback(
            error_cls(
                message,
                template_id=template_id,
                template_stack=self.template_stack,
                token=None if token is None else token.name,
                position=position,
                line=line),
            from_exc=from_exc))

    def finish(self, output: str) -> str:
        if self.error_collector:
            raise RenderFailure(
                'Failed to render template', self.error_collector)
        return output

    def coerce_root(self, filling: object) -> FillingValue | None:
        try:
            return as_filling(filling)
        except InvalidFillingShape as exc:
            self.collect(
                InvalidFillingShape, 'Invalid root filling', from_exc=exc)
            return None

    def render_root_filling(self, filling: FillingValue) -> str:
        template_key = self.policy.template_key
        if is_template_reference(filling, template_key):
            template_id = self._extract_template_id(filling)
            if template_id is None:
                return ''
            return self.render_template(template_id, filling)

        elif isinstance(filling, FillingSequence):
            if self._nesting_too_deep():
                return ''

            rendered_parts = []
            self.nesting_depth += 1
            try:
                for raw_item in filling.items:
                    try:
                        item = as_filling(raw_item)
                    except InvalidFillingShape as exc:
                        self.collect(
                            InvalidFillingShape,
                            'Invalid filling in root sequence',
                            from_exc=exc)
                        continue

                    rendered_parts.append(self.render_root_filling(item))
            finally:
                self.nesting_depth -= 1
            return ''.join(rendered_parts)

        else:
            self.collect(
                InvalidFillingShape,
                'Root fillings must be template references or sequences '
                + 'of template references')
            return ''

    def render_template(
            self,
            template_id: TemplateId,
            filling: FillingObject
            ) -> str:
        """Renders a single template instance, recursing into any nested
        templates. On error, the error is collected and an empty string
        returned, so that sibling templates can still report their own
        errors.
        """
        policy = self.policy
        if self._nesting_too_deep(template_id):
            return ''

        scanned = self.store.get(template_id)
        if scanned is None:
            self.collect(
                UnknownTemplate,
                'Template not found in store',
                template_id=template_id)
            return ''

        self.template_stack.append(template_id)
        self.nesting_depth += 1
        try:
            if policy.die_on_unknown_params:
                self._check_unknown_params(scanned, filling)

            rendered_parts: list[str] = []
            for part in scanned.parts:
                if isinstance(part, str):
                    rendered_parts.append(part)
                else:
                    rendered_parts.append(
                        self._render_token(scanned, part, filling))

            return ''.join(rendered_parts)

        finally:
            self.nesting_depth -= 1
            self.template_stack.pop()

    def _nesting_too_deep(self, template_id: TemplateId | None = None) -> bool:
        """Collects a ``NestingTooDeep`` error (and returns True) if
        descending one more level would exceed the policy's max_depth.
        Nested templates and nested sequences both count as a level.
        """
        max_depth = self.policy.max_depth
        if max_depth is None or self.nesting_depth < max_depth:
            return False

        self.collect(
            NestingTooDeep,
            f'Filling nesting exceeded max_depth={max_depth}',
            template_id=template_id)
        return True

    def _check_unknown_params(
            self,
            scanned: ScannedTemplate,
            filling: FillingObject):
        template_key = self.policy.template_key
        for field_name in filling.keys():
            if (
                field_name != template_key
                and field_name not in scanned.token_names
            ):
                self.error_collector.append(_capture_traceback(
                    UnknownParameter(
                        'Filling has a field that matches no token',
                        template_id=scanned.template_id,
                        template_stack=self.template_stack,
                        token=field_name)))

    def _render_token(
            self,
            scanned: ScannedTemplate,
            token: ScannedToken,
            filling: FillingObject
            ) -> str:
        policy = self.policy
        template_id = scanned.template_id
        try:
            value = filling.get(token.name)
            if value is None:
                default = policy.lookup_default(template_id, token.name)
                if default is not ...:
                    value = as_filling(default)

        except InvalidFillingShape as exc:
            self.collect(
                InvalidFillingShape,
                'Invalid filling for token',
                template_id=template_id,
                token=token,
                scanned=scanned,
                from_exc=exc)
            return ''

        if value is None:
            if policy.die_on_bad_params:
                self.collect(
                    MissingParameter,
                    'No filling value or default for token',
                    template_id=template_id,
                    token=token,
                    scanned=scanned)
            else:
                logger.info(
                    'No value for token %r in template %r; substituting an '
                    + 'empty string', token.name, template_id)
            return ''

        return self._render_value(scanned, token, value)

    def _render_value(
            self,
            scanned: ScannedTemplate,
            token: ScannedToken,
            value: FillingValue
            ) -> str:
        """Renders any kind of filling value at the position of the
        token. Any kind of value is legal for any token:
        ++  scalars are converted to text and (maybe) escaped
        ++  template references are rendered and re-indented
        ++  sequences render each item independently, and join them
            with the token's indentation, so that repeated blocks line
            up as siblings
        """
        if isinstance(value, Scalar):
            return self._render_scalar(value)

        elif is_template_reference(value, self.policy.template_key):
            return self._reindent(
                self._render_reference(scanned, token, value), token.indent)

        elif isinstance(value, FillingSequence):
            if self._nesting_too_deep(scanned.template_id):
                return ''

            rendered_items: list[str] = []
            self.nesting_depth += 1
            try:
                for raw_item in value.items:
                    try:
                        item = as_filling(raw_item)
                    except InvalidFillingShape as exc:
                        self.collect(
                            InvalidFillingShape,
                            'Invalid filling in sequence',
                            template_id=scanned.template_id,
                            token=token,
                            scanned=scanned,
                            from_exc=exc)
                        continue

                    rendered_items.append(
                        self._render_value(scanned, token, item))
            finally:
                self.nesting_depth -= 1

            if self.policy.fixed_indent:
                separator = ''
            else:
                separator = token.indent
            return separator.join(rendered_items)

        else:
            self.collect(
                InvalidFillingShape,
                'Object filling has no template reference (missing '
                + f'{self.policy.template_key!r} field)',
                template_id=scanned.template_id,
                token=token,
                scanned=scanned)
            return ''

    def _render_scalar(self, value: Scalar) -> str:
        text = value.as_text()
        if isinstance(value.value, str) and self.policy.escape_html:
            return self.policy.escaper(text)
        return text

    def _render_reference(
            self,
            scanned: ScannedTemplate,
            token: ScannedToken,
            reference: FillingObject
            ) -> str:
        nested_template_id = self._extract_template_id(
            reference, scanned=scanned, token=token)
        if nested_template_id is None:
            return ''

        rendered = self.render_template(nested_template_id, reference)
        if self.policy.show_labels:
            rendered = self._wrap_with_labels(rendered, nested_template_id)
        return rendered

    def _extract_template_id(
            self,
            reference: FillingObject,
            *,
            scanned: ScannedTemplate | None = None,
            token: ScannedToken | None = None
            ) -> TemplateId | None:
        template_key = self.policy.template_key
        try:
            template_ref = reference.get(template_key)
        except InvalidFillingShape as exc:
            template_ref = None
            cause = exc
        else:
            cause = None

        if isinstance(template_ref, Scalar) and isinstance(
            template_ref.value, str
        ):
            return template_ref.value

        self.collect(
            InvalidFillingShape,
            f'Template reference field {template_key!r} must be a string',
            template_id=None if scanned is None else scanned.template_id,
            token=token,
            scanned=scanned,
            from_exc=cause)
        return None

    def _reindent(self, text: str, indent: str) -> str:
        """Prefixes every non-empty line after the first with the
        indent. Empty lines are left alone, so that we don't introduce
        trailing whitespace (this also covers the empty remainder after
        a trailing newline).
        """
        if self.policy.fixed_indent or not indent or '\n' not in text:
            return text

        first_line, *other_lines = text.split('\n')
        return '\n'.join((
            first_line,
            *(indent + line if line else line for line in other_lines)))

    def _wrap_with_labels(self, text: str, template_id: TemplateId) -> str:
        """Brackets the text with BEGIN/END comments naming the template.
        The label block ends with a newline exactly when the wrapped
        text did, so that sequences keep joining the same way.
        """
        comment_open, comment_close = self.policy.comment_delimiters
        begin = f'{comment_open} BEGIN {template_id} {comment_close}'
        end = f'{comment_open} END {template_id} {comment_close}'

        if text.endswith('\n'):
            return f'{begin}\n{text}{end}\n'
        else:
            return f'{begin}\n{text}\n{end}'


def _capture_traceback[E: Exception](
        exc: E,
        from_exc: Exception | None = None) -> E:
    """This is a little bit hacky, but it allows us to capture the
    traceback of the exception we want to "raise" but then collect into
    an ExceptionGroup at the end of the rendering cycle. It does pollute
    the traceback with one extra stack level, but the important thing
    is to capture the upstream context for the error, and that it will
    do just fine.
    """
    try:
        if from_exc is None:
            raise exc
        else:
            raise exc from from_exc

    except type(exc) as exc_with_traceback:
        return exc_with_traceback
