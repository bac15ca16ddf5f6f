from __future__ import annotations

import logging
from collections.abc import Iterator
from collections.abc import Mapping
from types import MappingProxyType
from typing import Protocol

from templatenest._types import TemplateId
from templatenest.exceptions import MalformedToken
from templatenest.exceptions import StoreSealed
from templatenest.exceptions import StoreSealingFailure
from templatenest.scanner import ScannedTemplate
from templatenest.scanner import TokenSyntax
from templatenest.scanner import scan

logger = logging.getLogger(__name__)


class SyncTemplateLoader(Protocol):

    def load_sync(self, template_id: TemplateId) -> str:
        """Returns the raw template body for the passed template id.
        Raise ``UnknownTemplate`` if no such template exists.
        """
        ...


class AsyncTemplateLoader(Protocol):

    async def load_async(self, template_id: TemplateId) -> str:
        """Returns the raw template body for the passed template id.
        Raise ``UnknownTemplate`` if no such template exists.
        """
        ...


class TemplateStore:
    """The template store is populated once -- by registering template
    bodies directly, or by loading them through a template loader --
    and then sealed. Sealing scans every body and returns an immutable
    ``SealedTemplateStore``, which is what the renderer consumes.

    After sealing, the builder refuses any further registrations, so
    that nothing can be mutated underneath an in-flight render.
    """
    _bodies: dict[TemplateId, str]
    _sealed: bool

    def __init__(self, templates: Mapping[TemplateId, str] | None = None):
        self._bodies = {}
        self._sealed = False
        if templates is not None:
            for template_id, body in templates.items():
                self.register(template_id, body)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._bodies

    def register(self, template_id: TemplateId, body: str) -> None:
        """Adds (or replaces) a template body. Raises ``StoreSealed`` if
        the store has already been sealed.
        """
        if self._sealed:
            raise StoreSealed(
                'Cannot register templates after sealing the store',
                template_id)
        if not isinstance(body, str):
            raise TypeError('Template bodies must be strings!', template_id)

        self._bodies[template_id] = body

    def load_sync(
            self,
            loader: SyncTemplateLoader,
            *template_ids: TemplateId,
            force_reload: bool = False
            ) -> None:
        """Loads the passed template ids through the loader and
        registers them. Already-registered ids are skipped unless
        ``force_reload`` is passed.
        """
        for template_id in template_ids:
            if force_reload or template_id not in self._bodies:
                logger.debug('Loading template %r', template_id)
                self.register(template_id, loader.load_sync(template_id))

    async def load_async(
            self,
            loader: AsyncTemplateLoader,
            *template_ids: TemplateId,
            force_reload: bool = False
            ) -> None:
        """Async version of ``load_sync``."""
        for template_id in template_ids:
            if force_reload or template_id not in self._bodies:
                logger.debug('Loading template %r', template_id)
                self.register(
                    template_id, await loader.load_async(template_id))

    def seal(self, token_syntax: TokenSyntax) -> SealedTemplateStore:
        """Scans every registered template body and freezes the store.
        If any of the bodies fail to scan, all of the failures are
        raised together as a ``StoreSealingFailure``, and the store
        remains unsealed so that the bodies can be fixed.
        """
        if self._sealed:
            raise StoreSealed('Template store was already sealed')

        errors: list[Exception] = []
        scanned: dict[TemplateId, ScannedTemplate] = {}
        for template_id, body in self._bodies.items():
            try:
                scanned[template_id] = scan(
                    body, token_syntax, template_id=template_id)
            except MalformedToken as exc:
                errors.append(exc)

        if errors:
            raise StoreSealingFailure(
                'Failed to scan template bodies', errors)

        self._sealed = True
        logger.debug('Sealed template store with %d templates', len(scanned))
        return SealedTemplateStore(scanned, token_syntax)


class SealedTemplateStore(Mapping[TemplateId, ScannedTemplate]):
    """A read-only mapping from template id to scanned template. Safe
    to share between any number of concurrent renders.
    """
    __slots__ = ('_templates', 'token_syntax')
    _templates: Mapping[TemplateId, ScannedTemplate]
    token_syntax: TokenSyntax

    def __init__(
            self,
            templates: Mapping[TemplateId, ScannedTemplate],
            token_syntax: TokenSyntax):
        self._templates = MappingProxyType(dict(templates))
        self.token_syntax = token_syntax

    def __getitem__(self, template_id: TemplateId) -> ScannedTemplate:
        return self._templates[template_id]

    def __iter__(self) -> Iterator[TemplateId]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __repr__(self) -> str:
        return f'<{type(self).__name__} with {len(self)} templates>'
