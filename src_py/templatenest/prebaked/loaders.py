from __future__ import annotations

import logging
from pathlib import Path

import anyio

from templatenest._types import TemplateId
from templatenest.exceptions import UnknownTemplate
from templatenest.store import AsyncTemplateLoader
from templatenest.store import SyncTemplateLoader

logger = logging.getLogger(__name__)


class DictTemplateLoader(AsyncTemplateLoader, SyncTemplateLoader):
    """A barebones template loader that simply loads templates from a
    dictionary based on the template id.
    """
    _lookup: dict[TemplateId, str]

    def __init__(self, templates: dict[TemplateId, str] | None = None):
        if templates is None:
            templates = {}
        self._lookup = templates

    def load_sync(self, template_id: TemplateId) -> str:
        try:
            return self._lookup[template_id]
        except KeyError as exc:
            raise UnknownTemplate(
                'No such template in loader dict',
                template_id=template_id) from exc

    async def load_async(self, template_id: TemplateId) -> str:
        return self.load_sync(template_id)


class DirectoryTemplateLoader(AsyncTemplateLoader, SyncTemplateLoader):
    """Loads templates from files within a directory. Template ids are
    relative paths without the extension, using forward slashes, so
    with the default ``html`` extension, ``'output/01-page'`` is loaded
    from ``<directory>/output/01-page.html``.

    Template ids that would resolve to a file outside of the directory
    are refused.
    """
    directory: Path
    extension: str
    encoding: str

    def __init__(
            self,
            directory: Path | str,
            extension: str = 'html',
            *,
            encoding: str = 'utf-8'):
        self.directory = Path(directory)
        self.extension = extension
        self.encoding = encoding

    def resolve(self, template_id: TemplateId) -> Path:
        """Converts a template id into the path of its file. Raises
        ``UnknownTemplate`` if the id escapes the directory.
        """
        filename = template_id
        if self.extension:
            filename = f'{template_id}.{self.extension}'

        root = self.directory.resolve()
        path = (root / filename).resolve()
        if not path.is_relative_to(root):
            raise UnknownTemplate(
                'Template id resolves outside of the template directory',
                template_id=template_id)
        return path

    def load_sync(self, template_id: TemplateId) -> str:
        path = self.resolve(template_id)
        logger.debug('Reading template %r from %s', template_id, path)
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError as exc:
            raise UnknownTemplate(
                f'No template file at {path}',
                template_id=template_id) from exc

    async def load_async(self, template_id: TemplateId) -> str:
        path = anyio.Path(self.resolve(template_id))
        logger.debug('Reading template %r from %s', template_id, path)
        try:
            return await path.read_text(encoding=self.encoding)
        except FileNotFoundError as exc:
            raise UnknownTemplate(
                f'No template file at {path}',
                template_id=template_id) from exc
