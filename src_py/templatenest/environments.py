from __future__ import annotations

from collections.abc import Mapping

from templatenest._types import TemplateId
from templatenest.exceptions import StoreNotSealed
from templatenest.policy import RenderPolicy
from templatenest.renderer import render
from templatenest.renderer import render_filling
from templatenest.store import AsyncTemplateLoader
from templatenest.store import SealedTemplateStore
from templatenest.store import SyncTemplateLoader
from templatenest.store import TemplateStore


class NestEnvironment:
    """The nest environment bundles together a render policy, an
    (optional) template loader, and the template store, covering the
    whole lifecycle:
    1.. register and/or load templates
    2.. ``seal()`` the environment (scanning every template)
    3.. render as many times as desired, from any number of threads

    Individual renders may tweak the policy by passing keyword
    arguments, for example ``env.render('page', filling,
    escape_html=False)``.
    """
    policy: RenderPolicy
    _loader: SyncTemplateLoader | AsyncTemplateLoader | None
    _store: TemplateStore
    _sealed_store: SealedTemplateStore | None

    def __init__(
            self,
            policy: RenderPolicy | None = None,
            loader: SyncTemplateLoader | AsyncTemplateLoader | None = None,
            templates: Mapping[TemplateId, str] | None = None):
        if policy is None:
            policy = RenderPolicy()

        self.policy = policy
        self._loader = loader
        self._store = TemplateStore(templates)
        self._sealed_store = None

    @property
    def store(self) -> SealedTemplateStore:
        if self._sealed_store is None:
            raise StoreNotSealed(
                'Nest environment must be sealed before use')
        return self._sealed_store

    def register(self, template_id: TemplateId, body: str) -> None:
        self._store.register(template_id, body)

    def load_sync(
            self,
            *template_ids: TemplateId,
            force_reload: bool = False
            ) -> None:
        """Loads the passed template ids using the environment's
        loader.
        """
        loader = self._loader
        if loader is None or not hasattr(loader, 'load_sync'):
            raise TypeError(
                'Nest environment has no sync template loader', loader)

        self._store.load_sync(
            loader, *template_ids, force_reload=force_reload)

    async def load_async(
            self,
            *template_ids: TemplateId,
            force_reload: bool = False
            ) -> None:
        loader = self._loader
        if loader is None or not hasattr(loader, 'load_async'):
            raise TypeError(
                'Nest environment has no async template loader', loader)

        await self._store.load_async(
            loader, *template_ids, force_reload=force_reload)

    def seal(self) -> SealedTemplateStore:
        """Scans all templates using the policy's token syntax and
        freezes the environment's store.
        """
        self._sealed_store = self._store.seal(self.policy.token_syntax)
        return self._sealed_store

    def render(
            self,
            template_id: TemplateId,
            filling: object = None,
            **policy_changes
            ) -> str:
        return render(
            self.store,
            template_id,
            filling,
            self._policy_for(policy_changes))

    def render_filling(self, filling: object, **policy_changes) -> str:
        return render_filling(
            self.store, filling, self._policy_for(policy_changes))

    def _policy_for(self, policy_changes: dict[str, object]) -> RenderPolicy:
        if policy_changes:
            return self.policy.replace(**policy_changes)
        return self.policy
