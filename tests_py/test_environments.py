from __future__ import annotations

from unittest.mock import Mock

import pytest

from templatenest.environments import NestEnvironment
from templatenest.exceptions import RenderFailure
from templatenest.exceptions import StoreNotSealed
from templatenest.exceptions import StoreSealed
from templatenest.exceptions import UnknownTemplate
from templatenest.prebaked.loaders import DictTemplateLoader
from templatenest.store import SealedTemplateStore
from tests_py._utils import curly_policy
from tests_py._utils import fake_policy


class TestNestEnvironment:

    def test_default_policy(self):
        """Environments created without a policy must use the default
        one.
        """
        nest_env = NestEnvironment()
        assert nest_env.policy.escape_html
        assert nest_env.policy.die_on_bad_params

    def test_with_init_templates(self):
        """Templates passed to the constructor must be renderable once
        the environment is sealed.
        """
        nest_env = NestEnvironment(
            fake_policy, templates={'page': '<b><!--% v %--></b>'})
        nest_env.seal()

        assert nest_env.render('page', {'v': 'x'}) == '<b>x</b>'

    def test_with_register(self):
        """Registered templates must be renderable once the environment
        is sealed.
        """
        nest_env = NestEnvironment(fake_policy)
        nest_env.register('page', '<b><!--% v %--></b>')
        nest_env.seal()

        assert nest_env.render('page', {'v': 'x'}) == '<b>x</b>'

    def test_store_before_seal(self):
        """Rendering before sealing must be refused."""
        nest_env = NestEnvironment(fake_policy, templates={'page': 'x'})

        with pytest.raises(StoreNotSealed):
            nest_env.store

        with pytest.raises(StoreNotSealed):
            nest_env.render('page')

    def test_register_after_seal(self):
        """Registering templates after sealing must be refused."""
        nest_env = NestEnvironment(fake_policy)
        nest_env.seal()

        with pytest.raises(StoreSealed):
            nest_env.register('page', 'x')

    def test_seal_uses_policy_syntax(self):
        """Sealing must scan templates with the environment policy's
        token syntax.
        """
        nest_env = NestEnvironment(
            curly_policy, templates={'page': 'Hi {{ name }}'})
        sealed = nest_env.seal()

        assert isinstance(sealed, SealedTemplateStore)
        assert sealed.token_syntax == curly_policy.token_syntax
        assert nest_env.render('page', {'name': 'you'}) == 'Hi you'

    def test_policy_overrides(self):
        """Keyword arguments to render must override the environment
        policy for that render only.
        """
        nest_env = NestEnvironment(
            fake_policy, templates={'page': '<!--% v %-->'})
        nest_env.seal()

        assert nest_env.render(
            'page', {'v': '<i>'}, escape_html=False) == '<i>'
        assert nest_env.render('page', {'v': '<i>'}) == '&lt;i&gt;'
        assert nest_env.render('page', {}, die_on_bad_params=False) == ''
        with pytest.raises(RenderFailure):
            nest_env.render('page', {})

    def test_render_filling(self):
        """render_filling must take the template ids from the filling.
        """
        nest_env = NestEnvironment(
            fake_policy, templates={'a': 'A<!--% v %-->', 'b': 'B'})
        nest_env.seal()

        result = nest_env.render_filling(
            [{'TEMPLATE': 'a', 'v': '<'}, {'TEMPLATE': 'b'}],
            escape_html=False)
        assert result == 'A<B'

    def test_load_sync_success(self):
        """load_sync must pull every requested template from the loader.
        """
        loader = DictTemplateLoader(templates={'a': 'A', 'b': 'B'})
        loader_mock = Mock(spec=loader.load_sync, wraps=loader.load_sync)
        loader.load_sync = loader_mock

        nest_env = NestEnvironment(fake_policy, loader=loader)
        nest_env.load_sync('a', 'b')
        nest_env.seal()

        assert loader_mock.call_count == 2
        assert nest_env.render_filling(
            [{'TEMPLATE': 'a'}, {'TEMPLATE': 'b'}]) == 'AB'

    def test_load_sync_cache_hit(self):
        """load_sync must not reload templates that are already present.
        """
        loader = DictTemplateLoader(templates={'a': 'A'})
        loader_mock = Mock(spec=loader.load_sync, wraps=loader.load_sync)
        loader.load_sync = loader_mock

        nest_env = NestEnvironment(fake_policy, loader=loader)
        nest_env.register('a', 'registered')
        nest_env.load_sync('a')
        nest_env.seal()

        assert loader_mock.call_count == 0
        assert nest_env.render('a') == 'registered'

    def test_load_sync_force_reload(self):
        """load_sync must bypass already-present templates if passed
        force_reload=True.
        """
        loader = DictTemplateLoader(templates={'a': 'A'})
        loader_mock = Mock(spec=loader.load_sync, wraps=loader.load_sync)
        loader.load_sync = loader_mock

        nest_env = NestEnvironment(fake_policy, loader=loader)
        nest_env.register('a', 'registered')
        nest_env.load_sync('a', force_reload=True)
        nest_env.seal()

        assert loader_mock.call_count == 1
        assert nest_env.render('a') == 'A'

    def test_load_sync_missing(self):
        """Templates the loader doesn't know must raise UnknownTemplate.
        """
        nest_env = NestEnvironment(
            fake_policy, loader=DictTemplateLoader(templates={}))

        with pytest.raises(UnknownTemplate):
            nest_env.load_sync('nope')

    def test_load_sync_without_loader(self):
        """Loading without a loader must be refused."""
        nest_env = NestEnvironment(fake_policy)

        with pytest.raises(TypeError):
            nest_env.load_sync('a')

    @pytest.mark.anyio
    async def test_load_async_success(self):
        """load_async must pull every requested template from the
        loader.
        """
        loader = DictTemplateLoader(templates={'a': 'A', 'b': 'B'})
        loader_mock = Mock(spec=loader.load_async, wraps=loader.load_async)
        loader.load_async = loader_mock

        nest_env = NestEnvironment(fake_policy, loader=loader)
        await nest_env.load_async('a', 'b')
        nest_env.seal()

        assert loader_mock.call_count == 2
        assert nest_env.render('b') == 'B'

    @pytest.mark.anyio
    async def test_load_async_cache_hit(self):
        """load_async must not reload templates that are already
        present.
        """
        loader = DictTemplateLoader(templates={'a': 'A'})
        loader_mock = Mock(spec=loader.load_async, wraps=loader.load_async)
        loader.load_async = loader_mock

        nest_env = NestEnvironment(fake_policy, loader=loader)
        nest_env.register('a', 'registered')
        await nest_env.load_async('a')
        nest_env.seal()

        assert loader_mock.call_count == 0
        assert nest_env.render('a') == 'registered'

    @pytest.mark.anyio
    async def test_load_async_force_reload(self):
        """load_async must bypass already-present templates if passed
        force_reload=True.
        """
        loader = DictTemplateLoader(templates={'a': 'A'})
        loader_mock = Mock(spec=loader.load_async, wraps=loader.load_async)
        loader.load_async = loader_mock

        nest_env = NestEnvironment(fake_policy, loader=loader)
        nest_env.register('a', 'registered')
        await nest_env.load_async('a', force_reload=True)
        nest_env.seal()

        assert loader_mock.call_count == 1
        assert nest_env.render('a') == 'A'
