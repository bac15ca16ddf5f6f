from templatenest.policy import RenderPolicy
from templatenest.renderer import render
from templatenest.scanner import NamedTokenSyntax
from templatenest.store import SealedTemplateStore
from templatenest.store import TemplateStore

# Page and component templates shared by the page rendering tests.
SIMPLE_PAGE = '''\
<!DOCTYPE html>
<html lang="en">
  <head>
    <title>Simple Page</title>
  </head>
  <body>
    <p><!--% variable %--></p>
    <!--% simple_component %-->
  </body>
</html>
'''
SIMPLE_COMPONENT = '<p><!--% variable %--></p>\n'
SIMPLE_COMPONENT_MULTI_LINE = '''\
<div>
  <p><!--% variable %--></p>
</div>
'''

fake_policy = RenderPolicy(max_depth=16)
lenient_policy = fake_policy.replace(die_on_bad_params=False)


def seal(
        templates: dict[str, str],
        policy: RenderPolicy = fake_policy
        ) -> SealedTemplateStore:
    return TemplateStore(templates).seal(policy.token_syntax)


def render_one(
        body: str,
        filling: object = None,
        policy: RenderPolicy = fake_policy,
        **other_templates: str
        ) -> str:
    """Convenience for the (very common) case of rendering a single
    root template called ``root``, optionally alongside some nested
    ones.
    """
    store = seal({'root': body, **other_templates}, policy)
    return render(store, 'root', filling, policy)


curly_policy = fake_policy.replace(
    token_syntax=NamedTokenSyntax.CURLY_BRACES.value)
