"""Ready-made render policies for common output formats. Use
``policy.replace(...)`` to adjust them.
"""
from templatenest.policy import CommentDelimiters
from templatenest.policy import RenderPolicy
from templatenest.policy import html_escaper
from templatenest.policy import noop_escaper
from templatenest.scanner import NamedTokenSyntax

__all__ = [
    'html',
    'html_escaper',
    'html_curly',
    'noop_escaper',
    'plaintext',
]

html = RenderPolicy(
    escape_html=True,
    escaper=html_escaper,
    comment_delimiters=CommentDelimiters('<!--', '-->'),
    token_syntax=NamedTokenSyntax.HTML_COMMENT.value)
# For HTML templates that would rather write {{ name }} than <!--% name %-->
html_curly = html.replace(token_syntax=NamedTokenSyntax.CURLY_BRACES.value)
plaintext = RenderPolicy(
    escape_html=False,
    escaper=noop_escaper,
    comment_delimiters=CommentDelimiters('#', '#'),
    token_syntax=NamedTokenSyntax.CURLY_BRACES.value)
