import templatenest.prebaked as prebaked  # noqa: PLR0402
from templatenest._types import FillingObject
from templatenest._types import FillingSequence
from templatenest._types import FillingValue
from templatenest._types import Scalar
from templatenest._types import as_filling
from templatenest.environments import NestEnvironment
from templatenest.exceptions import InvalidFillingShape
from templatenest.exceptions import MalformedToken
from templatenest.exceptions import MissingParameter
from templatenest.exceptions import NestingTooDeep
from templatenest.exceptions import RenderError
from templatenest.exceptions import RenderFailure
from templatenest.exceptions import UnknownParameter
from templatenest.exceptions import UnknownTemplate
from templatenest.policy import CommentDelimiters
from templatenest.policy import RenderPolicy
from templatenest.renderer import render
from templatenest.renderer import render_filling
from templatenest.scanner import NamedTokenSyntax
from templatenest.scanner import TokenSyntax
from templatenest.store import SealedTemplateStore
from templatenest.store import TemplateStore

__all__ = [
    'CommentDelimiters',
    'FillingObject',
    'FillingSequence',
    'FillingValue',
    'InvalidFillingShape',
    'MalformedToken',
    'MissingParameter',
    'NamedTokenSyntax',
    'NestEnvironment',
    'NestingTooDeep',
    'RenderError',
    'RenderFailure',
    'RenderPolicy',
    'Scalar',
    'SealedTemplateStore',
    'TemplateStore',
    'TokenSyntax',
    'UnknownParameter',
    'UnknownTemplate',
    'as_filling',
    'prebaked',
    'render',
    'render_filling',
]
