from __future__ import annotations

from collections.abc import Iterator
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from functools import singledispatch
from numbers import Number

from typing_extensions import TypeIs

from templatenest.exceptions import InvalidFillingShape

type TemplateId = str
type ScalarValue = str | Number | bool | None


@dataclass(frozen=True, slots=True)
class Scalar:
    value: ScalarValue

    def as_text(self) -> str:
        """Converts the scalar to its canonical textual form. Note that
        this does no escaping; that's up to the render policy.
        """
        value = self.value
        if value is None:
            return ''
        # Bools must be checked before numbers, since they're also ints
        elif isinstance(value, bool):
            return 'true' if value else 'false'
        elif isinstance(value, str):
            return value
        else:
            return format(value)


@dataclass(frozen=True, slots=True)
class FillingObject:
    """A mapping of field names to filling values. Field values are
    converted into ``FillingValue`` instances lazily, as they're looked
    up, so that arbitrarily deep (or even self-referencing) python
    containers can be passed in directly without an upfront copy.
    """
    fields: Mapping[str, object]

    def get(self, name: str) -> FillingValue | None:
        if name in self.fields:
            return as_filling(self.fields[name])
        return None

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def keys(self) -> Iterator[str]:
        return iter(self.fields)


@dataclass(frozen=True, slots=True)
class FillingSequence:
    items: Sequence[object]

    def __iter__(self) -> Iterator[FillingValue]:
        for item in self.items:
            yield as_filling(item)

    def __len__(self) -> int:
        return len(self.items)


type FillingValue = Scalar | FillingObject | FillingSequence


@singledispatch
def as_filling(value: object) -> FillingValue:
    """Adapts plain python values -- for example, the result of
    ``json.loads`` -- into the closed ``FillingValue`` union:
    ++  strings, numbers, bools, and None become ``Scalar``
    ++  mappings become ``FillingObject``
    ++  any other sequence becomes ``FillingSequence``

    ``FillingValue`` instances are passed through unchanged. Anything
    else raises ``InvalidFillingShape``.
    """
    raise InvalidFillingShape(
        f'Cannot use value of type {type(value).__name__} as a filling')


@as_filling.register
def _(value: Scalar | FillingObject | FillingSequence) -> FillingValue:
    return value


@as_filling.register
def _(value: str | Number | bool | None) -> FillingValue:
    return Scalar(value)


@as_filling.register
def _(value: Mapping) -> FillingValue:
    return FillingObject(value)


@as_filling.register
def _(value: Sequence) -> FillingValue:
    return FillingSequence(value)


@as_filling.register
def _(value: bytes | bytearray) -> FillingValue:
    """We need to be careful here to supply a MORE SPECIFIC dispatch
    type than sequence for bytes, since they are technically also
    sequences (of ints). Decode them before passing them in.
    """
    raise InvalidFillingShape(
        'Bytes cannot be used as fillings; decode them to str first')


def is_template_reference(
        value: FillingValue,
        template_key: str
        ) -> TypeIs[FillingObject]:
    """Template references are objects carrying the reserved template
    key, whatever its value.
    """
    return isinstance(value, FillingObject) and template_key in value
