'''
Value model for parameters and result cells

Every parameter sent to the server and every cell read back from it is held
as a ``Value``: a closed tagged union over the JSON-shaped variants the
transaction endpoint can carry. Building a Value from Python data never
fails for supported types; reading one back as a requested type is strict
and raises instead of coercing.
'''

import dataclasses
from collections.abc import Mapping
from enum import Enum
import types
from typing import Any, Dict, Tuple, Union, get_args, get_origin, get_type_hints

from .error import TypeMismatch, UnexpectedNull


class ValueKind(Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    LIST = "list"
    MAP = "map"


@dataclasses.dataclass(frozen=True)
class Value:
    '''
    A single parameter or result value

    ``data`` holds the Python payload for scalars, a tuple of Values for
    LIST and a dict of str to Value for MAP.
    '''
    kind: ValueKind
    data: Any = None

    @classmethod
    def of(cls, obj: Any) -> "Value":
        '''
        Build a Value from native Python data

        Accepts None, bool, int, float, str, mappings with str keys,
        lists/tuples/sets, dataclass instances (encoded as maps of their
        fields), objects exposing ``to_value()`` and Values themselves.

        Raises:
            TypeError: If obj (or something nested in it) is not representable
        '''
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return NULL
        # bool before int: True is an int in Python but a BOOLEAN on the wire
        if isinstance(obj, bool):
            return cls(ValueKind.BOOLEAN, obj)
        if isinstance(obj, int):
            return cls(ValueKind.INTEGER, int(obj))
        if isinstance(obj, float):
            return cls(ValueKind.FLOAT, obj)
        if isinstance(obj, str):
            return cls(ValueKind.TEXT, obj)
        if isinstance(obj, Mapping):
            items = {}
            for key, item in obj.items():
                if not isinstance(key, str):
                    raise TypeError(f"map keys must be str, got {type(key).__name__}")
                items[key] = cls.of(item)
            return cls(ValueKind.MAP, items)
        if isinstance(obj, (list, tuple, set, frozenset)):
            return cls(ValueKind.LIST, tuple(cls.of(item) for item in obj))
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return cls(ValueKind.MAP, {
                f.name: cls.of(getattr(obj, f.name)) for f in dataclasses.fields(obj)
            })
        to_value = getattr(obj, "to_value", None)
        if callable(to_value):
            return cls.of(to_value())
        raise TypeError(f"cannot convert {type(obj).__name__} to a Value")

    @classmethod
    def from_wire(cls, tree: Any) -> "Value":
        '''Build a Value from a decoded JSON tree'''
        return cls.of(tree)

    def to_wire(self) -> Any:
        '''Plain JSON-serializable tree for this value'''
        return self.to_native()

    def to_native(self) -> Any:
        if self.kind is ValueKind.LIST:
            return [item.to_native() for item in self.data]
        if self.kind is ValueKind.MAP:
            return {key: item.to_native() for key, item in self.data.items()}
        return self.data

    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_type(self, target: Any) -> Any:
        '''Shortcut for ``convert(self, target)``'''
        return convert(self, target)


NULL = Value(ValueKind.NULL)


class BoundedInt:
    '''
    Marker for a fixed-width integer target

    Converting an INTEGER value to a BoundedInt returns a plain ``int`` and
    raises TypeMismatch when the value does not fit.
    '''

    def __init__(self, name: str, minimum: int, maximum: int):
        self.__name__ = name
        self.minimum = minimum
        self.maximum = maximum

    def __contains__(self, number: int) -> bool:
        return self.minimum <= number <= self.maximum

    def __repr__(self) -> str:
        return self.__name__


Int8 = BoundedInt("Int8", -2 ** 7, 2 ** 7 - 1)
Int16 = BoundedInt("Int16", -2 ** 15, 2 ** 15 - 1)
Int32 = BoundedInt("Int32", -2 ** 31, 2 ** 31 - 1)
Int64 = BoundedInt("Int64", -2 ** 63, 2 ** 63 - 1)
UInt8 = BoundedInt("UInt8", 0, 2 ** 8 - 1)
UInt16 = BoundedInt("UInt16", 0, 2 ** 16 - 1)
UInt32 = BoundedInt("UInt32", 0, 2 ** 32 - 1)


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)


def _expect(value: Value, kind: ValueKind, target: Any) -> None:
    if value.kind is not kind:
        raise TypeMismatch(_type_name(target), value.kind.value)


def convert(value: Value, target: Any) -> Any:
    '''
    Convert a Value to the requested Python type

    Supported targets: ``Any``, ``Value``, ``bool``, ``int``, ``float``,
    ``str``, ``list``/``List[T]``, ``tuple``/``Tuple[...]``,
    ``dict``/``Dict[str, T]``, ``Optional[T]`` and other unions, the
    BoundedInt markers and dataclasses.

    Raises:
        UnexpectedNull: If value is null and target is not optional
        TypeMismatch: If the variant does not match, or an integer overflows
            a bounded target
        TypeError: If target is not a supported type
    '''
    if target is Any or target is object:
        return value.to_native()
    if target is Value:
        return value

    origin = get_origin(target)
    args = get_args(target)

    if origin is Union or origin is getattr(types, "UnionType", Union):
        return _convert_union(value, target, args)

    if value.is_null():
        raise UnexpectedNull(_type_name(target))

    if isinstance(target, BoundedInt):
        _expect(value, ValueKind.INTEGER, target)
        if value.data not in target:
            raise TypeMismatch(_type_name(target), value.kind.value,
                               f"{value.data} out of range")
        return value.data
    if target is bool:
        _expect(value, ValueKind.BOOLEAN, target)
        return value.data
    if target is int:
        _expect(value, ValueKind.INTEGER, target)
        return value.data
    if target is float:
        if value.kind is ValueKind.INTEGER:
            return float(value.data)
        _expect(value, ValueKind.FLOAT, target)
        return value.data
    if target is str:
        _expect(value, ValueKind.TEXT, target)
        return value.data
    if target is list or origin is list:
        _expect(value, ValueKind.LIST, target)
        item_type = args[0] if args else Any
        return [convert(item, item_type) for item in value.data]
    if target is tuple or origin is tuple:
        return _convert_tuple(value, target, args)
    if target is dict or origin is dict:
        _expect(value, ValueKind.MAP, target)
        item_type = args[1] if len(args) == 2 else Any
        return {key: convert(item, item_type) for key, item in value.data.items()}
    if dataclasses.is_dataclass(target) and isinstance(target, type):
        _expect(value, ValueKind.MAP, target)
        return _convert_dataclass(value.data, target)

    raise TypeError(f"unsupported target type {target!r}")


def _convert_union(value: Value, target: Any, args: Tuple[Any, ...]) -> Any:
    members = [a for a in args if a is not type(None)]
    if len(members) < len(args) and value.is_null():
        return None
    if value.is_null():
        raise UnexpectedNull(_type_name(target))
    for member in members:
        try:
            return convert(value, member)
        except TypeMismatch:
            continue
    raise TypeMismatch(" | ".join(_type_name(m) for m in members), value.kind.value)


def _convert_tuple(value: Value, target: Any, args: Tuple[Any, ...]) -> Any:
    _expect(value, ValueKind.LIST, target)
    items = value.data
    if not args:
        return tuple(item.to_native() for item in items)
    if len(args) == 2 and args[1] is Ellipsis:
        return tuple(convert(item, args[0]) for item in items)
    if len(args) != len(items):
        raise TypeMismatch(_type_name(target), value.kind.value,
                           f"expected {len(args)} items, found {len(items)}")
    return tuple(convert(item, item_type) for item, item_type in zip(items, args))


def _convert_dataclass(items: Dict[str, Value], target: type) -> Any:
    hints = get_type_hints(target)
    kwargs = {}
    for f in dataclasses.fields(target):
        if not f.init:
            continue
        if f.name in items:
            kwargs[f.name] = convert(items[f.name], hints.get(f.name, Any))
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            raise TypeMismatch(target.__name__, ValueKind.MAP.value, f"missing field {f.name!r}")
    return target(**kwargs)


def to_values(params: Mapping) -> Dict[str, Value]:
    '''Convert a mapping of native parameters into a dict of Values'''
    return {str(name): Value.of(item) for name, item in params.items()}


__all__ = [
    'Value', 'ValueKind', 'NULL', 'BoundedInt', 'convert', 'to_values',
    'Int8', 'Int16', 'Int32', 'Int64', 'UInt8', 'UInt16', 'UInt32',
]
