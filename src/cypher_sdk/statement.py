'''
Cypher statements

A Statement is the query text plus its named parameters. The text is never
parsed on the client: ``{name}`` / ``$name`` placeholders are resolved by
the server, which also rejects unknown or missing ones.
'''

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .error import InvalidOperationError
from .value import Value, to_values


class Statement:
    '''
    Query text with named parameters

    ``with_param`` returns a new Statement, so statements can be built up in
    a single expression. The ``add_param``/``remove_param``/``set_parameters``
    mutators change the statement in place and are refused once the
    statement has been sent.

    Examples:
        >>> stmt = (Statement("MATCH (n:LANG {name: {name}}) RETURN n")
        ...     .with_param("name", "Rust"))
    '''

    def __init__(self, text: str, parameters: Optional[Mapping[str, Any]] = None):
        self._text = text
        self._parameters: Dict[str, Value] = to_values(parameters or {})
        self._frozen = False

    @classmethod
    def coerce(cls, statement: Union["Statement", str]) -> "Statement":
        '''
        Accept either a Statement or bare query text
        '''
        if isinstance(statement, Statement):
            return statement
        if isinstance(statement, str):
            return cls(statement)
        raise TypeError(f"expected Statement or str, got {type(statement).__name__}")

    @property
    def text(self) -> str:
        return self._text

    @property
    def parameters(self) -> Mapping[str, Value]:
        return MappingProxyType(self._parameters)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def param(self, name: str) -> Optional[Value]:
        '''
        Get the value bound to a parameter, or None if it is not bound
        '''
        return self._parameters.get(name)

    def with_param(self, name: str, value: Any) -> "Statement":
        '''
        Return a copy of this statement with ``name`` bound to ``value``

        A previous binding for the same name is overwritten.
        '''
        copy = Statement(self._text)
        copy._parameters = dict(self._parameters)
        copy._parameters[name] = Value.of(value)
        return copy

    def add_param(self, name: str, value: Any) -> None:
        self._check_mutable()
        self._parameters[name] = Value.of(value)

    def remove_param(self, name: str) -> None:
        '''
        Remove a parameter; removing one that is not bound has no effect
        '''
        self._check_mutable()
        self._parameters.pop(name, None)

    def set_parameters(self, parameters: Mapping[str, Any]) -> None:
        '''
        Replace all parameters
        '''
        self._check_mutable()
        self._parameters = to_values(parameters)

    def freeze(self) -> None:
        self._frozen = True

    def to_wire(self) -> Dict[str, Any]:
        '''
        Batch entry for this statement
        '''
        return {
            "statement": self._text,
            "parameters": {name: value.to_wire() for name, value in self._parameters.items()},
        }

    def _check_mutable(self) -> None:
        if self._frozen:
            raise InvalidOperationError("statement has already been sent and cannot be modified")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Statement):
            return NotImplemented
        return self._text == other._text and self._parameters == other._parameters

    def __repr__(self) -> str:
        return f"Statement({self._text!r}, params={sorted(self._parameters)})"


def cypher_stmt(text: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Statement:
    '''
    Convenience constructor for statements with inline parameters

    Examples:
        >>> cypher_stmt("MATCH (n) WHERE n.name = {name} RETURN n", name="Rust")
        >>> cypher_stmt("MATCH (n) RETURN n", {"param1": "value1", "param2": 2})
    '''
    merged = dict(params or {})
    merged.update(kwargs)
    return Statement(text, merged)


__all__ = ['Statement', 'cypher_stmt']
