'''
Result handling and typed deserialization

This module turns the ``results`` section of a transaction endpoint
response into ResultSets. Every cell is materialized as a Value while
parsing; conversion to Python types happens only when a caller asks for it,
so a well-formed response always parses even if some cells would not
convert to the type a caller later requests.
'''

import dataclasses
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple, Type, TypeVar, Union

from .error import ColumnNotFound, SerializationError
from .value import Value, ValueKind, convert

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Row:
    '''
    One record of a ResultSet

    Cells are reachable by position or by column name. The name index is
    built once per ResultSet and shared by all of its rows.
    '''

    __slots__ = ('_cells', '_index')

    def __init__(self, cells: Sequence[Value], index: Mapping[str, int]):
        self._cells = tuple(cells)
        self._index = index

    @property
    def cells(self) -> Tuple[Value, ...]:
        return self._cells

    def columns(self) -> List[str]:
        return list(self._index)

    def value(self, column: str) -> Value:
        '''
        Raw Value of a column

        Raises:
            ColumnNotFound: If no column has exactly this name
        '''
        try:
            return self._cells[self._index[column]]
        except KeyError:
            raise ColumnNotFound(column) from None

    def get(self, column: str, target: Any = Any) -> Any:
        '''
        Read a column as the given type

        Column names are case sensitive and must match what the server
        returned, e.g. ``n.name`` for ``RETURN n.name``.

        Raises:
            ColumnNotFound: If no column has exactly this name
            TypeMismatch: If the cell does not hold the requested type
            UnexpectedNull: If the cell is null and target is not Optional

        Examples:
            >>> row.get("n.name", str)
            'Rust'
            >>> row.get("n.age", Optional[int])
        '''
        return convert(self.value(column), target)

    def get_n(self, index: int, target: Any = Any) -> Any:
        '''
        Read a cell by position as the given type
        '''
        if not 0 <= index < len(self._cells):
            raise ColumnNotFound(index)
        return convert(self._cells[index], target)

    def as_tuple(self, *targets: Any) -> Tuple[Any, ...]:
        '''
        Convert the whole row positionally

        With no targets every cell is returned as native data. Otherwise one
        target per column is required.
        '''
        if not targets:
            return tuple(cell.to_native() for cell in self._cells)
        if len(targets) != len(self._cells):
            raise ValueError(f"row has {len(self._cells)} columns, {len(targets)} types given")
        return tuple(convert(cell, target) for cell, target in zip(self._cells, targets))

    def as_dict(self) -> Dict[str, Any]:
        return {name: self._cells[i].to_native() for name, i in self._index.items()}

    def deserialize(self, target_type: Type[T]) -> T:
        '''
        Map the row onto a dataclass, matching fields to column names

        Examples:
            >>> @dataclass
            ... class Person:
            ...     name: str
            ...     age: int
            >>>
            >>> result = session.exec("MATCH (p:Person) RETURN p.name AS name, p.age AS age")
            >>> people = [row.deserialize(Person) for row in result]
        '''
        if not dataclasses.is_dataclass(target_type):
            raise TypeError(f"{target_type!r} is not a dataclass")
        row_map = Value(ValueKind.MAP, {name: self._cells[i] for name, i in self._index.items()})
        return convert(row_map, target_type)

    def __getitem__(self, key: Union[str, int]) -> Any:
        if isinstance(key, int):
            return self.get_n(key)
        return self.get(key)

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Value]:
        return iter(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self._cells == other._cells and list(self._index) == list(other._index)

    def __repr__(self) -> str:
        return f"Row({self.as_dict()!r})"


class ResultSet:
    '''
    Output of one statement: column labels plus fully materialized rows
    '''

    def __init__(self, columns: Sequence[str], data: Sequence[Sequence[Value]]):
        self._columns = tuple(columns)
        index = MappingProxyType({name: i for i, name in enumerate(self._columns)})
        rows = []
        for cells in data:
            if len(cells) != len(self._columns):
                raise SerializationError(
                    f"row has {len(cells)} cells but result has {len(self._columns)} columns")
            rows.append(Row(cells, index))
        self._rows = tuple(rows)

    @classmethod
    def from_wire(cls, result: Mapping[str, Any]) -> "ResultSet":
        '''
        Build a ResultSet from one entry of the response ``results`` list

        Raises:
            SerializationError: If the entry does not have the expected shape
        '''
        if not isinstance(result, Mapping):
            raise SerializationError(f"result entry is not an object: {result!r}")
        columns = result.get("columns") or []
        data = result.get("data") or []
        if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
            raise SerializationError(f"invalid columns in result: {columns!r}")
        if not isinstance(data, list):
            raise SerializationError("result data is not a list")

        rows = []
        for entry in data:
            if not isinstance(entry, Mapping) or not isinstance(entry.get("row"), list):
                raise SerializationError(f"result data entry has no row: {entry!r}")
            try:
                rows.append([Value.from_wire(cell) for cell in entry["row"]])
            except TypeError as e:
                raise SerializationError(f"unsupported value in row: {e}") from e
        return cls(columns, rows)

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self._rows

    def row_count(self) -> int:
        return len(self._rows)

    def is_empty(self) -> bool:
        '''
        Check if the result is empty (no rows)
        '''
        return not self._rows

    def first(self, target_type: Type[T]) -> T:
        '''
        First row mapped onto a dataclass

        Raises:
            SerializationError: If no rows were returned
        '''
        if self.is_empty():
            raise SerializationError("No rows returned")
        return self._rows[0].deserialize(target_type)

    def scalar(self, target: Any = Any) -> Any:
        '''
        Value of the first column of the first row

        Useful for queries that return a single value, such as ``count(n)``.

        Raises:
            SerializationError: If no rows or columns exist

        Examples:
            >>> session.exec("MATCH (p:Person) RETURN count(p)").scalar(int)
            3
        '''
        if self.is_empty():
            raise SerializationError("No rows returned")
        if not self._columns:
            raise SerializationError("No columns returned")
        return self._rows[0].get_n(0, target)

    def column(self, name: str, target: Any = Any) -> List[Any]:
        '''
        All values of one column, converted to target
        '''
        if name not in self._columns:
            raise ColumnNotFound(name)
        return [row.get(name, target) for row in self._rows]

    def deserialize_rows(self, target_type: Type[T]) -> List[T]:
        '''
        Map every row onto a dataclass
        '''
        return [row.deserialize(target_type) for row in self._rows]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> Row:
        return self._rows[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResultSet):
            return NotImplemented
        return self._columns == other._columns and self._rows == other._rows

    def __repr__(self) -> str:
        return f"ResultSet(columns={list(self._columns)!r}, rows={len(self._rows)})"


def parse_results(results: Any) -> List[ResultSet]:
    '''
    Parse the ``results`` list of a response, keeping submission order
    '''
    if not isinstance(results, list):
        logger.error("Unable to parse response: results is %r", type(results).__name__)
        raise SerializationError("response results is not a list")
    return [ResultSet.from_wire(result) for result in results]


__all__ = ['ResultSet', 'Row', 'parse_results']
