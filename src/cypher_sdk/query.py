'''
Batch builder for immediately-committed statements

This module provides a fluent API for sending several statements in one
request that the server commits as a unit, without the begin/commit
round trips of an explicit transaction.
'''

from typing import TYPE_CHECKING, List, Tuple, Union

from .result import ResultSet
from .statement import Statement

if TYPE_CHECKING:
    from .connection import Cypher


class Query:
    '''
    Fluent accumulator of statements sent as one implicit-commit batch

    Examples:
        >>> results = (session.query()
        ...     .with_statement("CREATE (n:LANG {name: 'Rust'})")
        ...     .with_statement(Statement("MATCH (n:LANG) RETURN n.name"))
        ...     .send())
        >>> len(results)
        2
    '''

    def __init__(self, cypher: 'Cypher'):
        '''
        Initialize the batch builder
        '''
        self._cypher = cypher
        self._statements: List[Statement] = []

    def add_statement(self, statement: Union[Statement, str]) -> None:
        self._statements.append(Statement.coerce(statement))

    def with_statement(self, statement: Union[Statement, str]) -> 'Query':
        '''
        Add a statement to the batch
        Can be called multiple times; statements run in the order added.
        '''
        self.add_statement(statement)
        return self

    @property
    def statements(self) -> Tuple[Statement, ...]:
        return tuple(self._statements)

    def __len__(self) -> int:
        return len(self._statements)

    def send(self) -> List[ResultSet]:
        '''
        Send the batch and return the results

        Returns:
            One ResultSet per statement, in the order added

        Raises:
            ServerError: If any statement fails; nothing is committed and no
                partial results are returned
            TransportError: If the request fails
        '''
        return self._cypher.send_batch(self._statements)


__all__ = ['Query']
