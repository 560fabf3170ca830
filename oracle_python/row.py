"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Row class, which represents a single row of data
from a result set fetch operation.
"""
from typing import Any, Dict, List

from oracle_python.values import Value


class Row:
    """
    A row of data from a result set fetch operation. Provides both tuple-like indexing
    and attribute access to column values.

    Indexing and iteration give plain Python values; values() gives the tagged Values.
    """

    def __init__(self, values: List[Value], column_map: Dict[str, int], lowercase: bool = False):
        """
        Initialize a Row object with values and pre-built column map.
        Args:
            values: Tagged Values of this row, in column order
            column_map: Pre-built column name to index mapping (shared across rows)
            lowercase: Snapshot of the lowercase setting when the result set was created
        """
        self._tagged = values
        self._values = [value.to_python() for value in values]
        self._column_map = column_map
        self._lowercase = lowercase

    def values(self) -> List[Value]:
        """Tagged Values of the row (Null, Text, Number, ...)."""
        return list(self._tagged)

    def __getitem__(self, index: int) -> Any:
        """Allow accessing by numeric index: row[0]"""
        return self._values[index]

    def __getattr__(self, name: str) -> Any:
        """
        Allow accessing by column name as attribute: row.column_name
        """
        if name.startswith("__") or "_column_map" not in self.__dict__:
            raise AttributeError(name)

        if name in self._column_map:
            return self._values[self._column_map[name]]

        # Oracle reports unquoted identifiers in uppercase
        upper = name.upper()
        if upper in self._column_map:
            return self._values[self._column_map[upper]]

        if self._lowercase:
            name_lower = name.lower()
            if name_lower in self._column_map:
                return self._values[self._column_map[name_lower]]

        raise AttributeError(f"Row has no attribute '{name}'")

    def __eq__(self, other: Any) -> bool:
        """
        Support comparison with lists and tuples.
        """
        if isinstance(other, (list, tuple)):
            return self._values == list(other)
        if isinstance(other, Row):
            return self._values == other._values
        return NotImplemented

    __hash__ = None

    def __len__(self) -> int:
        """Return the number of values in the row"""
        return len(self._values)

    def __iter__(self) -> Any:
        """Allow iteration through values"""
        return iter(self._values)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging"""
        return repr(tuple(self._values))
