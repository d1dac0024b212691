from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, Optional, Tuple

from shared.common_utils.exceptions import FormatError

KEY_DELIMITER = ":"


def combine_path(segments: Iterable[str]) -> str:
    return KEY_DELIMITER.join(segments)


class FlatMap(Mapping):
    """
    Immutable flattened configuration: delimited key -> optional string value.

    Keys compare case-insensitively and iterate in case-insensitive sorted order.
    The original key casing of the first writer is preserved for display.
    """

    __slots__ = ("_data", "_index")

    def __init__(self, entries: Iterable[Tuple[str, Optional[str]]] = ()):
        data: Dict[str, Optional[str]] = {}
        index: Dict[str, str] = {}
        for key, value in entries:
            folded = key.casefold()
            if folded in index:
                raise FormatError(f"A duplicate key '{key}' was found.")
            index[folded] = key
            data[key] = value

        ordered = sorted(data, key=str.casefold)
        self._data = {key: data[key] for key in ordered}
        self._index = {key.casefold(): key for key in ordered}

    @classmethod
    def empty(cls) -> "FlatMap":
        return cls()

    def __getitem__(self, key: str) -> Optional[str]:
        return self._data[self._index[key.casefold()]]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FlatMap):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self):
        return hash(tuple(self._data.items()))

    def __repr__(self) -> str:
        return f"FlatMap({self._data!r})"

    def to_dict(self) -> Dict[str, Optional[str]]:
        return dict(self._data)
