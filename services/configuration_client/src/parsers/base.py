from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Tuple, Union

from shared.common_utils.exceptions import FormatError
from ..flat_map import FlatMap, combine_path


class MappingNode(list):
    """
    Ordered ``(name, node)`` pairs of a structured document.

    Duplicate names are kept so that flattening can reject them. ``text`` carries an
    element's own value for formats where a node can hold both (markup).
    """

    def __init__(self, pairs=(), text: Optional[str] = None):
        super().__init__(pairs)
        self.text = text


Node = Union[None, str, MappingNode, List["Node"]]


def _walk(node: Node, path: Tuple[str, ...]) -> Iterator[Tuple[str, Optional[str]]]:
    if isinstance(node, MappingNode):
        if node.text is not None and path:
            yield combine_path(path), node.text
        for name, child in node:
            yield from _walk(child, path + (str(name),))
    elif isinstance(node, list):
        for position, child in enumerate(node):
            yield from _walk(child, path + (str(position),))
    else:
        if not path:
            # a bare scalar document has nowhere to live in the key space
            return
        yield combine_path(path), node


def flatten(root: Node) -> FlatMap:
    """
    Flatten a document tree into a FlatMap.

    Mappings contribute their names, sequences their zero-based indexes, and every
    scalar becomes one entry keyed by the joined path. Raises FormatError when two
    paths collide case-insensitively.
    """
    return FlatMap(_walk(root, ()))


class ConfigurationFileParser(ABC):
    """Turns raw document bytes into a FlatMap."""

    @abstractmethod
    def parse(self, data: bytes) -> FlatMap:
        ...

    @property
    def name(self) -> str:
        return type(self).__name__


def decode_document(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"Document is not valid UTF-8: {e}") from e
