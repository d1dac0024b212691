import json

from shared.common_utils.exceptions import FormatError
from ..flat_map import FlatMap
from .base import ConfigurationFileParser, MappingNode, Node, decode_document, flatten


def _to_node(value) -> Node:
    if isinstance(value, MappingNode):
        return MappingNode((name, _to_node(child)) for name, child in value)
    if isinstance(value, list):
        return [_to_node(child) for child in value]
    if value is None:
        return None
    if value is True:
        return "true"
    if value is False:
        return "false"
    return value


class JsonConfigurationFileParser(ConfigurationFileParser):
    """Object and array documents. Numbers keep their source text."""

    def parse(self, data: bytes) -> FlatMap:
        text = decode_document(data)
        if not text.strip():
            return FlatMap.empty()
        try:
            document = json.loads(
                text,
                object_pairs_hook=MappingNode,
                parse_int=str,
                parse_float=str,
                parse_constant=str,
            )
        except json.JSONDecodeError as e:
            raise FormatError(f"Could not parse JSON document: {e}") from e
        return flatten(_to_node(document))
