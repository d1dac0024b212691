import yaml

from shared.common_utils.exceptions import FormatError
from ..flat_map import FlatMap
from .base import ConfigurationFileParser, MappingNode, Node, decode_document, flatten

NULL_TOKENS = frozenset({"~", "null", "Null", "NULL"})


def _is_null(node: yaml.ScalarNode) -> bool:
    # only unquoted tokens mean null; "null" in quotes is the string
    return node.style is None and node.value in NULL_TOKENS


def _to_node(node: yaml.Node) -> Node:
    if isinstance(node, yaml.MappingNode):
        pairs = []
        for key_node, value_node in node.value:
            if not isinstance(key_node, yaml.ScalarNode):
                raise FormatError(f"Unsupported non-scalar key at {key_node.start_mark}")
            pairs.append((key_node.value, _to_node(value_node)))
        return MappingNode(pairs)
    if isinstance(node, yaml.SequenceNode):
        return [_to_node(child) for child in node.value]
    if _is_null(node):
        return None
    return node.value


class YamlConfigurationFileParser(ConfigurationFileParser):
    """Flow and block YAML documents. Only the first document of a stream is read."""

    def parse(self, data: bytes) -> FlatMap:
        text = decode_document(data)
        try:
            documents = yaml.compose_all(text, Loader=yaml.SafeLoader)
            root = next(iter(documents), None)
        except yaml.YAMLError as e:
            raise FormatError(f"Could not parse YAML document: {e}") from e
        if root is None:
            return FlatMap.empty()
        return flatten(_to_node(root))
