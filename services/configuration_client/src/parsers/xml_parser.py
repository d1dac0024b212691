import xml.etree.ElementTree as ElementTree
from collections import Counter
from typing import Dict, List

from shared.common_utils.exceptions import FormatError
from ..flat_map import FlatMap
from .base import ConfigurationFileParser, MappingNode, Node, decode_document, flatten


def _local_name(tag: str) -> str:
    # drop a "{namespace}" prefix
    return tag.rsplit("}", 1)[-1]


def _element_to_node(element: ElementTree.Element) -> Node:
    children = list(element)
    text = (element.text or "").strip() or None

    if not children and not element.attrib:
        return text if text is not None else ""

    pairs = [(_local_name(name), value) for name, value in element.attrib.items()]

    counts = Counter(_local_name(child.tag) for child in children)
    repeated: Dict[str, List[Node]] = {}
    for child in children:
        name = _local_name(child.tag)
        node = _element_to_node(child)
        if counts[name] > 1:
            if name not in repeated:
                repeated[name] = []
                pairs.append((name, repeated[name]))
            repeated[name].append(node)
        else:
            pairs.append((name, node))

    return MappingNode(pairs, text=text)


class XmlConfigurationFileParser(ConfigurationFileParser):
    """
    Attribute-and-element markup documents.

    The root element only wraps the document and contributes no key segment.
    Attributes and child elements both become child keys; sibling elements sharing
    a name become an indexed sequence.
    """

    def parse(self, data: bytes) -> FlatMap:
        text = decode_document(data)
        if not text.strip():
            return FlatMap.empty()
        try:
            root = ElementTree.fromstring(text)
        except ElementTree.ParseError as e:
            raise FormatError(f"Could not parse XML document: {e}") from e

        node = _element_to_node(root)
        if not isinstance(node, MappingNode):
            return FlatMap.empty()
        # text directly inside the root has no key to live under
        node.text = None
        return flatten(node)
