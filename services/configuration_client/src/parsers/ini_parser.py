from typing import Iterator, Optional, Tuple

from shared.common_utils.exceptions import FormatError
from ..flat_map import FlatMap, KEY_DELIMITER
from .base import ConfigurationFileParser, decode_document

COMMENT_PREFIXES = (";", "#", "/")


def _entries(text: str) -> Iterator[Tuple[str, Optional[str]]]:
    section_prefix = ""

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()

        if not line or line.startswith(COMMENT_PREFIXES):
            continue

        if line.startswith("["):
            if not line.endswith("]"):
                raise FormatError(f"Unterminated section '{raw_line}' on line {line_number}.")
            section_prefix = line[1:-1].strip() + KEY_DELIMITER
            continue

        separator = line.find("=")
        if separator < 0:
            raise FormatError(f"Unrecognized line format '{raw_line}' on line {line_number}.")

        key = section_prefix + line[:separator].strip()
        value = line[separator + 1:].strip()

        if len(value) > 1 and value[0] == '"' and value[-1] == '"':
            value = value[1:-1]

        yield key, value


class IniConfigurationFileParser(ConfigurationFileParser):
    """Section and key=value documents."""

    def parse(self, data: bytes) -> FlatMap:
        return FlatMap(_entries(decode_document(data)))
