import logging
import os
import re
import textwrap
from typing import Any, Dict, Iterator, List, Optional, Tuple

import hcl2

from ..utils import ParseError, list_tf_files

LOCAL_REFERENCE_PATTERN = re.compile(r'local\.([A-Za-z_][A-Za-z0-9_-]*)')
STRING_LITERAL_PATTERN = re.compile(r'"([^"$]+)"')
HEREDOC_PATTERN = re.compile(r'<<(-?)([A-Za-z_][A-Za-z0-9_-]*)\r?\n(?:(.*)\r?\n)?[ \t]*\2', re.DOTALL)
ESCAPE_PATTERN = re.compile(r'\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)|\$\$\{|%%\{', re.DOTALL)
SIMPLE_ESCAPES = {'n': '\n', 'r': '\r', 't': '\t', '"': '"', '\\': '\\'}


def parse_file(file_path: str) -> dict:
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return hcl2.loads(f.read())
    except OSError as e:
        raise ParseError(f"Error reading Terraform file {file_path}: {e}") from e
    except Exception as e:
        raise ParseError(f"Error parsing Terraform file {file_path}: {e}") from e

def parse_content(content: str, file_name: str = '<string>') -> dict:
    try:
        return hcl2.loads(content)
    except Exception as e:
        raise ParseError(f"Error parsing Terraform content {file_name}: {e}") from e

def parse_module_files(directory: str, strict: bool = True) -> List[Tuple[str, dict]]:
    """
    Parse every Terraform file of a module directory in file name order.

    Args:
        directory: The module directory.
        strict: Raise ParseError on the first invalid file. When False the
                file is logged and skipped.

    Returns:
        A list of (file path, parsed content) tuples.
    """
    parsed_files = []
    for tf_file in list_tf_files(directory):
        try:
            parsed_files.append((tf_file, parse_file(tf_file)))
        except ParseError as e:
            if strict:
                raise
            logging.error(f"Skipping unparsable file {os.path.basename(tf_file)}: {e}")

    return parsed_files

def unquote(value: Any) -> Any:
    if not isinstance(value, str):
        return value

    value = value.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value

def _unescape(match: re.Match) -> str:
    token = match.group(0)
    if token == '$${':
        return '${'
    if token == '%%{':
        return '%{'

    escaped = match.group(1)
    if escaped[0] in 'uU' and len(escaped) > 1:
        return chr(int(escaped[1:], 16))
    return SIMPLE_ESCAPES.get(escaped, token)

def decode_string(value: Any) -> Any:
    """
    Decode a string literal from its HCL source form.

    Quoted strings lose their quotes and have their escape sequences
    resolved. Heredocs lose their markers and keep the trailing newline,
    with the `<<-` form also stripping the common leading indentation.
    """
    if not isinstance(value, str):
        return value

    value = value.strip()
    heredoc = HEREDOC_PATTERN.fullmatch(value)
    if heredoc is not None:
        indented, _, content = heredoc.groups()
        if content is None:
            return ''
        if indented:
            content = textwrap.dedent(content)
        return content + '\n'

    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return ESCAPE_PATTERN.sub(_unescape, value[1:-1])
    return value

def unwrap_expression(value: Any) -> Optional[str]:
    """Returns the expression of an interpolated value, or None for literals."""
    value = unquote(value)
    if not isinstance(value, str):
        return None

    if value.startswith('${') and value.endswith('}'):
        return value[len('${'):-len('}')].strip()
    if value.find('${') != -1:
        return value
    return None

def is_literal_string(value: Any) -> bool:
    return isinstance(value, str) and unwrap_expression(value) is None

def plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {unquote(k): plain(v) for k, v in value.items() if not is_marker_key(k)}
    if isinstance(value, list):
        return [plain(item) for item in value]
    return decode_string(value)

def is_marker_key(key: str) -> bool:
    return isinstance(key, str) and key.startswith('__') and key.endswith('__')

def body_of(block: Any) -> Dict[str, Any]:
    if isinstance(block, list):
        block = block[0] if len(block) > 0 else {}
    if not isinstance(block, dict):
        return {}
    return {unquote(k): v for k, v in block.items() if not is_marker_key(k)}

def iter_blocks(parsed: dict, block_type: str, label_count: int = 1) -> Iterator[Tuple[List[str], Any]]:
    """
    Yield (labels, body) for every block of the given type.

    python-hcl2 nests one dict per label, e.g. a resource becomes
    {'resource': [{'<type>': {'<name>': {...}}}]}. Bodies are returned as
    the parser produced them so callers can validate their shape.
    """
    for item in parsed.get(block_type, []):
        yield from _walk_labels(item, [], label_count)

def _walk_labels(node: Any, labels: List[str], remaining: int) -> Iterator[Tuple[List[str], Any]]:
    if remaining == 0:
        yield labels, node
        return

    if not isinstance(node, dict):
        yield labels, node
        return

    for key, value in node.items():
        if is_marker_key(key):
            continue
        yield from _walk_labels(value, labels + [unquote(key)], remaining - 1)

def iter_unlabelled_blocks(parsed: dict, block_type: str) -> Iterator[Dict[str, Any]]:
    for item in parsed.get(block_type, []):
        yield body_of(item)

def collect_locals(parsed: dict) -> Dict[str, Any]:
    result = {}
    for body in iter_unlabelled_blocks(parsed, 'locals'):
        result.update(body)
    return result

def local_references(expression: Optional[str]) -> List[str]:
    if not expression:
        return []
    return LOCAL_REFERENCE_PATTERN.findall(expression)

def string_literals(expression: Optional[str]) -> List[str]:
    if not expression:
        return []
    return STRING_LITERAL_PATTERN.findall(expression)


class AttributeBag:
    """Typed access to the attributes of one parsed block body."""

    def __init__(self, body: Dict[str, Any]):
        self.body = body_of(body)

    def has(self, name: str) -> bool:
        return name in self.body

    def get_value(self, name: str) -> Any:
        return plain(self.body.get(name))

    def get_string(self, name: str) -> Optional[str]:
        value = self.body.get(name)
        if not is_literal_string(value):
            return None
        return decode_string(value)

    def get_expression(self, name: str) -> Optional[str]:
        return unwrap_expression(self.body.get(name))

    def get_list(self, name: str) -> Optional[List[str]]:
        value = self.body.get(name)
        if not isinstance(value, list):
            return None
        return [decode_string(item) for item in value if is_literal_string(item)]

    def get_blocks(self, name: str) -> List[Any]:
        value = self.body.get(name)
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]

    def render_type(self, name: str) -> str:
        value = self.body.get(name)
        if value is None:
            return ''
        expression = unwrap_expression(value)
        if expression is not None:
            return expression
        return str(plain(value))
