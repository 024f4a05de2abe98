import logging
from typing import Dict, List, Optional, Tuple

from ..metadata import BlueprintInterface, BlueprintVariable
from ..utils import VERSIONS_FILE_NAME, find_file
from .config_parser import parse_file, parse_module_files
from .output_parser import parse as parse_module_outputs
from .variable_parser import VariableParser


def get_blueprint_interfaces(module_path: str) -> BlueprintInterface:
    variables = VariableParser(module_path).parse()
    outputs = parse_module_outputs(module_path)
    logging.info(f"Found {len(variables)} variables and {len(outputs)} outputs in {module_path}")
    return BlueprintInterface(variables=variables, outputs=outputs)

def sort_variables(variables: List[BlueprintVariable], orders: Dict[str, int]):
    # variables without a known position keep their relative order at the end
    variables.sort(key=lambda v: orders.get(v.name, len(orders)))

def parse_directory(directory: str) -> dict:
    """Merges every parsable file of a directory into one parsed document."""
    merged = {}
    for _, parsed in parse_module_files(directory, strict=False):
        for block_type, blocks in parsed.items():
            if isinstance(blocks, list):
                merged.setdefault(block_type, []).extend(blocks)
    return merged

def find_versions_config(module_path: str) -> Optional[Tuple[str, dict]]:
    versions_file = find_file(module_path, VERSIONS_FILE_NAME)
    if versions_file:
        return versions_file, parse_file(versions_file)

    for file_path, parsed in parse_module_files(module_path, strict=False):
        if 'terraform' in parsed:
            return file_path, parsed
    return None
