import logging
import os
from typing import List

from ..metadata import BlueprintOutput
from ..utils import ValidationError, raise_error
from .config_parser import AttributeBag, iter_blocks, parse_module_files


def parse(module_path: str) -> List[BlueprintOutput]:
    logging.info(f"Parsing outputs for module: {os.path.basename(os.path.abspath(module_path))}")

    outputs = []
    seen = set()
    for file_path, parsed in parse_module_files(module_path, strict=True):
        for labels, body in iter_blocks(parsed, 'output'):
            name = labels[0] if labels else ''
            if len(name.strip()) == 0:
                raise_error(f"Output without a name in {file_path}", ValidationError)
            if not isinstance(body, (dict, list)):
                raise_error(f"Output {name} in {file_path} is not a block", ValidationError)
            if name in seen:
                raise_error(f"Duplicate output {name} in {file_path}", ValidationError)
            seen.add(name)

            outputs.append(BlueprintOutput(
                name=name,
                description=AttributeBag(body).get_string('description') or '',
            ))

    return outputs
