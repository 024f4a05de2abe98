import logging
import os
from typing import Dict, List, Tuple

from ..metadata import BlueprintVariable
from ..utils import ValidationError, raise_error
from .config_parser import AttributeBag, iter_blocks, parse_module_files


def create_variable(name: str, body, file_path: str, order: int) -> BlueprintVariable:
    if not isinstance(name, str) or len(name.strip()) == 0:
        raise_error(f"Variable without a name in {file_path}", ValidationError)
    if not isinstance(body, (dict, list)):
        raise_error(f"Variable {name} in {file_path} is not a block", ValidationError)

    attributes = AttributeBag(body)
    return BlueprintVariable(
        name=name,
        description=attributes.get_string('description') or '',
        var_type=attributes.render_type('type'),
        default_value=attributes.get_value('default'),
        required=not attributes.has('default'),
        order=order,
    )


class VariableParser:
    def __init__(self, module_path: str):
        self.module_path = module_path

    def parse(self) -> List[BlueprintVariable]:
        logging.info(f"Parsing variables for module: {os.path.basename(os.path.abspath(self.module_path))}")

        variables = []
        seen = set()
        for file_path, name, body in self._declarations():
            variable = create_variable(name, body, file_path, len(variables))
            if variable.name in seen:
                raise_error(f"Duplicate variable {variable.name} in {file_path}", ValidationError)
            seen.add(variable.name)
            variables.append(variable)

        return variables

    def _declarations(self) -> List[Tuple[str, str, object]]:
        declarations = []
        for file_path, parsed in parse_module_files(self.module_path, strict=True):
            for labels, body in iter_blocks(parsed, 'variable'):
                name = labels[0] if labels else ''
                declarations.append((file_path, name, body))
        return declarations


def get_blueprint_variable_orders(module_path: str) -> Dict[str, int]:
    orders = {}
    for variable in VariableParser(module_path).parse():
        orders[variable.name] = variable.order
    return orders
