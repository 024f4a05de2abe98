import logging
from typing import List, Optional

from ..utils import (
    PER_MODULE_SERVICES_LOCAL,
    PROJECT_SERVICE_RESOURCE_TYPE,
    PROJECT_SERVICES_MODULE_SOURCE,
    dedupe,
)
from .config_parser import (
    AttributeBag,
    collect_locals,
    is_literal_string,
    iter_blocks,
    local_references,
    string_literals,
    unquote,
)


def extract_module_local_list(parsed: dict, local_name: str, module_name: str) -> List[str]:
    """
    Look up `local.<local_name>[<module_name>]` and return its literal strings
    in declaration order. A missing map or key yields an empty list.
    """
    per_module = collect_locals(parsed).get(local_name)
    if not isinstance(per_module, dict):
        logging.info(f"No {local_name} map declared in locals")
        return []

    entries = {unquote(k): v for k, v in per_module.items()}
    values = entries.get(module_name)
    if not isinstance(values, list):
        logging.info(f"No {local_name} entry for module {module_name}")
        return []

    return [unquote(item) for item in values if is_literal_string(item)]

def has_module_entry(locals_data: dict, local_name: str, module_name: str) -> bool:
    per_module = locals_data.get(local_name)
    if not isinstance(per_module, dict):
        return False
    return module_name in {unquote(k) for k in per_module}

def resolve_local_list(locals_data: dict, expression: Optional[str]) -> Optional[List[str]]:
    for reference in local_references(expression):
        value = locals_data.get(reference)
        if isinstance(value, list):
            return [unquote(item) for item in value if is_literal_string(item)]
    return None

def _module_services(parsed: dict) -> List[str]:
    services = []
    for labels, body in iter_blocks(parsed, 'module'):
        attributes = AttributeBag(body)
        if attributes.get_string('source') != PROJECT_SERVICES_MODULE_SOURCE:
            continue
        services += attributes.get_list('activate_apis') or []
    return services

def _for_each_services(attributes: AttributeBag, locals_data: dict) -> Optional[List[str]]:
    listed = attributes.get_list('for_each')
    if listed is not None:
        return listed

    expression = attributes.get_expression('for_each')
    resolved = resolve_local_list(locals_data, expression)
    if resolved is not None or local_references(expression):
        return resolved
    # inline collection, e.g. toset(["a.googleapis.com"])
    return string_literals(expression) or None

def _resource_services(parsed: dict, locals_data: dict) -> List[str]:
    services = []
    for labels, body in iter_blocks(parsed, 'resource', 2):
        if len(labels) < 2 or labels[0] != PROJECT_SERVICE_RESOURCE_TYPE:
            continue

        attributes = AttributeBag(body)
        service = attributes.get_string('service')
        if service:
            services.append(service)
            continue

        resolved = _for_each_services(attributes, locals_data)
        if resolved is None:
            logging.warning(f"Cannot resolve service of {labels[0]}.{labels[1]}")
            continue
        services += resolved
    return services

def parse_blueprint_services(parsed: dict, per_module: bool, module_name: str) -> List[str]:
    if per_module:
        return extract_module_local_list(parsed, PER_MODULE_SERVICES_LOCAL, module_name)

    locals_data = collect_locals(parsed)
    return dedupe(_module_services(parsed) + _resource_services(parsed, locals_data))
