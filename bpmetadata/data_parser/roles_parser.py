import logging
import os
from typing import Dict, List, Optional

from ..metadata import BlueprintRoles, RoleLevel
from ..utils import MODULES_DIRECTORY_NAME, PER_MODULE_ROLES_LOCAL, ROOT_MODULE_NAME
from .config_parser import (
    AttributeBag,
    collect_locals,
    iter_blocks,
    local_references,
    string_literals,
    unwrap_expression,
)
from .services_parser import extract_module_local_list, resolve_local_list

IAM_MEMBER_RESOURCE_LEVELS: Dict[str, RoleLevel] = {
    'google_project_iam_member': RoleLevel.PROJECT,
    'google_folder_iam_member': RoleLevel.FOLDER,
    'google_organization_iam_member': RoleLevel.ORGANIZATION,
    'google_billing_account_iam_member': RoleLevel.BILLING_ACCOUNT,
}

# attributes that may name the local list a member resource iterates over
ROLE_SOURCE_ATTRIBUTES = ['role', 'for_each', 'count']


def _computed_local_roles(locals_data: dict, expression: Optional[str]) -> Optional[List[str]]:
    for name in local_references(expression):
        literals = string_literals(unwrap_expression(locals_data.get(name)))
        if literals:
            return literals
    return None

def resolve_roles(attributes: AttributeBag, locals_data: dict) -> Optional[List[str]]:
    role = attributes.get_string('role')
    if role:
        return [role]

    for attribute in ROLE_SOURCE_ATTRIBUTES:
        expression = attributes.get_expression(attribute)
        roles = resolve_local_list(locals_data, expression)
        if roles is None:
            roles = _computed_local_roles(locals_data, expression)
        if roles is not None:
            return roles

    return None

def parse_blueprint_roles(parsed: dict, per_module: bool, module_name: str) -> List[BlueprintRoles]:
    if per_module:
        roles = extract_module_local_list(parsed, PER_MODULE_ROLES_LOCAL, module_name)
        if len(roles) == 0:
            return []
        return [BlueprintRoles(level=RoleLevel.PROJECT.value, roles=roles)]

    locals_data = collect_locals(parsed)
    result = []
    for labels, body in iter_blocks(parsed, 'resource', 2):
        if len(labels) < 2 or labels[0] not in IAM_MEMBER_RESOURCE_LEVELS:
            continue

        roles = resolve_roles(AttributeBag(body), locals_data)
        if not roles:
            logging.warning(f"Cannot resolve role of {labels[0]}.{labels[1]}")
            continue

        result.append(BlueprintRoles(
            level=IAM_MEMBER_RESOURCE_LEVELS[labels[0]].value,
            roles=sorted(set(roles)),
        ))

    sort_blueprint_roles(result)
    return result

def sort_blueprint_roles(roles: List[BlueprintRoles]):
    """Sort roles in place by level, then by the number of roles, then by the first role."""
    roles.sort(key=lambda r: (r.level, len(r.roles), r.roles[0] if r.roles else ''))

def parse_bp_module_name(bp_path: str, blueprint_root: str) -> str:
    relative = os.path.relpath(os.path.abspath(bp_path), os.path.abspath(blueprint_root))
    parts = [part for part in relative.split(os.sep) if part and part != '.']
    if len(parts) >= 2 and parts[0] == MODULES_DIRECTORY_NAME:
        return parts[1]
    return ROOT_MODULE_NAME
