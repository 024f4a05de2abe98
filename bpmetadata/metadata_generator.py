import logging
import os
from typing import Optional

from .data_parser.config_parser import collect_locals
from .data_parser.parse_data import find_versions_config, get_blueprint_interfaces, parse_directory, sort_variables
from .data_parser.roles_parser import parse_blueprint_roles, parse_bp_module_name
from .data_parser.services_parser import has_module_entry, parse_blueprint_services
from .data_parser.variable_parser import get_blueprint_variable_orders
from .data_parser.version_parser import parse_blueprint_provider_versions, parse_blueprint_version
from .metadata import BlueprintMetadata, BlueprintRequirements, marshal_metadata, unmarshal_metadata
from .metadata_merger import merge_existing_connections, merge_existing_output_types
from .output_type_resolver import StateRetriever, update_output_types
from .utils import (
    METADATA_FILE_NAME,
    PER_MODULE_ROLES_LOCAL,
    PER_MODULE_SERVICES_LOCAL,
    SETUP_DIRECTORY_PATH,
    find_file,
)


def _requirements(bp_path: str, blueprint_root: str) -> BlueprintRequirements:
    requirements = BlueprintRequirements()
    setup_path = os.path.join(blueprint_root, SETUP_DIRECTORY_PATH)
    if not os.path.isdir(setup_path):
        logging.info(f"No setup directory at {setup_path}, skipping roles and services")
        return requirements

    parsed = parse_directory(setup_path)
    locals_data = collect_locals(parsed)
    module_name = parse_bp_module_name(bp_path, blueprint_root)

    per_module_roles = has_module_entry(locals_data, PER_MODULE_ROLES_LOCAL, module_name)
    per_module_services = has_module_entry(locals_data, PER_MODULE_SERVICES_LOCAL, module_name)
    requirements.roles = parse_blueprint_roles(parsed, per_module_roles, module_name)
    requirements.services = parse_blueprint_services(parsed, per_module_services, module_name)
    return requirements

def _load_existing(bp_path: str) -> Optional[BlueprintMetadata]:
    if not find_file(bp_path, METADATA_FILE_NAME):
        return None
    logging.info(f"Loading existing metadata from {bp_path}")
    return unmarshal_metadata(bp_path, METADATA_FILE_NAME)

def generate(bp_path: str, blueprint_root: Optional[str] = None, retriever: Optional[StateRetriever] = None) -> BlueprintMetadata:
    blueprint_root = blueprint_root or bp_path
    metadata = BlueprintMetadata(name=os.path.basename(os.path.abspath(bp_path)))
    metadata.spec.info.title = metadata.name

    interfaces = get_blueprint_interfaces(bp_path)
    sort_variables(interfaces.variables, get_blueprint_variable_orders(bp_path))

    # resolve before merging so fresh types are not replaced by stored ones
    if retriever is not None:
        update_output_types(bp_path, interfaces, retriever)

    existing = _load_existing(bp_path)
    if existing is not None:
        merge_existing_connections(interfaces, existing.spec.interfaces)
        merge_existing_output_types(interfaces, existing.spec.interfaces)
        if existing.spec.info.title:
            metadata.spec.info.title = existing.spec.info.title
    metadata.spec.interfaces = interfaces

    versions_config = find_versions_config(bp_path)
    if versions_config is not None:
        _, parsed = versions_config
        metadata.spec.info.apply_version(parse_blueprint_version(parsed))
        provider_versions = parse_blueprint_provider_versions(parsed)
    else:
        provider_versions = []

    metadata.spec.requirements = _requirements(bp_path, blueprint_root)
    metadata.spec.requirements.provider_versions = provider_versions
    return metadata

def write(metadata: BlueprintMetadata, bp_path: str) -> str:
    return marshal_metadata(metadata, bp_path, METADATA_FILE_NAME)
