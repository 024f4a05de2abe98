import logging
import re
from typing import List, Optional

from ..metadata import BlueprintVersion, ProviderVersion
from .config_parser import AttributeBag, body_of, iter_blocks, iter_unlabelled_blocks, parse_file

# a single Terraform constraint clause, e.g. ">= 0.13.0" or "~> 4.4"
CONSTRAINT_CLAUSE_PATTERN = re.compile(r'^\s*(=|!=|>=|<=|>|<|~>)?\s*v?\d+(\.\d+){0,2}(-[0-9A-Za-z.-]+)?\s*$')
SEMVER_PATTERN = re.compile(r'^\d+\.\d+\.\d+(-[0-9A-Za-z.-]+)?(\+[0-9A-Za-z.-]+)?$')


def is_valid_constraint(constraint: str) -> bool:
    if not constraint:
        return False
    return all(CONSTRAINT_CLAUSE_PATTERN.match(clause) for clause in constraint.split(','))

def parse_module_version(module_name: str) -> Optional[str]:
    """Extracts "1.2.3" from a provider_meta module_name such as "blueprints/terraform/x:sub/v1.2.3"."""
    if not module_name or module_name.find('/') == -1:
        return None

    version = module_name.rsplit('/', 1)[1]
    if not version.startswith('v'):
        return None
    version = version[len('v'):]
    return version if SEMVER_PATTERN.match(version) else None

def _required_tf_version(parsed: dict) -> Optional[str]:
    for body in iter_unlabelled_blocks(parsed, 'terraform'):
        required_version = AttributeBag(body).get_string('required_version')
        if required_version is None:
            continue
        if is_valid_constraint(required_version):
            return required_version
        logging.warning(f"Ignoring invalid required_version: {required_version}")
    return None

def _module_version(parsed: dict) -> Optional[str]:
    for body in iter_unlabelled_blocks(parsed, 'terraform'):
        for provider_meta in AttributeBag(body).get_blocks('provider_meta'):
            for labels, meta_body in iter_blocks({'provider_meta': [provider_meta]}, 'provider_meta'):
                module_name = AttributeBag(meta_body).get_string('module_name')
                version = parse_module_version(module_name)
                if version:
                    return version
                logging.warning(f"Ignoring invalid provider_meta module_name: {module_name}")
    return None

def parse_blueprint_version(parsed: dict) -> Optional[BlueprintVersion]:
    required_tf_version = _required_tf_version(parsed)
    module_version = _module_version(parsed)
    if required_tf_version is None and module_version is None:
        return None

    return BlueprintVersion(
        required_tf_version=required_tf_version or '',
        module_version=module_version or '',
    )

def get_blueprint_version(config_path: str) -> Optional[BlueprintVersion]:
    return parse_blueprint_version(parse_file(config_path))

def parse_blueprint_provider_versions(parsed: dict) -> List[ProviderVersion]:
    provider_versions = []
    for body in iter_unlabelled_blocks(parsed, 'terraform'):
        for required_providers in AttributeBag(body).get_blocks('required_providers'):
            for name, entry in body_of(required_providers).items():
                attributes = AttributeBag(entry)
                source = attributes.get_string('source')
                version = attributes.get_string('version')
                if not version:
                    logging.info(f"Skipping provider {name} without a version constraint")
                    continue
                provider_versions.append(ProviderVersion(source=source or '', version=version))

    return provider_versions
