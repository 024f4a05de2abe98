import os
from typing import List, Optional, Type

METADATA_FILE_NAME = 'metadata.yaml'
VERSIONS_FILE_NAME = 'versions.tf'
STATE_FILE_NAME = 'terraform.tfstate'
TF_FILE_SUFFIX = '.tf'

SETUP_DIRECTORY_PATH = os.path.join('test', 'setup')
MODULES_DIRECTORY_NAME = 'modules'
ROOT_MODULE_NAME = 'root'

PER_MODULE_ROLES_LOCAL = 'per_module_roles'
PER_MODULE_SERVICES_LOCAL = 'per_module_services'

PROJECT_SERVICES_MODULE_SOURCE = 'terraform-google-modules/project-factory/google//modules/project_services'
PROJECT_SERVICE_RESOURCE_TYPE = 'google_project_service'

METADATA_API_VERSION = 'blueprints.cloud.google.com/v1alpha1'
METADATA_KIND = 'BlueprintMetadata'
ACTUATION_TOOL_FLAVOR = 'Terraform'

TERRAFORM_BINARY = os.getenv('BPMETADATA_TERRAFORM_BINARY', 'terraform')
LOG_LEVEL = os.getenv('BPMETADATA_LOG_LEVEL', 'INFO')


class MetadataError(Exception):
    pass

class ParseError(MetadataError):
    """A Terraform, YAML or state document could not be parsed."""

class ValidationError(MetadataError):
    """A document parsed but is missing something mandatory, e.g. a variable name."""

class StateRetrievalError(MetadataError):
    """The external step producing Terraform state failed."""


def raise_error(message: str, error_type: Type[MetadataError] = MetadataError):
    raise error_type(message)

def list_tf_files(directory: str) -> List[str]:
    if not os.path.isdir(directory):
        raise_error(f"Module path {directory} is not a directory", ParseError)

    return [os.path.join(directory, item) for item in sorted(os.listdir(directory)) if os.path.isfile(os.path.join(directory, item)) and item.endswith(TF_FILE_SUFFIX)]

def dedupe(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result

def find_file(directory: str, file_name: str) -> Optional[str]:
    file_path = os.path.join(directory, file_name)
    return file_path if os.path.isfile(file_path) else None
