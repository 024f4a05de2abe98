"""
Blueprint metadata document model.

The document is persisted as YAML next to the module (metadata.yaml) and
read back on the next run so that curated fields survive regeneration.
Keys are serialized in camelCase and empty values are left out.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml

from .utils import (
    ACTUATION_TOOL_FLAVOR,
    METADATA_API_VERSION,
    METADATA_KIND,
    ParseError,
    ValidationError,
)


class RoleLevel(str, Enum):
    PROJECT = 'Project'
    FOLDER = 'Folder'
    ORGANIZATION = 'Organization'
    BILLING_ACCOUNT = 'Billing Account'


def _drop_empty(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None and v != [] and v != {} and v != ''}


@dataclass
class ConnectionSource:
    source: str = ''
    version: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({'source': self.source, 'version': self.version})

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'ConnectionSource':
        data = data or {}
        return cls(source=data.get('source', ''), version=data.get('version', ''))


@dataclass
class ConnectionSpec:
    output_expr: str = ''
    input_path: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({'outputExpr': self.output_expr, 'inputPath': self.input_path})

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'ConnectionSpec':
        data = data or {}
        return cls(output_expr=data.get('outputExpr', ''), input_path=data.get('inputPath', ''))


@dataclass
class BlueprintConnection:
    """A curated reference from another blueprint's output to this interface."""
    source: ConnectionSource = field(default_factory=ConnectionSource)
    spec: ConnectionSpec = field(default_factory=ConnectionSpec)

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source.to_dict(), 'spec': self.spec.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> 'BlueprintConnection':
        return cls(
            source=ConnectionSource.from_dict(data.get('source')),
            spec=ConnectionSpec.from_dict(data.get('spec')),
        )


@dataclass
class BlueprintVariable:
    name: str
    description: str = ''
    var_type: str = ''
    default_value: Any = None
    required: bool = False
    connections: List[BlueprintConnection] = field(default_factory=list)
    # declaration index, only used to order variables before writing
    order: Optional[int] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data = _drop_empty({
            'name': self.name,
            'description': self.description,
            'varType': self.var_type,
            'connections': [c.to_dict() for c in self.connections],
        })
        # empty defaults such as [] or "" are meaningful, only None means absent
        if self.default_value is not None:
            data['defaultValue'] = self.default_value
        data['required'] = self.required
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'BlueprintVariable':
        if not data.get('name'):
            raise ValidationError(f"Variable without a name in metadata: {data}")
        return cls(
            name=data['name'],
            description=data.get('description', ''),
            var_type=data.get('varType', ''),
            default_value=data.get('defaultValue'),
            required=bool(data.get('required', False)),
            connections=[BlueprintConnection.from_dict(c) for c in data.get('connections') or []],
        )


@dataclass
class BlueprintOutput:
    name: str
    description: str = ''
    # a type name such as "string" or a list such as ["object", {"host": "string"}]
    type: Any = None
    connections: List[BlueprintConnection] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({
            'name': self.name,
            'description': self.description,
            'type': self.type,
            'connections': [c.to_dict() for c in self.connections],
        })

    @classmethod
    def from_dict(cls, data: dict) -> 'BlueprintOutput':
        if not data.get('name'):
            raise ValidationError(f"Output without a name in metadata: {data}")
        return cls(
            name=data['name'],
            description=data.get('description', ''),
            type=data.get('type'),
            connections=[BlueprintConnection.from_dict(c) for c in data.get('connections') or []],
        )


@dataclass
class BlueprintInterface:
    variables: List[BlueprintVariable] = field(default_factory=list)
    outputs: List[BlueprintOutput] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({
            'variables': [v.to_dict() for v in self.variables],
            'outputs': [o.to_dict() for o in self.outputs],
        })

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'BlueprintInterface':
        data = data or {}
        return cls(
            variables=[BlueprintVariable.from_dict(v) for v in data.get('variables') or []],
            outputs=[BlueprintOutput.from_dict(o) for o in data.get('outputs') or []],
        )


@dataclass
class BlueprintRoles:
    level: str
    roles: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'level': self.level, 'roles': list(self.roles)}

    @classmethod
    def from_dict(cls, data: dict) -> 'BlueprintRoles':
        return cls(level=data.get('level', ''), roles=list(data.get('roles') or []))


@dataclass
class ProviderVersion:
    source: str
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source, 'version': self.version}

    @classmethod
    def from_dict(cls, data: dict) -> 'ProviderVersion':
        return cls(source=data.get('source', ''), version=data.get('version', ''))


@dataclass
class BlueprintVersion:
    required_tf_version: str = ''
    module_version: str = ''


@dataclass
class BlueprintRequirements:
    roles: List[BlueprintRoles] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    provider_versions: List[ProviderVersion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({
            'roles': [r.to_dict() for r in self.roles],
            'services': list(self.services),
            'providerVersions': [p.to_dict() for p in self.provider_versions],
        })

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'BlueprintRequirements':
        data = data or {}
        return cls(
            roles=[BlueprintRoles.from_dict(r) for r in data.get('roles') or []],
            services=list(data.get('services') or []),
            provider_versions=[ProviderVersion.from_dict(p) for p in data.get('providerVersions') or []],
        )


@dataclass
class BlueprintInfo:
    title: str = ''
    version: str = ''
    actuation_tool_version: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({
            'title': self.title,
            'version': self.version,
            'actuationTool': {
                'flavor': ACTUATION_TOOL_FLAVOR,
                **_drop_empty({'version': self.actuation_tool_version}),
            },
        })

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'BlueprintInfo':
        data = data or {}
        return cls(
            title=data.get('title', ''),
            version=data.get('version', ''),
            actuation_tool_version=(data.get('actuationTool') or {}).get('version', ''),
        )

    def apply_version(self, version: Optional[BlueprintVersion]):
        if version is None:
            return
        if version.module_version:
            self.version = version.module_version
        if version.required_tf_version:
            self.actuation_tool_version = version.required_tf_version


@dataclass
class BlueprintSpec:
    info: BlueprintInfo = field(default_factory=BlueprintInfo)
    interfaces: BlueprintInterface = field(default_factory=BlueprintInterface)
    requirements: BlueprintRequirements = field(default_factory=BlueprintRequirements)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_empty({
            'info': self.info.to_dict(),
            'interfaces': self.interfaces.to_dict(),
            'requirements': self.requirements.to_dict(),
        })

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'BlueprintSpec':
        data = data or {}
        return cls(
            info=BlueprintInfo.from_dict(data.get('info')),
            interfaces=BlueprintInterface.from_dict(data.get('interfaces')),
            requirements=BlueprintRequirements.from_dict(data.get('requirements')),
        )


@dataclass
class BlueprintMetadata:
    name: str = ''
    spec: BlueprintSpec = field(default_factory=BlueprintSpec)
    api_version: str = METADATA_API_VERSION
    kind: str = METADATA_KIND

    def to_dict(self) -> Dict[str, Any]:
        return {
            'apiVersion': self.api_version,
            'kind': self.kind,
            'metadata': _drop_empty({'name': self.name}),
            'spec': self.spec.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BlueprintMetadata':
        return cls(
            name=(data.get('metadata') or {}).get('name', ''),
            spec=BlueprintSpec.from_dict(data.get('spec')),
            api_version=data.get('apiVersion', METADATA_API_VERSION),
            kind=data.get('kind', METADATA_KIND),
        )


def loads_metadata(content: str, source: str = '<string>') -> BlueprintMetadata:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ParseError(f"Error parsing metadata {source}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Metadata {source} is not a mapping")
    return BlueprintMetadata.from_dict(data)

def unmarshal_metadata(directory: str, file_name: str) -> BlueprintMetadata:
    file_path = os.path.join(directory, file_name)
    with open(file_path, 'r', encoding='utf-8') as f:
        return loads_metadata(f.read(), file_path)

def dumps_metadata(metadata: BlueprintMetadata) -> str:
    return yaml.safe_dump(metadata.to_dict(), sort_keys=False, default_flow_style=False, allow_unicode=True)

def marshal_metadata(metadata: BlueprintMetadata, directory: str, file_name: str) -> str:
    file_path = os.path.join(directory, file_name)
    logging.info(f"Writing metadata for {metadata.name} to {file_path}")
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(dumps_metadata(metadata))
    return file_path
