"""
OpenAPI document access.

The router treats the OpenAPI document as a read-only collaborator: it looks
up named component schemas, finds the operation declared for a route and
hands schemas to ``jsonschema`` for evaluation. Every validator is built with
the document's ``components`` next to the schema so that internal
``#/components/...`` references resolve.
"""

import json
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft4Validator, Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError

from lambda_router.models.requirements import SchemaRef
from lambda_router.utils.errors import RouteConfigurationError
from lambda_router.utils.observability import logger

COMPONENT_PREFIX = '#/components/schemas/'

_PATH_PARAM = re.compile(r'\{[^}/]+\}')
_PARAM_NAMES = re.compile(r'\{([^}/]+)\}')


def _path_shape(path: str) -> str:
    """Route shape with parameter names erased: ``/items/{id}`` -> ``/items/{}``."""
    return _PATH_PARAM.sub('{}', '/' + path.strip('/'))


def translate_nullable(node: Any) -> Any:
    """
    Rewrite OpenAPI 3.0 ``nullable: true`` into plain JSON Schema.

    ``{type: string, nullable: true}`` becomes ``{type: [string, 'null']}``.
    A nullable schema without a ``type`` (``$ref``, ``allOf``) is wrapped in
    ``anyOf`` with ``{type: 'null'}``. The input is not modified.

    Args:
        node: Any schema fragment

    Returns:
        Translated copy of the fragment
    """
    if isinstance(node, list):
        return [translate_nullable(item) for item in node]
    if not isinstance(node, dict):
        return node

    translated = {key: translate_nullable(value) for key, value in node.items() if key != 'nullable'}
    if node.get('nullable') is not True:
        return translated

    declared = translated.get('type')
    if declared is None:
        return {'anyOf': [translated, {'type': 'null'}]}
    types = list(declared) if isinstance(declared, list) else [declared]
    if 'null' not in types:
        types.append('null')
    translated['type'] = types
    if 'enum' in translated and None not in translated['enum']:
        translated['enum'] = list(translated['enum']) + [None]
    return translated


class SchemaDocument:
    """An OpenAPI document loaded from YAML or JSON."""

    def __init__(self, document: Dict[str, Any], source: str = '<inline>') -> None:
        """
        Initialize the document and check every component schema.

        Raises:
            RouteConfigurationError: If the document is not a mapping or a component schema is invalid
        """
        if not isinstance(document, dict):
            raise RouteConfigurationError(f"schema document {source} is not a mapping")
        self.document = document
        self.source = source
        self._validators: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._paths = {_path_shape(path): (path, item) for path, item in (document.get('paths') or {}).items()}
        self._components = self._json_schema_components()
        for name, schema in (self._components.get('schemas') or {}).items():
            self._check(schema, f"component '{name}'")

    @classmethod
    def load(cls, path: str) -> 'SchemaDocument':
        """
        Load a document from disk.

        Args:
            path: ``.yaml``, ``.yml`` or ``.json`` file

        Raises:
            RouteConfigurationError: If the file is missing or unparseable
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise RouteConfigurationError(f"schema document not found: {path}")
        text = file_path.read_text(encoding='utf-8')
        try:
            if file_path.suffix.lower() == '.json':
                document = json.loads(text)
            else:
                document = yaml.safe_load(text)
        except (ValueError, yaml.YAMLError) as exc:
            raise RouteConfigurationError(f"cannot parse schema document {path}: {exc}") from exc

        logger.info("Schema document loaded", extra={
            "schema_path": str(file_path),
            "openapi": (document or {}).get('openapi') if isinstance(document, dict) else None,
        })
        return cls(document, source=str(file_path))

    @property
    def version(self) -> str:
        return str(self.document.get('openapi', '3.0.0'))

    @property
    def is_json_schema(self) -> bool:
        """OpenAPI 3.1 schemas are JSON Schema 2020-12; 3.0 schemas are a draft 4 dialect."""
        return self.version.startswith('3.1')

    @property
    def validator_class(self):
        return Draft202012Validator if self.is_json_schema else Draft4Validator

    @property
    def components(self) -> Dict[str, Any]:
        return self.document.get('components') or {}

    def _json_schema_components(self) -> Dict[str, Any]:
        if self.is_json_schema:
            return self.components
        return translate_nullable(self.components)

    def _check(self, schema: Dict[str, Any], what: str) -> None:
        try:
            self.validator_class.check_schema(schema)
        except SchemaError as exc:
            raise RouteConfigurationError(f"invalid schema {what} in {self.source}: {exc.message}") from exc

    def has_component(self, name: str) -> bool:
        return self.component_name(name) in (self.components.get('schemas') or {})

    @staticmethod
    def component_name(reference: str) -> str:
        return reference[len(COMPONENT_PREFIX):] if reference.startswith(COMPONENT_PREFIX) else reference

    def component(self, reference: str) -> Dict[str, Any]:
        """
        Return a named component schema.

        Raises:
            RouteConfigurationError: If the document has no such component
        """
        name = self.component_name(reference)
        schemas = self.components.get('schemas') or {}
        if name not in schemas:
            raise RouteConfigurationError(f"schema component '{name}' not found in {self.source}")
        return schemas[name]

    def resolve(self, node: Any) -> Any:
        """Follow ``$ref`` chains on parameter, request body and response objects."""
        seen = set()
        while isinstance(node, dict) and '$ref' in node:
            reference = node['$ref']
            if reference in seen or not reference.startswith('#/'):
                break
            seen.add(reference)
            target: Any = self.document
            for token in reference[2:].split('/'):
                token = token.replace('~1', '/').replace('~0', '~')
                if not isinstance(target, dict) or token not in target:
                    raise RouteConfigurationError(f"unresolvable reference '{reference}' in {self.source}")
                target = target[token]
            node = target
        return node

    def validator(self, schema: SchemaRef):
        """
        Build (once) a validator for a component name or an inline schema.

        Component schemas were checked when the document was loaded; inline
        schemas are checked here.

        Raises:
            RouteConfigurationError: If the component is missing or the schema is invalid
        """
        if isinstance(schema, str):
            self.component(schema)
            key = 'component:' + self.component_name(schema)
            root: Dict[str, Any] = {'$ref': COMPONENT_PREFIX + self.component_name(schema)}
        else:
            key = 'inline:' + json.dumps(schema, sort_keys=True, default=str)
            root = dict(schema) if self.is_json_schema else translate_nullable(schema)

        validator = self._validators.get(key)
        if validator is not None:
            return validator

        self._check(root, key)
        if self._components and 'components' not in root:
            root['components'] = self._components

        validator = self.validator_class(root, format_checker=FormatChecker())
        with self._lock:
            return self._validators.setdefault(key, validator)

    def operation(self, method: str, route: str) -> Optional[Dict[str, Any]]:
        """
        Find the operation declared for a route.

        Path-level parameters are merged into the operation's own; the
        operation wins when both declare the same (name, in) pair.
        """
        entry = self._paths.get(_path_shape(route))
        if not entry:
            return None
        item = self.resolve(entry[1])
        operation = item.get(method.lower())
        if operation is None:
            return None

        merged: Dict[Any, Dict[str, Any]] = {}
        for parameter in list(item.get('parameters') or []) + list(operation.get('parameters') or []):
            parameter = self.resolve(parameter)
            merged[(parameter.get('name'), parameter.get('in'))] = parameter
        return {**operation, 'parameters': list(merged.values())}

    def request_body_schema(self, operation: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        body = self.resolve(operation.get('requestBody'))
        if not body:
            return None
        return self._json_schema(body.get('content') or {})

    def request_body_required(self, operation: Dict[str, Any]) -> bool:
        body = self.resolve(operation.get('requestBody'))
        return bool(body and body.get('required'))

    def response_schema(self, operation: Dict[str, Any], status_code: int) -> Optional[Dict[str, Any]]:
        """Schema for a status code, falling back to ``NXX`` and then ``default``."""
        responses = operation.get('responses') or {}
        for key in (str(status_code), f"{status_code // 100}XX", 'default'):
            if key in responses:
                response = self.resolve(responses[key])
                return self._json_schema((response or {}).get('content') or {})
        return None

    @staticmethod
    def _json_schema(content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        media_types: List[str] = sorted(content, key=lambda media: media != 'application/json')
        for media in media_types:
            if 'json' in media and content[media].get('schema') is not None:
                return content[media]['schema']
        return None

    def path_parameters(self, route: str, values: Dict[str, str]) -> Dict[str, str]:
        """
        Rename a route's path parameters to the names the document uses.

        ``/items/{id}`` and ``/items/{itemId}`` describe the same operation;
        parameters are paired by position.
        """
        entry = self._paths.get(_path_shape(route))
        if not entry:
            return dict(values)
        document_names = [name.rstrip('+') for name in _PARAM_NAMES.findall(entry[0])]
        route_names = [name.rstrip('+') for name in _PARAM_NAMES.findall(route)]
        renamed = {}
        for document_name, route_name in zip(document_names, route_names):
            if route_name in values:
                renamed[document_name] = values[route_name]
        return renamed
