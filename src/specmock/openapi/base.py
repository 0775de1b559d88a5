"""
specmock OpenAPI Abstraction

Provider independent view of an OpenAPI document: ``Document`` lists
resources and finds operations, ``Operation`` returns normalized parameters,
request body and response.

Providers only expose the raw pieces of an operation (parameters, request
body media types, responses) and a schema builder; selection of the response,
the content type and the security parameters happens here, so every
provider returns the same shapes.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import ParseConfig
from ..errors import MethodNotAllowedError, ResourceNotFoundError
from ..schema import Schema, SchemaBuilder, TYPE_STRING


logger = logging.getLogger("specmock.openapi")

HTTP_METHODS = ('get', 'put', 'post', 'delete', 'options', 'head', 'patch', 'trace')

RESPONSE_CODE_PRIORITY = ('200', '201', '202', '204')

REQUEST_CONTENT_TYPE_PRIORITY = (
    'application/json',
    'multipart/form-data',
    'application/x-www-form-urlencoded',
    'application/octet-stream',
)

RESPONSE_CONTENT_TYPE_PRIORITY = (
    'application/json',
    'multipart/form-data',
    'application/x-www-form-urlencoded',
    'text/plain',
    'text/html',
)

SECURITY_TYPE_HTTP = 'http'
SECURITY_TYPE_API_KEY = 'apiKey'
AUTH_SCHEME_BASIC = 'basic'
AUTH_SCHEME_BEARER = 'bearer'


@dataclass
class Parameter:
    """Operation parameter with its normalized schema."""

    name: str
    in_: str
    required: bool = False
    schema: Optional[Schema] = None
    example: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'in': self.in_,
            'required': self.required,
            'schema': self.schema.to_dict() if self.schema else None,
        }


@dataclass
class Response:
    """Response chosen for generation."""

    headers: Dict[str, Parameter] = field(default_factory=dict)
    content: Optional[Schema] = None
    content_type: str = ''
    status_code: int = 200


@dataclass
class SecurityComponent:
    """
    Security scheme reduced to what request generation needs.

    Attributes:
        type: ``http`` or ``apiKey``
        scheme: ``basic`` or ``bearer`` for http schemes
        in_: Location of an apiKey (header, query, cookie)
        name: Parameter name of an apiKey
    """

    type: str
    scheme: str = ''
    in_: str = ''
    name: str = ''


@dataclass
class OperationDescription:
    """Lookup key of an operation."""

    service: str
    resource: str
    method: str


@dataclass
class RawParameter:
    """Parameter as declared by the provider, schema not yet normalized."""

    name: str
    in_: str
    required: bool = False
    schema: Any = None
    example: Any = None


@dataclass
class RawResponse:
    """Response as declared by the provider, schemas not yet normalized."""

    headers: Dict[str, RawParameter] = field(default_factory=dict)
    content: Dict[str, Any] = field(default_factory=dict)


def transform_http_code(code: Any) -> int:
    """
    Convert a response key into a status code.

    ``2XX`` becomes 200, ``default`` and ``*`` become 200.

    Returns:
        Status code, or 0 when the key is not a code
    """
    value = str(code).lower().replace('x', '0')
    if value in ('default', '*', '000'):
        return 200
    try:
        return int(value)
    except ValueError:
        return 0


def choose_response_code(codes: Sequence[str]) -> Optional[str]:
    """
    Pick the response to generate.

    Preferred success codes first, then the first other declared code in
    document order, then ``default``.
    """
    codes = [str(c) for c in codes]
    for code in RESPONSE_CODE_PRIORITY:
        if code in codes:
            return code
    for code in codes:
        if code != 'default':
            return code
    if 'default' in codes:
        return 'default'
    return None


def _choose_content_type(content_types: Sequence[str], priority: Sequence[str]) -> str:
    content_types = list(content_types)
    for content_type in priority:
        if content_type in content_types:
            return content_type
    return content_types[0] if content_types else ''


def choose_request_content_type(content_types: Sequence[str]) -> str:
    return _choose_content_type(content_types, REQUEST_CONTENT_TYPE_PRIORITY)


def choose_response_content_type(content_types: Sequence[str]) -> str:
    return _choose_content_type(content_types, RESPONSE_CONTENT_TYPE_PRIORITY)


def security_parameters(
    requirements: Optional[List[Dict[str, Any]]],
    components: Dict[str, SecurityComponent],
) -> List[Parameter]:
    """
    Turn security requirements into request parameters.

    HTTP schemes become a required ``authorization`` header with the scheme
    as string format, apiKey schemes a parameter in their declared location.

    Returns:
        Parameters sorted by name
    """
    params: Dict[str, Parameter] = {}
    for requirement in requirements or []:
        for scheme_name in requirement or {}:
            component = components.get(scheme_name)
            if component is None:
                logger.debug(f"Unknown security scheme: {scheme_name}")
                continue

            if component.type == SECURITY_TYPE_HTTP:
                scheme = component.scheme.lower()
                if scheme not in (AUTH_SCHEME_BASIC, AUTH_SCHEME_BEARER):
                    continue
                params['authorization'] = Parameter(
                    name='authorization',
                    in_='header',
                    required=True,
                    schema=Schema(type=TYPE_STRING, format=scheme),
                )
            elif component.type == SECURITY_TYPE_API_KEY and component.name:
                params[component.name] = Parameter(
                    name=component.name,
                    in_=component.in_ or 'header',
                    required=True,
                    schema=Schema(type=TYPE_STRING),
                )

    return [params[name] for name in sorted(params)]


class Operation(ABC):
    """
    One (resource, method) pair of a document.

    ``with_parse_config`` may run while requests are reading the operation,
    so the configuration is swapped and read under a lock.
    """

    def __init__(
        self,
        resource: str,
        method: str,
        security: Optional[Dict[str, SecurityComponent]] = None,
    ):
        self.resource = resource
        self.method = method.upper()
        self.security_components = security or {}
        self.parse_config = ParseConfig()
        self._lock = threading.Lock()

    @abstractmethod
    def id(self) -> str:
        """Operation id as declared in the document."""

    @abstractmethod
    def _schema_builder(self, parse_config: ParseConfig) -> SchemaBuilder:
        """Provider schema builder for this document."""

    @abstractmethod
    def _raw_parameters(self) -> List[RawParameter]:
        """Path and operation parameters, operation level ones winning."""

    @abstractmethod
    def _raw_request_body(self) -> Dict[str, Any]:
        """Request body media types mapped to raw schemas."""

    @abstractmethod
    def _raw_responses(self) -> Dict[str, RawResponse]:
        """Responses by code in document order."""

    @abstractmethod
    def _security_requirements(self) -> Optional[List[Dict[str, Any]]]:
        """Operation security, falling back to the document security."""

    def with_parse_config(self, config: Optional[ParseConfig]) -> 'Operation':
        """Set schema parsing limits, returns the operation itself."""
        with self._lock:
            self.parse_config = config or ParseConfig()
        return self

    def _builder(self) -> SchemaBuilder:
        with self._lock:
            config = self.parse_config
        return self._schema_builder(config)

    def get_parameters(self) -> List[Parameter]:
        """
        Normalized parameters including the security derived ones.

        Returns:
            Declared parameters in document order followed by security
            parameters sorted by name
        """
        builder = self._builder()
        params = [
            Parameter(
                name=raw.name,
                in_=raw.in_,
                required=raw.required,
                schema=builder.build(raw.schema),
                example=raw.example,
            )
            for raw in self._raw_parameters()
        ]

        declared = {(p.name.lower(), p.in_) for p in params}
        for param in security_parameters(self._security_requirements(), self.security_components):
            if (param.name.lower(), param.in_) not in declared:
                params.append(param)
        return params

    def get_request_body(self) -> Tuple[Optional[Schema], str]:
        """
        Normalized request body schema and its content type.

        Returns:
            Tuple of schema (None when there is no body) and content type
        """
        content = self._raw_request_body()
        if not content:
            return None, ''

        content_type = choose_request_content_type(list(content))
        return self._builder().build(content[content_type]), content_type

    def get_response(self) -> Response:
        """Normalized response picked by status code priority."""
        responses = self._raw_responses()
        code = choose_response_code(list(responses))
        if code is None:
            return Response(status_code=200)

        raw = responses[code]
        builder = self._builder()

        headers = {}
        for name, header in raw.headers.items():
            lowered = name.lower()
            headers[lowered] = Parameter(
                name=lowered,
                in_='header',
                required=header.required,
                schema=builder.build(header.schema),
                example=header.example,
            )

        content = None
        content_type = ''
        if raw.content:
            content_type = choose_response_content_type(list(raw.content))
            content = builder.build(raw.content[content_type])

        return Response(
            headers=headers,
            content=content,
            content_type=content_type,
            status_code=transform_http_code(code),
        )


class Document(ABC):
    """Parsed API document."""

    @abstractmethod
    def provider(self) -> str:
        """Name of the provider that parsed the document."""

    @abstractmethod
    def get_version(self) -> str:
        """``swagger`` or ``openapi`` version string."""

    @abstractmethod
    def get_resources(self) -> Dict[str, List[str]]:
        """Resource paths mapped to their upper-cased methods, in document order."""

    @abstractmethod
    def get_security(self) -> Dict[str, SecurityComponent]:
        """Security schemes declared by the document."""

    @abstractmethod
    def find_operation(self, description: OperationDescription) -> Optional[Operation]:
        """Operation for a resource and method, None if not declared."""

    def get_operation(self, description: OperationDescription) -> Operation:
        """
        Like ``find_operation`` but raising typed errors.

        Raises:
            ResourceNotFoundError: If the resource is not declared
            MethodNotAllowedError: If the resource lacks the method
        """
        resources = self.get_resources()
        if description.resource not in resources:
            raise ResourceNotFoundError(f"Resource not found: {description.resource}")
        if description.method.upper() not in resources[description.resource]:
            raise MethodNotAllowedError(
                f"Method {description.method.upper()} not allowed for {description.resource}"
            )

        operation = self.find_operation(description)
        if operation is None:
            raise ResourceNotFoundError(
                f"Operation not found: {description.method.upper()} {description.resource}"
            )
        return operation
