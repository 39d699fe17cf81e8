"""
API Gateway REST API constructs: the API with its deployment and stage, the
resource tree, methods and their integrations.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from iacdemo.models.expression import (
    ACCOUNT_ID,
    PARTITION,
    REGION,
    URL_SUFFIX,
    Join,
    Reference,
)
from iacdemo.errors import DuplicateIdentity
from iacdemo.models.resource import Resource, ResourceKind

if TYPE_CHECKING:
    from iacdemo.constructs.awslambda import Function
    from iacdemo.stack import Stack

ALL_METHODS = ["OPTIONS", "GET", "PUT", "POST", "DELETE", "PATCH", "HEAD"]
DEFAULT_HEADERS = [
    "Content-Type",
    "X-Amz-Date",
    "Authorization",
    "X-Api-Key",
    "X-Amz-Security-Token",
    "X-Amz-User-Agent",
]


class MethodLoggingLevel(str, Enum):
    OFF   = "OFF"
    ERROR = "ERROR"
    INFO  = "INFO"


@dataclass
class StageOptions:
    stage_name: str = "prod"
    metrics_enabled: Optional[bool] = None
    logging_level: Optional[MethodLoggingLevel] = None
    data_trace_enabled: Optional[bool] = None


@dataclass
class CorsOptions:
    allow_origins: List[str]
    allow_methods: List[str] = field(default_factory=lambda: list(ALL_METHODS))
    allow_headers: List[str] = field(default_factory=lambda: list(DEFAULT_HEADERS))
    allow_credentials: bool = False
    status_code: int = 204

    def response_headers(self) -> Dict[str, str]:
        headers = {
            "Access-Control-Allow-Headers": ",".join(self.allow_headers),
            "Access-Control-Allow-Origin": ",".join(self.allow_origins),
            "Access-Control-Allow-Methods": ",".join(self.allow_methods),
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return {f"method.response.header.{k}": f"'{v}'" for k, v in headers.items()}


def _sanitize(path: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", path)


def _unique_name(stack: "Stack", base: str) -> str:
    """
    Logical ID for ``base``, with a numeric suffix when sanitizing has made
    it collide with a name already in the stack (``{id}`` and ``id``, or a
    child path ``GET`` next to its parent's GET method).
    """
    name, n = base, 1
    while name in stack.graph:
        n += 1
        name = f"{base}{n}"
    return name


class LambdaIntegration:
    """Lambda proxy integration; also lets API Gateway invoke the function."""

    def __init__(self, handler: "Function") -> None:
        self.handler = handler

    def bind(self, method: "Method") -> Dict[str, Any]:
        api = method.resource.api
        api.stack.register(Resource(
            name=_unique_name(api.stack, f"{method.name}ApiPermission"),
            kind=ResourceKind.PERMISSION,
            properties={
                "action": "lambda:InvokeFunction",
                "function": self.handler.function_arn,
                "principal": "apigateway.amazonaws.com",
                "sourceArn": api.arn_for_execute_api(method.http_method, method.resource.path),
            },
        ))
        return {
            "IntegrationHttpMethod": "POST",
            "Type": "AWS_PROXY",
            "Uri": Join((
                "arn:",
                PARTITION,
                ":apigateway:",
                REGION,
                ":lambda:path/2015-03-31/functions/",
                self.handler.function_arn,
                "/invocations",
            )),
        }


class MockIntegration:
    def __init__(
        self,
        status_code: int = 200,
        response_parameters: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.response_parameters = response_parameters or {}

    def bind(self, method: "Method") -> Dict[str, Any]:
        response: Dict[str, Any] = {"StatusCode": str(self.status_code)}
        if self.response_parameters:
            response["ResponseParameters"] = dict(self.response_parameters)
        return {
            "IntegrationResponses": [response],
            "RequestTemplates": {"application/json": "{ statusCode: 200 }"},
            "Type": "MOCK",
        }


class Method:
    def __init__(
        self,
        resource: "ApiResource",
        http_method: str,
        integration=None,
        api_key_required: bool = False,
        authorization_type: str = "NONE",
        method_responses: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.resource = resource
        self.http_method = http_method.upper()
        api = resource.api
        if self.http_method in resource.methods:
            raise DuplicateIdentity(f"{self.http_method} {resource.path}")
        self.name = _unique_name(api.stack, f"{resource.logical_prefix}{self.http_method}")
        integration = integration or MockIntegration()

        props = {
            "restApi": Reference(api.id, "id"),
            "resource": resource.resource_id,
            "httpMethod": self.http_method,
            "authorizationType": authorization_type,
            "apiKeyRequired": api_key_required,
            "integration": integration.bind(self),
        }
        if method_responses:
            props["methodResponses"] = method_responses

        self.node = api.stack.register(Resource(
            name=self.name,
            kind=ResourceKind.API_METHOD,
            properties=props,
        ))
        api.stack.graph.add_dependency(api.deployment.name, self.name)


class ApiResource:
    """One node of the REST resource tree; the root has no resource of its own."""

    def __init__(self, api: "RestApi", path: str, resource_id: Reference, logical_prefix: str):
        self.api = api
        self.path = path
        self.resource_id = resource_id
        self.logical_prefix = logical_prefix
        self.children: Dict[str, "ApiResource"] = {}
        self.methods: Dict[str, Method] = {}

    def add_resource(self, path_part: str) -> "ApiResource":
        if path_part in self.children:
            raise DuplicateIdentity(self.path.rstrip("/") + "/" + path_part)
        name = _unique_name(self.api.stack, f"{self.logical_prefix}{_sanitize(path_part)}")
        self.api.stack.register(Resource(
            name=name,
            kind=ResourceKind.API_RESOURCE,
            properties={
                "restApi": Reference(self.api.id, "id"),
                "parent": self.resource_id,
                "pathPart": path_part,
            },
        ))
        child_path = self.path.rstrip("/") + "/" + path_part
        child = ApiResource(self.api, child_path, Reference(name, "id"), name)
        self.children[path_part] = child
        if self.api.cors is not None:
            child.add_cors_preflight(self.api.cors)
        return child

    def add_method(self, http_method: str, integration=None, api_key_required: bool = False) -> Method:
        self.api.stack.check_declared("add methods")
        method = Method(self, http_method, integration, api_key_required=api_key_required)
        self.methods[method.http_method] = method
        return method

    def add_cors_preflight(self, options: CorsOptions) -> Method:
        headers = options.response_headers()
        method = Method(
            self,
            "OPTIONS",
            MockIntegration(options.status_code, headers),
            method_responses=[{
                "ResponseParameters": {k: True for k in headers},
                "StatusCode": str(options.status_code),
            }],
        )
        self.methods["OPTIONS"] = method
        return method


class RestApi:
    def __init__(
        self,
        stack: "Stack",
        id: str,
        description: Optional[str] = None,
        rest_api_name: Optional[str] = None,
        deploy_options: Optional[StageOptions] = None,
        default_cors_preflight_options: Optional[CorsOptions] = None,
    ) -> None:
        self.stack = stack
        self.id = id
        self.cors = default_cors_preflight_options
        deploy_options = deploy_options or StageOptions()

        props = {"name": rest_api_name or id}
        if description:
            props["description"] = description
        self.resource = stack.register(Resource(name=id, kind=ResourceKind.API, properties=props))

        self.deployment = stack.register(Resource(
            name=f"{id}Deployment",
            kind=ResourceKind.API_DEPLOYMENT,
            properties={
                "restApi": Reference(id, "id"),
                "description": "Automatically created by the RestApi construct",
            },
        ))

        stage_props: Dict[str, Any] = {
            "restApi": Reference(id, "id"),
            "deployment": Reference(self.deployment.name, "id"),
            "stageName": deploy_options.stage_name,
        }
        if deploy_options.metrics_enabled is not None:
            stage_props["metricsEnabled"] = deploy_options.metrics_enabled
        if deploy_options.logging_level is not None:
            stage_props["loggingLevel"] = deploy_options.logging_level.value
        if deploy_options.data_trace_enabled is not None:
            stage_props["dataTraceEnabled"] = deploy_options.data_trace_enabled
        self.stage = stack.register(Resource(
            name=f"{id}DeploymentStage{_sanitize(deploy_options.stage_name)}",
            kind=ResourceKind.API_STAGE,
            properties=stage_props,
        ))

        self.root = ApiResource(self, "/", Reference(id, "rootResourceId"), id)
        if self.cors is not None:
            self.root.add_cors_preflight(self.cors)

    @property
    def url(self) -> Join:
        return self.url_for_path("/")

    def url_for_path(self, path: str = "/") -> Join:
        return Join((
            "https://",
            Reference(self.id, "id"),
            ".execute-api.",
            REGION,
            ".",
            URL_SUFFIX,
            "/",
            Reference(self.stage.name, "name"),
            path,
        ))

    def arn_for_execute_api(self, method: str = "*", path: str = "/*") -> Join:
        return Join((
            "arn:",
            PARTITION,
            ":execute-api:",
            REGION,
            ":",
            ACCOUNT_ID,
            ":",
            Reference(self.id, "id"),
            "/",
            Reference(self.stage.name, "name"),
            "/",
            method,
            path,
        ))
