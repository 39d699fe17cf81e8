from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from iacdemo.models.expression import PARTITION, Join, ParameterRef, Reference
from iacdemo.models.resource import Resource, ResourceKind

if TYPE_CHECKING:
    from iacdemo.stack import Stack

_BASIC_EXECUTION_ROLE = Join((
    "arn:",
    PARTITION,
    ":iam::aws:policy/service-role/AWSLambdaBasicExecutionRole",
))


class Runtime(str, Enum):
    GO_1_X          = "go1.x"
    PROVIDED_AL2023 = "provided.al2023"
    PYTHON_3_12     = "python3.12"
    NODEJS_20_X     = "nodejs20.x"


@dataclass(frozen=True)
class AssetCode:
    """Code packaged outside synthesis; only its local path is known here."""
    path: str


class Code:
    @staticmethod
    def from_asset(path: str) -> AssetCode:
        return AssetCode(path)


class Function:
    """
    A Lambda function and its execution role.

    The code location is left to two template parameters that the packaging
    step fills in once the asset has been uploaded.
    """

    def __init__(
        self,
        stack: "Stack",
        id: str,
        runtime: Runtime,
        handler: str,
        code: AssetCode,
        memory_size: int = 128,
        timeout: int = 3,
        environment: Optional[Dict[str, object]] = None,
        description: Optional[str] = None,
        function_name: Optional[str] = None,
    ) -> None:
        self.stack = stack
        self.role = stack.register(Resource(
            name=f"{id}ServiceRole",
            kind=ResourceKind.ROLE,
            properties={
                "assumedBy": "lambda.amazonaws.com",
                "managedPolicyArns": [_BASIC_EXECUTION_ROLE],
            },
        ))

        bucket = stack.add_parameter(
            f"{id}CodeS3Bucket", description=f'S3 bucket for asset "{code.path}"'
        )
        key = stack.add_parameter(
            f"{id}CodeS3Key", description=f'S3 key for asset "{code.path}"'
        )

        props = {
            "runtime": runtime.value,
            "handler": handler,
            "code": {"s3Bucket": ParameterRef(bucket), "s3Key": ParameterRef(key)},
            "role": Reference(self.role.name, "arn"),
            "memorySize": memory_size,
            "timeout": timeout,
        }
        if environment:
            props["environment"] = dict(environment)
        if description:
            props["description"] = description
        if function_name:
            props["functionName"] = function_name

        self.resource = stack.register(Resource(
            name=id,
            kind=ResourceKind.FUNCTION,
            properties=props,
            metadata={"aws:asset:path": code.path, "aws:asset:property": "Code"},
        ))

    @property
    def function_name(self) -> Reference:
        return Reference(self.resource.name, "name")

    @property
    def function_arn(self) -> Reference:
        return Reference(self.resource.name, "arn")

    def add_to_role_policy(self, actions: Iterable[str], resource_pattern: str):
        self.stack.check_declared("grant permissions")
        return self.stack.policies.add_to_role_policy(self.resource, actions, resource_pattern)

    def grant_log_access(self):
        self.stack.check_declared("grant permissions")
        return self.stack.policies.grant_log_access(self.resource)
