from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from iacdemo.models.expression import Reference
from iacdemo.models.resource import (
    PermissionGrant,
    RemovalPolicy,
    Resource,
    ResourceKind,
)

if TYPE_CHECKING:
    from iacdemo.constructs.awslambda import Function
    from iacdemo.stack import Stack


class AttributeType(str, Enum):
    STRING = "S"
    NUMBER = "N"
    BINARY = "B"


class BillingMode(str, Enum):
    PAY_PER_REQUEST = "PAY_PER_REQUEST"
    PROVISIONED     = "PROVISIONED"


@dataclass(frozen=True)
class Attribute:
    name: str
    type: AttributeType = AttributeType.STRING

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type.value}


class Table:
    """A DynamoDB table declared on a stack."""

    def __init__(
        self,
        stack: "Stack",
        id: str,
        partition_key: Optional[Attribute] = None,
        sort_key: Optional[Attribute] = None,
        table_name: Optional[str] = None,
        billing_mode: BillingMode = BillingMode.PAY_PER_REQUEST,
        removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
        point_in_time_recovery: Optional[bool] = None,
        read_capacity: Optional[int] = None,
        write_capacity: Optional[int] = None,
    ) -> None:
        self.stack = stack
        props = {
            "partitionKey": partition_key.to_dict() if partition_key else None,
            "billingMode": billing_mode.value,
        }
        if sort_key:
            props["sortKey"] = sort_key.to_dict()
        if table_name:
            props["tableName"] = table_name
        if point_in_time_recovery is not None:
            props["pointInTimeRecovery"] = point_in_time_recovery
        if billing_mode == BillingMode.PROVISIONED:
            props["readCapacity"] = read_capacity or 5
            props["writeCapacity"] = write_capacity or 5

        self.resource = stack.register(Resource(
            name=id,
            kind=ResourceKind.TABLE,
            properties=props,
            removal_policy=removal_policy,
        ))

    @property
    def table_name(self) -> Reference:
        return Reference(self.resource.name, "name")

    @property
    def table_arn(self) -> Reference:
        return Reference(self.resource.name, "arn")

    def grant_read_write_data(self, function: "Function") -> PermissionGrant:
        self.stack.check_declared("grant permissions")
        return self.stack.policies.grant_read_write(self.resource, function.resource)

    def grant_read_data(self, function: "Function") -> PermissionGrant:
        self.stack.check_declared("grant permissions")
        return self.stack.policies.grant_read(self.resource, function.resource)
