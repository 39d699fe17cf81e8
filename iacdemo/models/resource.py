from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from iacdemo.models.expression import iter_references


class ResourceKind(str, Enum):
    TABLE          = "table"
    FUNCTION       = "function"
    ROLE           = "role"
    POLICY         = "policy"
    API            = "api"
    API_RESOURCE   = "api_resource"
    API_METHOD     = "api_method"
    API_DEPLOYMENT = "api_deployment"
    API_STAGE      = "api_stage"
    PERMISSION     = "permission"


CFN_TYPES = {
    ResourceKind.TABLE:          "AWS::DynamoDB::Table",
    ResourceKind.FUNCTION:       "AWS::Lambda::Function",
    ResourceKind.ROLE:           "AWS::IAM::Role",
    ResourceKind.POLICY:         "AWS::IAM::Policy",
    ResourceKind.API:            "AWS::ApiGateway::RestApi",
    ResourceKind.API_RESOURCE:   "AWS::ApiGateway::Resource",
    ResourceKind.API_METHOD:     "AWS::ApiGateway::Method",
    ResourceKind.API_DEPLOYMENT: "AWS::ApiGateway::Deployment",
    ResourceKind.API_STAGE:      "AWS::ApiGateway::Stage",
    ResourceKind.PERMISSION:     "AWS::Lambda::Permission",
}


class RemovalPolicy(str, Enum):
    RETAIN  = "Retain"
    DESTROY = "Delete"
    SNAPSHOT = "Snapshot"


@dataclass(frozen=True)
class PermissionGrant:
    grantee: str                          # logical name of the execution role
    actions: Tuple[str, ...]
    target: Optional[str] = None          # logical name of the resource granted on
    target_attribute: str = "arn"
    resource_pattern: Optional[str] = None  # literal ARN pattern when there is no target


@dataclass
class Resource:
    name: str                  # logical name in the template
    kind: ResourceKind
    properties: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    removal_policy: Optional[RemovalPolicy] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    grants: List[PermissionGrant] = field(default_factory=list)

    @property
    def cfn_type(self) -> str:
        return CFN_TYPES[self.kind]

    @property
    def references(self) -> Set[str]:
        """Logical names this resource depends on, through properties or DependsOn."""
        refs = {ref.target for ref in iter_references(self.properties)}
        refs.update(self.depends_on)
        return refs

    def attach(self, grant: PermissionGrant) -> bool:
        """Attach a grant unless an identical one is already attached."""
        if grant in self.grants:
            return False
        self.grants.append(grant)
        return True
