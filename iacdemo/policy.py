"""
Derived IAM permissions.

Grants are recorded on the compute resource when declared and turned into one
AWS::IAM::Policy per execution role when the stack is bound.
"""
from collections import OrderedDict
from typing import Dict, Iterable, List

from iacdemo.errors import MissingProperty
from iacdemo.graph import ResourceGraph
from iacdemo.models.expression import REF, Reference
from iacdemo.models.resource import PermissionGrant, Resource, ResourceKind

DYNAMODB_READ_ACTIONS = (
    "dynamodb:BatchGetItem",
    "dynamodb:GetRecords",
    "dynamodb:GetShardIterator",
    "dynamodb:Query",
    "dynamodb:GetItem",
    "dynamodb:Scan",
    "dynamodb:ConditionCheckItem",
)

DYNAMODB_WRITE_ACTIONS = (
    "dynamodb:BatchWriteItem",
    "dynamodb:PutItem",
    "dynamodb:UpdateItem",
    "dynamodb:DeleteItem",
)

LOG_ACTIONS = (
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
)

# Every log group, in every account and region.
LOG_RESOURCE_PATTERN = "arn:aws:logs:*:*:*"


def _execution_role(function: Resource) -> str:
    role = function.properties.get("role")
    if not isinstance(role, Reference):
        raise MissingProperty(function.name, "role")
    return role.target


class PolicyBinder:
    def __init__(self, graph: ResourceGraph) -> None:
        self.graph = graph

    def grant_read_write(self, table: Resource, function: Resource) -> PermissionGrant:
        actions = DYNAMODB_READ_ACTIONS + DYNAMODB_WRITE_ACTIONS + ("dynamodb:DescribeTable",)
        return self._grant_on(table, function, actions)

    def grant_read(self, table: Resource, function: Resource) -> PermissionGrant:
        actions = DYNAMODB_READ_ACTIONS + ("dynamodb:DescribeTable",)
        return self._grant_on(table, function, actions)

    def grant_log_access(self, function: Resource) -> PermissionGrant:
        return self.add_to_role_policy(function, LOG_ACTIONS, LOG_RESOURCE_PATTERN)

    def add_to_role_policy(
        self, function: Resource, actions: Iterable[str], resource_pattern: str
    ) -> PermissionGrant:
        self.graph.get(function.name)
        grant = PermissionGrant(
            grantee=_execution_role(function),
            actions=tuple(actions),
            resource_pattern=resource_pattern,
        )
        function.attach(grant)
        return grant

    def _grant_on(self, target: Resource, function: Resource, actions) -> PermissionGrant:
        self.graph.get(target.name)
        self.graph.get(function.name)
        grant = PermissionGrant(
            grantee=_execution_role(function),
            actions=tuple(actions),
            target=target.name,
        )
        function.attach(grant)
        return grant

    def bind(self) -> List[Resource]:
        """
        Materialize every attached grant as a DefaultPolicy resource on the
        grantee role. Safe to call again: an existing DefaultPolicy is
        rebuilt from the current grants instead of registered twice.
        Returns the policy resources that were added or rebuilt.
        """
        statements: Dict[str, List[dict]] = OrderedDict()
        holders: Dict[str, List[Resource]] = OrderedDict()

        for resource in self.graph:
            for grant in resource.grants:
                statements.setdefault(grant.grantee, []).append(_statement(grant))
                owners = holders.setdefault(grant.grantee, [])
                if resource not in owners:
                    owners.append(resource)

        added = []
        for role, stmts in statements.items():
            name = f"{role}DefaultPolicy"
            props = {
                "policyName": name,
                "statements": stmts,
                "roles": [Reference(role, REF)],
            }
            policy = self.graph.find(name)
            if policy is None:
                policy = self.graph.register(
                    Resource(name=name, kind=ResourceKind.POLICY, properties=props)
                )
            else:
                policy.properties = props
            for owner in holders[role]:
                self.graph.add_dependency(owner.name, policy.name)
            added.append(policy)
        return added


def _statement(grant: PermissionGrant) -> dict:
    if grant.target is not None:
        resource = Reference(grant.target, grant.target_attribute)
    else:
        resource = grant.resource_pattern
    actions = list(grant.actions)
    return {
        "Action": actions[0] if len(actions) == 1 else actions,
        "Effect": "Allow",
        "Resource": resource,
    }

