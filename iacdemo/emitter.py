"""
Template emitter. Walks resolved resources and builds the CloudFormation
template document.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from iacdemo.errors import MissingProperty, UnknownAttribute, UnknownResource
from iacdemo.models.expression import Join, ParameterRef, Pseudo, Reference
from iacdemo.models.resource import Resource, ResourceKind

POLICY_VERSION = "2012-10-17"

REQUIRED = {
    ResourceKind.TABLE:          ("partitionKey",),
    ResourceKind.FUNCTION:       ("runtime", "handler", "code", "role"),
    ResourceKind.ROLE:           ("assumedBy",),
    ResourceKind.POLICY:         ("statements", "roles"),
    ResourceKind.API:            ("name",),
    ResourceKind.API_RESOURCE:   ("restApi", "parent", "pathPart"),
    ResourceKind.API_METHOD:     ("restApi", "resource", "httpMethod", "integration"),
    ResourceKind.API_DEPLOYMENT: ("restApi",),
    ResourceKind.API_STAGE:      ("restApi", "deployment", "stageName"),
    ResourceKind.PERMISSION:     ("action", "function", "principal"),
}

# Attribute name → Fn::GetAtt attribute; None renders as a plain Ref
ATTRIBUTES: Dict[ResourceKind, Dict[str, Optional[str]]] = {
    ResourceKind.TABLE:          {"ref": None, "name": None, "arn": "Arn", "streamArn": "StreamArn"},
    ResourceKind.FUNCTION:       {"ref": None, "name": None, "arn": "Arn"},
    ResourceKind.ROLE:           {"ref": None, "name": None, "arn": "Arn", "roleId": "RoleId"},
    ResourceKind.POLICY:         {"ref": None},
    ResourceKind.API:            {"ref": None, "id": None, "rootResourceId": "RootResourceId"},
    ResourceKind.API_RESOURCE:   {"ref": None, "id": None},
    ResourceKind.API_METHOD:     {"ref": None},
    ResourceKind.API_DEPLOYMENT: {"ref": None, "id": None},
    ResourceKind.API_STAGE:      {"ref": None, "name": None},
    ResourceKind.PERMISSION:     {"ref": None},
}

# Kinds whose declaration properties map one-to-one onto template properties
_RENAMES = {
    ResourceKind.API: {
        "name": "Name",
        "description": "Description",
    },
    ResourceKind.API_RESOURCE: {
        "parent": "ParentId",
        "pathPart": "PathPart",
        "restApi": "RestApiId",
    },
    ResourceKind.API_METHOD: {
        "httpMethod": "HttpMethod",
        "resource": "ResourceId",
        "restApi": "RestApiId",
        "authorizationType": "AuthorizationType",
        "apiKeyRequired": "ApiKeyRequired",
        "integration": "Integration",
        "methodResponses": "MethodResponses",
    },
    ResourceKind.API_DEPLOYMENT: {
        "restApi": "RestApiId",
        "description": "Description",
    },
    ResourceKind.PERMISSION: {
        "action": "Action",
        "function": "FunctionName",
        "principal": "Principal",
        "sourceArn": "SourceArn",
    },
}


def _renamed(resource: Resource) -> Dict[str, Any]:
    renames = _RENAMES[resource.kind]
    return {renames[k]: v for k, v in resource.properties.items() if k in renames}


def _table(resource: Resource) -> Dict[str, Any]:
    props = resource.properties
    keys = [("HASH", props["partitionKey"])]
    if props.get("sortKey"):
        keys.append(("RANGE", props["sortKey"]))

    # One definition per attribute name, even when both keys share it
    definitions: Dict[str, Dict[str, Any]] = {}
    for _, k in keys:
        definitions.setdefault(
            k["name"], {"AttributeName": k["name"], "AttributeType": k["type"]}
        )

    out: Dict[str, Any] = {
        "KeySchema": [{"AttributeName": k["name"], "KeyType": kt} for kt, k in keys],
        "AttributeDefinitions": list(definitions.values()),
    }
    billing = props.get("billingMode", "PAY_PER_REQUEST")
    out["BillingMode"] = billing
    if billing == "PROVISIONED":
        out["ProvisionedThroughput"] = {
            "ReadCapacityUnits": props.get("readCapacity", 5),
            "WriteCapacityUnits": props.get("writeCapacity", 5),
        }
    if "pointInTimeRecovery" in props:
        out["PointInTimeRecoverySpecification"] = {
            "PointInTimeRecoveryEnabled": bool(props["pointInTimeRecovery"]),
        }
    if props.get("tableName"):
        out["TableName"] = props["tableName"]
    return out


def _function(resource: Resource) -> Dict[str, Any]:
    props = resource.properties
    code = props["code"]
    out: Dict[str, Any] = {
        "Code": {"S3Bucket": code["s3Bucket"], "S3Key": code["s3Key"]},
        "Role": props["role"],
        "Handler": props["handler"],
        "Runtime": props["runtime"],
    }
    if props.get("environment"):
        out["Environment"] = {"Variables": props["environment"]}
    for key, cfn_key in (
        ("functionName", "FunctionName"),
        ("description", "Description"),
        ("memorySize", "MemorySize"),
        ("timeout", "Timeout"),
    ):
        if props.get(key) is not None:
            out[cfn_key] = props[key]
    return out


def _role(resource: Resource) -> Dict[str, Any]:
    props = resource.properties
    out: Dict[str, Any] = {
        "AssumeRolePolicyDocument": {
            "Statement": [{
                "Action": "sts:AssumeRole",
                "Effect": "Allow",
                "Principal": {"Service": props["assumedBy"]},
            }],
            "Version": POLICY_VERSION,
        },
    }
    if props.get("managedPolicyArns"):
        out["ManagedPolicyArns"] = props["managedPolicyArns"]
    return out


def _policy(resource: Resource) -> Dict[str, Any]:
    props = resource.properties
    return {
        "PolicyDocument": {"Statement": props["statements"], "Version": POLICY_VERSION},
        "PolicyName": props.get("policyName", resource.name),
        "Roles": props["roles"],
    }


def _stage(resource: Resource) -> Dict[str, Any]:
    props = resource.properties
    out: Dict[str, Any] = {
        "RestApiId": props["restApi"],
        "DeploymentId": props["deployment"],
        "StageName": props["stageName"],
    }
    settings = {}
    if "dataTraceEnabled" in props:
        settings["DataTraceEnabled"] = props["dataTraceEnabled"]
    if props.get("loggingLevel"):
        settings["LoggingLevel"] = props["loggingLevel"]
    if "metricsEnabled" in props:
        settings["MetricsEnabled"] = props["metricsEnabled"]
    if settings:
        settings["HttpMethod"] = "*"
        settings["ResourcePath"] = "/*"
        out["MethodSettings"] = [dict(sorted(settings.items()))]
    return out


_RENDERERS: Dict[ResourceKind, Callable[[Resource], Dict[str, Any]]] = {
    ResourceKind.TABLE: _table,
    ResourceKind.FUNCTION: _function,
    ResourceKind.ROLE: _role,
    ResourceKind.POLICY: _policy,
    ResourceKind.API_STAGE: _stage,
}


class _Renderer:
    """Turns property values into template values, resolving deferred expressions."""

    def __init__(self, kinds: Dict[str, ResourceKind], parameters: Dict[str, Any]):
        self.kinds = kinds
        self.parameters = parameters

    def __call__(self, val: Any) -> Any:
        if isinstance(val, Reference):
            return self._reference(val)
        if isinstance(val, Pseudo):
            return {"Ref": val.name}
        if isinstance(val, ParameterRef):
            if val.name not in self.parameters:
                raise UnknownResource(val.name)
            return {"Ref": val.name}
        if isinstance(val, Join):
            return {"Fn::Join": [val.delimiter, [self(p) for p in val.parts]]}
        if isinstance(val, Enum):
            return val.value
        if isinstance(val, dict):
            return {k: self(v) for k, v in val.items()}
        if isinstance(val, (list, tuple)):
            return [self(v) for v in val]
        return val

    def _reference(self, ref: Reference) -> Dict[str, Any]:
        kind = self.kinds.get(ref.target)
        if kind is None:
            raise UnknownResource(ref.target)
        attrs = ATTRIBUTES[kind]
        if ref.attribute not in attrs:
            raise UnknownAttribute(ref.target, ref.attribute)
        cfn_attr = attrs[ref.attribute]
        if cfn_attr is None:
            return {"Ref": ref.target}
        return {"Fn::GetAtt": [ref.target, cfn_attr]}


def check_required(resource: Resource) -> None:
    for prop in REQUIRED[resource.kind]:
        if resource.properties.get(prop) is None:
            raise MissingProperty(resource.name, prop)


def emit_resource(resource: Resource, render: _Renderer) -> Dict[str, Any]:
    check_required(resource)
    builder = _RENDERERS.get(resource.kind, _renamed)

    entry: Dict[str, Any] = {
        "Type": resource.cfn_type,
        "Properties": render(builder(resource)),
    }
    if resource.depends_on:
        entry["DependsOn"] = sorted(resource.depends_on)
    if resource.removal_policy is not None:
        entry["UpdateReplacePolicy"] = resource.removal_policy.value
        entry["DeletionPolicy"] = resource.removal_policy.value
    if resource.metadata:
        entry["Metadata"] = render(resource.metadata)
    return entry


def emit(
    order: List[Resource],
    outputs: Dict[str, Dict[str, Any]],
    parameters: Optional[Dict[str, Dict[str, Any]]] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the template for resources given in dependency order. Raises on the
    first invalid declaration; nothing is returned in that case.
    """
    parameters = parameters or {}
    render = _Renderer({r.name: r.kind for r in order}, parameters)

    template: Dict[str, Any] = {}
    if description:
        template["Description"] = description
    if parameters:
        template["Parameters"] = render(parameters)

    template["Resources"] = {r.name: emit_resource(r, render) for r in order}
    template["Outputs"] = {
        name: render({k: v for k, v in output.items() if v is not None})
        for name, output in outputs.items()
    }
    return template
