from iacdemo.constructs.apigateway import (
    CorsOptions,
    LambdaIntegration,
    MethodLoggingLevel,
    MockIntegration,
    RestApi,
    StageOptions,
)
from iacdemo.constructs.awslambda import Code, Function, Runtime
from iacdemo.constructs.dynamodb import Attribute, AttributeType, BillingMode, Table

__all__ = [
    "Attribute",
    "AttributeType",
    "BillingMode",
    "Code",
    "CorsOptions",
    "Function",
    "LambdaIntegration",
    "MethodLoggingLevel",
    "MockIntegration",
    "RestApi",
    "Runtime",
    "StageOptions",
    "Table",
]
