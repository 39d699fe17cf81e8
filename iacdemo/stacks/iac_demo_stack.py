from typing import Optional

from iacdemo.config import StackConfig
from iacdemo.constructs import (
    Attribute,
    AttributeType,
    BillingMode,
    Code,
    CorsOptions,
    Function,
    LambdaIntegration,
    MethodLoggingLevel,
    RestApi,
    Runtime,
    StageOptions,
    Table,
)
from iacdemo.models.resource import RemovalPolicy
from iacdemo.stack import Stack


def build_iac_demo_stack(config: Optional[StackConfig] = None) -> Stack:
    config = config or StackConfig()
    stack = Stack(config.stack_name, description=config.description)

    # DynamoDB table for blogs
    blog_table = Table(
        stack, "BlogTable",
        table_name=config.table_name,
        billing_mode=BillingMode.PAY_PER_REQUEST,
        removal_policy=RemovalPolicy.DESTROY,
        partition_key=Attribute("blogId", AttributeType.STRING),
        point_in_time_recovery=False,
    )

    # Lambda function serving the API; the binary ships as a zip asset
    function = Function(
        stack, "IacDemoFunction",
        runtime=Runtime.GO_1_X,
        handler="main",
        code=Code.from_asset(config.asset_path),
        memory_size=config.memory_size,
        timeout=config.timeout,
        environment={"BLOG_TABLE_NAME": blog_table.table_name},
    )

    blog_table.grant_read_write_data(function)

    rest_api = RestApi(
        stack, "IacDemoRestApi",
        description="Rest API Demo Using CDK",
        default_cors_preflight_options=CorsOptions(
            allow_headers=["*"],
            allow_methods=["OPTIONS", "GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_credentials=True,
            allow_origins=["*"],
        ),
        deploy_options=StageOptions(
            stage_name=config.stage_name,
            metrics_enabled=True,
            logging_level=MethodLoggingLevel.INFO,
            data_trace_enabled=True,
        ),
    )

    # Endpoints
    blogs = rest_api.root.add_resource("blogs")
    blogs.add_method("GET", LambdaIntegration(function), api_key_required=False)
    blogs.add_method("POST", LambdaIntegration(function), api_key_required=False)
    blog = blogs.add_resource("{blogId}")
    blog.add_method("GET", LambdaIntegration(function), api_key_required=False)

    # CloudWatch log groups and streams for the function
    function.grant_log_access()

    stack.add_output("apiUrl", rest_api.url)

    return stack
