"""
YAML template writer. Intrinsic functions stay in their long form
({"Fn::GetAtt": [...]}) so the output parses with any YAML loader.
"""
from typing import Any, Dict

import yaml


def build_report(template: Dict[str, Any]) -> str:
    return yaml.safe_dump(template, sort_keys=False, default_flow_style=False)
