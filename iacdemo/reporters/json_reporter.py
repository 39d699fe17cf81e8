"""
JSON template writer.
"""
import json
from typing import Any, Dict


def build_report(template: Dict[str, Any]) -> str:
    return json.dumps(template, indent=2)
