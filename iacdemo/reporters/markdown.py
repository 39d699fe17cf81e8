"""
Markdown + Mermaid stack summary.
"""
import re
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List

from jinja2 import Environment

from iacdemo import __version__
from iacdemo.models.expression import iter_references
from iacdemo.models.resource import Resource, ResourceKind

_SUBGRAPHS = {
    ResourceKind.TABLE:          "Data",
    ResourceKind.FUNCTION:       "Compute",
    ResourceKind.PERMISSION:     "Compute",
    ResourceKind.ROLE:           "Identity",
    ResourceKind.POLICY:         "Identity",
    ResourceKind.API:            "API",
    ResourceKind.API_RESOURCE:   "API",
    ResourceKind.API_METHOD:     "API",
    ResourceKind.API_DEPLOYMENT: "API",
    ResourceKind.API_STAGE:      "API",
}


def _sanitize_node_id(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", name)


def _node_shape(r: Resource) -> str:
    """Return a Mermaid node definition string (without ID)."""
    label = r.name
    sg = _SUBGRAPHS.get(r.kind, "Other")
    if sg == "Data":
        return f"[({label})]"
    if sg == "Identity":
        return f"[/{label}/]"
    if r.kind == ResourceKind.API:
        return f"(({label}))"
    return f"[{label}]"


def _build_mermaid(order: List[Resource]) -> str:
    subgraphs: Dict[str, List[Resource]] = defaultdict(list)
    for r in order:
        subgraphs[_SUBGRAPHS.get(r.kind, "Other")].append(r)

    lines = ["flowchart LR"]
    for sg_name in ["API", "Compute", "Data", "Identity", "Other"]:
        sg_resources = subgraphs.get(sg_name, [])
        if not sg_resources:
            continue
        lines.append(f"    subgraph {sg_name}")
        for r in sg_resources:
            lines.append(f"        {_sanitize_node_id(r.name)}{_node_shape(r)}")
        lines.append("    end")

    # Edges point from dependent to dependency
    for r in order:
        src_id = _sanitize_node_id(r.name)
        prop_refs = {ref.target for ref in iter_references(r.properties)}
        for dep in sorted(r.references):
            label = "ref" if dep in prop_refs else "dependsOn"
            lines.append(f"    {src_id} -->|{label}| {_sanitize_node_id(dep)}")

    return "\n".join(lines)


_TEMPLATE = """\
# Stack Summary: {{ stack_name }}

**Generated:** {{ generated }}
**Tool:** iacdemo v{{ version }}
{% if description %}**Description:** {{ description }}
{% endif %}
---

## Resources

Synthesized **{{ resource_count }} resources** in dependency order.

| # | Logical ID | Type | Depends On |
|---|------------|------|------------|
{% for r in order %}| {{ loop.index }} | `{{ r.name }}` | `{{ r.cfn_type }}` | {{ r.references | sort | join(", ") }} |
{% endfor %}
{% if parameters %}
---

## Parameters

| Name | Type | Description |
|------|------|-------------|
{% for name, p in parameters.items() %}| `{{ name }}` | {{ p.Type }} | {{ p.Description or "" }} |
{% endfor %}{% endif %}
---

## Outputs

{% for name in outputs %}- `{{ name }}`
{% else %}_No outputs declared._
{% endfor %}
---

## Dependency Graph

```mermaid
{{ mermaid }}
```
"""


def build_report(
    stack_name: str,
    order: List[Resource],
    template: Dict[str, Any],
) -> str:
    env = Environment(autoescape=False)
    report = env.from_string(_TEMPLATE)

    return report.render(
        stack_name=stack_name,
        generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        version=__version__,
        description=template.get("Description"),
        resource_count=len(order),
        order=order,
        parameters=template.get("Parameters", {}),
        outputs=list(template.get("Outputs", {})),
        mermaid=_build_mermaid(order),
    )
