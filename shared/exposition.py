"""
Text and JSON exposition of a metrics registry.
"""

import math
from typing import Any, Dict, List, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.utils import floatToGoString


def render_text(registry: CollectorRegistry) -> Tuple[bytes, str]:
    """Serialize the registry in the Prometheus text format.

    Returns the payload together with the content type to serve it with.
    """
    return generate_latest(registry), CONTENT_TYPE_LATEST


def _json_value(value: float) -> Any:
    # JSON has no representation for inf/nan
    if math.isfinite(value):
        return value
    return floatToGoString(value)


def render_json(registry: CollectorRegistry) -> List[Dict[str, Any]]:
    """Serialize the registry as one JSON object per metric family."""
    families = []
    for metric in registry.collect():
        families.append({
            "name": metric.name,
            "help": metric.documentation,
            "type": metric.type,
            "values": [
                {
                    "metricName": sample.name,
                    "labels": dict(sample.labels),
                    "value": _json_value(sample.value),
                }
                for sample in metric.samples
            ],
        })
    return families
