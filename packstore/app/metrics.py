"""
Métriques Prometheus du store de content packs.

Ce module définit les métriques exposées par la couche externe: nombre d'opérations par résultat
et latence par opération.
"""

from prometheus_client import Counter, Histogram, generate_latest

CONTENT_PACK_OPERATIONS = Counter(
    "content_pack_operations_total",
    "Total content pack operations",
    ["operation", "outcome"],
)
CONTENT_PACK_OPERATION_LATENCY = Histogram(
    "content_pack_operation_duration_seconds",
    "Latency of content pack operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


def render_metrics() -> bytes:
    """Exporte le registre Prometheus au format texte."""
    return generate_latest()
