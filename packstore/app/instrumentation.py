"""Décorateurs transverses autour des opérations sur les content packs.

- `timed(operation)`: latence et compteur d'issue (`ok` ou `code` de l'erreur) en Prometheus.
- `audited(event_type)`: événement d'audit structlog après une mutation.

Le store et le service n'en dépendent pas: ces décorateurs sont appliqués par la couche externe.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from packstore.app.metrics import CONTENT_PACK_OPERATION_LATENCY, CONTENT_PACK_OPERATIONS
from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import ContentPackError, InvariantViolation

log = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

AUDIT_CONTENT_PACK_CREATE = "server:content_pack:create"
AUDIT_CONTENT_PACK_DELETE = "server:content_pack:delete"


def timed(operation: str) -> Callable[[F], F]:
    """Mesure la durée d'une opération et compte son issue."""

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            outcome = "ok"
            try:
                return fn(*args, **kwargs)
            except InvariantViolation as err:
                outcome = err.code
                # défaut du store: toujours journalisé pour investigation
                log.error("content_pack_invariant_violation", operation=operation, keys=err.keys)
                raise
            except ContentPackError as err:
                outcome = err.code
                raise
            except Exception:
                outcome = "error"
                raise
            finally:
                CONTENT_PACK_OPERATION_LATENCY.labels(operation=operation).observe(
                    time.perf_counter() - start
                )
                CONTENT_PACK_OPERATIONS.labels(operation=operation, outcome=outcome).inc()

        return wrapper  # type: ignore[return-value]

    return decorator


def _audit_fields(fn: Callable[..., Any], args: tuple, kwargs: dict) -> dict[str, Any]:
    """Extrait les arguments d'appel utiles à l'audit (hors `self`)."""
    bound = inspect.signature(fn).bind(*args, **kwargs)
    fields: dict[str, Any] = {}
    for name, value in bound.arguments.items():
        if name == "self":
            continue
        if isinstance(value, ContentPack):
            fields["content_pack_id"] = value.id
            fields["revision"] = value.revision
        else:
            fields[name] = value
    return fields


def audited(event_type: str) -> Callable[[F], F]:
    """Journalise un événement d'audit (succès ou échec) autour d'une mutation."""

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fields = _audit_fields(fn, args, kwargs)
            try:
                result = fn(*args, **kwargs)
            except ContentPackError as err:
                log.warning(
                    "audit_event", event_type=event_type, success=False, error=err.code, **fields
                )
                raise
            log.info("audit_event", event_type=event_type, success=True, **fields)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
