"""Utility functions and decorators for distributed tracing"""
import inspect
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

SENSITIVE_ARGS = frozenset({"password", "token", "secret", "credentials"})


def traced(operation_name: str | None = None, attributes: dict[str, Any] | None = None):
    """
    Decorator to create a span for a function

    Usage:
        @traced("tenant.register")
        async def register_tenant(tenant_name: str, tenant_key: int):
            ...

    Args:
        operation_name: Name of the operation (defaults to function name)
        attributes: Additional attributes to add to the span
    """

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"traced expects a coroutine function, got {func!r}")
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        def _start(span: Any, kwargs: dict[str, Any]) -> None:
            for key, value in (attributes or {}).items():
                span.set_attribute(key, value)
            # Keyword arguments become attributes, minus anything secret
            for key, value in kwargs.items():
                if not key.startswith("_") and key not in SENSITIVE_ARGS:
                    span.set_attribute(f"arg.{key}", str(value))

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(
                span_name, record_exception=False, set_status_on_exception=False
            ) as span:
                _start(span, kwargs)
                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        return async_wrapper

    return decorator


def add_span_attributes(**attributes):
    """
    Add attributes to the current span

    Usage:
        add_span_attributes(tenant_key=5000, shard="s1/acme")
    """
    span = trace.get_current_span()
    if span:
        for key, value in attributes.items():
            span.set_attribute(key, value)


class TracedOperation:
    """
    Context manager for creating a traced operation

    Usage:
        async with TracedOperation("provisioning.seed", {"tenant.database": "acme"}):
            await seed_tenant()
    """

    def __init__(self, operation_name: str, attributes: dict | None = None):
        self.operation_name = operation_name
        self.attributes = attributes or {}
        self.tracer = trace.get_tracer(__name__)
        self.span = None
        self._scope = None

    def __enter__(self):
        self._scope = self.tracer.start_as_current_span(
            self.operation_name, record_exception=False, set_status_on_exception=False
        )
        self.span = self._scope.__enter__()
        for key, value in self.attributes.items():
            self.span.set_attribute(key, value)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        assert self.span is not None and self._scope is not None
        if exc_type is not None:
            self.span.set_status(Status(StatusCode.ERROR, str(exc_val)))
            self.span.record_exception(exc_val)
        else:
            self.span.set_status(Status(StatusCode.OK))
        return self._scope.__exit__(exc_type, exc_val, exc_tb)

    async def __aenter__(self):
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return self.__exit__(exc_type, exc_val, exc_tb)
