"""OpenTelemetry tracing decorators."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

# Type variable for generic function signatures
F = TypeVar("F", bound=Callable[..., Any])


def _record_result(span: Span, result: Any) -> None:
    """Mark the span with the outcome of a call.

    Service methods report expected failures as a ServiceResult with
    success=False, so those are recorded as unsuccessful without an exception.
    """
    success = getattr(result, "success", True)
    span.set_attribute("success", bool(success))

    error_kind = getattr(result, "error_kind", None)
    if error_kind is not None:
        span.set_attribute("error.kind", str(getattr(error_kind, "value", error_kind)))


def _record_exception(span: Span, error: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


def traced(span_name: str | None = None, service_name: str = "dormdash-svc") -> Callable[[F], F]:
    """Decorator to add OpenTelemetry tracing to a function.

    Creates a new span for the decorated function with automatic error tracking.
    Async functions are supported.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Service name for span attributes

    Returns:
        Decorated function with tracing

    Example:
        @traced("place_order", service_name="dormdash-svc")
        async def place_order(context: AppContext) -> ServiceResult[Order]:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)

        def annotate(span: Span) -> None:
            span.set_attribute("service.name", service_name)
            if span_name:
                span.set_attribute("function.name", func.__name__)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                annotate(span)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_exception(span, e)
                    raise
                _record_result(span, result)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                annotate(span)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_exception(span, e)
                    raise
                _record_result(span, result)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
