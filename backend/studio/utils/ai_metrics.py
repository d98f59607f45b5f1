"""
Decorator for tracking AI provider metrics.
"""
import time
import functools
import logging

from studio.utils.metrics import (
    ai_provider_requests_total,
    ai_provider_failures_total,
    ai_provider_latency_seconds,
)
from studio.utils.logging import log_provider_request, log_provider_failure

logger = logging.getLogger(__name__)


def track_ai_provider_metrics_async(provider_name: str, operation: str):
    """
    Async decorator to track AI provider metrics and log the call.

    Args:
        provider_name: Provider name (gemini, openai)
        operation: Operation name (generate_image, analyze_image)
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            start_time = time.time()
            model = getattr(self, "model_id", None)

            ai_provider_requests_total.labels(
                provider=provider_name,
                operation=operation
            ).inc()

            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                duration = time.time() - start_time
                ai_provider_failures_total.labels(
                    provider=provider_name,
                    operation=operation
                ).inc()
                ai_provider_latency_seconds.labels(
                    provider=provider_name,
                    operation=operation
                ).observe(duration)
                log_provider_failure(
                    logger, provider_name, operation, str(e),
                    duration_ms=duration * 1000, model=model
                )
                raise

            duration = time.time() - start_time
            ai_provider_latency_seconds.labels(
                provider=provider_name,
                operation=operation
            ).observe(duration)
            log_provider_request(
                logger, provider_name, operation,
                duration_ms=duration * 1000, model=model
            )
            return result

        return wrapper
    return decorator
