"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- user_id
- generation_id
- template_id
- duration_ms

Usage:
    from studio.utils.logging import configure_logging, log_generation_started

    configure_logging('studio-api', 'INFO')
    log_generation_started(logger, generation_id=12, user_id=4, kind='template', xp_cost=2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (studio-api or studio-worker)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    user_id: Optional[int] = None,
    generation_id: Optional[int] = None,
    template_id: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        user_id: Optional user ID
        generation_id: Optional generation ID
        template_id: Optional template ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if user_id is not None:
        extra["user_id"] = user_id
    if generation_id is not None:
        extra["generation_id"] = generation_id
    if template_id is not None:
        extra["template_id"] = template_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def _log_error(logger: logging.Logger, message: str, extra: Dict[str, Any], include_traceback: bool):
    exc_info = sys.exc_info()
    if include_traceback and exc_info[0] is not None:
        logger.error(message, extra=extra, exc_info=exc_info)
    else:
        logger.error(message, extra=extra)


# Account event functions

def log_user_signed_up(
    logger: logging.Logger,
    user_id: int,
    provider: str,
    welcome_xp: int,
    **kwargs
):
    """Log account creation (credentials or OAuth)."""
    extra = _build_log_extra(
        event="user_signed_up",
        user_id=user_id,
        provider=provider,
        welcome_xp=welcome_xp,
        **kwargs
    )
    logger.info(f"User signed up: {user_id} via {provider}", extra=extra)


# XP event functions

def log_xp_debited(
    logger: logging.Logger,
    user_id: int,
    amount: int,
    reason: str,
    **kwargs
):
    extra = _build_log_extra(
        event="xp_debited",
        user_id=user_id,
        amount=amount,
        reason=reason,
        **kwargs
    )
    logger.info(f"Debited {amount} XP from user {user_id} ({reason})", extra=extra)


def log_xp_insufficient(
    logger: logging.Logger,
    user_id: int,
    required: int,
    current: int,
    reason: Optional[str] = None,
    **kwargs
):
    extra = _build_log_extra(
        event="xp_insufficient",
        user_id=user_id,
        required=required,
        current=current,
        **kwargs
    )
    if reason:
        extra["reason"] = reason
    logger.warning(
        f"Insufficient XP for user {user_id}: required {required}, has {current}",
        extra=extra
    )


# Generation event functions

def log_generation_started(
    logger: logging.Logger,
    generation_id: int,
    user_id: int,
    kind: str,
    xp_cost: int,
    model_id: Optional[str] = None,
    template_id: Optional[int] = None,
    **kwargs
):
    """
    Log generation start (XP reserved, provider call about to happen).

    Args:
        logger: Logger instance
        generation_id: Generation ID (required)
        user_id: User ID (required)
        kind: Generation kind (template, hairstyle, refine)
        xp_cost: XP reserved for this generation
        model_id: Optional upstream model name
        template_id: Optional template ID
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="generation_started",
        generation_id=generation_id,
        user_id=user_id,
        template_id=template_id,
        kind=kind,
        xp_cost=xp_cost,
        **kwargs
    )
    if model_id:
        extra["model_id"] = model_id

    logger.info(f"Generation started: {generation_id}", extra=extra)


def log_generation_completed(
    logger: logging.Logger,
    generation_id: int,
    user_id: int,
    duration_ms: float,
    kind: Optional[str] = None,
    **kwargs
):
    extra = _build_log_extra(
        event="generation_completed",
        generation_id=generation_id,
        user_id=user_id,
        duration_ms=duration_ms,
        **kwargs
    )
    if kind:
        extra["kind"] = kind

    logger.info(f"Generation completed: {generation_id}", extra=extra)


def log_generation_failed(
    logger: logging.Logger,
    generation_id: int,
    user_id: int,
    refunded: int,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None,
    kind: Optional[str] = None,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log generation failure. The XP reserved for the generation has been refunded.

    Args:
        logger: Logger instance
        generation_id: Generation ID (required)
        user_id: User ID (required)
        refunded: XP credited back to the user
        duration_ms: Optional duration in milliseconds
        error: Error message
        kind: Optional generation kind
        include_traceback: Whether to include stack trace (default: True for errors)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="generation_failed",
        generation_id=generation_id,
        user_id=user_id,
        duration_ms=duration_ms,
        refunded=refunded,
        **kwargs
    )
    if kind:
        extra["kind"] = kind
    if error:
        extra["error"] = str(error)

    message = f"Generation failed: {generation_id}"
    if error:
        message += f" - {error}"

    _log_error(logger, message, extra, include_traceback)


# Provider event functions

def log_provider_request(
    logger: logging.Logger,
    provider: str,
    operation: str,
    duration_ms: Optional[float] = None,
    model: Optional[str] = None,
    **kwargs
):
    """
    Log AI provider request event.

    Args:
        logger: Logger instance
        provider: Provider name (gemini, openai) (required)
        operation: Operation name (generate_image, analyze_image) (required)
        duration_ms: Optional duration in milliseconds
        model: Optional upstream model name
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_request",
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        **kwargs
    )
    if model:
        extra["model"] = model

    logger.info(f"Provider request: {provider}.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log AI provider failure event.

    Stack traces for provider failures are optional (usually not needed).
    """
    extra = _build_log_extra(
        event="provider_failure",
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )

    _log_error(logger, f"Provider failure: {provider}.{operation} - {error}", extra, include_traceback)


# Payment event functions

def log_payment_completed(
    logger: logging.Logger,
    payment_intent_id: str,
    user_id: int,
    xp_amount: int,
    **kwargs
):
    extra = _build_log_extra(
        event="payment_completed",
        user_id=user_id,
        payment_intent_id=payment_intent_id,
        xp_amount=xp_amount,
        **kwargs
    )
    logger.info(f"Payment completed: {payment_intent_id}", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
