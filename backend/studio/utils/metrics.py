"""
Prometheus metrics definitions for the API and Celery workers.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Generation metrics
generations_total = Counter(
    'generations_total',
    'Total image generations by kind and final status',
    ['kind', 'status']
)

generation_duration_seconds = Histogram(
    'generation_duration_seconds',
    'End-to-end generation duration in seconds',
    ['kind'],
    buckets=[1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0]
)

# XP ledger metrics
xp_debited_total = Counter(
    'xp_debited_total',
    'Total XP debited',
    ['reason']
)

xp_refunded_total = Counter(
    'xp_refunded_total',
    'Total XP refunded after failed generations',
    ['kind']
)

xp_credited_total = Counter(
    'xp_credited_total',
    'Total XP credited',
    ['source']
)

# AI provider metrics
ai_provider_requests_total = Counter(
    'ai_provider_requests_total',
    'Total AI provider requests',
    ['provider', 'operation']
)

ai_provider_failures_total = Counter(
    'ai_provider_failures_total',
    'Total AI provider failures',
    ['provider', 'operation']
)

ai_provider_latency_seconds = Histogram(
    'ai_provider_latency_seconds',
    'AI provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

# Email task metrics
emails_sent_total = Counter(
    'emails_sent_total',
    'Total emails handed to the SMTP relay',
    ['kind', 'status']
)
