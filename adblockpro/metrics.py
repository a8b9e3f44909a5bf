from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

http_requests_total = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds", "HTTP request duration", ["method", "path"]
)
webhook_events_total = Counter(
    "webhook_events_total", "Webhook events processed", ["type", "outcome"]
)
emails_sent_total = Counter(
    "emails_sent_total", "Emails sent", ["template", "outcome"]
)
auth_events_total = Counter(
    "auth_events_total", "Authentication attempts", ["action", "outcome"]
)

def observe_request(method, path_template, status, duration):
    http_requests_total.labels(method, path_template, status).inc()
    http_request_duration_seconds.labels(method, path_template).observe(duration)

def increment_webhook_event(event_type, outcome):
    webhook_events_total.labels(event_type, outcome).inc()

def increment_email_sent(template, outcome="sent"):
    emails_sent_total.labels(template, outcome).inc()

def increment_auth_event(action, outcome):
    auth_events_total.labels(action, outcome).inc()

def metrics_endpoint():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
