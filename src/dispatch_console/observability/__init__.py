"""
dispatch_console.observability

structlog configuration and per-command log context.
"""
