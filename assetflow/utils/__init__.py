from .retry import RetryPolicy, compute_backoff

__all__ = ["RetryPolicy", "compute_backoff"]
