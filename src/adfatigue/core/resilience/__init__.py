from adfatigue.core.resilience.retry import create_retry_decorator

__all__ = ["create_retry_decorator"]
