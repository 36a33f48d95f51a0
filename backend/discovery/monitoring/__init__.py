from .prometheus_metrics import prometheus_metrics

__all__ = ["prometheus_metrics"]
