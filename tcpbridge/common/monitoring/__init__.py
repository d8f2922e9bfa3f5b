from .prometheus import BridgeMetrics, bridge_metrics, start_metrics_server

__all__ = ["BridgeMetrics", "bridge_metrics", "start_metrics_server"]
