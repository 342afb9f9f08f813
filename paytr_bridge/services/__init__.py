from paytr_bridge.services.order_notifier import NotifyResult, OrderNotifier

__all__ = ["NotifyResult", "OrderNotifier"]
