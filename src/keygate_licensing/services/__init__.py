from keygate_licensing.services.hwid_binder import HwidBinder, SubscriptionLocks

__all__ = ["HwidBinder", "SubscriptionLocks"]
