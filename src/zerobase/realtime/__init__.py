from src.zerobase.realtime.notifier import RealtimeNotifier, RealtimeSocket, Subscriber

__all__ = ["RealtimeNotifier", "RealtimeSocket", "Subscriber"]
