from typing import Any, Callable, List


class EventChannel:
    """Fire-and-forget notification channel for simulation observers.

    Listeners are called synchronously, in subscription order. A failing
    listener is logged and skipped; it never breaks the publisher.
    """

    def __init__(self, name: str, logger: Callable[[str], None] = None):
        self.name = name
        self.listeners: List[Callable[[Any], None]] = []
        self.logger = logger if logger else print

    def _log(self, message: str):
        if self.logger:
            self.logger(message)

    def subscribe(self, listener: Callable[[Any], None], replace: bool = False):
        """Registers a listener. With replace=True it becomes the only one."""
        if replace:
            self.listeners.clear()
        if listener not in self.listeners:
            self.listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Callable[[Any], None]) -> bool:
        if listener in self.listeners:
            self.listeners.remove(listener)
            return True
        return False

    def clear(self):
        self.listeners.clear()

    def publish(self, payload: Any):
        for listener in list(self.listeners):
            try:
                listener(payload)
            except Exception as e:
                self._log(f"Warning: {self.name} listener {listener!r} failed: {e}")

    def __len__(self):
        return len(self.listeners)
