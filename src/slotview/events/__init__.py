from .signal import Listenable, Listener, Signal

__all__ = ["Listenable", "Listener", "Signal"]
