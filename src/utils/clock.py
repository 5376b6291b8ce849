"""Time sources used by the schedulers"""
import time


class Clock:
    """
    Provides monotonic time for interval arithmetic and wall-clock time
    for timestamps written to the remote store.
    
    Timed components take a Clock so tests can substitute a fake one.
    """
    
    def monotonic_ms(self) -> int:
        """Milliseconds from an arbitrary, never-decreasing origin"""
        return int(time.monotonic() * 1000)
    
    def epoch_seconds(self) -> int:
        """Unix timestamp in whole seconds"""
        return int(time.time())
    
