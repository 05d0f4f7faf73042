"""
Clock implementations
Services ask an injected clock for "now" so temporal classification stays a
pure function of its inputs.
"""
from datetime import datetime
from zoneinfo import ZoneInfo


class SystemClock:
    """Wall-clock time in the portal's single configured zone, returned naive"""
    
    def __init__(self, timezone_name='UTC'):
        self.timezone = ZoneInfo(timezone_name)
    
    def now(self):
        return datetime.now(self.timezone).replace(tzinfo=None)
    
    def localize(self, value):
        """Convert an aware datetime into naive portal time; naive values pass through"""
        if value.tzinfo is None:
            return value
        return value.astimezone(self.timezone).replace(tzinfo=None)


class FixedClock(SystemClock):
    """Clock frozen at a given instant (tests, backfills)"""
    
    def __init__(self, value, timezone_name='UTC'):
        super().__init__(timezone_name)
        self.value = value
    
    def now(self):
        return self.value
