from app.core.exceptions import DegradedError
from app.services.external.rate_engine import RateQuote


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    async def dispatch(self, event, payload):
        if self.fail:
            raise DegradedError("notification", f"{event}: webhook unreachable")
        self.events.append((event, payload))


class StubRateEngine:
    def __init__(self, quote: RateQuote | None = None, fail: bool = False):
        self._quote = quote
        self.fail = fail
        self.calls = []

    async def quote(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise DegradedError("rate_engine", "tariff service timed out")
        return self._quote
