"""Test doubles for the wiki API, HTTP session and clocks."""

from nms_glyph_generator.wiki_client import FetchError


class FakeClock:
    """Manually advanced clock; sleep() advances it and records the delay."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def monotonic(self) -> float:
        return self.now

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float):
        self.now += seconds


def make_row(name, civilization='Galactic Hub', galaxy='Euclid', coordinates='0800:0080:0800:0079'):
    return {
        'civilizeD': civilization,
        'galaxY': galaxy,
        'coordinateS': coordinates,
        'pageName': name,
    }


def make_page(count, start=0, galaxy='Euclid', civilization='Galactic Hub'):
    """``count`` valid rows with unique region names starting at ``start``."""
    return [
        make_row(f'Region {start + i:05d}', civilization=civilization, galaxy=galaxy,
                 coordinates=f'{(start + i) % 0x1000:04X}:0080:0800:0079')
        for i in range(count)
    ]


class FakeCargoClient:
    """
    Serves pages by offset. ``pages`` maps offset -> list of rows or an
    exception to raise; unknown offsets return an empty page.
    """

    def __init__(self, pages, clock=None):
        self.pages = dict(pages)
        self.clock = clock
        self.requests = []
        self.request_times = []

    def fetch_page(self, offset=0, limit=500):
        self.requests.append(offset)
        if self.clock is not None:
            self.request_times.append(self.clock.now)
        page = self.pages.get(offset, [])
        if isinstance(page, Exception):
            raise page
        return list(page)


def failing(message='HTTP error! status: 503'):
    return FetchError(message, status_code=503)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Records GET calls and replays queued responses or exceptions."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response
