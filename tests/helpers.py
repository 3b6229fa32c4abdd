"""Test helpers shared across modules."""

from urllib.parse import parse_qs, urlsplit

PUBLIC_FQDN = "workspace-mcp.example.org"
REDIRECT_URI = "http://cb/x"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def query_params(location: str) -> dict:
    """Flatten the query string of a redirect Location header."""
    return {key: values[0] for key, values in parse_qs(urlsplit(location).query).items()}
