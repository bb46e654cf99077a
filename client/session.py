from typing import Optional


class Session:
    """Explicit auth/session state handed to the client objects.

    Holds the API base URL and the bearer token obtained from the auth
    service; nothing is read from or written to process-wide state.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def ws_url(self, path: str = "/ws") -> str:
        if self.base_url.startswith("https://"):
            return "wss://" + self.base_url[len("https://"):] + path
        if self.base_url.startswith("http://"):
            return "ws://" + self.base_url[len("http://"):] + path
        return self.base_url + path

    def with_token(self, token: str) -> "Session":
        return Session(self.base_url, token=token, timeout=self.timeout)
