from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from scangate.errors import ForwardError


class Forwarder(ABC):
    """A downstream destination. ``send`` raises ForwardError on any failure."""

    name: str = "forwarder"

    def __init__(self, client: httpx.Client) -> None:
        self.client = client

    def _post(self, url: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.post(url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ForwardError(f"{self.name}: request failed: {exc}") from exc
        if response.status_code >= 400:
            raise ForwardError(
                f"{self.name}: HTTP {response.status_code}: {response.text[:200]}"
            )
        return response

    @abstractmethod
    def send(self, *args, **kwargs) -> None:
        ...
