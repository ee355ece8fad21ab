from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Union


@dataclass
class UpstreamRequest:
    """Request as it will be sent to the Git host."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass
class ProxyResponse:
    """Proxy response.

    `body` is text for errors produced or relayed by the proxy, and a lazy
    iterator of byte chunks for successful upstream responses.
    """
    status_code: int
    headers: Dict[str, str]
    body: Union[str, Iterable[bytes]]
    status_text: str = ""

    @property
    def streamed(self) -> bool:
        return not isinstance(self.body, (str, bytes))

    @property
    def status_line(self) -> Union[int, str]:
        """Status in the form WSGI responses take, keeping upstream text."""
        if self.status_text:
            return f"{self.status_code} {self.status_text}"
        return self.status_code
