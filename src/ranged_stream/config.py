from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import requests

DEFAULT_DISCARD_SIZE = 4 * 1024
DEFAULT_USER_AGENT = "ranged-stream/0.1"


@dataclass(frozen=True)
class ReaderOptions:
    """
    Construction options for RangedStreamReader.

      • session: caller-owned requests.Session, never closed by the reader
      • headers: merged into every request, probe included (auth, cookies)
      • discard_size: largest forward seek served by draining the open response
      • timeout / max_retries / backoff: transport settings
    """

    session: Optional[requests.Session] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    discard_size: int = DEFAULT_DISCARD_SIZE
    timeout: Optional[float] = 10.0
    max_retries: int = 3
    backoff: float = 0.5
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if isinstance(self.discard_size, bool) or not isinstance(self.discard_size, int):
            raise ValueError("discard_size must be an int")
        if self.discard_size < 0:
            raise ValueError("discard_size must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 or None")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff < 0:
            raise ValueError("backoff must be >= 0")
        for key in ("Range", "If-Range"):
            if any(k.lower() == key.lower() for k in self.headers):
                raise ValueError(f"{key} header is managed by the reader")
        object.__setattr__(self, "headers", dict(self.headers))

    def base_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, **self.headers}
