"""EmailProvider protocol — services depend on this, not the concrete implementation."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class EmailProvider(Protocol):
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        """Deliver one message. Returns False (never raises) on delivery failure."""
        ...
