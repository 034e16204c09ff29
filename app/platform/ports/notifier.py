from typing import Protocol, runtime_checkable

@runtime_checkable
class NotifierPort(Protocol):
    async def notify(self, recipient: str, subject: str, body: str, meta: dict | None = None) -> None: ...
