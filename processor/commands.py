"""
Command Queue

Typed commands sent from the HTTP layer to the scheduler process.
"""
import asyncio
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TriggerCycle:
    """Run a watch cycle now if the delay since the last one has elapsed."""


@dataclass(frozen=True)
class Repost:
    """Post text on behalf of a user, subject to their daily limit."""
    user_id: str
    text: str


Command = Union[TriggerCycle, Repost]


class CommandQueue:
    """Unbounded FIFO of commands, consumed by the scheduler."""

    def __init__(self):
        self._queue: "asyncio.Queue[Command]" = asyncio.Queue()

    def submit(self, command: Command) -> None:
        self._queue.put_nowait(command)

    async def get(self) -> Command:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()
