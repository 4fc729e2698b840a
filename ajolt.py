import asyncio
import typing


T = typing.TypeVar("T")


class AsyncJolt:
    """Yields to the event loop either side of a block of blocking work."""

    async def __aenter__(self) -> None:
        await asyncio.sleep(0)

    async def __aexit__(self, *args: typing.Any, **kwargs: typing.Any) -> None:
        await asyncio.sleep(0)


async def in_thread(
    func: typing.Callable[..., T], *args: typing.Any, **kwargs: typing.Any
) -> T:
    async with AsyncJolt():
        return await asyncio.to_thread(func, *args, **kwargs)
