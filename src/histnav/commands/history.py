import asyncio

from histnav.commands.common import open_navigator, resolve_sha
from histnav.exceptions import RequestFailedError
from histnav.formatting import short_sha


def rollback(project: str | None, ref: str) -> None:
    async def run() -> None:
        async with open_navigator(project) as navigator:
            sha = resolve_sha(navigator, ref)
            if not await navigator.rollback(sha):
                raise RequestFailedError(navigator.error or "Rollback failed")
            print(f"Rolled back to {short_sha(sha)}.")

    asyncio.run(run())


def delete(project: str | None, ref: str) -> None:
    async def run() -> None:
        async with open_navigator(project) as navigator:
            sha = resolve_sha(navigator, ref)
            if not await navigator.delete(sha):
                raise RequestFailedError(navigator.error or "Delete failed")
            print(f"Deleted version {short_sha(sha)}.")

    asyncio.run(run())
