from __future__ import annotations
import asyncio
import json
import sys

from taskstream.core.config import bootstrap_env
bootstrap_env()

from taskstream.api.client import AgentApiClient
from taskstream.session.controller import TaskStreamController


def show(view):
    print("VIEW:", json.dumps(view.model_dump(mode="json")))


async def main(prompt: str):
    api = AgentApiClient()
    ctl = TaskStreamController(api, on_change=show, on_notice=lambda n: print("NOTICE:", n.title, "-", n.description))
    try:
        if not await ctl.submit(prompt):
            return
        while ctl.view().is_executing:
            await asyncio.sleep(0.5)
        for m in ctl.stream.messages:
            print(f"[{m.type}:{m.step_id or '-'}] {m.content}")
    finally:
        await ctl.aclose()
        await api.aclose()


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "build a to-do app"))
