"""In-memory remote store honoring the gateway contract.

Useful as a local stand-in for the real remote: upserts are idempotent,
steps never move backwards, and every delivered mutation is recorded.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from offline_sync.core.errors import PermanentDeliveryError
from offline_sync.core.models import ProgressSnapshot, RequestTarget


class InMemoryRemoteGateway:
    """Dict-backed implementation of RemoteGatewayProtocol."""

    def __init__(self) -> None:
        self.snapshots: dict[str, ProgressSnapshot] = {}
        self.sent: list[tuple[RequestTarget, Any]] = []
        self.upserts: list[ProgressSnapshot] = []

    async def read(self, owner_id: str) -> ProgressSnapshot | None:
        await asyncio.sleep(0)
        return self.snapshots.get(owner_id)

    async def upsert(self, owner_id: str, step: int, data: Any) -> None:
        await asyncio.sleep(0)
        current = self.snapshots.get(owner_id)
        if current is not None and step < current.step:
            raise PermanentDeliveryError(
                f"Step {step} is behind stored step {current.step} for {owner_id}",
                status_code=409,
            )
        snapshot = ProgressSnapshot(owner_id=owner_id, step=step, data=copy.deepcopy(data))
        self.snapshots[owner_id] = snapshot
        self.upserts.append(snapshot)

    async def send(self, target: RequestTarget, payload: Any) -> None:
        await asyncio.sleep(0)
        self.sent.append((target, copy.deepcopy(payload)))
