"""Integration tests: offline session, restart, reconnect, resume.

Uses the on-disk store and the in-memory remote together, the way a host
application would wire them.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from offline_sync.client import OfflineSyncClient
from offline_sync.config import Settings
from offline_sync.core.errors import ProgressAdvanceError, TransientDeliveryError
from offline_sync.factory import ServiceFactory
from tests.conftest import ScriptedGateway

pytestmark = pytest.mark.integration


def _client(settings: Settings, gateway: ScriptedGateway) -> OfflineSyncClient:
    services = ServiceFactory(settings, gateway=gateway).create_all()
    return OfflineSyncClient(settings, services=services)


class TestOfflineSession:
    """Queued mutations survive a restart and drain on reconnect."""

    @pytest.mark.asyncio
    async def test_queue_survives_restart_and_drains_in_order(
        self, test_settings: Settings
    ) -> None:
        remote = ScriptedGateway()

        first = _client(test_settings, remote)
        async with first:
            first.set_online(False)
            for n in range(3):
                first.enqueue("/api/answers", {"n": n})
        assert remote.sent == []

        second = _client(test_settings, remote)
        async with second:
            assert second.pending() == 3
            second.set_online(True)
            await second.services.dispatch.wait_idle()

        assert [payload for _, payload in remote.sent] == [{"n": 0}, {"n": 1}, {"n": 2}]
        assert _client(test_settings, remote).pending() == 0

    @pytest.mark.asyncio
    async def test_attempts_persist_across_restarts(self, test_settings: Settings) -> None:
        """The retry bound counts failures from every process, not just one."""
        remote = ScriptedGateway()
        remote.always_fail["/api/flaky"] = TransientDeliveryError("503")

        client = _client(test_settings, remote)
        client.enqueue("/api/flaky", {"x": 1})
        await client.stop()

        for _ in range(4):
            client = _client(test_settings, remote)
            report = await client.flush()
            await client.stop()
            assert len(report.retained) == 1

        client = _client(test_settings, remote)
        report = await client.flush()
        await client.stop()

        assert len(report.dropped) == 1
        assert client.pending() == 0
        assert len(remote.send_calls) == 5

    @pytest.mark.asyncio
    async def test_no_orphaned_temp_files(self, test_settings: Settings) -> None:
        remote = ScriptedGateway()
        async with _client(test_settings, remote) as client:
            for n in range(10):
                client.enqueue("/api/events", {"n": n})
            await client.flush()

        tmp_dir = Path(test_settings.storage_path) / "tmp"
        assert not tmp_dir.exists() or list(tmp_dir.iterdir()) == []


class TestProgressResume:
    """Progress reconciliation across devices and restarts."""

    @pytest.mark.asyncio
    async def test_other_device_ahead(self, temp_storage: Path, test_settings: Settings) -> None:
        """A device resuming behind the remote adopts the remote step."""
        remote = ScriptedGateway()

        phone = _client(test_settings, remote)
        await phone.advance("user-1", 1, {"name": "Ada"})
        await phone.stop()

        laptop_settings = test_settings.model_copy(
            update={"storage_path": temp_storage / "laptop"}
        )
        laptop = _client(laptop_settings, remote)
        await laptop.advance("user-1", 2, {"name": "Ada", "goal": "run"})
        await laptop.advance("user-1", 3, {"name": "Ada", "goal": "run", "days": 3})
        await laptop.stop()

        phone = _client(test_settings, remote)
        result = await phone.resume("user-1")
        await phone.stop()

        assert result.source == "remote"
        assert result.snapshot is not None
        assert result.snapshot.step == 3

        restarted = _client(test_settings, ScriptedGateway())
        assert restarted.current("user-1") == result.snapshot

    @pytest.mark.asyncio
    async def test_unconfirmed_advance_not_cached(self, test_settings: Settings) -> None:
        remote = ScriptedGateway()
        client = _client(test_settings, remote)
        await client.advance("user-1", 1, {"a": 1})

        remote.upsert_error = TransientDeliveryError("offline")
        with pytest.raises(ProgressAdvanceError):
            await client.advance("user-1", 2, {"a": 2})
        await client.stop()

        restarted = _client(test_settings, remote)
        remote.upsert_error = None
        result = await restarted.resume("user-1")
        await restarted.stop()

        assert result.snapshot is not None
        assert result.snapshot.step == 1
        assert result.source == "remote"

    @pytest.mark.asyncio
    async def test_local_progress_published_to_empty_remote(
        self, test_settings: Settings
    ) -> None:
        """A fresh remote is seeded from the local cache on resume."""
        old_remote = ScriptedGateway()
        client = _client(test_settings, old_remote)
        await client.advance("user-1", 4, {"draft": True})
        await client.stop()

        new_remote = ScriptedGateway()
        client = _client(test_settings, new_remote)
        result = await client.resume("user-1")
        await client.stop()

        assert result.source == "local"
        assert result.published is True
        assert len(new_remote.upserts) == 1
        assert new_remote.snapshots["user-1"].step == 4
