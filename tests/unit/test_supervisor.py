import asyncio
import os

import pytest

from crestin.errors import ProcessExited, ProcessStartTimeout
from crestin.supervisor import ProcessSupervisor, default_socket_path


def _supervisor(fake_mpv, short_dir, **kwargs):
    return ProcessSupervisor(fake_mpv, socket_path=short_dir / "mpv.sock", **kwargs)


class TestCommandLine:
    def test_headless_flags(self, tmp_path):
        sup = ProcessSupervisor("/usr/bin/mpv", socket_path=tmp_path / "s.sock", volume=80)
        assert sup.command_line() == [
            "/usr/bin/mpv",
            "--no-video",
            "--no-terminal",
            "--idle=yes",
            f"--input-ipc-server={tmp_path / 's.sock'}",
            "--input-media-keys=yes",
            "--volume=80",
        ]

    def test_default_socket_path_is_per_process(self):
        assert str(os.getpid()) in default_socket_path().name


class TestLifecycle:
    def test_start_waits_for_socket_and_quit_cleans_up(self, fake_mpv, short_dir):
        sup = _supervisor(fake_mpv, short_dir)

        async def scenario():
            await sup.start()
            assert sup.running
            assert sup.socket_path.exists()
            await sup.quit()
            assert not sup.running
            assert not sup.socket_path.exists()
            await sup.quit()

        asyncio.run(scenario())

    def test_quit_before_start_is_safe(self, short_dir):
        sup = ProcessSupervisor("mpv", socket_path=short_dir / "never.sock")
        asyncio.run(sup.quit())
        asyncio.run(sup.quit())
        assert not sup.socket_path.exists()

    def test_quit_while_start_is_polling(self, fake_mpv, short_dir, monkeypatch):
        monkeypatch.setenv("FAKE_MPV_MODE", "no-socket")
        sup = _supervisor(fake_mpv, short_dir, poll_interval=0.02, poll_attempts=500)

        async def scenario():
            starting = asyncio.create_task(sup.start())
            await asyncio.sleep(0.2)
            await sup.quit()
            with pytest.raises(ProcessExited):
                await starting
            assert not sup.running

        asyncio.run(scenario())

    def test_socket_never_appears(self, fake_mpv, short_dir, monkeypatch):
        monkeypatch.setenv("FAKE_MPV_MODE", "no-socket")
        sup = _supervisor(fake_mpv, short_dir, poll_interval=0.01, poll_attempts=20)

        async def scenario():
            try:
                with pytest.raises(ProcessStartTimeout):
                    await sup.start()
            finally:
                await sup.quit()
            assert not sup.running

        asyncio.run(scenario())

    def test_player_dies_while_starting(self, fake_mpv, short_dir, monkeypatch):
        monkeypatch.setenv("FAKE_MPV_MODE", "crash")
        sup = _supervisor(fake_mpv, short_dir, poll_interval=0.05)

        async def scenario():
            try:
                with pytest.raises(ProcessExited) as exc:
                    await sup.start()
                assert exc.value.returncode == 3
            finally:
                await sup.quit()

        asyncio.run(scenario())

    def test_missing_binary_reports_error(self, short_dir):
        sup = ProcessSupervisor(str(short_dir / "no-such-mpv"), socket_path=short_dir / "x.sock")
        errors = []
        sup.notifier.subscribe("error", errors.append)

        with pytest.raises(OSError):
            asyncio.run(sup.start())
        assert len(errors) == 1

    def test_unexpected_exit_is_notified(self, fake_mpv, short_dir):
        sup = _supervisor(fake_mpv, short_dir)
        exits = []
        sup.notifier.subscribe("exit", exits.append)

        async def scenario():
            await sup.start()
            sup._proc.kill()
            for _ in range(100):
                if exits:
                    break
                await asyncio.sleep(0.02)
            await sup.quit()

        asyncio.run(scenario())
        assert len(exits) == 1
        assert exits[0]["expected"] is False
