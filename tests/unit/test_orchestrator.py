"""Tests for upload orchestration and the monitor."""
import hashlib
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, patch

from savebackup import BackupMonitor
from savebackup.core.backends import BackendRegistry, RootzBackend
from savebackup.core.config import BackendKind, BackupConfig
from savebackup.core.exceptions import ConfigError, ProtocolError, TransportError
from savebackup.core.orchestrator import BackupContext, CheckResult, CheckStatus, UploadOrchestrator

WEBHOOK = 'https://discord.test/hook'
NOW = datetime(2024, 5, 6, 7, 8, 9)


class StubBackend:
    """Backend double recording uploads."""

    kind = BackendKind.MULTIPART_OBJECT_STORE

    def __init__(self, url='https://rootz.test/d/abc123', error=None):
        self.upload = AsyncMock(return_value=url, side_effect=error)
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def notifier():
    mock = AsyncMock()
    mock.notify.return_value = True
    return mock


@pytest.fixture
def context(rootz_target, tmp_path):
    return BackupContext(
        target=rootz_target,
        save_dir=tmp_path,
        session_start=0,
        name_prefix='Base',
        notify_target=WEBHOOK,
    )


@pytest.fixture
def orchestrator(backend, notifier):
    return UploadOrchestrator(
        BackendRegistry().register(backend),
        notifier=notifier,
        clock=lambda: NOW
    )


class TestUploadOrchestrator:
    """Test suite for UploadOrchestrator."""

    @pytest.mark.asyncio
    async def test_no_candidate(self, orchestrator, backend, context):
        """Test an empty folder uploads nothing."""
        result = await orchestrator.check(context)

        assert result.status == CheckStatus.NO_CANDIDATE
        backend.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignores_saves_before_session(self, orchestrator, backend, context, make_file):
        """Test saves older than the session start are ignored."""
        make_file('old.zip', mtime=1000)
        context.session_start = 2000

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.NO_CANDIDATE
        backend.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_uploads_new_save(self, orchestrator, backend, notifier, context, make_file):
        """Test a new save is renamed, uploaded and announced."""
        path = make_file('world.zip', b'state-1', mtime=1000)

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.UPLOADED
        assert result.ok
        assert result.file_name == 'Base_world_20240506_070809.zip'
        assert result.url == 'https://rootz.test/d/abc123'
        backend.upload.assert_awaited_once_with(path, 'Base_world_20240506_070809.zip', context.target, None)
        assert context.last_fingerprint == hashlib.md5(b'state-1').hexdigest()
        notifier.notify.assert_awaited_once_with(
            WEBHOOK, 'Base_world_20240506_070809.zip', 'https://rootz.test/d/abc123', 'Rootz'
        )

    @pytest.mark.asyncio
    async def test_unchanged_save_not_uploaded_twice(self, orchestrator, backend, context, make_file):
        """Test the same content is uploaded once."""
        make_file('world.zip', b'state-1', mtime=1000)

        await orchestrator.check(context)
        result = await orchestrator.check(context)

        assert result.status == CheckStatus.UNCHANGED
        assert backend.upload.await_count == 1

    @pytest.mark.asyncio
    async def test_changed_save_uploaded_again(self, orchestrator, backend, context, make_file):
        """Test new content in the latest save triggers another upload."""
        make_file('world.zip', b'state-1', mtime=1000)
        await orchestrator.check(context)
        make_file('world.zip', b'state-2', mtime=2000)

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.UPLOADED
        assert backend.upload.await_count == 2
        assert context.last_fingerprint == hashlib.md5(b'state-2').hexdigest()

    @pytest.mark.asyncio
    async def test_failure_keeps_fingerprint(self, notifier, context, make_file):
        """Test a failed upload is retried on the next cycle."""
        backend = StubBackend(error=TransportError("Upload failed", status=500))
        orchestrator = UploadOrchestrator(BackendRegistry().register(backend), notifier=notifier)
        make_file('world.zip', b'state-1', mtime=1000)

        first = await orchestrator.check(context)
        second = await orchestrator.check(context)

        assert first.status == CheckStatus.FAILED
        assert not first.ok
        assert isinstance(first.error, TransportError)
        assert context.last_fingerprint is None
        assert second.status == CheckStatus.FAILED
        assert backend.upload.await_count == 2
        notifier.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_backend_is_contained(self, notifier, context, make_file):
        """Test a configuration error becomes a failed cycle."""
        orchestrator = UploadOrchestrator(BackendRegistry(), notifier=notifier)
        make_file('world.zip', mtime=1000)

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.FAILED
        assert isinstance(result.error, ConfigError)

    @pytest.mark.asyncio
    async def test_malformed_provider_reply_is_contained(
        self, fake_session, make_response, notifier, context, make_file
    ):
        """Test a success reply with string data fails the cycle only."""
        fake_session.add('POST', 'https://rootz.test/api/files/upload', make_response(
            200, {'success': True, 'data': 'abc123'}
        ))
        orchestrator = UploadOrchestrator(
            BackendRegistry().register(RootzBackend(fake_session)), notifier=notifier
        )
        make_file('world.zip', mtime=1000)

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.FAILED
        assert isinstance(result.error, ProtocolError)
        assert context.last_fingerprint is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, notifier, context, make_file):
        """Test errors outside the taxonomy still end as a failed cycle."""
        backend = StubBackend(error=AttributeError("'str' object has no attribute 'get'"))
        orchestrator = UploadOrchestrator(BackendRegistry().register(backend), notifier=notifier)
        make_file('world.zip', mtime=1000)

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.FAILED
        assert isinstance(result.error, AttributeError)
        notifier.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_fail_upload(self, orchestrator, notifier, context, make_file):
        """Test notification errors are logged only."""
        notifier.notify.side_effect = RuntimeError("webhook broke")
        make_file('world.zip', mtime=1000)

        result = await orchestrator.check(context)

        assert result.status == CheckStatus.UPLOADED
        assert context.last_fingerprint is not None

    @pytest.mark.asyncio
    async def test_no_webhook_no_notification(self, orchestrator, notifier, context, make_file):
        """Test notifications are skipped without a target."""
        context.notify_target = None
        make_file('world.zip', mtime=1000)

        await orchestrator.check(context)

        notifier.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_returns_url(self, orchestrator, backend, context, make_file):
        """Test process returns the URL, or None on failure."""
        make_file('w.zip', mtime=1)
        candidate = orchestrator.detector.latest(context.save_dir)

        assert await orchestrator.process(candidate, context, 'fp') == 'https://rootz.test/d/abc123'

        backend.upload.side_effect = TransportError("down")
        assert await orchestrator.process(candidate, context, 'fp2') is None
        assert context.last_fingerprint == 'fp'

    @pytest.mark.asyncio
    async def test_upload_file(self, orchestrator, backend, context, make_file):
        """Test an explicit file bypasses change detection."""
        path = make_file('manual.zip', b'data', mtime=1)
        context.session_start = 10 ** 10

        result = await orchestrator.upload_file(path, context)

        assert result.status == CheckStatus.UPLOADED
        assert result.file_name == 'Base_manual_20240506_070809.zip'

    @pytest.mark.asyncio
    async def test_upload_missing_file(self, orchestrator, context, tmp_path):
        """Test a missing explicit file fails the cycle."""
        result = await orchestrator.upload_file(tmp_path / 'gone.zip', context)

        assert result.status == CheckStatus.FAILED

    def test_context_from_config(self, tmp_path):
        """Test context fields are taken from the config."""
        config = BackupConfig(discord_webhook=WEBHOOK, name_prefix='Base', save_dir=tmp_path)

        context = BackupContext.from_config(config, session_start=5)

        assert context.save_dir == tmp_path
        assert context.session_start == 5
        assert context.notify_target == WEBHOOK
        assert context.name_prefix == 'Base'
        assert context.last_fingerprint is None


class TestBackupMonitor:
    """Test suite for BackupMonitor."""

    @pytest.fixture
    def config(self, tmp_path):
        return BackupConfig(check_interval_minutes=2, discord_webhook=WEBHOOK, save_dir=tmp_path)

    def make_monitor(self, config, fake_session, backend, notifier, **kwargs):
        return BackupMonitor(
            config,
            session=fake_session,
            registry=BackendRegistry().register(backend),
            notifier=notifier,
            session_start=0,
            **kwargs
        )

    @pytest.mark.asyncio
    async def test_check(self, config, fake_session, backend, notifier, make_file):
        """Test a manual check uploads the latest save."""
        make_file('world.zip', mtime=1000)

        async with self.make_monitor(config, fake_session, backend, notifier) as monitor:
            result = await monitor.check()

        assert result.status == CheckStatus.UPLOADED
        assert backend.closed
        assert not fake_session.closed

    @pytest.mark.asyncio
    async def test_run_waits_interval(self, config, fake_session, backend, notifier, make_file):
        """Test periodic checks sleep for the configured interval."""
        make_file('world.zip', mtime=1000)
        sleep = AsyncMock()
        results = []

        async with self.make_monitor(config, fake_session, backend, notifier, sleep=sleep) as monitor:
            await monitor.run(iterations=2, on_result=results.append)

        assert [c.args[0] for c in sleep.await_args_list] == [120, 120]
        assert [r.status for r in results] == [CheckStatus.UPLOADED, CheckStatus.UNCHANGED]
        assert backend.upload.await_count == 1

    @pytest.mark.asyncio
    async def test_run_survives_failing_check(self, config, fake_session, backend, notifier, make_file):
        """Test an error escaping a check does not stop monitoring."""
        check = AsyncMock(side_effect=[RuntimeError("boom"), CheckResult(CheckStatus.UNCHANGED)])
        results = []

        async with self.make_monitor(
            config, fake_session, backend, notifier, sleep=AsyncMock()
        ) as monitor:
            with patch.object(UploadOrchestrator, 'check', check):
                await monitor.run(iterations=2, on_result=results.append)

        assert [r.status for r in results] == [CheckStatus.FAILED, CheckStatus.UNCHANGED]
        assert isinstance(results[0].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_upload_file(self, config, fake_session, backend, notifier, make_file):
        """Test explicit uploads go through the configured backend."""
        path = make_file('manual.zip', mtime=1)

        async with self.make_monitor(config, fake_session, backend, notifier) as monitor:
            result = await monitor.upload_file(path)

        assert result.ok
        assert backend.upload.await_args.args[0] == path

    def test_invalid_config(self, fake_session):
        """Test invalid settings are rejected up front."""
        with pytest.raises(ConfigError):
            BackupMonitor(BackupConfig(check_interval_minutes=0), session=fake_session)
