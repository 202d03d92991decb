"""
Tests for the regrelay command line.
"""

import json
import pytest
from click.testing import CliRunner
from unittest.mock import MagicMock, patch

from regrelay.cli import cli
from regrelay.config import get_default_config
from regrelay.exit_codes import (
    CONFIG_ERROR,
    PARTIAL_FAILURE,
    REGISTRY_ERROR,
    TOOL_UNAVAILABLE,
    USAGE_ERROR,
)
from regrelay.infra.registry_client import RegistryError
from regrelay.infra.skopeo_client import SkopeoError

SRC = "reg.example.com/ns/img"
DST = "mirror.example.com/ns/img"


class FakeSkopeo:
    """Stands in for run_skopeo; prints a version and fails on chosen tags."""

    def __init__(self, fail_on=(), broken=False):
        self.calls = []
        self.fail_on = set(fail_on)
        self.broken = broken

    def __call__(self, out, err, verbose, *args, binary="skopeo"):
        self.calls.append(list(args))
        if self.broken:
            raise SkopeoError(f"cannot launch {binary}: not found")
        if args == ("--version",):
            out.write("skopeo version 1.14.2\n")
            return
        for tag in self.fail_on:
            if args[-1].endswith(f":{tag}"):
                raise SkopeoError("skopeo exited with code 1", 1)

    @property
    def transfers(self):
        return [c for c in self.calls if c != ["--version"]]


def _json_lines(output):
    lines = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith('{'):
            lines.append(json.loads(line))
    return lines


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config():
    with patch('regrelay.commands.sync.load_config') as sync_config, \
         patch('regrelay.commands.prepare.load_config') as prepare_config:
        sync_config.side_effect = get_default_config
        prepare_config.side_effect = get_default_config
        yield


def _patched(fake, lister=None):
    return (
        patch('regrelay.services.skopeo_relay.run_skopeo', fake),
        patch('regrelay.services.list_all_tags', lister or MagicMock(return_value=[])),
    )


class TestSyncCommand:

    def test_sync_explicit_tags(self, runner, config):
        fake = FakeSkopeo()
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1', '-t', 'v2'])

        assert result.exit_code == 0, result.output
        assert fake.calls[0] == ["--version"]
        assert [c[-1] for c in fake.transfers] == [f"docker://{DST}:v1", f"docker://{DST}:v2"]
        assert all(c[1] == "copy" for c in fake.transfers)
        assert "Tags synced: 2" in result.output

    def test_no_prepare(self, runner, config):
        fake = FakeSkopeo()
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1', '--no-prepare'])

        assert result.exit_code == 0
        assert ["--version"] not in fake.calls

    def test_mode_and_creds_options(self, runner, config):
        fake = FakeSkopeo()
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, [
                'sync', SRC, DST, '-t', 'v1', '--no-prepare',
                '--mode', 'sync', '--src-creds', 'alice:secret', '--certs-dir', '/certs',
                '--dest-skip-tls-verify',
            ])

        assert result.exit_code == 0, result.output
        args = fake.transfers[0]
        assert args[1] == "sync"
        assert "--src-creds=alice:secret" in args
        assert "--dest-cert-dir=/certs/mirror.example.com" in args
        assert "--dest-tls-verify=false" in args
        assert "--src-tls-verify=false" not in args

    def test_partial_failure_exit_code(self, runner, config):
        fake = FakeSkopeo(fail_on=["v1"])
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1', '-t', 'v2', '--no-prepare'])

        assert result.exit_code == PARTIAL_FAILURE
        assert len(fake.transfers) == 2
        assert "Tags failed: 1" in result.output

    def test_json_output(self, runner, config):
        fake = FakeSkopeo(fail_on=["v2"])
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1', '-t', 'v2', '--no-prepare', '--json'])

        assert result.exit_code == PARTIAL_FAILURE
        records = _json_lines(result.output)
        tags = [r for r in records if 'tag' in r]
        assert [(r['tag'], r['status']) for r in tags] == [('v1', 'success'), ('v2', 'failed')]
        summary = [r for r in records if r.get('type') == 'summary'][0]
        assert summary['failed_tags'] == ['v2']

    def test_pretty_output(self, runner, config):
        fake = FakeSkopeo()
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1', '--no-prepare', '--pretty'])

        assert result.exit_code == 0, result.output
        assert "v1" in result.output
        assert "1 tags synced" in result.output

    def test_all_tags_expansion(self, runner, config):
        fake = FakeSkopeo()
        lister = MagicMock(return_value=["a", "b", "c"])
        p1, p2 = _patched(fake, lister)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '--no-prepare', '--platform', 'all'])

        assert result.exit_code == 0, result.output
        lister.assert_called_once()
        assert lister.call_args[1] == {'timeout': 30}
        assert [c[-2] for c in fake.transfers] == [f"docker://{DST}:{t}" for t in "abc"]
        assert all(c[-1] == "--all" for c in fake.transfers)

    def test_expansion_failure(self, runner, config):
        fake = FakeSkopeo()
        lister = MagicMock(side_effect=RegistryError("connection refused"))
        p1, p2 = _patched(fake, lister)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '--no-prepare'])

        assert result.exit_code == REGISTRY_ERROR
        assert fake.transfers == []
        assert "error expanding tags" in result.output

    def test_invalid_platform(self, runner, config):
        fake = FakeSkopeo()
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1', '--no-prepare', '--platform', 'arm64'])

        assert result.exit_code == USAGE_ERROR
        assert fake.transfers == []

    def test_invalid_tag_filter(self, runner, config):
        result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'regex:(', '--no-prepare'])
        assert result.exit_code == 2
        assert "invalid tag filter" in result.output

    def test_tool_unavailable(self, runner, config):
        fake = FakeSkopeo(broken=True)
        p1, p2 = _patched(fake)
        with p1, p2:
            result = runner.invoke(cli, ['sync', SRC, DST, '-t', 'v1'])

        assert result.exit_code == TOOL_UNAVAILABLE
        assert fake.calls == [["--version"]]


class TestPrepareCommand:

    def test_prepare_prints_version(self, runner, config):
        fake = FakeSkopeo()
        with patch('regrelay.services.skopeo_relay.run_skopeo', fake):
            result = runner.invoke(cli, ['prepare'])

        assert result.exit_code == 0, result.output
        assert "skopeo version 1.14.2" in result.output

    def test_prepare_json(self, runner, config):
        fake = FakeSkopeo()
        with patch('regrelay.services.skopeo_relay.run_skopeo', fake):
            result = runner.invoke(cli, ['prepare', '--json'])

        record = _json_lines(result.output)[0]
        assert record == {'ready': True, 'relay': 'skopeo', 'version': 'skopeo version 1.14.2'}

    def test_prepare_failure(self, runner, config):
        fake = FakeSkopeo(broken=True)
        with patch('regrelay.services.skopeo_relay.run_skopeo', fake):
            result = runner.invoke(cli, ['prepare', '--binary', '/nope/skopeo'])

        assert result.exit_code == TOOL_UNAVAILABLE
        assert "/nope/skopeo" in result.output


class TestConfigCommand:

    def test_show_path(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path))
        monkeypatch.delenv('REGRELAY_CONFIG', raising=False)
        result = runner.invoke(cli, ['config', 'show', '--path'])
        assert result.exit_code == 0
        assert json.loads(result.output)['config_path'] == str(tmp_path / '.regrelay' / 'config.json')

    def test_show(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path))
        monkeypatch.delenv('REGRELAY_CONFIG', raising=False)
        result = runner.invoke(cli, ['config', 'show'])
        assert json.loads(result.output)['relay']['binary'] == 'skopeo'

    def test_generate(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path))
        monkeypatch.delenv('REGRELAY_CONFIG', raising=False)
        result = runner.invoke(cli, ['config', 'generate'])
        assert result.exit_code == 0
        assert (tmp_path / '.regrelay' / 'config.json').exists()

    def test_show_broken_file(self, runner, tmp_path, monkeypatch):
        path = tmp_path / 'broken.yaml'
        path.write_text("relay: [unclosed\n")
        monkeypatch.setenv('REGRELAY_CONFIG', str(path))
        result = runner.invoke(cli, ['config', 'show'])
        assert result.exit_code == CONFIG_ERROR
