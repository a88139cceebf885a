import json
import logging
import os
import stat
import sys
import pytest
import yaml
from click.testing import CliRunner
from krmrun.CLI.main import cli

@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for var in ("KRMRUN_DOCKER_PATH", "KRMRUN_KUBECTL_PATH", "KRMRUN_ENABLE_KUBERNETES",
                "KRMRUN_UID_GID", "KRMRUN_DEFER_FAILURE", "KRMRUN_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'run containerized KRM functions' in result.output

def test_command_docker():
    runner = CliRunner()
    result = runner.invoke(cli, ['command', 'example/fn:v1', '--working-dir', '/work',
                                 '--mount', 'type=bind,src=cfg,dst=/cfg', '-e', 'FOO=bar'])
    assert result.exit_code == 0
    assert result.output.startswith('docker run --rm')
    assert '--network none' in result.output
    assert '--user 65534:65534' in result.output
    assert 'type=bind,src=/work/cfg,dst=/cfg' in result.output
    assert '-e FOO=bar' in result.output
    assert result.output.strip().endswith('example/fn:v1')

def test_command_json_kubernetes():
    runner = CliRunner()
    result = runner.invoke(cli, ['command', 'example/fn:v1', '--kubernetes', '--network',
                                 '--as-user', '1000:2000', '--working-dir', '/work', '--json'])
    assert result.exit_code == 0
    invocation = json.loads(result.output)
    assert invocation['path'] == 'kubectl'
    assert invocation['working_dir'] == '/work'
    args = invocation['args']
    overrides = json.loads(args[args.index('--overrides') + 1])
    assert overrides['spec']['hostNetwork'] is True
    assert overrides['spec']['securityContext']['runAsUser'] == 1000

def test_command_backend_from_environment(monkeypatch):
    monkeypatch.setenv('KRMRUN_ENABLE_KUBERNETES', 'true')
    monkeypatch.setenv('KRMRUN_KUBECTL_PATH', 'kubectl-1.30')
    runner = CliRunner()
    result = runner.invoke(cli, ['command', 'fn', '--working-dir', '/work'])
    assert result.exit_code == 0
    assert result.output.startswith('kubectl-1.30 run fn')

def test_command_env_file(tmp_path):
    env_file = tmp_path / "fn.env"
    env_file.write_text("FROM_FILE=1\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['command', 'fn', '--working-dir', '/work', '--env-file', str(env_file)])
    assert result.exit_code == 0
    assert '-e FROM_FILE=1' in result.output

def test_command_bad_mount():
    runner = CliRunner()
    result = runner.invoke(cli, ['command', 'fn', '--mount', 'type=bind,dst=/cfg'])
    assert result.exit_code == 2
    assert 'no source' in result.output

def write_stub(tmp_path, body):
    stub = tmp_path / "docker-stub"
    stub.write_text(f"#!{sys.executable}\nimport sys\n{body}\n")
    stub.chmod(stub.stat().st_mode | stat.S_IXUSR)
    return stub

@pytest.mark.skipif(os.name == 'nt', reason="shebang stubs need a POSIX shell")
def test_run_through_function(tmp_path, monkeypatch):
    stub = write_stub(tmp_path, "sys.stdout.write(sys.stdin.read())")
    monkeypatch.setenv('KRMRUN_DOCKER_PATH', str(stub))
    runner = CliRunner()
    result = runner.invoke(cli, ['run', 'fn', '--working-dir', str(tmp_path)],
                           input="kind: ConfigMap\nmetadata:\n  name: a\n")
    assert result.exit_code == 0
    assert yaml.safe_load(result.output) == {'kind': 'ConfigMap', 'metadata': {'name': 'a'}}

@pytest.mark.skipif(os.name == 'nt', reason="shebang stubs need a POSIX shell")
def test_run_config_file(tmp_path):
    stub = write_stub(tmp_path, "sys.stdout.write(sys.stdin.read())")
    config_file = tmp_path / "krmrun.env"
    config_file.write_text(f"KRMRUN_DOCKER_PATH={stub}\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(config_file), 'run', 'fn', '--working-dir', str(tmp_path)],
                           input="kind: A\n")
    os.environ.pop('KRMRUN_DOCKER_PATH', None)
    assert result.exit_code == 0
    assert 'kind: A' in result.output

@pytest.mark.skipif(os.name == 'nt', reason="shebang stubs need a POSIX shell")
def test_run_failure(tmp_path, monkeypatch):
    stub = write_stub(tmp_path, "sys.stdin.read(); sys.stderr.write('bad input'); sys.exit(2)")
    monkeypatch.setenv('KRMRUN_DOCKER_PATH', str(stub))
    runner = CliRunner()
    result = runner.invoke(cli, ['run', 'fn', '--working-dir', str(tmp_path)], input="kind: A\n")
    assert result.exit_code == 1
    assert 'Error:' in result.output
    assert 'bad input' in result.output

@pytest.mark.skipif(os.name == 'nt', reason="shebang stubs need a POSIX shell")
def test_run_deferred_failure(tmp_path, monkeypatch):
    stub = write_stub(tmp_path, "sys.stdout.write(sys.stdin.read()); sys.exit(1)")
    monkeypatch.setenv('KRMRUN_DOCKER_PATH', str(stub))
    runner = CliRunner()
    result = runner.invoke(cli, ['run', 'fn', '--working-dir', str(tmp_path), '--defer-failure'],
                           input="kind: A\n")
    assert result.exit_code == 1
    assert 'kind: A' in result.output
    assert 'Error:' in result.output

def test_run_invalid_input():
    runner = CliRunner()
    result = runner.invoke(cli, ['run', 'fn', '--working-dir', '/work'], input="- not\n- a mapping\n")
    assert result.exit_code == 1
    assert 'invalid input' in result.output

def test_run_non_mapping_function_config(tmp_path):
    fn_config = tmp_path / "fn-config.yaml"
    fn_config.write_text("- a\n- b\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['run', 'fn', '--working-dir', '/work', '--function-config', str(fn_config)],
                           input="kind: A\n")
    assert result.exit_code == 1
    assert 'invalid input' in result.output
    assert 'mapping' in result.output

def test_run_reports_results(tmp_path, monkeypatch, caplog):
    output = {"apiVersion": "config.kubernetes.io/v1", "kind": "ResourceList", "items": [],
              "results": [{"message": "checked", "severity": "info"}]}
    stub = write_stub(tmp_path, f"sys.stdin.read(); print({json.dumps(json.dumps(output))})")
    monkeypatch.setenv('KRMRUN_DOCKER_PATH', str(stub))
    caplog.set_level(logging.INFO, logger="krmrun.CLI.main")
    runner = CliRunner()
    result = runner.invoke(cli, ['--log-level', 'INFO', 'run', 'fn', '--working-dir', str(tmp_path)],
                           input="kind: A\n")
    assert result.exit_code == 0
    assert "checked" in caplog.text
