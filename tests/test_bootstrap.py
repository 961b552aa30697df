"""Tests for BootstrapSequencer."""

import logging

import pytest
import yaml
from unittest.mock import MagicMock, patch

from appboot import options
from appboot.bootstrap import (
    STAGE_APPLY,
    STAGE_ARGUMENTS,
    STAGE_CLUSTER,
    STAGE_CONFIGURATION,
    STAGE_ENVIRONMENT,
    STAGE_PROGRAM,
    BootstrapResult,
    BootstrapSequencer,
)
from appboot.config import Configuration
from appboot.entrypoint import YarnResourceManagerFactory
from appboot.errors import (
    ConfigError,
    ConfigurationApplicationError,
    InvalidEnvironmentError,
    MalformedArgumentsError,
    PackagingError,
)
from appboot.lifecycle import ApplicationStatus, ClusterLifecycle
from appboot.program import PackagedProgram


class RecordingLifecycle(ClusterLifecycle):
    def __init__(self, status=ApplicationStatus.SUCCEEDED):
        self.status = status
        self.entrypoints = []

    def start(self, entrypoint):
        self.entrypoints.append(entrypoint)

    def wait_for_termination(self):
        return self.status


@pytest.fixture(autouse=True)
def fixed_user(monkeypatch):
    monkeypatch.setattr("appboot.environment.getpass.getuser", lambda: "yarn")


@pytest.fixture
def lifecycle():
    return RecordingLifecycle()


@pytest.fixture
def collaborators(lifecycle):
    """Sequencer with mocked configuration and program loaders."""
    config_loader = MagicMock(return_value=Configuration({"yarn.application-master.port": "50100"}))
    program_loader = MagicMock(return_value=PackagedProgram("org.example.Main"))
    lifecycle_factory = MagicMock(return_value=lifecycle)
    sequencer = BootstrapSequencer(
        YarnResourceManagerFactory.get_instance(),
        lifecycle_factory=lifecycle_factory,
        configuration_loader=config_loader,
        program_loader=program_loader,
    )
    return sequencer, config_loader, program_loader, lifecycle_factory


class TestBootstrapResult:
    def test_succeeded(self):
        assert BootstrapResult(STAGE_CLUSTER, 0).succeeded
        assert not BootstrapResult(STAGE_PROGRAM, 1, PackagingError("x")).succeeded

    def test_to_dict(self):
        result = BootstrapResult(STAGE_PROGRAM, 1, PackagingError("bad jar"))
        assert result.to_dict() == {
            "stage": "program",
            "exit_code": 1,
            "succeeded": False,
            "error": "bad jar",
        }


class TestFatalStages:
    def test_missing_working_directory_fails_before_configuration(self, collaborators, yarn_env):
        sequencer, config_loader, program_loader, _ = collaborators
        del yarn_env["PWD"]

        result = sequencer.run([], yarn_env)

        assert result.stage == STAGE_ENVIRONMENT
        assert result.exit_code == 1
        assert isinstance(result.error, InvalidEnvironmentError)
        config_loader.assert_not_called()
        program_loader.assert_not_called()

    def test_malformed_arguments(self, collaborators, yarn_env, capsys):
        sequencer, config_loader, _, _ = collaborators

        result = sequencer.run(["-D", "=no-key"], yarn_env)

        assert result.stage == STAGE_ARGUMENTS
        assert result.exit_code == 2
        assert isinstance(result.error, MalformedArgumentsError)
        assert "Usage:" in capsys.readouterr().err
        config_loader.assert_not_called()

    def test_configuration_failure(self, collaborators, yarn_env):
        sequencer, config_loader, program_loader, _ = collaborators
        config_loader.side_effect = ConfigError("NM_HOST not set")

        result = sequencer.run([], yarn_env)

        assert result.stage == STAGE_CONFIGURATION
        assert result.exit_code == 1
        program_loader.assert_not_called()

    def test_program_failure_exits_one(self, collaborators, yarn_env, caplog):
        sequencer, _, program_loader, lifecycle_factory = collaborators
        program_loader.side_effect = PackagingError("bad archive")

        with patch("appboot.bootstrap.configure_execution") as configure:
            with caplog.at_level(logging.ERROR):
                result = sequencer.run([], yarn_env)

        assert result.stage == STAGE_PROGRAM
        assert result.exit_code == 1
        assert "Could not create application program." in caplog.text
        program_loader.assert_called_once()
        configure.assert_not_called()
        lifecycle_factory.assert_not_called()

    def test_unexpected_program_failure_exits_one(self, collaborators, yarn_env):
        sequencer, _, program_loader, _ = collaborators
        program_loader.side_effect = RuntimeError("boom")

        result = sequencer.run([], yarn_env)

        assert result.stage == STAGE_PROGRAM
        assert result.exit_code == 1

    def test_apply_failure_exits_one(self, collaborators, yarn_env, caplog):
        sequencer, _, _, lifecycle_factory = collaborators

        with patch(
            "appboot.bootstrap.configure_execution",
            side_effect=ConfigurationApplicationError("cannot encode"),
        ):
            with caplog.at_level(logging.ERROR):
                result = sequencer.run([], yarn_env)

        assert result.stage == STAGE_APPLY
        assert result.exit_code == 1
        assert "Could not apply application configuration." in caplog.text
        lifecycle_factory.assert_not_called()

    def test_lifecycle_creation_failure(self, collaborators, yarn_env):
        sequencer, _, _, lifecycle_factory = collaborators
        lifecycle_factory.side_effect = ImportError("no module")

        result = sequencer.run([], yarn_env)

        assert result.stage == STAGE_CLUSTER
        assert result.exit_code == 1


class TestSuccessfulBootstrap:
    def test_hands_entrypoint_to_lifecycle(self, collaborators, lifecycle, yarn_env, tmp_path):
        sequencer, config_loader, program_loader, lifecycle_factory = collaborators

        result = sequencer.run(["-D", "rest.address=override"], yarn_env)

        assert result.succeeded
        assert result.stage == STAGE_CLUSTER
        assert result.exit_code == 0

        working_directory, dynamic, env = config_loader.call_args.args
        assert str(working_directory) == str(tmp_path)
        assert dynamic == {"rest.address": "override"}
        assert env is yarn_env

        entrypoint = lifecycle.entrypoints[0]
        assert entrypoint.program is program_loader.return_value
        assert entrypoint.get_rpc_port_range() == "50100"
        assert entrypoint.configuration.get(options.DEPLOYMENT_TARGET) == "embedded"
        lifecycle_factory.assert_called_once_with(entrypoint.configuration, yarn_env)

    def test_cluster_exit_code_is_returned(self, collaborators, lifecycle, yarn_env):
        sequencer = collaborators[0]
        lifecycle.status = ApplicationStatus.FAILED

        result = sequencer.run([], yarn_env)

        assert result.succeeded
        assert result.exit_code == 1443

    def test_process_hooks_installed(self, collaborators, yarn_env, process_hooks):
        collaborators[0].run([], yarn_env)
        process_hooks["signals"].assert_called_once()
        process_hooks["safeguard"].assert_called_once()

    def test_environment_diagnostics_failure_is_not_fatal(self, collaborators, yarn_env, caplog):
        sequencer = collaborators[0]
        with patch("appboot.bootstrap.log_environment_info", side_effect=OSError("no tty")):
            with caplog.at_level(logging.WARNING):
                result = sequencer.run([], yarn_env)

        assert result.succeeded
        assert "Could not log environment information" in caplog.text

    def test_missing_yarn_client_user_is_not_fatal(self, collaborators, yarn_env, caplog):
        sequencer = collaborators[0]
        del yarn_env["HADOOP_USER_NAME"]

        with caplog.at_level(logging.WARNING):
            result = sequencer.run([], yarn_env)

        assert result.succeeded
        assert "Could not log YARN environment information" in caplog.text


class TestEndToEnd:
    def test_archive_job(self, tmp_path, monkeypatch, yarn_env, make_archive, lifecycle):
        make_archive(
            "app.jar",
            manifest={"Main-Class": "org.example.WordCount"},
            classes=["org.example.WordCount"],
        )
        (tmp_path / "config.yaml").write_text(yaml.dump({
            "yarn.application-master.port": "50100-50200",
            "pipeline": {"jars": ["hdfs://nn/apps/app.jar"]},
        }))
        monkeypatch.chdir(tmp_path)

        sequencer = BootstrapSequencer(
            YarnResourceManagerFactory.get_instance(),
            lifecycle_factory=lambda cfg, env: lifecycle,
        )
        result = sequencer.run(
            ["-D", "$internal.application.program-args=--input;hdfs://nn/in"],
            yarn_env,
        )

        assert result.exit_code == 0
        entrypoint = lifecycle.entrypoints[0]
        assert entrypoint.program.entry_point_class == "org.example.WordCount"
        assert entrypoint.program.arguments == ("--input", "hdfs://nn/in")
        assert entrypoint.get_rpc_port_range() == "50100-50200"
        cfg = entrypoint.configuration
        assert cfg.get(options.PIPELINE_JARS) == [(tmp_path / "app.jar").as_uri()]
        assert cfg.get(options.JOBMANAGER_ADDRESS) == "node-1.cluster.local"

    def test_ambiguous_artifacts_stop_bootstrap(self, tmp_path, yarn_env, lifecycle):
        (tmp_path / "config.yaml").write_text(yaml.dump({"pipeline.jars": ["a.jar", "b.jar"]}))
        lifecycle_factory = MagicMock(return_value=lifecycle)

        result = BootstrapSequencer(lifecycle_factory=lifecycle_factory).run([], yarn_env)

        assert result.stage == STAGE_PROGRAM
        assert result.exit_code == 1
        assert isinstance(result.error, PackagingError)
        lifecycle_factory.assert_not_called()
