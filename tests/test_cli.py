"""End-to-end tests for the build_image command-line entry point."""

from __future__ import annotations

import io

import build_image

IMAGE_ID = "sha256:aaaabbbbccccddddeeeeffff0000111122223333444455556666777788889999"


def run_cli(argv, environ, runner, client=None):
    stream = io.StringIO()
    code = build_image.main(argv, environ=environ, command_runner=runner, docker_client=client, stream=stream)
    return code, stream.getvalue()


def test_successful_build_writes_outputs(tmp_path, make_runner, make_docker_client) -> None:
    output_file = tmp_path / "output"
    metadata_file = tmp_path / "meta.json"
    runner = make_runner(metadata={"containerimage.digest": "sha256:feed"})
    environ = {
        "GITHUB_REPOSITORY": "acme/widget",
        "GITHUB_REF": "refs/tags/v1.4.0",
        "GITHUB_SHA": "cafebabe",
        "GITHUB_OUTPUT": str(output_file),
        "METADATA_FILE": str(metadata_file),
        "BUILD_ARGS": "TOKEN=s3cret",
    }

    code, stdout = run_cli([], environ, runner, make_docker_client({"widget:v1.4.0": IMAGE_ID}))

    assert code == 0
    assert stdout.splitlines()[0] == "::group::Building Docker image"
    assert stdout.splitlines()[-1] == "::endgroup::"
    assert runner.commands[0][:7] == ["docker", "buildx", "build", "-f", "Dockerfile", "-t", "widget:v1.4.0"]
    outputs = output_file.read_text(encoding="utf-8")
    assert "image-name=widget:v1.4.0\n" in outputs
    assert "app-name=widget\n" in outputs
    assert "tag=v1.4.0\n" in outputs
    assert "image-id=aaaabbbbcccc\n" in outputs
    assert "digest=" not in outputs
    assert outputs.endswith('metadata<<EOF\n{"containerimage.digest": "sha256:feed"}\nEOF\n')


def test_cli_flags_override_environment(tmp_path, make_runner, make_docker_client) -> None:
    runner = make_runner(metadata={"containerimage.digest": "sha256:feed"})
    argv = [
        "--image-name", "ghcr.io/acme/widget:edge",
        "--push",
        "--build-arg", "A=1",
        "--build-arg", "B=2",
        "--metadata-file", str(tmp_path / "meta.json"),
        "--github-output", str(tmp_path / "out"),
    ]

    code, _ = run_cli(argv, {"IMAGE_NAME": "ignored:1", "PUSH": "false"}, runner, make_docker_client())

    assert code == 0
    command = runner.commands[0]
    assert "ghcr.io/acme/widget:edge" in command
    assert "--push" in command
    assert command.count("--build-arg") == 2
    outputs = (tmp_path / "out").read_text(encoding="utf-8")
    assert "image-name=ghcr.io/acme/widget:edge\n" in outputs
    assert "digest=sha256:feed\n" in outputs
    assert "app-name=" not in outputs


def test_missing_app_name_exits_with_configuration_error(tmp_path, make_runner) -> None:
    runner = make_runner()

    code, stdout = run_cli(["--metadata-file", str(tmp_path / "m.json")], {}, runner)

    assert code == 1
    assert runner.commands == []
    assert "::error::app-name is required" in stdout
    assert stdout.splitlines()[-1] == "::endgroup::"


def test_build_failure_propagates_exit_code(tmp_path, make_runner, make_docker_client) -> None:
    runner = make_runner(return_code=42)
    environ = {"APP_NAME": "svc", "METADATA_FILE": str(tmp_path / "m.json"), "GITHUB_OUTPUT": str(tmp_path / "out")}

    code, stdout = run_cli([], environ, runner, make_docker_client())

    assert code == 42
    assert "::error::Docker build failed" in stdout
    assert not (tmp_path / "out").exists()


def test_multi_platform_load_emits_warning_annotation(tmp_path, make_runner, make_docker_client) -> None:
    runner = make_runner()
    environ = {
        "APP_NAME": "svc",
        "TAG": "t",
        "PLATFORMS": "linux/amd64,linux/arm64",
        "METADATA_FILE": str(tmp_path / "m.json"),
        "GITHUB_OUTPUT": str(tmp_path / "out"),
    }

    code, stdout = run_cli([], environ, runner, make_docker_client())

    assert code == 0
    assert "--load" not in runner.commands[0]
    assert "::warning::Cannot load multi-platform builds" in stdout


def test_dry_run_prints_outputs_without_building(tmp_path, make_runner) -> None:
    runner = make_runner()
    environ = {"APP_NAME": "svc", "GITHUB_OUTPUT": str(tmp_path / "out"), "METADATA_FILE": str(tmp_path / "m.json")}

    code, stdout = run_cli(["--dry-run", "--tag", "preview"], environ, runner)

    assert code == 0
    assert runner.commands == []
    assert "image-name=svc:preview" in stdout
    assert not (tmp_path / "out").exists()


def test_env_file_is_loaded_beneath_environment(tmp_path, make_runner, make_docker_client) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("APP_NAME=from-dotenv\nTAG=dotenv-tag\n", encoding="utf-8")
    runner = make_runner()
    environ = {"TAG": "env-tag", "METADATA_FILE": str(tmp_path / "m.json"), "GITHUB_OUTPUT": str(tmp_path / "out")}

    code, _ = run_cli(["--env-file", str(env_file)], environ, runner, make_docker_client())

    assert code == 0
    assert "from-dotenv:env-tag" in runner.commands[0]


def test_invalid_inputs_file_exits_1(tmp_path, make_runner) -> None:
    inputs = tmp_path / "inputs.yaml"
    inputs.write_text("[1, 2]\n", encoding="utf-8")

    code, stdout = run_cli(["--inputs-file", str(inputs)], {}, make_runner())

    assert code == 1
    assert "::error::" in stdout
