"""Command-line entry point: resolve, build and publish step outputs."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Mapping, Optional, TextIO

from dotenv import dotenv_values

from src.buildx import (
    BuildxImageBuilder,
    DockerBuildActionError,
    GitHubOutputWriter,
    WorkflowCommands,
    load_settings,
    resolve_image_reference,
)
from src.buildx.git_context import merge_git_context
from src.buildx.issues import warning_issues
from src.common.command_runner import CommandRunner

logger = logging.getLogger("build_image")

OVERRIDE_FIELDS = (
    "context",
    "dockerfile",
    "app_name",
    "tag",
    "image_name",
    "build_args",
    "platforms",
    "cache_from",
    "cache_to",
    "push",
    "load",
    "labels",
    "target",
    "no_cache",
    "pull",
    "metadata_file",
    "docker_bin",
    "github_output",
    "git_context",
)


def configure_logging(verbose: bool) -> None:
    """Configure basic logging for CLI usage."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    logging.getLogger().setLevel(level)

    # Set log level for specific loggers to reduce noise
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('docker').setLevel(logging.WARNING)
    logging.getLogger('git').setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a Docker image with buildx and export its outputs for later CI steps.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    inputs = parser.add_argument_group("build inputs (override environment variables)")
    inputs.add_argument("--context", help="Build context path (CONTEXT, default '.').")
    inputs.add_argument("--dockerfile", help="Path to the Dockerfile (DOCKERFILE, default 'Dockerfile').")
    inputs.add_argument("--app-name", help="Application name used as image repository (APP_NAME).")
    inputs.add_argument("--tag", help="Image tag (TAG).")
    inputs.add_argument("--image-name", help="Full image reference, used verbatim (IMAGE_NAME).")
    inputs.add_argument(
        "--build-arg",
        action="append",
        dest="build_args",
        help="KEY=VALUE build argument (repeatable, BUILD_ARGS).",
    )
    inputs.add_argument("--platforms", help="Comma separated target platforms (PLATFORMS).")
    inputs.add_argument("--cache-from", help="External cache source (CACHE_FROM).")
    inputs.add_argument("--cache-to", help="Cache export destination (CACHE_TO).")
    inputs.add_argument(
        "--push",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Push the image after build (PUSH).",
    )
    inputs.add_argument(
        "--load",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Load the image into the local docker daemon (LOAD, default true).",
    )
    inputs.add_argument(
        "--label",
        action="append",
        dest="labels",
        help="KEY=VALUE image label (repeatable, LABELS).",
    )
    inputs.add_argument("--target", help="Target build stage (TARGET).")
    inputs.add_argument("--no-cache", action="store_const", const=True, default=None, help="Build without cache (NO_CACHE).")
    inputs.add_argument("--pull", action="store_const", const=True, default=None, help="Always pull base images (PULL).")

    tool = parser.add_argument_group("tool settings")
    tool.add_argument("--metadata-file", help="Where buildx writes metadata JSON (METADATA_FILE).")
    tool.add_argument("--docker-bin", help="Docker CLI executable (DOCKER_BIN).")
    tool.add_argument("--github-output", help="Step output file (GITHUB_OUTPUT).")
    tool.add_argument(
        "--git-context",
        action="store_const",
        const=True,
        default=None,
        help="Fill missing repository/ref/sha from the local git checkout (GIT_CONTEXT).",
    )
    tool.add_argument("--inputs-file", help="YAML or JSON file with build inputs.")
    tool.add_argument("--env-file", help="dotenv file loaded beneath the process environment.")
    tool.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the sanitized build command and resolved outputs without building.",
    )
    return parser


def collect_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Return CLI-provided settings keyed by settings field name."""
    return {name: getattr(args, name) for name in OVERRIDE_FIELDS if getattr(args, name) is not None}


def build_environment(environ: Optional[Mapping[str, str]], env_file: Optional[str]) -> Dict[str, str]:
    """Merge dotenv values beneath the process environment."""
    env = dict(os.environ if environ is None else environ)
    if env_file:
        if not os.path.isfile(env_file):
            logger.warning("Env file not found: %s", env_file)
        for key, value in dotenv_values(env_file).items():
            if value is not None:
                env.setdefault(key, value)
    return env


def main(
    argv: Optional[List[str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    command_runner: Optional[CommandRunner] = None,
    docker_client=None,
    stream: Optional[TextIO] = None,
) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    workflow = WorkflowCommands(stream)

    with workflow.group("Building Docker image"):
        try:
            env = build_environment(environ, args.env_file)
            settings = load_settings(env, inputs_file=args.inputs_file, overrides=collect_overrides(args))
            context = settings.context
            if settings.git_context:
                context = merge_git_context(context, settings.request.context)

            request = settings.request
            resolution = resolve_image_reference(request.image_name, request.app_name, request.tag, context)
            reference = resolution.unwrap()

            builder = BuildxImageBuilder(
                command_runner=command_runner or CommandRunner(),
                docker_client=docker_client,
            )
            result = builder.build(
                request,
                reference,
                metadata_file=settings.metadata_file,
                docker_bin=settings.docker_bin,
                dry_run=args.dry_run,
            )
        except DockerBuildActionError as exc:
            logger.error("%s", exc)
            workflow.error(str(exc))
            return exc.exit_code

        for issue in warning_issues(resolution.issues + result.issues):
            workflow.warning(issue.message)

        output_path = None if args.dry_run else settings.github_output
        GitHubOutputWriter(output_path, stream=stream).write(result.to_outputs())

    logger.info("Build completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
