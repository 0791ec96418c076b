"""CLI entrypoints for lavender commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .builder import ManifestBuilder
from .config import load_settings
from .errors import LavenderError
from .logging import configure_logging, get_logger
from .project import ModuleLayout, load_project
from .properties import render_properties
from .scm.revision import RevisionResolver


def _add_verbosity_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    default = argparse.SUPPRESS if suppress_default else False
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Only report warnings and errors.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lavender",
        description="Generate fingerprint manifests for a module's static resources.",
    )
    _add_verbosity_options(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Write lavender.properties for the module in PATH.",
    )
    _add_verbosity_options(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the module directory containing pom.xml (defaults to current directory).",
    )
    generate_parser.add_argument(
        "--includes",
        default=None,
        help="Comma-separated include globs; empty includes everything.",
    )
    generate_parser.add_argument(
        "--excludes",
        default=None,
        help="Comma-separated exclude globs (default: htdocs/**/*).",
    )
    generate_parser.add_argument(
        "--build-directory",
        default=None,
        help="Build output directory (default: <path>/target).",
    )
    generate_parser.add_argument("--packaging", default=None, help="Override the pom packaging.")
    generate_parser.add_argument("--artifact-id", default=None, help="Override the pom artifactId.")
    generate_parser.add_argument(
        "--scm-connection", default=None, help="Override the pom scm connection."
    )
    generate_parser.add_argument(
        "--scm-devel-connection",
        default=None,
        help="Override the pom scm developer connection.",
    )
    generate_parser.add_argument(
        "--workers", type=int, default=None, help="Number of fingerprinting threads."
    )
    generate_parser.add_argument(
        "--algorithm", default=None, help="Hash algorithm for fingerprints (default: md5)."
    )
    generate_parser.add_argument(
        "--scm-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the version-control revision lookup.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the manifest instead of writing it.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for lavender commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(getattr(args, "verbose", False)),
        quiet=bool(getattr(args, "quiet", False)),
        log_file=args.log_file,
    )

    if args.command == "generate":
        try:
            output = _run_generate(args)
        except LavenderError as exc:
            get_logger("cli").debug("generation failed", exc_info=True)
            stage = f" during {exc.stage}" if exc.stage else ""
            parser.exit(
                1,
                f"lavender generate failed{stage}: {exc.message}\n"
                "Run with --verbose for more details.\n",
            )
        print(output)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_generate(args: argparse.Namespace) -> str:
    project_dir = Path(args.path).expanduser().resolve()
    build_directory = None
    if args.build_directory:
        build_directory = Path(args.build_directory)
        if not build_directory.is_absolute():
            build_directory = Path.cwd() / build_directory

    settings = load_settings(project_dir).override(
        includes=args.includes,
        excludes=args.excludes,
        build_directory=build_directory,
        workers=args.workers,
        algorithm=args.algorithm,
        scm_timeout=args.scm_timeout,
    )
    project = load_project(
        project_dir,
        artifact_id=args.artifact_id,
        packaging=args.packaging,
        scm_connection=args.scm_connection,
        scm_devel_connection=args.scm_devel_connection,
    )
    layout = ModuleLayout.for_project(project, settings.build_directory)
    descriptor = layout.descriptor(project, settings.includes, settings.excludes)

    builder = ManifestBuilder(
        RevisionResolver(timeout=settings.scm_timeout),
        workers=settings.workers,
        algorithm=settings.algorithm,
    )
    dry_run = bool(args.dry_run)
    manifest = builder.generate(
        descriptor,
        project.basedir,
        legacy_properties=layout.legacy_properties,
        destination=None if dry_run else layout.destination,
    )
    if dry_run:
        return render_properties(manifest.items()).rstrip("\n")
    return f"generated {_relativize(layout.destination)}"


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
