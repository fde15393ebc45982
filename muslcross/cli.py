# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import argparse
import http.client
import multiprocessing
import os
import pathlib
import sys

from .build import (
    BuildError,
    build_toolchains,
    extract_build_tool,
    link_binaries,
    tail_log,
)
from .config import render_config, write_config
from .environment import add_env_common, host_platform, prepare_environment
from .logging import log, log_to_file
from .settings import BuildSettings
from .targets import (
    ConfigError,
    load_targets,
    parse_target_list,
    select_targets,
)
from .utils import (
    IntegrityError,
    compress_toolchain_archive,
    fetch_resources,
    required_resources,
    resolve_entry,
)
from .verify import verify_toolchains


def make_parser(targets):
    """Build the argument parser, with flags generated from the target table."""
    parser = argparse.ArgumentParser(
        prog="musl-cross-build",
        description="Build cross-compiler toolchains targeting musl libc.",
        allow_abbrev=False,
    )

    group = parser.add_argument_group("targets")
    for target in targets:
        group.add_argument(
            "--with-%s" % target.option,
            dest="enable",
            action="append_const",
            const=target.option,
            help="Build cross-compilers for %s%s"
            % (target.triple, " (default)" if target.default else ""),
        )
        group.add_argument(
            "--without-%s" % target.option,
            dest="disable",
            action="append_const",
            const=target.option,
            help="Do not build cross-compilers for %s" % target.triple,
        )

    group.add_argument(
        "--with-all-targets",
        action="store_true",
        help="Build cross-compilers for all targets, ignoring any --without flags",
    )
    group.add_argument(
        "--targets",
        help="Comma separated list of additional target options to build",
    )
    group.add_argument(
        "--list-targets",
        action="store_true",
        help="Print the known targets and exit",
    )

    parser.add_argument(
        "--build-dir",
        default="build",
        help="Directory holding downloads, logs and build trees",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory toolchains are installed into (default: BUILD_DIR/toolchains)",
    )
    parser.add_argument(
        "--link-dir",
        help="Directory to symlink installed executables into",
    )
    parser.add_argument(
        "--dist-dir",
        help="Directory to write a compressed archive of the toolchains to",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=multiprocessing.cpu_count(),
        help="Parallel jobs for each make invocation",
    )
    parser.add_argument(
        "--host-libs",
        help="Prefix containing GMP, MPFR, MPC, ISL and zstd to link against "
        "instead of building them",
    )
    parser.add_argument("--bugurl", help="Bug reporting URL embedded in GCC")
    parser.add_argument(
        "--serial",
        action="store_true",
        help="Fetch downloads one at a time",
    )
    parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="Do not smoke test the installed toolchains",
    )
    parser.add_argument(
        "--break-on-failure",
        action="store_true",
        help="Enter a Python debugger if a build step fails",
    )

    return parser


def used_options(args):
    options = ["--with-%s" % o for o in sorted(args.enable or [])]
    options.extend("--without-%s" % o for o in sorted(args.disable or []))
    if args.with_all_targets:
        options.append("--with-all-targets")

    return tuple(options)


def run(settings: BuildSettings):
    """Fetch, configure, build and verify. Returns a process exit code."""
    for d in (settings.build_dir, settings.downloads_dir, settings.logs_dir):
        d.mkdir(parents=True, exist_ok=True)

    names = required_resources(settings.host_lib_prefix)

    try:
        with log_to_file("fetch", settings.logs_dir / "fetch.log"):
            paths = fetch_resources(
                names, settings.downloads_dir, serial=settings.serial
            )
    except IntegrityError as e:
        print("error: %s" % e, file=sys.stderr)
        return 1
    except (OSError, http.client.HTTPException) as e:
        print("error: download failed: %s" % e, file=sys.stderr)
        return 1

    resources = {name: resolve_entry(name) for name in names}

    tool_dir = extract_build_tool(paths["musl-cross-make"], settings.work_dir)

    config = render_config(
        settings.selection,
        resources,
        sources_dir=settings.downloads_dir,
        output_dir=settings.output_dir,
        build_path=tool_dir,
        pkgversion=settings.pkgversion,
        bugurl=settings.bugurl,
        host_lib_prefix=settings.host_lib_prefix,
    )
    write_config(config, tool_dir / "config.mak")

    base_env = dict(os.environ)
    add_env_common(base_env)
    if settings.break_on_failure:
        base_env["MUSLCROSS_BREAK_ON_FAILURE"] = "1"

    patch = prepare_environment(settings.host_platform, settings.build_dir, base_env)

    try:
        installs = build_toolchains(
            settings.selection,
            tool_dir,
            settings.output_dir,
            patch,
            settings.jobs,
            settings.logs_dir,
        )
    except BuildError as e:
        print("error: %s" % e, file=sys.stderr)
        for line in tail_log(e.log_path):
            sys.stderr.write(line)
        return e.returncode

    if settings.link_dir:
        link_binaries(settings.output_dir, settings.link_dir)

    if not settings.skip_verify:
        report = verify_toolchains(
            installs, settings.verify_dir, log_dir=settings.logs_dir
        )

        for line in report.summary():
            log(line)

        if not report.ok:
            print(
                "error: verification failed for %s" % ", ".join(report.failed),
                file=sys.stderr,
            )
            return 1

    if settings.dist_dir:
        compress_toolchain_archive(
            settings.output_dir, settings.dist_dir, settings.dist_basename
        )

    return 0


def main(argv=None):
    try:
        targets = load_targets()
    except ConfigError as e:
        print("error: %s" % e, file=sys.stderr)
        return 1

    parser = make_parser(targets)
    args = parser.parse_args(argv)

    if args.list_targets:
        for target in targets:
            print(
                "%-12s %-24s%s"
                % (target.option, target.triple, " (default)" if target.default else "")
            )
        return 0

    try:
        enable = list(args.enable or [])
        if args.targets:
            enable.extend(parse_target_list(args.targets))

        selection = select_targets(
            targets,
            enable=enable,
            disable=args.disable or [],
            all_targets=args.with_all_targets,
        )
    except ConfigError as e:
        print("error: %s" % e, file=sys.stderr)
        return 1

    if not selection:
        log("no targets selected; nothing to build")
        return 0

    log("building %s" % ", ".join(t.triple for t in selection))

    build_dir = pathlib.Path(args.build_dir).resolve()

    settings = BuildSettings(
        host_platform=host_platform(),
        build_dir=build_dir,
        output_dir=(
            pathlib.Path(args.output_dir).resolve()
            if args.output_dir
            else build_dir / "toolchains"
        ),
        selection=selection,
        jobs=max(1, args.jobs),
        host_lib_prefix=pathlib.Path(args.host_libs) if args.host_libs else None,
        used_options=used_options(args),
        link_dir=pathlib.Path(args.link_dir).resolve() if args.link_dir else None,
        dist_dir=pathlib.Path(args.dist_dir).resolve() if args.dist_dir else None,
        bugurl=args.bugurl,
        serial=args.serial,
        skip_verify=args.skip_verify,
        break_on_failure=args.break_on_failure,
    )

    return run(settings)


if __name__ == "__main__":
    sys.exit(main())
