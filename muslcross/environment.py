# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import multiprocessing
import os
import pathlib
import stat
import subprocess
import sys
import typing

from .logging import log

ENV_FILE = "~/.musl-cross-build-env"

# Executables that binutils' gprofng probes for. Finding a working JDK enables
# Java profiling support, which needs a JDK at build time.
FAKE_JDK_PROGRAMS = ("java", "javac")

FAKE_JDK_STUB = "#!/bin/sh\nexit 1\n"


class EnvironmentPatch(typing.NamedTuple):
    """Environment and make executable for running the build tool."""

    env: typing.Dict[str, str]
    make: str


def host_platform():
    if sys.platform == "linux":
        return "linux64"
    elif sys.platform == "darwin":
        return "macos"
    else:
        raise Exception("unsupported build platform: %s" % sys.platform)


def add_env_common(env, env_path=None):
    """Adds extra keys to environment variables."""

    cpu_count = multiprocessing.cpu_count()
    env["NUM_CPUS"] = "%d" % cpu_count

    if "CI" in os.environ:
        env["CI"] = "1"

    env_path = os.path.expanduser(env_path or ENV_FILE)
    try:
        with open(env_path, "r") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                key, value = line.split("=", 1)

                log("adding %s from %s" % (key, env_path))
                env[key] = value
    except FileNotFoundError:
        pass


def prepend_path(env, path):
    existing = env.get("PATH")
    env["PATH"] = "%s:%s" % (path, existing) if existing else str(path)


def brew_prefix(formula, env):
    return subprocess.run(
        ["brew", "--prefix", formula],
        check=True,
        capture_output=True,
        encoding="utf-8",
        env=env,
    ).stdout.strip()


def install_fake_jdk(build_dir: pathlib.Path) -> pathlib.Path:
    """Write always-failing ``java`` and ``javac`` stubs.

    With these first in ``PATH`` gprofng concludes no JDK is available and
    builds without Java profiling support.
    """
    bin_dir = build_dir / "fakejdk" / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)

    for name in FAKE_JDK_PROGRAMS:
        p = bin_dir / name
        p.write_text(FAKE_JDK_STUB)
        p.chmod(p.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    return bin_dir


def prepare_environment(
    host_platform, build_dir: pathlib.Path, base_env=None
) -> EnvironmentPatch:
    """Derive the environment musl-cross-make runs in.

    ``base_env`` defaults to a copy of the current environment. The process
    environment itself is never modified.
    """
    env = dict(os.environ if base_env is None else base_env)

    if host_platform == "macos":
        # The build scripts rely on GNU sed flags that BSD sed lacks.
        gnubin = env.get("GNU_SED_GNUBIN")
        if not gnubin:
            gnubin = os.path.join(brew_prefix("gnu-sed", env), "libexec", "gnubin")

        if not os.path.isdir(gnubin):
            raise Exception("GNU sed directory %s does not exist" % gnubin)

        prepend_path(env, gnubin)

        make = env.get("GNU_MAKE")
        if not make:
            make = os.path.join(brew_prefix("make", env), "bin", "gmake")

    elif host_platform == "linux64":
        prepend_path(env, install_fake_jdk(build_dir))
        make = env.get("GNU_MAKE", "make")

    else:
        raise Exception("unhandled host platform: %s" % host_platform)

    log("using %s with PATH=%s" % (make, env["PATH"]))

    return EnvironmentPatch(env=env, make=make)
