# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import collections
import os
import pathlib
import shutil
import typing

from .logging import log, log_to_file
from .utils import exec_and_log, extract_tar_to_directory


class BuildError(Exception):
    """Represents a non-zero exit from the build tool for a target."""

    def __init__(self, triple, returncode, log_path):
        super().__init__(
            "building %s failed with exit code %d; see %s"
            % (triple, returncode, log_path)
        )
        self.triple = triple
        self.returncode = returncode
        self.log_path = log_path


class ToolchainInstall(typing.NamedTuple):
    triple: str
    prefix: pathlib.Path

    @property
    def bin_dir(self):
        return self.prefix / "bin"

    def tool(self, name):
        """Path to a triple prefixed executable, e.g. ``tool("cc")``."""
        return self.bin_dir / ("%s-%s" % (self.triple, name))


def extract_build_tool(archive: pathlib.Path, work_root: pathlib.Path):
    """Extract the musl-cross-make source archive once.

    Returns the directory holding its Makefile. An existing extraction is
    reused so build directories from a previous run are kept. Extraction
    goes to a temporary sibling that is renamed into place once complete.
    """
    dest = work_root / archive.name.split(".tar")[0]

    if not dest.exists():
        temp_dest = dest.with_name("%s.tmp" % dest.name)
        if temp_dest.exists():
            log("removing incomplete extraction %s" % temp_dest)
            shutil.rmtree(temp_dest)

        log("extracting %s to %s" % (archive, dest))
        extract_tar_to_directory(archive, temp_dest)
        temp_dest.rename(dest)

    entries = [p for p in dest.iterdir() if p.is_dir()]
    if len(entries) != 1 or not (entries[0] / "Makefile").exists():
        raise Exception("unexpected layout of build tool archive %s" % archive)

    return entries[0]


def build_target(target, tool_dir: pathlib.Path, output_dir, patch, jobs, log_dir):
    """Build and install the toolchain for a single target."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / ("build.%s.log" % target.triple)

    args = [patch.make, "-j%d" % jobs, "install", "TARGET=%s" % target.triple]

    with log_to_file(target.triple, log_path):
        log("running %s in %s" % (" ".join(args), tool_dir))
        returncode = exec_and_log(args, cwd=tool_dir, env=patch.env)

    if returncode:
        raise BuildError(target.triple, returncode, log_path)

    log("installed %s into %s" % (target.triple, output_dir))

    return ToolchainInstall(triple=target.triple, prefix=pathlib.Path(output_dir))


def build_toolchains(selection, tool_dir, output_dir, patch, jobs, log_dir):
    """Build each selected target in order.

    The targets share the build tool's work directories, so builds never
    overlap. The first ``BuildError`` ends the run.
    """
    installs = []

    for target in selection:
        installs.append(
            build_target(target, tool_dir, output_dir, patch, jobs, log_dir)
        )

    return installs


def link_binaries(output_dir: pathlib.Path, link_dir: pathlib.Path):
    """Symlink every installed executable into ``link_dir``."""
    link_dir.mkdir(parents=True, exist_ok=True)

    links = []

    for source in sorted((output_dir / "bin").iterdir()):
        dest = link_dir / source.name

        if dest.is_symlink():
            dest.unlink()
        elif dest.exists():
            raise Exception("refusing to replace %s with a symlink" % dest)

        os.symlink(source.absolute(), dest)
        links.append(dest)

    log("linked %d executables into %s" % (len(links), link_dir))

    return links


def tail_log(log_path: pathlib.Path, count=50):
    """Obtain the final lines of a build log."""
    with log_path.open("r", encoding="utf-8", errors="replace") as fh:
        return list(collections.deque(fh, maxlen=count))
