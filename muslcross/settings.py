# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import dataclasses
import pathlib
import typing

from .downloads import DOWNLOADS
from .targets import TargetSpec


@dataclasses.dataclass(frozen=True)
class BuildSettings:
    """Options for one invocation, fixed once the command line is parsed."""

    host_platform: str
    build_dir: pathlib.Path
    output_dir: pathlib.Path
    selection: typing.Tuple[TargetSpec, ...]
    jobs: int = 1
    host_lib_prefix: typing.Optional[pathlib.Path] = None
    used_options: typing.Tuple[str, ...] = ()
    link_dir: typing.Optional[pathlib.Path] = None
    dist_dir: typing.Optional[pathlib.Path] = None
    bugurl: typing.Optional[str] = None
    serial: bool = False
    skip_verify: bool = False
    break_on_failure: bool = False

    @property
    def downloads_dir(self):
        return self.build_dir / "downloads"

    @property
    def logs_dir(self):
        return self.build_dir / "logs"

    @property
    def work_dir(self):
        return self.build_dir / "work"

    @property
    def verify_dir(self):
        return self.build_dir / "verify"

    @property
    def pkgversion(self):
        return (
            "musl-cross-build GCC musl cross %s %s"
            % (DOWNLOADS["gcc"]["version"], " ".join(self.used_options))
        ).strip()

    @property
    def dist_basename(self):
        return "musl-cross-gcc-%s-%s" % (
            DOWNLOADS["gcc"]["version"],
            self.host_platform,
        )
