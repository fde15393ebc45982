# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Generation of the musl-cross-make ``config.mak`` file."""

import dataclasses
import pathlib
import typing

import jinja2

from .downloads import SUPPORT_LIBRARIES
from .logging import log
from .utils import write_if_different

TEMPLATES = pathlib.Path(__file__).parent / "templates"

# Make variable pinning the version of each component. Setting these stops
# musl-cross-make from picking its own defaults and downloading them.
VERSION_VARIABLES = (
    ("linux", "LINUX_VER"),
    ("binutils", "BINUTILS_VER"),
    ("gcc", "GCC_VER"),
    ("musl", "MUSL_VER"),
    ("config.sub", "CONFIG_SUB_REV"),
    ("gmp", "GMP_VER"),
    ("mpc", "MPC_VER"),
    ("mpfr", "MPFR_VER"),
    ("isl", "ISL_VER"),
)

LANGUAGES = ("c", "c++")

# Optional runtimes and numeric extensions we never need.
GCC_CONFIG = (
    "--disable-libquadmath",
    "--disable-decimal-float",
    "--disable-libitm",
    "--disable-fixed-point",
)


@dataclasses.dataclass(frozen=True)
class BuildConfig:
    sources_dir: str
    output_dir: str
    versions: typing.Tuple[typing.Tuple[str, str], ...]
    common_config: typing.Tuple[str, ...]
    gcc_config: typing.Tuple[str, ...]
    target_gcc_config: typing.Tuple[typing.Tuple[str, typing.Tuple[str, ...]], ...]

    def render(self) -> str:
        env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATES)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined,
        )

        return env.get_template("config.mak.j2").render(config=self)


def common_config(build_path, pkgversion=None, bugurl=None, host_lib_prefix=None):
    flags = [
        "--disable-nls",
        "--enable-checking=release",
        "--enable-languages=%s" % ",".join(LANGUAGES),
    ]

    if host_lib_prefix:
        prefix = pathlib.Path(host_lib_prefix)
        for lib in ("gmp", "mpfr", "mpc", "isl", "zstd"):
            flags.append("--with-%s=%s" % (lib, prefix))
        flags.append("--with-system-zlib")

    if pkgversion:
        flags.append("--with-pkgversion='%s'" % pkgversion)
    if bugurl:
        flags.append("--with-bugurl=%s" % bugurl)

    # Keep the local build path out of binaries and libraries.
    flags.append("--with-debug-prefix-map=%s=" % build_path)

    return tuple(flags)


def render_config(
    selection,
    resources,
    sources_dir: pathlib.Path,
    output_dir: pathlib.Path,
    build_path: pathlib.Path,
    pkgversion=None,
    bugurl=None,
    host_lib_prefix=None,
) -> BuildConfig:
    """Derive the build configuration for a set of targets.

    ``resources`` maps download names to resolved ``Resource`` entries and
    supplies the pinned versions. With ``host_lib_prefix`` the GCC support
    libraries are taken from that prefix instead of being built.
    """
    versions = []
    for name, variable in VERSION_VARIABLES:
        if name in SUPPORT_LIBRARIES and host_lib_prefix:
            versions.append((variable, ""))
        else:
            versions.append((variable, resources[name].version))

    target_gcc_config = tuple(
        (target.triple, target.gcc_config) for target in selection if target.gcc_config
    )

    return BuildConfig(
        sources_dir=str(sources_dir),
        output_dir=str(output_dir),
        versions=tuple(versions),
        common_config=common_config(
            build_path,
            pkgversion=pkgversion,
            bugurl=bugurl,
            host_lib_prefix=host_lib_prefix,
        ),
        gcc_config=GCC_CONFIG,
        target_gcc_config=target_gcc_config,
    )


def write_config(config: BuildConfig, dest_path: pathlib.Path):
    """Write a rendered ``config.mak``, leaving an identical file untouched."""
    if write_if_different(dest_path, config.render().encode("utf-8")):
        log("wrote %s" % dest_path)
    else:
        log("%s is up to date" % dest_path)
