"""Shared test fixtures.

The build tool, compilers and binutils are stood in for by small shell
scripts written into the test's temporary directory.
"""

from __future__ import annotations

import io
import stat
import tarfile
from pathlib import Path

import pytest

from muslcross.targets import parse_targets

COMPILER_STUB = """\
#!/bin/sh
out=
while [ $# -gt 0 ]; do
  case "$1" in
    -o) shift; out="$1" ;;
  esac
  shift
done
if [ -n "$out" ]; then
  echo "ELF" > "$out"
fi
exit 0
"""

TOOL_STUB = "#!/bin/sh\nexit 0\n"
FAILING_STUB = "#!/bin/sh\necho failing >&2\nexit 1\n"

TOOLS = ("readelf", "objdump", "strings", "size", "nm", "strip")

# Records each TARGET, fails for $FAKE_MAKE_FAIL and otherwise installs a
# stub toolchain into the OUTPUT named in config.mak (or $FAKE_OUTPUT).
FAKE_MAKE = """\
#!/bin/sh
target=
for arg in "$@"; do
  case "$arg" in
    TARGET=*) target="${arg#TARGET=}" ;;
  esac
done
echo "$target" >> "$FAKE_MAKE_LOG"
echo "building $target"
if [ "$target" = "$FAKE_MAKE_FAIL" ]; then
  echo "error: boom" >&2
  exit 2
fi
output="$FAKE_OUTPUT"
if [ -z "$output" ]; then
  output=$(sed -n 's/^OUTPUT = //p' config.mak)
fi
mkdir -p "$output/bin"
printf '%s' '__COMPILER__' > "$output/bin/$target-cc"
printf '%s' '__COMPILER__' > "$output/bin/$target-c++"
for tool in __TOOLS__; do
  printf '%s' '__TOOL__' > "$output/bin/$target-$tool"
done
chmod +x "$output"/bin/*
exit 0
""".replace("__COMPILER__", COMPILER_STUB).replace(
    "__TOOL__", TOOL_STUB
).replace("__TOOLS__", " ".join(TOOLS))


def write_executable(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def targets():
    """A small target table with one default target."""
    return parse_targets(
        {
            "x86_64": {"triple": "x86_64-linux-musl", "default": True},
            "aarch64": {"triple": "aarch64-linux-musl"},
            "arm": {"triple": "arm-linux-musleabi"},
            "s390x": {
                "triple": "s390x-linux-musl",
                "gcc_config": ["--with-long-double-128"],
            },
        }
    )


@pytest.fixture
def fake_toolchain():
    """Factory writing stub ``<triple>-*`` executables into a bin directory.

    ``failing`` names executables (``cc``, ``nm``, ...) that exit 1.
    """

    def make(bin_dir: Path, triple: str, failing=()):
        for name in ("cc", "c++"):
            content = FAILING_STUB if name in failing else COMPILER_STUB
            write_executable(bin_dir / ("%s-%s" % (triple, name)), content)

        for name in TOOLS:
            content = FAILING_STUB if name in failing else TOOL_STUB
            write_executable(bin_dir / ("%s-%s" % (triple, name)), content)

    return make


@pytest.fixture
def fake_make(tmp_path: Path) -> Path:
    return write_executable(tmp_path / "fake-bin" / "make", FAKE_MAKE)


@pytest.fixture
def build_tool_archive(tmp_path: Path) -> Path:
    """A tarball laid out like a GitHub archive of musl-cross-make."""
    path = tmp_path / "musl-cross-make-d1993a6.tar.gz"

    with tarfile.open(path, "w:gz") as tf:
        data = b"all:\n"
        ti = tarfile.TarInfo("musl-cross-make-d1993a6/Makefile")
        ti.size = len(data)
        tf.addfile(ti, io.BytesIO(data))

    return path
